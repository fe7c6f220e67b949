from typing import Dict, Literal, Tuple

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Markdown

from utils.messages import QuitRequestedMessage

Tone = Literal["default", "positive", "warning", "error"]


class DialogModal(ModalScreen[bool]):
    """
    Yes/no (or just OK) dialog. Dismisses with True for the primary button.
    """

    # tone -> (primary variant, secondary variant)
    VARIANT_MAP: Dict[str, Tuple[str, str]] = {
        "default": ("primary", "default"),
        "positive": ("success", "default"),
        "warning": ("warning", "default"),
        "error": ("error", "primary"),
    }

    def __init__(
        self,
        caption: str,
        primary_text: str = "OK",
        secondary_text: str = "",
        tone: Tone = "default",
    ):
        super().__init__()
        self.caption = caption
        self.primary_text = primary_text
        self.secondary_text = secondary_text
        self.tone = tone

    def compose_caption(self) -> ComposeResult:
        yield Label(self.caption, id="caption")

    def compose(self) -> ComposeResult:
        with Container(id="div-dialog"):
            yield from self.compose_caption()
            with Horizontal(id="dialog"):
                if self.secondary_text:
                    yield Button(
                        self.secondary_text,
                        variant=self.VARIANT_MAP[self.tone][1],
                        id="btn-secondary",
                    )
                yield Button(
                    self.primary_text,
                    variant=self.VARIANT_MAP[self.tone][0],
                    id="btn-primary",
                )

    def on_mount(self):
        # destructive dialogs focus the safe choice
        if self.secondary_text and self.tone == "error":
            self.query_one("#btn-secondary").focus()
        else:
            self.query_one("#btn-primary").focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id in ("btn-primary", "btn-secondary"):
            self.choose(event.button.id == "btn-primary")

    def choose(self, confirmed: bool) -> None:
        self.dismiss(confirmed)


class SimpleDialogModal(DialogModal):
    def __init__(self, caption: str):
        super().__init__(caption)


class MockInboxModal(DialogModal):
    """
    Stands in for the verification email, since no mail is actually sent.
    """

    def __init__(self, name: str, email: str, code: str, resent: bool = False):
        super().__init__(f"Mock inbox: {email}", primary_text="Got it")
        first_name = name.split()[0] if name.split() else "there"
        adjective = "new " if resent else ""
        self.body = (
            f"Hi {first_name},\n\n"
            f"Your {adjective}verification code is: **{code}**"
        )

    def compose_caption(self) -> ComposeResult:
        yield Label(self.caption, id="caption")
        yield Markdown(self.body, id="md-inbox")


class QuitDialogModal(DialogModal):
    def __init__(self):
        super().__init__("Are you sure you want to quit?", "Yes", "No", "error")

    def choose(self, confirmed: bool) -> None:
        if confirmed:
            self.post_message(QuitRequestedMessage())
        self.dismiss(confirmed)
