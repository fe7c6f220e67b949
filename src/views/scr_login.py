from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.events import Key
from textual.reactive import reactive
from textual.timer import Timer
from textual.widgets import Button, Checkbox, Input, Label, TabbedContent, TabPane

from services.errors import MarketError
from utils.config import settings
from utils.messages import UserLoginMessage
from views.base_screen import BaseScreen
from views.modal_dialog import MockInboxModal, QuitDialogModal


class LoginScreen(BaseScreen):
    """
    Login and sign up. Dismisses once a user is logged in.

    Signing up takes two steps: the details form sends a verification code
    to the (mock) inbox, then the code form finishes the registration.
    """

    resend_countdown = reactive(0, init=False)

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Login", show_sidebar=False)
        self._countdown_timer: Timer = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane("Login", id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label("Email")
                    yield Input(placeholder="elena@example.com", id="input-login-email")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-login-pwd"
                    )
                    yield Checkbox("Remember me", id="chk-remember")
                    with Horizontal(id="div-login-btns"):
                        yield Button("Quit", id="btn-quit")
                        yield Button("Login", id="btn-login", variant="primary")

            with TabPane("Sign up", id="tab-signup"):
                with Vertical(id="div-reg"):
                    yield Label("Name")
                    yield Input(placeholder="Jane Doe", id="input-reg-name")
                    yield Label("Email")
                    yield Input(placeholder="user@example.com", id="input-reg-email")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-reg-pwd"
                    )
                    with Container(id="div-reg-btns"):
                        yield Button("Send Code", id="btn-send-otp", variant="primary")

                with Vertical(id="div-otp", classes="hidden"):
                    yield Label("", id="label-otp-sent")
                    yield Input(
                        placeholder="123456",
                        id="input-otp",
                        max_length=6,
                        restrict=r"[0-9]*",
                    )
                    with Horizontal(id="div-otp-btns"):
                        yield Button("Back", id="btn-otp-back")
                        yield Button("Resend", id="btn-resend-otp")
                        yield Button("Verify", id="btn-verify-otp", variant="primary")

    def on_mount(self):
        self.query_one("#input-login-email").focus()

    def on_key(self, event: Key) -> None:
        if event.key != "enter":
            return
        if self.focused == self.query_one("#input-login-pwd"):
            self.handle_login_submit()
        elif self.focused == self.query_one("#input-reg-pwd"):
            self.handle_send_otp()
        elif self.focused == self.query_one("#input-otp"):
            self.handle_verify_otp()

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        email = self.query_one("#input-login-email", Input).value.strip()
        pwd = self.query_one("#input-login-pwd", Input).value
        remember_me = self.query_one("#chk-remember", Checkbox).value

        if not email or not pwd:
            self.notify("Email or password cannot be empty!", severity="error")
            return

        try:
            profile = await self.app.state.start_session(email, pwd, remember_me)
        except MarketError as e:
            self.show_error(e)
            input_login_pwd = self.query_one("#input-login-pwd", Input)
            input_login_pwd.value = ""
            input_login_pwd.focus()
            input_login_pwd.add_class("-invalid")
            return

        self.notify(f"Welcome back, {profile.name}!")
        self.app.post_message(UserLoginMessage())
        self.dismiss(True)

    # sign up

    def _registration_fields(self):
        name = self.query_one("#input-reg-name", Input).value.strip()
        email = self.query_one("#input-reg-email", Input).value.strip()
        pwd = self.query_one("#input-reg-pwd", Input).value
        return name, email, pwd

    @on(Button.Pressed, "#btn-send-otp")
    @work(exclusive=True)
    async def handle_send_otp(self) -> None:
        name, email, pwd = self._registration_fields()
        if not name or not email or not pwd:
            self.notify("Make sure all inputs are filled.", severity="error")
            return
        if await self._send_code(name, email, resent=False):
            self.query_one("#div-reg").add_class("hidden")
            self.query_one("#div-otp").remove_class("hidden")
            self.query_one("#label-otp-sent", Label).update(
                f"We sent a 6-digit code to {email}."
            )
            self.query_one("#input-otp").focus()

    @on(Button.Pressed, "#btn-resend-otp")
    @work(exclusive=True)
    async def handle_resend_otp(self) -> None:
        if self.resend_countdown > 0:
            return
        name, email, _ = self._registration_fields()
        await self._send_code(name, email, resent=True)

    async def _send_code(self, name: str, email: str, resent: bool) -> bool:
        try:
            code = await self.app.state.sessions.send_registration_otp(email)
        except MarketError as e:
            self.show_error(e)
            return False

        await self.app.push_screen_wait(MockInboxModal(name, email, code, resent))
        self.start_countdown()
        return True

    def start_countdown(self) -> None:
        if self._countdown_timer:
            self._countdown_timer.stop()
        self.resend_countdown = settings.otp_resend_cooldown
        self._countdown_timer = self.set_interval(1.0, self._tick_countdown)

    def _tick_countdown(self) -> None:
        self.resend_countdown -= 1
        if self.resend_countdown <= 0 and self._countdown_timer:
            self._countdown_timer.stop()
            self._countdown_timer = None

    def watch_resend_countdown(self, seconds: int) -> None:
        btn_resend = self.query_one("#btn-resend-otp", Button)
        btn_resend.disabled = seconds > 0
        btn_resend.label = f"Resend ({seconds}s)" if seconds > 0 else "Resend"

    @on(Button.Pressed, "#btn-otp-back")
    def handle_otp_back(self) -> None:
        self.query_one("#div-otp").add_class("hidden")
        self.query_one("#div-reg").remove_class("hidden")
        self.query_one("#input-otp", Input).value = ""

    @on(Button.Pressed, "#btn-verify-otp")
    @work(exclusive=True)
    async def handle_verify_otp(self) -> None:
        name, email, pwd = self._registration_fields()
        input_otp = self.query_one("#input-otp", Input)

        try:
            await self.app.state.sessions.register(
                name, email, pwd, input_otp.value.strip()
            )
        except MarketError as e:
            self.show_error(e)
            input_otp.value = ""
            input_otp.focus()
            input_otp.add_class("-invalid")
            return

        self.handle_otp_back()
        self.get_child_by_type(TabbedContent).active = "tab-login"
        input_login_email = self.query_one("#input-login-email", Input)
        input_login_pwd = self.query_one("#input-login-pwd", Input)
        input_login_email.value = email
        input_login_pwd.value = pwd
        input_login_pwd.focus()

        self.notify("Registration successful. You can log in now.")

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())
