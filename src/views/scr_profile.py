import dataclasses

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import ScreenResume
from textual.widgets import Button, Input, Label, Markdown, OptionList
from textual.widgets.option_list import Option

from db.models import ArtisanProfile
from services.errors import MarketError
from views.base_screen import BaseScreen

# (field name, label) pairs shown in the edit form
PROFILE_FIELDS = [
    ("name", "Name"),
    ("specialty", "Specialty"),
    ("location", "Location"),
    ("experience", "Experience"),
    ("availability", "Availability"),
    ("workplace", "Workplace"),
    ("phone", "Phone"),
    ("instagram", "Instagram"),
    ("avatar_url", "Avatar URL"),
]


class ProfileScreen(BaseScreen):
    """
    Edit the logged-in artisan's profile and portfolio.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-profile"):
            with VerticalScroll(id="vert-profile-form"):
                for field_name, label in PROFILE_FIELDS:
                    yield Label(label)
                    yield Input(id=f"input-{field_name}")
                yield Button("Save Profile", id="btn-save-profile", variant="primary")
            with Vertical(id="vert-portfolio"):
                yield Label("Portfolio")
                yield OptionList(id="optlist-portfolio")
                yield Input(placeholder="Title", id="input-pf-title")
                yield Input(placeholder="Image URL", id="input-pf-image")
                yield Input(placeholder="Description", id="input-pf-desc")
                with Horizontal(id="div-portfolio-btns"):
                    yield Button("Remove", id="btn-pf-remove", variant="error")
                    yield Button("Add", id="btn-pf-add", variant="success")
                yield Button("AI Suggestions", id="btn-suggest")
                yield Markdown("", id="md-suggestions")

    @on(ScreenResume)
    def handle_resume(self) -> None:
        if self.app.state.profile:
            self.render_profile(self.app.state.profile)

    def render_profile(self, profile: ArtisanProfile) -> None:
        for field_name, _ in PROFILE_FIELDS:
            self.query_one(f"#input-{field_name}", Input).value = getattr(
                profile, field_name
            )
        opt_list = self.query_one("#optlist-portfolio", OptionList)
        opt_list.clear_options()
        opt_list.add_options([Option(p.title, id=p.id) for p in profile.portfolio])

    def _apply_profile(self, profile: ArtisanProfile) -> None:
        self.app.state.profile = profile
        self.render_profile(profile)
        self.refresh_sidebar()

    @on(Button.Pressed, "#btn-save-profile")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        state = self.app.state
        changes = {
            field_name: self.query_one(f"#input-{field_name}", Input).value.strip()
            for field_name, _ in PROFILE_FIELDS
        }
        if not changes["name"]:
            self.notify("Name cannot be empty.", severity="error")
            return
        try:
            profile = await state.catalog.update_profile(
                dataclasses.replace(state.profile, **changes)
            )
        except MarketError as e:
            self.show_error(e)
            return
        self._apply_profile(profile)
        self.notify("Profile saved.")

    @on(Button.Pressed, "#btn-pf-add")
    @work(exclusive=True)
    async def handle_add_portfolio(self) -> None:
        title_input = self.query_one("#input-pf-title", Input)
        if not title_input.value.strip():
            title_input.focus()
            title_input.add_class("-invalid")
            return
        try:
            profile = await self.app.state.catalog.add_portfolio_item(
                title_input.value.strip(),
                self.query_one("#input-pf-image", Input).value.strip(),
                self.query_one("#input-pf-desc", Input).value.strip(),
            )
        except MarketError as e:
            self.show_error(e)
            return
        for input_id in ("#input-pf-title", "#input-pf-image", "#input-pf-desc"):
            self.query_one(input_id, Input).value = ""
        self._apply_profile(profile)

    @on(Button.Pressed, "#btn-pf-remove")
    @work(exclusive=True)
    async def handle_remove_portfolio(self) -> None:
        opt_list = self.query_one("#optlist-portfolio", OptionList)
        if opt_list.highlighted is None:
            self.notify("Select a portfolio item first.", severity="warning")
            return
        item_id = opt_list.get_option_at_index(opt_list.highlighted).id
        try:
            profile = await self.app.state.catalog.remove_portfolio_item(item_id)
        except MarketError as e:
            self.show_error(e)
            return
        self._apply_profile(profile)

    @on(Button.Pressed, "#btn-suggest")
    @work(exclusive=True, group="ai")
    async def handle_suggest(self) -> None:
        md = self.query_one("#md-suggestions", Markdown)
        await md.update("_Thinking..._")
        try:
            suggestions = await self.app.state.ai.artisan_suggestions(
                self.app.state.profile
            )
        except MarketError as e:
            await md.update("")
            self.show_error(e)
            return
        await md.update("\n".join(f"- {s.lstrip('-* ')}" for s in suggestions))
