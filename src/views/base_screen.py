from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import ScreenResume
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from services.errors import NotAuthenticated
from utils.logger import get_logger
from utils.messages import CartChangedMessage, ModeSwitchedMessage, UserLogoutMessage
from utils.pure import generate_markdown_table
from views.modal_dialog import DialogModal, QuitDialogModal

_logger = get_logger(__name__)


class Sidebar(Container):
    init_mode = ""

    def compose(self) -> ComposeResult:
        yield Label("Artisan", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("Log out", id="btn-logout", variant="error")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")
        yield Label("Recently Viewed", id="label-info-3")
        yield Markdown("", id="md-recent")

    async def on_mount(self):
        self.init_mode = self.app.current_mode

        list_menu: ListView = self.query_one("#list-menu", ListView)
        await list_menu.clear()
        await list_menu.extend(
            [
                ListItem(Label(v), id="list-menu-item-" + k)
                for k, v in self.app.MENU.items()
            ]
        )
        self.highlight_item(self.init_mode)
        self.refresh_info()

    @work(exclusive=True, group="sidebar")
    async def refresh_info(self) -> None:
        state = self.app.state
        if not state.profile:
            return
        rows = [
            ["Name", state.profile.name],
            ["Specialty", state.profile.specialty],
            ["Cart", f"{state.cart.count} item(s)"],
            ["Wishlist", len(state.wishlist)],
        ]
        try:
            rows.append(["Orders", await state.orders.count_orders()])
        except NotAuthenticated:
            return
        await self.query_one("#md-userinfo", Markdown).update(
            generate_markdown_table(None, rows, ["l", "l"])
        )

        recent = await state.catalog.get_products(state.recently_viewed)
        names = [f"- {recent[pid].name}" for pid in state.recently_viewed if pid in recent]
        await self.query_one("#md-recent", Markdown).update(
            "\n".join(names) or "_Nothing yet._"
        )

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.init_mode)
        if self.app.current_mode != selected_mode:
            self.post_message(ModeSwitchedMessage(self.app.current_mode, selected_mode))
            await self.app.state.remember_view(selected_mode)
            await self.app.switch_mode(selected_mode)

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self):
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.post_message(UserLogoutMessage())

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu", ListView)
        for item in list_menu.children:
            item.highlighted = item.id == "list-menu-item-" + mode_str


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    def __init__(self):
        super().__init__()

        self.configure()

    def configure(
        self,
        header_sub_title: str = "",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        """
        self.sub_title = header_sub_title
        for k, v in self.app.MODES.items():
            if isinstance(self, v) and k in self.app.MENU:
                self.sub_title = self.app.MENU[k]

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    @on(ScreenResume)
    @on(CartChangedMessage)
    def refresh_sidebar(self) -> None:
        if self._show_sidebar:
            for sidebar in self.query(Sidebar):
                sidebar.refresh_info()

    def show_error(self, error: Exception) -> None:
        _logger.warning(f"{type(error).__name__}: {error}")
        self.notify(str(error), severity="error")

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
