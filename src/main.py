from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from utils.logger import get_logger
from utils.messages import (
    ModeSwitchedMessage,
    QuitRequestedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.state import GlobalState
from views.scr_cart import CartScreen
from views.scr_connections import ConnectionsScreen
from views.scr_dashboard import DashboardScreen
from views.scr_login import LoginScreen
from views.scr_marketplace import MarketplaceScreen
from views.scr_products import ProductsScreen
from views.scr_profile import ProfileScreen
from views.scr_track_orders import TrackOrdersScreen
from views.scr_wishlist import WishlistScreen

_logger = get_logger(__name__)


class ArtisanMarketApp(App):
    TITLE = "Artisan Marketplace"

    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "marketplace": MarketplaceScreen,
        "wishlist": WishlistScreen,
        "cart": CartScreen,
        "track_orders": TrackOrdersScreen,
        "dashboard": DashboardScreen,
        "products": ProductsScreen,
        "profile": ProfileScreen,
        "connections": ConnectionsScreen,
    }

    # mode -> sidebar menu label, in menu order
    MENU = {
        "marketplace": "Marketplace",
        "wishlist": "Wishlist",
        "cart": "Cart",
        "track_orders": "Track Orders",
        "dashboard": "Dashboard",
        "products": "My Products",
        "profile": "Profile",
        "connections": "Connections",
    }

    DEFAULT_VIEW = "marketplace"

    CSS_PATH = [
        "styles/index.tcss",
        "styles/login.tcss",
        "styles/marketplace.tcss",
        "styles/cart.tcss",
        "styles/track_orders.tcss",
        "styles/products.tcss",
        "styles/profile.tcss",
    ]

    state: GlobalState

    def __init__(self):
        super().__init__()
        self.state = GlobalState()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLoginMessage)
    def handle_user_login(self):
        _logger.info(f"User {self.state.profile.id} logged in")

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        await self.state.end_session()
        self.notify("Logout successful.")
        self.main_flow()

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        await self.state.close()
        self.exit()

    @work(exclusive=True, group="main_flow")
    async def main_flow(self):
        profile = await self.state.restore_session()
        if profile:
            _logger.info(f"Restored session for {profile.id}")
            self.notify(f"Welcome back, {profile.name}!")
        else:
            await self.push_screen_wait(LoginScreen())

        mode = await self.state.last_view(self.DEFAULT_VIEW)
        if mode not in self.MODES:
            mode = self.DEFAULT_VIEW
        self.post_message(ModeSwitchedMessage(self.current_mode, mode))
        await self.switch_mode(mode)


def main():
    app = ArtisanMarketApp()
    app.run()


if __name__ == "__main__":
    main()
