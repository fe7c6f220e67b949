from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from db.models import ArtisanProfile, DashboardData, DeliveryDetails, Order
from services.ai_gateway import AiGateway
from services.cart import Cart, ToggleSet, push_recent
from services.catalog import CatalogService
from services.orders import OrderWorkflow, append_to_latest_period
from services.session import SessionManager
from services.storage import (
    LAST_VIEW_KEY,
    RECENTLY_VIEWED_KEY,
    REMEMBER_ME_KEY,
    ClientStorage,
)

# artisans a fresh client follows, as in the demo data
DEFAULT_FOLLOWING = ("user2", "user3", "user4")


@dataclass
class GlobalState:
    """
    Centralized application state shared by screens.

    Fields:
      - profile: logged-in artisan, None before login
      - cart / wishlist / following: client-side collections
      - recently_viewed: product ids, most recent first, at most 4
      - dashboard: cached dashboard numbers, kept in step after each order
      - sessions / catalog / orders / ai: the services screens call into
    """

    storage: ClientStorage = field(default_factory=ClientStorage)
    profile: Optional[ArtisanProfile] = None
    cart: Cart = field(default_factory=Cart)
    wishlist: ToggleSet = field(default_factory=ToggleSet)
    following: ToggleSet = field(default_factory=lambda: ToggleSet(DEFAULT_FOLLOWING))
    recently_viewed: List[str] = field(default_factory=list)
    dashboard: Optional[DashboardData] = None
    ai: AiGateway = field(default_factory=AiGateway)

    sessions: SessionManager = field(init=False)
    catalog: CatalogService = field(init=False)
    orders: OrderWorkflow = field(init=False)

    def __post_init__(self) -> None:
        self.sessions = SessionManager(self.storage)
        self.catalog = CatalogService(self.sessions)
        self.orders = OrderWorkflow(self.sessions)

    async def start_session(
        self, email: str, password: str, remember_me: bool = False
    ) -> ArtisanProfile:
        """Log in and load what the screens need. Raises InvalidCredentials."""
        self.profile = await self.sessions.login(email, password, remember_me)
        await self._load_user_data()
        return self.profile

    async def restore_session(self) -> Optional[ArtisanProfile]:
        """Pick up a remembered session on startup, if there is one."""
        self.profile = await self.sessions.check_session()
        if self.profile:
            await self._load_user_data()
        return self.profile

    async def end_session(self) -> None:
        """
        End the current session if one exists.
        This is called upon logging out and when quitting without remember-me.
        """
        await self.sessions.logout()
        self.profile = None
        self.dashboard = None

    async def close(self) -> None:
        """On quit: keep a remembered session alive, end any other."""
        if self.profile and not await self.storage.get_durable(REMEMBER_ME_KEY):
            await self.end_session()

    async def _load_user_data(self) -> None:
        self.dashboard = await self.orders.get_dashboard()
        self.recently_viewed = await self.storage.get_durable_list(RECENTLY_VIEWED_KEY)

    async def last_view(self, default: str) -> str:
        return await self.storage.get_durable(LAST_VIEW_KEY) or default

    async def remember_view(self, view: str) -> None:
        if self.profile:
            await self.storage.set_durable(LAST_VIEW_KEY, view)

    async def view_product(self, product_id: str) -> None:
        self.recently_viewed = push_recent(self.recently_viewed, product_id)
        if self.profile:
            await self.storage.set_durable_list(RECENTLY_VIEWED_KEY, self.recently_viewed)

    async def place_order(self, details: DeliveryDetails) -> Order:
        """Checkout the cart, then mirror the new total into the cached dashboard."""
        order = await self.orders.place_order(self.cart, details)
        if self.dashboard is not None:
            margin = self.orders.profit_margin
            self.dashboard = DashboardData(
                sales=append_to_latest_period(self.dashboard.sales, order.total),
                profit=append_to_latest_period(self.dashboard.profit, order.total * margin),
                engagement=self.dashboard.engagement,
            )
        return order
