from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta
from typing import List, Mapping, Optional, Tuple

import db.crud as crud
from db.models import (
    ORDER_STATUSES,
    PAYMENT_METHODS,
    CartItem,
    DashboardData,
    DeliveryDetails,
    Order,
    OrderStatus,
    PeriodValue,
    Product,
)
from services.cart import Cart
from services.errors import (
    EmptyCart,
    InvalidDeliveryDetails,
    InvalidStatusTransition,
    OrderNotFound,
)
from services.session import SessionManager
from utils.config import settings
from utils.logger import get_logger

_logger = get_logger(__name__)


def order_total(items: Tuple[CartItem, ...], catalog: Mapping[str, Product]) -> float:
    """Sum of unit price x quantity; a product missing from the catalog counts as 0."""
    total = 0.0
    for item in items:
        product = catalog.get(item.product_id)
        if product is None:
            continue
        total += product.price * item.quantity
    return round(total, 2)


def append_to_latest_period(
    series: Tuple[PeriodValue, ...], amount: float
) -> Tuple[PeriodValue, ...]:
    """New series with `amount` added to the last period. Empty series stay empty."""
    if not series:
        return series
    last = series[-1]
    return series[:-1] + (dataclasses.replace(last, value=last.value + amount),)


def next_status(status: OrderStatus) -> OrderStatus:
    """Following lifecycle step. Raises InvalidStatusTransition after Delivered."""
    try:
        idx = ORDER_STATUSES.index(status)
    except ValueError:
        raise InvalidStatusTransition(f"Unknown order status: {status}") from None
    if idx == len(ORDER_STATUSES) - 1:
        raise InvalidStatusTransition(f"Order is already {status}.")
    return ORDER_STATUSES[idx + 1]


def validate_delivery_details(details: DeliveryDetails) -> DeliveryDetails:
    """Strip every field; raise InvalidDeliveryDetails if one is missing."""
    cleaned = DeliveryDetails(
        name=(details.name or "").strip(),
        email=(details.email or "").strip(),
        phone=(details.phone or "").strip(),
        address=(details.address or "").strip(),
        payment_method=details.payment_method,
    )
    missing = [
        f.name
        for f in dataclasses.fields(cleaned)
        if f.name != "payment_method" and not getattr(cleaned, f.name)
    ]
    if missing:
        raise InvalidDeliveryDetails(
            "Missing delivery details: " + ", ".join(m.replace("_", " ") for m in missing)
        )
    if cleaned.payment_method not in PAYMENT_METHODS:
        raise InvalidDeliveryDetails(
            f"Unsupported payment method: {cleaned.payment_method}"
        )
    if "@" not in cleaned.email:
        raise InvalidDeliveryDetails("Please enter a valid email address.")
    return cleaned


class OrderWorkflow:
    """
    Turns the cart into an order and keeps the dashboard totals in step.
    """

    def __init__(
        self,
        sessions: SessionManager,
        store=crud,
        profit_margin: Optional[float] = None,
    ) -> None:
        self._sessions = sessions
        self._store = store
        self._profit_margin = profit_margin

    @property
    def profit_margin(self) -> float:
        if self._profit_margin is None:
            return settings.profit_margin
        return self._profit_margin

    async def place_order(
        self,
        cart: Cart,
        delivery_details: DeliveryDetails,
        catalog: Optional[Mapping[str, Product]] = None,
        when: Optional[datetime] = None,
    ) -> Order:
        """
        Create an order from `cart`, then empty the cart and book the total
        on the dashboard. Prices come from `catalog` if given, else the store.
        """
        owner = await self._sessions.require_session()
        if cart.is_empty():
            raise EmptyCart()
        details = validate_delivery_details(delivery_details)

        items = cart.items
        if catalog is None:
            catalog = await self._store.get_products(i.product_id for i in items)
        missing = [i.product_id for i in items if i.product_id not in catalog]
        if missing:
            _logger.warning(f"Pricing missing products at 0: {', '.join(missing)}")

        when = when or datetime.now()
        order = Order(
            id=await self._store.new_order_id(),
            owner_id=owner.id,
            order_date=when,
            items=items,
            total=order_total(items, catalog),
            delivery_details=details,
            status="Placed",
            expected_delivery=(when + timedelta(days=settings.delivery_days)).date(),
            current_location=settings.origin_location,
        )
        await self._store.insert_order(order)
        cart.clear()
        await self.update_dashboard(order.total)

        _logger.info(
            f"Order {order.id} placed by {owner.id}: {len(items)} line(s), total {order.total:.2f}"
        )
        return order

    async def update_dashboard(
        self, amount: float, profit_margin: Optional[float] = None
    ) -> DashboardData:
        """
        Add `amount` to the latest sales bucket and amount x margin to the
        latest profit bucket. Series without buckets are left alone.
        """
        margin = self.profit_margin if profit_margin is None else profit_margin
        if not await self._store.book_sale(amount, amount * margin):
            _logger.debug("Dashboard has no periods to book into")
        return await self._store.get_dashboard()

    async def get_dashboard(self) -> DashboardData:
        await self._sessions.require_session()
        return await self._store.get_dashboard()

    async def list_orders(self) -> List[Order]:
        """The current user's orders, most recent first."""
        owner = await self._sessions.require_session()
        return await self._store.list_orders(owner.id)

    async def count_orders(self) -> int:
        owner = await self._sessions.require_session()
        return await self._store.count_orders(owner.id)

    async def advance_order(
        self, order_id: str, current_location: Optional[str] = None
    ) -> Order:
        """
        Move an order one step along Placed -> Shipped -> Out for Delivery ->
        Delivered. No carrier drives this yet; it exists for tracking updates.
        """
        owner = await self._sessions.require_session()
        order = await self._store.get_order(order_id)
        if order is None or order.owner_id != owner.id:
            raise OrderNotFound()
        status = next_status(order.status)
        location = current_location or order.current_location
        await self._store.update_order_status(order_id, status, location)
        _logger.info(f"Order {order_id}: {order.status} -> {status}")
        return dataclasses.replace(order, status=status, current_location=location)
