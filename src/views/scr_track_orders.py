from typing import Dict, List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, MarkdownViewer

from db.models import ORDER_STATUSES, Order, Product
from services.errors import MarketError
from utils.messages import ModeSwitchedMessage, NewOrderMessage
from utils.pure import format_money, generate_markdown_table
from views.base_screen import BaseScreen


def render_status_tracker(order: Order) -> str:
    """One line per status, ticking off the ones the order has reached."""
    reached = ORDER_STATUSES.index(order.status)
    lines = []
    for idx, status in enumerate(ORDER_STATUSES):
        mark = "x" if idx <= reached else " "
        suffix = " **<- current**" if idx == reached else ""
        lines.append(f"- [{mark}] {status}{suffix}")
    return "\n".join(lines)


class TrackOrdersScreen(BaseScreen):
    """
    Users can browse their orders and follow their delivery.

    Layout:
    - Markdown detail view at the top, showing the highlighted order.
    - Orders table below, most recent first.
    """

    # Show some hints in footer
    BINDINGS = [
        Binding("enter", "noop", "View Order Detail", show=True, key_display="⏎"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._orders: Dict[str, Order] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("Simulate Update", id="btn-advance", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order ID", "Date", "Items", "Total", "Status")

    @on(Button.Pressed, "#btn-refresh")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(NewOrderMessage)
    def handle_refresh(self):
        self._load_orders()

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self) -> None:
        self._render_detail(self._selected_order())

    def _selected_order(self) -> Optional[Order]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_values = table.get_row_at(table.cursor_row)
        return self._orders.get(row_values[0])

    @work(exclusive=True, group="orders")
    async def _load_orders(self) -> None:
        try:
            orders: List[Order] = await self.app.state.orders.list_orders()
        except MarketError as e:
            self.show_error(e)
            return

        table = self.query_one(DataTable)
        table.clear()
        for o in orders:
            table.add_row(
                o.id,
                o.order_date.strftime("%Y-%m-%d %H:%M"),
                sum(i.quantity for i in o.items),
                format_money(o.total),
                o.status,
            )
        self._orders = {o.id: o for o in orders}

        if orders:
            table.cursor_coordinate = (0, 0)
        await self._render_detail_async(self._selected_order())

    def _render_detail(self, order: Optional[Order]) -> None:
        self.run_worker(self._render_detail_async(order), exclusive=True, group="detail")

    async def _render_detail_async(self, order: Optional[Order]) -> None:
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if not order:
            await viewer.document.update(
                "### No orders yet.\n\nPlaced orders show up here."
            )
            return

        products: Dict[str, Product] = await self.app.state.catalog.get_products(
            i.product_id for i in order.items
        )
        rows = []
        for item in order.items:
            prod = products.get(item.product_id)
            rows.append(
                [
                    prod.name if prod else item.product_id,
                    item.quantity,
                    format_money(prod.price) if prod else "-",
                ]
            )
        details = order.delivery_details
        md = (
            f"### Order {order.id}\n"
            f"Placed: {order.order_date:%Y-%m-%d %H:%M}  \n"
            f"Expected delivery: {order.expected_delivery:%Y-%m-%d}  \n"
            f"Current location: {order.current_location}\n\n"
            f"{render_status_tracker(order)}\n\n"
            + generate_markdown_table(
                ["Product", "Qty", "Unit Price"], rows, ["l", "r", "r"]
            )
            + f"\n\n**Total:** {format_money(order.total)}\n\n"
            f"Ship to {details.name}, {details.address}  \n"
            f"Contact: {details.email}, {details.phone}  \n"
            f"Paid with {details.payment_method}"
        )
        await viewer.document.update(md)

    @on(Button.Pressed, "#btn-advance")
    @work(exclusive=True, group="advance")
    async def handle_advance(self) -> None:
        order = self._selected_order()
        if not order:
            self.notify("Select an order first.", severity="warning")
            return
        try:
            updated = await self.app.state.orders.advance_order(order.id)
        except MarketError as e:
            self.show_error(e)
            return
        self.notify(f"Order {updated.id} is now {updated.status}.")
        self._load_orders()
