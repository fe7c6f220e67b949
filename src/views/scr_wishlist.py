from textual import events, on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label

from utils.messages import CartChangedMessage, WishlistChangedMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal


class WishlistScreen(BaseScreen):
    """
    Products the user hearted, with shortcuts to move them into the cart.
    """

    BINDINGS = [
        Binding("enter", "noop", "View Product", show=True, key_display="⏎"),
    ]

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Label("", id="label-wishlist-count")
        yield DataTable(id="table-wishlist")
        with Horizontal(id="hort-buttons"):
            yield Button("Remove", id="btn-remove", variant="error")
            yield Button("Move to Cart", id="btn-move-to-cart", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Price", "Artisan")

    @on(ScreenResume)
    @on(WishlistChangedMessage)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        state = self.app.state
        ids = list(state.wishlist)
        products = await state.catalog.get_products(ids)

        table = self.query_one(DataTable)
        table.clear()
        for pid in ids:
            if pid in products:
                p = products[pid]
                table.add_row(p.id, p.name, format_money(p.price), p.artisan_name)
        self.query_one("#label-wishlist-count", Label).update(
            f"{table.row_count} item(s) in your wishlist"
        )

    def _selected_id(self):
        table = self.query_one(DataTable)
        if not table.row_count:
            self.notify("Wishlist is empty.", severity="warning")
            return None
        return table.get_row_at(table.cursor_row)[0]

    async def on_key(self, event: events.Key) -> None:
        table = self.query_one(DataTable)
        if event.key == "enter" and self.focused == table and table.row_count:
            self.open_product(table.get_row_at(table.cursor_row)[0])

    @work()
    async def open_product(self, product_id: str) -> None:
        await self.app.push_screen_wait(ProdDetailModal(product_id))

    @on(Button.Pressed, "#btn-remove")
    def handle_remove(self) -> None:
        product_id = self._selected_id()
        if product_id:
            self.app.state.wishlist.toggle(product_id)
            self.post_message(WishlistChangedMessage())

    @on(Button.Pressed, "#btn-move-to-cart")
    def handle_move_to_cart(self) -> None:
        product_id = self._selected_id()
        if not product_id:
            return
        state = self.app.state
        state.cart.add(product_id, 1)
        state.wishlist.toggle(product_id)
        self.notify("Moved to cart.")
        self.post_message(WishlistChangedMessage())
        self.post_message(CartChangedMessage())
