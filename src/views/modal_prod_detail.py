from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer

from db.models import Product
from utils.messages import CartChangedMessage, WishlistChangedMessage
from utils.pure import format_money, generate_markdown_table


class ProdDetailModal(ModalScreen[bool]):
    """
    prod detail, plus adding to cart and wishlist
    Will return true if cart changed, false if not
    """

    order_qty = reactive(1, init=False)

    def __init__(self, product_id: str) -> None:
        super().__init__()

        self._product_id = product_id
        self._prod: Product = None
        self._in_cart = 0

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical(id="vert-prod-actions"):
                yield Label("Order Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(value="1", id="input-order-qty", type="integer")
                    yield Button("+", id="btn-add-qty")
                yield Button("♡ Wishlist", id="btn-wishlist")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        state = self.app.state
        self._prod = await state.catalog.get_product(self._product_id)
        if self._prod is None:
            self.app.notify("Product not found.", severity="error")
            self.dismiss(False)
            return
        await state.view_product(self._product_id)

        rows = [
            ["Category", self._prod.category],
            ["Price", format_money(self._prod.price)],
            ["In Stock", self._prod.stock],
            ["Artisan", self._prod.artisan_name],
        ]
        md = (
            f"### {self._prod.name}\n\n"
            f"_{self._prod.short_description}_\n\n"
            + generate_markdown_table(["Attribute", "Value"], rows, ["l", "l"])
            + f"\n\n{self._prod.description}"
        )
        await self.query_one(MarkdownViewer).document.update(md)

        stock_cnt = self._prod.stock
        if stock_cnt < 1:
            order_btn = self.query_one("#btn-addcart", Button)
            order_btn.label = "Out of Stock"
            order_btn.disabled = True
            order_btn.variant = "warning"

        self.query_one("#input-order-qty").validators = [
            Number(minimum=1, maximum=max(stock_cnt, 1))
        ]

        self._in_cart = state.cart.quantity_of(self._product_id)
        if self._in_cart:
            self.query_one("#btn-addcart", Button).label = "Update Cart"
            self.order_qty = self._in_cart
        else:
            self.watch_order_qty(self.order_qty)
        self._render_wishlist_button()

        self.query_one("#input-order-qty").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    async def on_input_changed(self, message: Input.Changed) -> None:
        if (
            message.input.id == "input-order-qty"
            and message.input.is_valid
            and self.focused == message.input
        ):
            self.order_qty = int(message.value)

    def watch_order_qty(self, qty: int):
        self.query_one("#btn-sub-qty").disabled = qty <= 1
        self.query_one("#btn-add-qty").disabled = qty >= self._prod.stock
        self.query_one("#input-order-qty", Input).value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.order_qty -= 1

    def _render_wishlist_button(self) -> None:
        btn = self.query_one("#btn-wishlist", Button)
        if self._product_id in self.app.state.wishlist:
            btn.label = "♥ In Wishlist"
            btn.variant = "error"
        else:
            btn.label = "♡ Wishlist"
            btn.variant = "default"

    @on(Button.Pressed, "#btn-wishlist")
    def handle_wishlist(self):
        added = self.app.state.wishlist.toggle(self._product_id)
        self.app.notify(
            "Added to wishlist." if added else "Removed from wishlist."
        )
        self._render_wishlist_button()
        self.app.post_message(WishlistChangedMessage())

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    @work(exclusive=True)
    async def handle_addcart(self):
        cart = self.app.state.cart
        if not self._in_cart:
            cart.add(self._product_id, self.order_qty)
            self.app.notify(f"{self._prod.name} added to cart.")
        else:
            cart.set_quantity(self._product_id, self.order_qty)
            self.app.notify("Updated cart item quantity.")

        self.app.post_message(CartChangedMessage())
        self.dismiss(True)
