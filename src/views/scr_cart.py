from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.message import Message
from textual.widgets import Button, Label, Rule

from db.models import CartItem, Product
from utils.messages import CartChangedMessage, ModeSwitchedMessage, NewOrderMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal
from views.modal_prod_detail import ProdDetailModal


class CartItemActionEditMessage(Message):
    bubble = True


class CartItemActionRemoveMessage(Message):
    bubble = True


class CartItemActionLabel(Label):
    def action_edit(self):
        self.post_message(CartItemActionEditMessage())

    def action_remove(self):
        self.post_message(CartItemActionRemoveMessage())


class CartItemWidget(HorizontalGroup):
    def __init__(self, item: CartItem, prod: Product):
        super().__init__()

        self.item = item
        self._prod = prod

    def compose(self):
        with Container(id="div-cart-item-group"):
            with Container(id="div-item"):
                yield Label(content=self._prod.name, id="label-item-name")
                yield Label(content=str(self.item.quantity), id="label-item-qty")
                yield Label(
                    content=format_money(self._prod.price * self.item.quantity),
                    id="label-item-price",
                )
            with Container(id="div-actions"):
                yield CartItemActionLabel(
                    content="[@click=edit()]Edit[/]", id="link-item-edit"
                )
                yield CartItemActionLabel(
                    content="[@click=remove()]Remove[/]", id="link-item-remove"
                )

    @on(CartItemActionEditMessage)
    @work()
    async def handle_edit_item(self):
        if await self.app.push_screen_wait(ProdDetailModal(self.item.product_id)):
            self.post_message(CartChangedMessage())

    @on(CartItemActionRemoveMessage)
    @work()
    async def handle_remove_item(self):
        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove this item from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        )

        if remove_confirmed:
            self.app.state.cart.remove(self.item.product_id)
            self.post_message(CartChangedMessage())
            self.notify("Item removed from cart.", severity="information")


class CartScreen(BaseScreen):
    """
    Items in the cart, with editing and checkout
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield VerticalScroll(id="vertscroll-content")
        yield Label("Total Cart Value: $0.00", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    async def on_mount(self):
        self.handle_cart_change()

    @on(CartChangedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True)  # must be exclusive, else racing reloads mount duplicates
    async def handle_cart_change(self):
        cart_items = list(self.app.state.cart.items)
        products = await self.app.state.catalog.get_products(
            item.product_id for item in cart_items
        )

        content = self.query_one("#vertscroll-content")
        await content.remove_children()
        await content.mount_all(
            [
                CartItemWidget(item, products[item.product_id])
                for item in cart_items
                if item.product_id in products
            ]
        )

        if not cart_items:
            content.add_class("no-items")
        else:
            content.remove_class("no-items")

        total_value = sum(
            products[item.product_id].price * item.quantity
            for item in cart_items
            if item.product_id in products
        )
        self.query_one("#label-cart-total", Label).update(
            f"Total Cart Value: {format_money(total_value)}"
        )

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        cart = self.app.state.cart
        if cart.is_empty():
            self.app.notify("Cart is empty.", severity="warning")
            return

        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        )
        if remove_confirmed:
            cart.clear()
            self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        if self.app.state.cart.is_empty():
            self.app.notify("Cart is empty.", severity="warning")
            return

        order_id = await self.app.push_screen_wait(CheckoutModal())
        if order_id:
            self.app.post_message(NewOrderMessage(order_id))
        self.post_message(CartChangedMessage())
