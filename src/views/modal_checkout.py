from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer, Select

from db.models import PAYMENT_METHODS, DeliveryDetails
from services.errors import MarketError
from services.orders import order_total
from utils.logger import get_logger
from utils.pure import format_money, generate_markdown_table
from views.modal_dialog import DialogModal

_logger = get_logger(__name__)


class CheckoutModal(ModalScreen[str]):
    """
    Order summary plus a delivery details form.
    Dismisses with the new order id on success, "" otherwise.
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            with VerticalScroll(id="vert-delivery"):
                yield Label("Full Name")
                yield Input(placeholder="Jane Doe", id="input-name")
                yield Label("Email")
                yield Input(placeholder="user@example.com", id="input-email")
                yield Label("Phone")
                yield Input(placeholder="+1 555 0100", id="input-phone")
                yield Label("Delivery Address")
                yield Input(
                    placeholder="123 Main St, Anytown, ST 00000",
                    id="input-address-line",
                )
                yield Label("Payment Method")
                yield Select(
                    [(m, m) for m in PAYMENT_METHODS],
                    value=PAYMENT_METHODS[0],
                    allow_blank=False,
                    id="select-payment",
                )
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        state = self.app.state
        cart_items = state.cart.items
        products = await state.catalog.get_products(i.product_id for i in cart_items)

        headers = ["Product Name", "Unit Price", "Quantity", "Total Price"]
        rows = [
            [
                products[item.product_id].name,
                format_money(products[item.product_id].price),
                item.quantity,
                format_money(products[item.product_id].price * item.quantity),
            ]
            for item in cart_items
            if item.product_id in products
        ]
        aligns = ["l", "c", "c", "c"]
        md = "### Order Summary\n\n" + generate_markdown_table(headers, rows, aligns)
        md += f"\n\n**Total:** {format_money(order_total(cart_items, products))}"
        await self.query_one(MarkdownViewer).document.update(md)

        # prefill from the logged-in profile
        if state.profile:
            self.query_one("#input-name", Input).value = state.profile.name
            self.query_one("#input-phone", Input).value = state.profile.phone
        self.query_one("#input-email").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss("")

    def _read_details(self) -> DeliveryDetails:
        return DeliveryDetails(
            name=self.query_one("#input-name", Input).value,
            email=self.query_one("#input-email", Input).value,
            phone=self.query_one("#input-phone", Input).value,
            address=self.query_one("#input-address-line", Input).value,
            payment_method=self.query_one("#select-payment", Select).value,
        )

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        if not await self.app.push_screen_wait(
            DialogModal(
                "Place order? This cannot be undone.",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        try:
            order = await self.app.state.place_order(self._read_details())
        except MarketError as e:
            _logger.warning(f"Checkout refused: {e}")
            self.notify(str(e), severity="error")
            return

        self.notify(f"Order placed. Your order number is {order.id}.")
        self.dismiss(order.id)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss("")
