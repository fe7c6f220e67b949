from typing import List

from textual import events, on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.reactive import reactive
from textual.widgets import DataTable, Input, Label, Switch

from db.models import Product
from services.errors import AiGatewayFailure
from utils.logger import get_logger
from utils.messages import CartChangedMessage, WishlistChangedMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal

_logger = get_logger(__name__)


class MarketplaceScreen(BaseScreen):
    """
    Browse and search every product on the marketplace.
    With AI search on, the query is matched by the model instead of by keyword.
    """

    # bindings here are only displayed in footer
    BINDINGS = [
        Binding("fn+shift+1", "abs(1)", "View Product", show=True, key_display="⏎"),
        Binding("escape", "abs(2)", "Exit Prod View", show=True),
    ]

    query_str = reactive("")

    def __init__(self):
        super().__init__()
        self._results: List[Product] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-search"):
            yield Input(
                id="input-search", placeholder="Start typing to search something..."
            )
            yield Label("AI search", id="label-ai-search")
            yield Switch(value=False, id="switch-ai-search")
        yield Label("", id="label-suggestions")
        yield DataTable(id="table-search-result")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Category", "Price", "Artisan", "♥")

        self.query_one("#input-search").focus()
        self.update_search_result("")

    @on(Input.Changed, "#input-search")
    def handle_query_changed(self, message: Input.Changed) -> None:
        self.query_str = message.value.strip()
        # AI search waits for submit, keyword search follows every keystroke
        if not self.query_one("#switch-ai-search", Switch).value:
            self.update_search_result(self.query_str)

    @on(Input.Submitted, "#input-search")
    def handle_query_submitted(self) -> None:
        self.update_search_result(self.query_str)

    @on(Switch.Changed, "#switch-ai-search")
    def handle_ai_toggled(self, message: Switch.Changed) -> None:
        self.query_one("#label-suggestions", Label).update("")
        if message.value and self.query_str:
            self.update_search_result(self.query_str)

    @on(WishlistChangedMessage)
    def handle_wishlist_changed(self) -> None:
        self._render_results()

    async def on_key(self, event: events.Key) -> None:
        table = self.query_one(DataTable)
        if event.key == "enter" and self.focused == table and table.row_count:
            self.open_product(table.get_row_at(table.cursor_row)[0])

    @work()
    async def open_product(self, product_id: str) -> None:
        if await self.app.push_screen_wait(ProdDetailModal(product_id)):
            self.app.post_message(CartChangedMessage())
        self._render_results()

    @work(exclusive=True, group="search")
    async def update_search_result(self, query: str) -> None:
        state = self.app.state
        use_ai = self.query_one("#switch-ai-search", Switch).value

        if not query:
            results = await state.catalog.list_products()
        elif use_ai:
            self.query_one("#label-suggestions", Label).update("Searching with AI...")
            results = await self._ai_search(query)
        else:
            results = await state.catalog.search_products(query)

        self._results = results
        self._render_results()

    async def _ai_search(self, query: str) -> List[Product]:
        state = self.app.state
        catalog = await state.catalog.list_products()
        label = self.query_one("#label-suggestions", Label)
        try:
            results = await state.ai.search_products(query, catalog)
            suggestions = await state.ai.suggest_searches(query)
        except AiGatewayFailure as e:
            _logger.warning(f"AI search failed, using keyword search: {e}")
            self.notify(str(e), severity="warning")
            label.update("")
            return await state.catalog.search_products(query)

        label.update(
            "Try also: " + ", ".join(suggestions) if suggestions else ""
        )
        return results

    def _render_results(self) -> None:
        wishlist = self.app.state.wishlist
        table = self.query_one(DataTable)
        table.clear()
        table.add_rows(
            [
                p.id,
                p.name,
                p.category,
                format_money(p.price),
                p.artisan_name,
                "♥" if p.id in wishlist else "",
            ]
            for p in self._results
        )
