from typing import Sequence

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import ScreenResume
from textual.widgets import MarkdownViewer

from db.models import DashboardData, PeriodValue
from services.errors import MarketError
from utils.messages import ModeSwitchedMessage, NewOrderMessage
from utils.pure import format_money, generate_markdown_table
from views.base_screen import BaseScreen

BAR_WIDTH = 24


def bar(value: float, peak: float) -> str:
    if peak <= 0:
        return ""
    return "█" * max(round(value / peak * BAR_WIDTH), 0)


def period_table(series: Sequence[PeriodValue]) -> str:
    if not series:
        return "_No data yet._"
    peak = max(p.value for p in series)
    rows = [[p.label, format_money(p.value), bar(p.value, peak)] for p in series]
    return generate_markdown_table(["Period", "Amount", ""], rows, ["l", "r", "l"])


def render_dashboard(data: DashboardData) -> str:
    engagement_rows = [
        [e.label, e.views, e.likes, e.follows] for e in data.engagement
    ]
    total_sales = sum(p.value for p in data.sales)
    total_profit = sum(p.value for p in data.profit)
    return (
        "### Overview\n\n"
        f"- Total Sales: {format_money(total_sales)}\n"
        f"- Total Profit: {format_money(total_profit)}\n\n"
        "### Sales\n\n"
        + period_table(data.sales)
        + "\n\n### Profit\n\n"
        + period_table(data.profit)
        + "\n\n### Engagement\n\n"
        + (
            generate_markdown_table(
                ["Week", "Views", "Likes", "Follows"],
                engagement_rows,
                ["l", "r", "r", "r"],
            )
            or "_No data yet._"
        )
    )


class DashboardScreen(BaseScreen):
    """
    Sales, profit and engagement per period.
    New orders are booked into the latest period as they are placed.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-dashboard", show_table_of_contents=False)

    def on_mount(self) -> None:
        self.handle_reload()

    @on(NewOrderMessage)
    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        state = self.app.state
        if state.dashboard is None:
            try:
                state.dashboard = await state.orders.get_dashboard()
            except MarketError as e:
                self.show_error(e)
                return

        await self.query_one("#md-dashboard", MarkdownViewer).document.update(
            render_dashboard(state.dashboard)
        )
