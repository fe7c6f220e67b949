from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, Label

from db.models import ArtisanProfile
from services.errors import MarketError
from views.base_screen import BaseScreen


class ConnectionsScreen(BaseScreen):
    """
    Other artisans to follow. Describe who you are looking for and the AI
    picks matching profiles; clear the query to list everyone.
    """

    def __init__(self) -> None:
        super().__init__()
        self._shown: List[ArtisanProfile] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-search"):
            yield Input(
                placeholder="e.g. a woodworker who could make frames for my prints",
                id="input-connection-query",
            )
            yield Button("Recommend", id="btn-recommend", variant="primary")
        yield Label("", id="label-connections")
        yield DataTable(id="table-artisans")
        with Horizontal(id="hort-buttons"):
            yield Button("Follow / Unfollow", id="btn-follow")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Specialty", "Location", "Following")

    @on(ScreenResume)
    @work(exclusive=True)
    async def list_everyone(self) -> None:
        state = self.app.state
        artisans = await state.catalog.list_artisans()
        self._shown = [a for a in artisans if a.id != state.profile.id]
        self.query_one("#label-connections", Label).update("All artisans")
        self._render_table()

    @on(Input.Submitted, "#input-connection-query")
    @on(Button.Pressed, "#btn-recommend")
    @work(exclusive=True)
    async def handle_recommend(self) -> None:
        query = self.query_one("#input-connection-query", Input).value.strip()
        if not query:
            self.list_everyone()
            return

        state = self.app.state
        label = self.query_one("#label-connections", Label)
        label.update("Finding matches...")
        artisans = await state.catalog.list_artisans()
        try:
            self._shown = await state.ai.recommend_connections(
                query, state.profile, artisans
            )
        except MarketError as e:
            label.update("")
            self.show_error(e)
            return
        label.update(f"{len(self._shown)} recommended connection(s)")
        self._render_table()

    def _render_table(self) -> None:
        following = self.app.state.following
        table = self.query_one(DataTable)
        table.clear()
        table.add_rows(
            [a.id, a.name, a.specialty, a.location, "yes" if a.id in following else ""]
            for a in self._shown
        )

    @on(Button.Pressed, "#btn-follow")
    def handle_follow(self) -> None:
        table = self.query_one(DataTable)
        if not table.row_count:
            return
        artisan_id = table.get_row_at(table.cursor_row)[0]
        followed = self.app.state.following.toggle(artisan_id)
        self.notify("Following." if followed else "Unfollowed.")
        row = table.cursor_row
        self._render_table()
        table.move_cursor(row=row)
