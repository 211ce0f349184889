from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label

from timberline.db.deals import list_deals
from timberline.shop import basket
from timberline.utils.errors import TimberlineError
from timberline.utils.messages import BasketChangedMessage
from timberline.utils.pure import format_money
from timberline.views.base_screen import BaseScreen


class DealsScreen(BaseScreen):
    """
    Active special deals, added to the basket at their fixed price.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("Limited time offers on pre-configured products.")
            yield DataTable(id="table-deals")
        with Horizontal(id="hort-buttons"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("Add to Basket", id="btn-add-deal", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Deal", "Description", "Price", "Was", "Save")

    @on(ScreenResume)
    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True)
    async def handle_refresh(self) -> None:
        table = self.query_one(DataTable)
        table.clear()
        for deal in await list_deals(active_only=True):
            table.add_row(
                deal.name,
                deal.description,
                format_money(deal.price),
                format_money(deal.original_price) if deal.original_price is not None else "-",
                format_money(deal.saving) if deal.saving else "-",
                key=deal.id,
            )

    @on(DataTable.RowSelected, "#table-deals")
    @on(Button.Pressed, "#btn-add-deal")
    @work(exclusive=True)
    async def handle_add(self) -> None:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            self.notify("No deals available right now.", severity="warning")
            return
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        try:
            item = await basket.add_deal(self.app.state.user_id, row_key.value)
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            self.handle_refresh()
            return
        self.app.state.invalidate_basket()
        self.notify(f"Added to basket: {item.description}")
        self.app.post_message(BasketChangedMessage())
