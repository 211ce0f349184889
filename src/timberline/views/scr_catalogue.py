from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import DataTable, Label

from timberline.shop.options import categories, default_configuration, get_schema
from timberline.shop.pricing import price, product_name
from timberline.utils.pure import format_money
from timberline.views.base_screen import BaseScreen
from timberline.views.modal_configure import ConfigureModal


class CatalogueScreen(BaseScreen):
    """
    Configurable product categories. Enter opens the configurator.
    """

    # only here to be displayed in footer
    BINDINGS = [
        Binding("enter", "noop", "Configure", show=True, key_display="⏎"),
    ]

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("Choose a product to configure. Prices exclude VAT and delivery.")
            yield DataTable(id="table-categories")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Product", "Description", "From")
        for category in categories():
            schema = get_schema(category)
            table.add_row(
                product_name(category),
                schema.description,
                format_money(price(category, default_configuration(category))),
                key=category,
            )
        table.focus()

    @on(DataTable.RowSelected, "#table-categories")
    @work()
    async def handle_select(self, event: DataTable.RowSelected) -> None:
        await self.app.push_screen_wait(ConfigureModal(event.row_key.value))
