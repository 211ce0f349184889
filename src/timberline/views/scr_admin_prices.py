from textual.app import ComposeResult
from textual.widgets import MarkdownViewer

from timberline.shop.options import categories
from timberline.shop.pricing import price_table_rows, product_name
from timberline.utils.pure import generate_markdown_table
from timberline.views.base_screen import BaseScreen


class AdminPricesScreen(BaseScreen):
    """
    Read only view of the price rules per category.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield MarkdownViewer(id="md-prices", show_table_of_contents=True)

    async def on_mount(self) -> None:
        parts = ["# Configurable product prices\n\nAll prices exclude VAT and delivery."]
        for category in categories():
            parts.append(f"## {product_name(category)}")
            parts.append(
                generate_markdown_table(
                    ["Component", "Option", "Amount"], price_table_rows(category), ["l", "l", "r"]
                )
            )
        await self.query_one(MarkdownViewer).document.update("\n\n".join(parts))
