from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.widgets import Button, MarkdownViewer

from timberline.db import activity, leads
from timberline.db import orders as db_orders
from timberline.utils.messages import ModeSwitchedMessage, NewOrderMessage
from timberline.utils.pure import format_money, generate_markdown_table
from timberline.views.base_screen import BaseScreen
from timberline.views.scr_past_orders import order_ref


class AdminDashboardScreen(BaseScreen):
    """
    CRM and sales summary, latest orders and the activity log.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield MarkdownViewer(id="md-dashboard", show_table_of_contents=False)
        with Horizontal(id="hort-buttons"):
            yield Button("Refresh", id="btn-refresh")

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @on(NewOrderMessage)
    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True)
    async def handle_refresh(self) -> None:
        crm = await leads.customer_summary()
        sales = await db_orders.sales_summary()
        recent_orders, _ = await db_orders.list_orders(page=1, page_size=5)
        recent = await activity.recent_activity(10)

        md = "## Overview\n\n"
        md += generate_markdown_table(
            ["Customers", "Leads", "Open inquiries", "Conversion", "Orders", "Revenue", "Avg. order"],
            [[
                crm.total_customers,
                crm.total_leads,
                crm.open_inquiries,
                f"{crm.conversion_rate}%",
                sales.order_count,
                format_money(sales.revenue),
                format_money(sales.average_order),
            ]],
        )
        md += "\n\n### Orders by status\n\n"
        md += generate_markdown_table(list(sales.by_status), [list(sales.by_status.values())])

        md += "\n\n### Latest orders\n\n"
        if recent_orders:
            md += generate_markdown_table(
                ["Order", "Date", "Customer", "Status", "Total"],
                [
                    [order_ref(o.id), (o.created_at or "")[:10], o.customer_name, o.status.value, format_money(o.total)]
                    for o in recent_orders
                ],
                ["l", "l", "l", "c", "r"],
            )
        else:
            md += "No orders yet."

        md += "\n\n### Recent activity\n\n"
        if recent:
            md += generate_markdown_table(
                ["When", "Action", "Details"],
                [
                    [(a.created_at or "")[:16].replace("T", " "), a.action, ", ".join(f"{k}={v}" for k, v in a.details.items())]
                    for a in recent
                ],
                ["l", "l", "l"],
            )
        else:
            md += "Nothing recorded yet."

        await self.query_one(MarkdownViewer).document.update(md)
