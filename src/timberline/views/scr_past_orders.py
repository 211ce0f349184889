from math import ceil
from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.validation import Number
from textual.widgets import Button, DataTable, Input, Label, MarkdownViewer

from timberline.db import orders as db_orders
from timberline.db.models import Order
from timberline.utils.messages import ModeSwitchedMessage, NewOrderMessage
from timberline.utils.pure import format_money, generate_markdown_table
from timberline.views.base_screen import BaseScreen

PAGE_SIZE = 5


def order_ref(order_id: str) -> str:
    return order_id[:8].upper()


def render_order_markdown(order: Optional[Order]) -> str:
    if order is None:
        return "### Select an order to view its details."
    addr = order.shipping_address or order.billing_address
    ship_to = ", ".join(
        str(addr[k]) for k in ("address_line1", "address_line2", "town", "postcode") if addr.get(k)
    )
    header = (
        f"### Order {order_ref(order.id)}\n"
        f"Date: {(order.created_at or '')[:16].replace('T', ' ')}  \n"
        f"Status: **{order.status}**  \n"
        f"Customer: {order.customer_name}  \n"
        f"Ship To: {ship_to}\n\n"
    )
    rows = [
        [line.description, line.quantity, format_money(line.unit_price), format_money(line.line_total)]
        for line in order.items
    ]
    table = generate_markdown_table(["Item", "Qty", "Unit Price", "Line Total"], rows, ["l", "r", "r", "r"])
    footer = (
        f"\n\nSubtotal: {format_money(order.subtotal)}  \n"
        f"VAT: {format_money(order.vat)}  \n"
        f"Delivery: {format_money(order.shipping_cost)}  \n"
        f"**Grand Total:** {format_money(order.total)}"
    )
    if order.notes:
        footer += f"\n\nNotes: {order.notes}"
    return header + table + footer


class PastOrdersScreen(BaseScreen):
    """
    Customers browse their past orders, newest first, 5 per page.

    Layout:
    - Markdown detail view at the top, showing the highlighted order.
    - Orders table below with Prev/Next.
    """

    # only here to be displayed in footer
    BINDINGS = [
        Binding("enter", "noop", "View Order Detail", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._orders: Dict[str, Order] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("<", id="btn-prev")
            yield Input("1", id="input-page", type="integer")
            yield Label(" / 1", id="label-total-page-cnt")
            yield Button(">", id="btn-next")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order", "Date", "Status", "Items", "Total")

    @on(Button.Pressed, "#btn-refresh")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(NewOrderMessage)
    def handle_refresh(self):
        self._load_orders(self.page_idx)

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        order = self._orders.get(event.row_key.value) if event.row_key else None
        self.query_one("#md-order-detail", MarkdownViewer).document.update(render_order_markdown(order))

    def watch_page_idx(self, old: int, new: int) -> None:
        self.query_one("#input-page", Input).value = str(new)
        self._refresh_buttons()
        self._load_orders(new)

    def _refresh_buttons(self) -> None:
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
        self.query_one("#input-page", Input).validators = [Number(minimum=1, maximum=self.page_cnt)]

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @on(Input.Changed, "#input-page")
    def handle_page_input(self, ev: Input.Changed) -> None:
        if ev.value and ev.value.isdigit():
            new_idx = max(1, min(int(ev.value), self.page_cnt))
            if new_idx != self.page_idx:
                self.page_idx = new_idx

    @work(exclusive=True, group="orders")
    async def _load_orders(self, page: int) -> None:
        if self.app.state.user_id is None:
            return
        orders, total = await db_orders.list_orders(
            user_id=self.app.state.user_id, page=page, page_size=PAGE_SIZE
        )
        table = self.query_one(DataTable)
        table.clear()
        self._orders = {o.id: o for o in orders}
        for o in orders:
            table.add_row(
                order_ref(o.id),
                (o.created_at or "")[:10],
                o.status.value,
                sum(line.quantity for line in o.items),
                format_money(o.total),
                key=o.id,
            )
        self.page_cnt = max(ceil(total / PAGE_SIZE), 1)
        self.query_one("#label-total-page-cnt", Label).update(f" / {self.page_cnt}")
        self._refresh_buttons()
        first = orders[0] if orders else None
        self.query_one("#md-order-detail", MarkdownViewer).document.update(render_order_markdown(first))
