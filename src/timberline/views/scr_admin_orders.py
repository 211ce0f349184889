from math import ceil
from typing import Dict

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, MarkdownViewer, Select

from timberline.db import activity
from timberline.db import orders as db_orders
from timberline.db.models import Order, OrderStatus
from timberline.db.permissions import can
from timberline.utils.errors import TimberlineError
from timberline.utils.messages import NewOrderMessage
from timberline.utils.pure import format_money
from timberline.views.base_screen import BaseScreen
from timberline.views.scr_past_orders import order_ref, render_order_markdown

PAGE_SIZE = 10
STATUS_OPTIONS = [(s.value, s.value) for s in OrderStatus]


class AdminOrdersScreen(BaseScreen):
    """
    All orders, filterable by status, with status updates.
    """

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._orders: Dict[str, Order] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-filter"):
            yield Label("Status")
            yield Select(STATUS_OPTIONS, prompt="All", id="select-filter-status")
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")
        with Vertical():
            yield DataTable(id="table-orders")
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
        with Horizontal(id="hort-controls"):
            yield Select(STATUS_OPTIONS, allow_blank=False, id="select-order-status")
            yield Button("Update Status", id="btn-update-status", variant="success")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order", "Date", "Customer", "Status", "Total")
        self.query_one("#hort-controls").display = can(self.app.state.role, "orders", "edit")

    @on(ScreenResume)
    @on(NewOrderMessage)
    @on(Select.Changed, "#select-filter-status")
    def handle_refresh(self) -> None:
        self._load_orders(self.page_idx)

    def watch_page_idx(self, old: int, new: int) -> None:
        self._load_orders(new)

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @work(exclusive=True, group="orders")
    async def _load_orders(self, page: int) -> None:
        status_select = self.query_one("#select-filter-status", Select)
        status = None if status_select.is_blank() else status_select.value
        orders, total = await db_orders.list_orders(status=status, page=page, page_size=PAGE_SIZE)

        table = self.query_one(DataTable)
        table.clear()
        self._orders = {o.id: o for o in orders}
        for o in orders:
            table.add_row(
                order_ref(o.id),
                (o.created_at or "")[:10],
                o.customer_name,
                o.status.value,
                format_money(o.total),
                key=o.id,
            )
        self.page_cnt = max(ceil(total / PAGE_SIZE), 1)
        self.query_one("#label-page", Label).update(f"{self.page_idx} / {self.page_cnt}")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
        if not orders:
            self.query_one(MarkdownViewer).document.update(render_order_markdown(None))

    @on(DataTable.RowHighlighted, "#table-orders")
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        order = self._orders.get(event.row_key.value) if event.row_key else None
        self.query_one(MarkdownViewer).document.update(render_order_markdown(order))
        if order is not None:
            self.query_one("#select-order-status", Select).value = order.status.value

    @on(Button.Pressed, "#btn-update-status")
    @work(exclusive=True)
    async def handle_update_status(self) -> None:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        status = self.query_one("#select-order-status", Select).value
        try:
            order = await db_orders.update_order_status(row_key.value, status)
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        await activity.log_activity(
            self.app.state.user_id, "order_status_changed", {"order_id": order.id, "status": order.status}
        )
        self.notify(f"Order {order_ref(order.id)} is now {order.status}.")
        self._load_orders(self.page_idx)
