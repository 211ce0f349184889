from typing import Any, Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import ScreenResume
from textual.validation import Number
from textual.widgets import Button, Checkbox, DataTable, Input, Label

from timberline.db import activity, deals
from timberline.db.models import Deal
from timberline.db.permissions import can
from timberline.utils.errors import TimberlineError, ValidationError
from timberline.utils.pure import format_money
from timberline.views.base_screen import BaseScreen
from timberline.views.modal_dialog import DialogModal


class AdminDealsScreen(BaseScreen):
    """
    Create, edit and retire special deals.
    """

    def __init__(self) -> None:
        super().__init__()
        self._deals: Dict[str, Deal] = {}
        self._editing: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal():
            yield DataTable(id="table-deals")
            with VerticalScroll(id="div-deal-form"):
                yield Label("Editing: new deal", id="label-deal-editing")
                yield Label("Name")
                yield Input(id="input-deal-name")
                yield Label("Description")
                yield Input(id="input-deal-description")
                with Horizontal():
                    with Vertical():
                        yield Label("Price (£)")
                        yield Input(id="input-deal-price", type="number", validators=[Number(minimum=0)])
                    with Vertical():
                        yield Label("Was (£, optional)")
                        yield Input(id="input-deal-original-price", type="number")
                yield Checkbox("Active", value=True, id="chk-deal-active")
                yield Checkbox("Structure (delivery included)", value=True, id="chk-deal-structure")
                yield Label("Volume (m³, beams and flooring)")
                yield Input(id="input-deal-volume-m3", type="number")
        with Horizontal(id="hort-controls"):
            yield Button("New", id="btn-new-deal")
            yield Button("Save", id="btn-save-deal", variant="success")
            yield Button("Delete", id="btn-delete-deal", variant="error")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Name", "Price", "Was", "Active", "Type")
        role = self.app.state.role
        self.query_one("#hort-controls").display = can(role, "deals", "edit")
        self.query_one("#btn-delete-deal").display = can(role, "deals", "delete")

    @on(ScreenResume)
    @work(exclusive=True, group="deals")
    async def handle_refresh(self) -> None:
        table = self.query_one(DataTable)
        table.clear()
        found = await deals.list_deals()
        self._deals = {d.id: d for d in found}
        for d in found:
            table.add_row(
                d.name,
                format_money(d.price),
                format_money(d.original_price) if d.original_price is not None else "-",
                "Yes" if d.is_active else "No",
                "Structure" if d.is_structure_type else f"Material ({d.volume_m3} m³)",
                key=d.id,
            )

    @on(DataTable.RowSelected, "#table-deals")
    def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        deal = self._deals.get(event.row_key.value)
        if deal is not None:
            self._fill(deal)

    def _fill(self, deal: Optional[Deal]) -> None:
        self._editing = deal.id if deal else None
        self.query_one("#label-deal-editing", Label).update(
            f"Editing: {deal.name}" if deal else "Editing: new deal"
        )
        self.query_one("#input-deal-name", Input).value = deal.name if deal else ""
        self.query_one("#input-deal-description", Input).value = deal.description if deal else ""
        self.query_one("#input-deal-price", Input).value = f"{deal.price}" if deal else ""
        self.query_one("#input-deal-original-price", Input).value = (
            f"{deal.original_price}" if deal and deal.original_price is not None else ""
        )
        self.query_one("#chk-deal-active", Checkbox).value = deal.is_active if deal else True
        self.query_one("#chk-deal-structure", Checkbox).value = deal.is_structure_type if deal else True
        self.query_one("#input-deal-volume-m3", Input).value = (
            f"{deal.volume_m3}" if deal and deal.volume_m3 is not None else ""
        )
        for widget in self.query(Input):
            widget.remove_class("-invalid")

    def form_data(self) -> Dict[str, Any]:
        def value(widget_id: str) -> Optional[str]:
            return self.query_one(f"#{widget_id}", Input).value.strip() or None

        return {
            "name": value("input-deal-name") or "",
            "description": value("input-deal-description") or "",
            "price": value("input-deal-price"),
            "original_price": value("input-deal-original-price"),
            "is_active": self.query_one("#chk-deal-active", Checkbox).value,
            "is_structure_type": self.query_one("#chk-deal-structure", Checkbox).value,
            "volume_m3": value("input-deal-volume-m3"),
        }

    @on(Button.Pressed, "#btn-new-deal")
    def handle_new(self) -> None:
        self._fill(None)
        self.query_one("#input-deal-name").focus()

    @on(Button.Pressed, "#btn-save-deal")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        try:
            saved = await deals.save_deal(self.form_data(), self._editing)
        except ValidationError as exc:
            self.show_field_errors(exc.field_errors, prefix="input-deal-")
            return
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        await activity.log_activity(self.app.state.user_id, "deal_saved", {"deal": saved.name})
        self.notify(f"Saved {saved.name}.")
        self._fill(saved)
        self.handle_refresh()

    @on(Button.Pressed, "#btn-delete-deal")
    @work(exclusive=True)
    async def handle_delete(self) -> None:
        if self._editing is None:
            self.notify("Select a deal first.", severity="warning")
            return
        deal = self._deals.get(self._editing)
        name = deal.name if deal else self._editing
        if not await self.app.push_screen_wait(DialogModal(f"Delete {name}?", "Delete", "Cancel", "error")):
            return
        await deals.delete_deal(self._editing)
        await activity.log_activity(self.app.state.user_id, "deal_deleted", {"deal": name})
        self._fill(None)
        self.handle_refresh()
