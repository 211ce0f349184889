from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Markdown, Select, TextArea

from timberline.db import leads
from timberline.db.models import Lead, LeadSource, LeadStatus
from timberline.db.permissions import can
from timberline.utils.errors import TimberlineError
from timberline.utils.pure import generate_markdown_table
from timberline.views.base_screen import BaseScreen
from timberline.views.modal_dialog import DialogModal

STATUS_OPTIONS = [(s.value, s.value) for s in LeadStatus]
SOURCE_OPTIONS = [("Contact Form", LeadSource.CONTACT_FORM.value), ("Custom Order", LeadSource.CUSTOM_ORDER.value)]


def render_lead(lead: Optional[Lead]) -> str:
    if lead is None:
        return "Select a lead."
    rows = [
        ["Name", lead.name],
        ["Email", lead.email],
        ["Phone", lead.phone or "-"],
        ["Subject", lead.subject or "-"],
        ["Received", (lead.created_at or "")[:16].replace("T", " ")],
        *[[k.replace("_", " ").title(), v] for k, v in lead.details.items()],
    ]
    return generate_markdown_table(None, rows, ["l", "l"])


class AdminLeadsScreen(BaseScreen):
    """
    CRM leads: filter by status/source, progress status, keep notes.
    """

    def __init__(self) -> None:
        super().__init__()
        self._leads: Dict[str, Lead] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-filter"):
            yield Label("Status")
            yield Select(STATUS_OPTIONS, prompt="All", id="select-filter-status")
            yield Label("Source")
            yield Select(SOURCE_OPTIONS, prompt="All", id="select-filter-source")
        with Horizontal():
            yield DataTable(id="table-leads")
            with Vertical(id="div-lead-detail"):
                yield Markdown("", id="md-lead")
                yield Label("Notes")
                yield TextArea(id="input-lead-notes")
        with Horizontal(id="hort-controls"):
            yield Select(STATUS_OPTIONS, allow_blank=False, id="select-lead-status")
            yield Button("Save", id="btn-save-lead", variant="success")
            yield Button("Delete", id="btn-delete-lead", variant="error")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Name", "Source", "Status", "Received")
        role = self.app.state.role
        self.query_one("#hort-controls").display = can(role, "leads", "edit")
        self.query_one("#btn-delete-lead").display = can(role, "leads", "delete")

    @on(ScreenResume)
    @on(Select.Changed, "#select-filter-status")
    @on(Select.Changed, "#select-filter-source")
    @work(exclusive=True, group="leads")
    async def handle_refresh(self) -> None:
        status = self.query_one("#select-filter-status", Select)
        source = self.query_one("#select-filter-source", Select)
        found = await leads.list_leads(
            status=None if status.is_blank() else status.value,
            source=None if source.is_blank() else source.value,
        )
        table = self.query_one(DataTable)
        table.clear()
        self._leads = {lead.id: lead for lead in found}
        for lead in found:
            source_label = "Custom Order" if lead.source == LeadSource.CUSTOM_ORDER else "Contact Form"
            table.add_row(lead.name, source_label, lead.status.value, (lead.created_at or "")[:10], key=lead.id)
        if not found:
            await self.query_one("#md-lead", Markdown).update(render_lead(None))

    def _selected(self) -> Optional[Lead]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return self._leads.get(row_key.value)

    @on(DataTable.RowHighlighted, "#table-leads")
    async def handle_row_highlight(self) -> None:
        lead = self._selected()
        await self.query_one("#md-lead", Markdown).update(render_lead(lead))
        if lead is not None:
            self.query_one("#input-lead-notes", TextArea).text = lead.notes or ""
            self.query_one("#select-lead-status", Select).value = lead.status.value

    @on(Button.Pressed, "#btn-save-lead")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        lead = self._selected()
        if lead is None:
            return
        try:
            updated = await leads.update_lead(
                lead.id,
                status=self.query_one("#select-lead-status", Select).value,
                notes=self.query_one("#input-lead-notes", TextArea).text,
            )
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        self.notify(f"Lead {updated.name} saved ({updated.status}).")
        self.handle_refresh()

    @on(Button.Pressed, "#btn-delete-lead")
    @work(exclusive=True)
    async def handle_delete(self) -> None:
        lead = self._selected()
        if lead is None:
            return
        if await self.app.push_screen_wait(DialogModal(f"Delete lead {lead.name}?", "Delete", "Cancel", "error")):
            await leads.delete_lead(lead.id)
            self.notify("Lead deleted.")
            self.handle_refresh()
