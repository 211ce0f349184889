from textual import on, work
from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.events import ScreenResume
from textual.widgets import Button, Input, Label

from timberline.db import activity
from timberline.db import settings as db_settings
from timberline.db.permissions import can
from timberline.utils.errors import TimberlineError, ValidationError
from timberline.views.base_screen import BaseScreen

DELIVERY_FIELDS = (
    ("free_delivery_threshold", "Free delivery over (£)"),
    ("reduced_delivery_threshold", "Reduced delivery over (£)"),
    ("minimum_delivery_charge", "Reduced delivery charge (£)"),
    ("standard_delivery_charge", "Standard delivery charge (£)"),
    ("rate_per_m3", "Rate per m³ for quotes (£)"),
)
FINANCIAL_FIELDS = (
    ("currency_symbol", "Currency symbol"),
    ("vat_rate", "VAT rate (%)"),
)


def _input_id(fld: str) -> str:
    return "input-" + fld.replace("_", "-")


class AdminSettingsScreen(BaseScreen):
    """
    Delivery and financial settings.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with VerticalScroll(id="div-settings"):
            yield Label("[b]Delivery[/b]")
            for fld, label in DELIVERY_FIELDS:
                yield Label(label)
                yield Input(id=_input_id(fld), type="number")
            yield Button("Save delivery settings", id="btn-save-delivery", variant="success")
            yield Label("[b]Financial[/b]")
            for fld, label in FINANCIAL_FIELDS:
                yield Label(label)
                yield Input(id=_input_id(fld), type="text" if fld == "currency_symbol" else "number")
            yield Button("Save financial settings", id="btn-save-financial", variant="success")

    def on_mount(self) -> None:
        editable = can(self.app.state.role, "settings", "edit")
        for btn in self.query(Button):
            btn.disabled = not editable

    @on(ScreenResume)
    @work(exclusive=True)
    async def handle_refresh(self) -> None:
        delivery = await db_settings.get_delivery_settings()
        financial = await db_settings.get_financial_settings()
        for fld, _ in DELIVERY_FIELDS:
            self.query_one(f"#{_input_id(fld)}", Input).value = str(getattr(delivery, fld))
        for fld, _ in FINANCIAL_FIELDS:
            self.query_one(f"#{_input_id(fld)}", Input).value = str(getattr(financial, fld))

    def _values(self, fields) -> dict:
        for widget in self.query(Input):
            widget.remove_class("-invalid")
        return {fld: self.query_one(f"#{_input_id(fld)}", Input).value.strip() for fld, _ in fields}

    @on(Button.Pressed, "#btn-save-delivery")
    @work(exclusive=True)
    async def handle_save_delivery(self) -> None:
        try:
            await db_settings.update_delivery_settings(self._values(DELIVERY_FIELDS))
        except ValidationError as exc:
            self.show_field_errors(exc.field_errors)
            return
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        await activity.log_activity(self.app.state.user_id, "delivery_settings_updated")
        self.notify("Delivery settings saved.")

    @on(Button.Pressed, "#btn-save-financial")
    @work(exclusive=True)
    async def handle_save_financial(self) -> None:
        try:
            await db_settings.update_financial_settings(self._values(FINANCIAL_FIELDS))
        except ValidationError as exc:
            self.show_field_errors(exc.field_errors)
            return
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        await activity.log_activity(self.app.state.user_id, "financial_settings_updated")
        self.notify("Financial settings saved.")
