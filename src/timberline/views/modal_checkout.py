from typing import Any, Dict, Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Input, Label, MarkdownViewer

from timberline.db import settings as db_settings
from timberline.shop import basket
from timberline.shop.checkout import place_order
from timberline.utils.errors import PaymentError, TimberlineError, ValidationError
from timberline.utils.logger import get_logger
from timberline.utils.pure import format_money, generate_markdown_table
from timberline.views.modal_dialog import DialogModal, FieldErrorsModal

_logger = get_logger(__name__)

ADDRESS_FIELDS = (
    ("email", "Email", "you@example.com"),
    ("first_name", "First name", ""),
    ("last_name", "Last name", ""),
    ("address_line1", "Address line 1", ""),
    ("address_line2", "Address line 2 (optional)", ""),
    ("town", "Town", ""),
    ("postcode", "Postcode", "SW1A 1AA"),
    ("phone", "Phone (optional)", ""),
)
OPTIONAL_FIELDS = ("address_line2", "phone")


def _input_id(section: str, fld: str) -> str:
    return f"input-{section}-{fld}".replace("_", "-")


class CheckoutModal(ModalScreen[Optional[str]]):
    """
    Order summary plus billing/shipping details. Payment is PayPal.
    Returns the new order id, or None if nothing was ordered.
    """

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-checkout"):
            yield MarkdownViewer("", show_table_of_contents=False, id="md-order-summary")
            with VerticalScroll(id="div-checkout-form"):
                yield Label("[b]Billing address[/b]")
                yield from self._address_inputs("billing_address")
                yield Checkbox("Ship to the billing address", value=True, id="chk-use-billing")
                with Vertical(id="div-shipping", classes="hidden"):
                    yield Label("[b]Shipping address[/b]")
                    yield from self._address_inputs("shipping_address")
                yield Label("Order notes")
                yield Input(id="input-notes")
                yield Label("Payment method: PayPal")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Place Order", id="btn-submit", variant="primary")

    def _address_inputs(self, section: str):
        for fld, label, placeholder in ADDRESS_FIELDS:
            yield Label(label)
            yield Input(placeholder=placeholder, id=_input_id(section, fld))

    async def on_mount(self):
        items = await self.app.state.basket_items()
        delivery = await db_settings.get_delivery_settings()
        financial = await db_settings.get_financial_settings()
        totals = basket.totals_for_settings(items, delivery, financial)
        symbol = financial.currency_symbol

        headers = ["Item", "Unit Price", "Quantity", "Line Total"]
        rows = [
            [i.description, format_money(i.unit_price, symbol), i.quantity, format_money(i.line_total, symbol)]
            for i in items
        ]
        md = "### Order Summary\n\n" + generate_markdown_table(headers, rows, ["l", "r", "c", "r"])
        md += (
            f"\n\n**Subtotal:** {format_money(totals.subtotal, symbol)}  \n"
            f"**VAT:** {format_money(totals.vat, symbol)}  \n"
            f"**Delivery:** {format_money(totals.shipping_cost, symbol)}  \n"
            f"**Total:** {format_money(totals.total, symbol)}"
        )
        await self.query_one(MarkdownViewer).document.update(md)

        if self.app.state.email:
            self.query_one(f"#{_input_id('billing_address', 'email')}", Input).value = self.app.state.email
        self.query_one(f"#{_input_id('billing_address', 'first_name')}").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Checkbox.Changed, "#chk-use-billing")
    def handle_use_billing(self, event: Checkbox.Changed) -> None:
        self.query_one("#div-shipping").set_class(event.value, "hidden")

    def _address(self, section: str) -> Dict[str, Any]:
        data = {}
        for fld, _, _ in ADDRESS_FIELDS:
            value = self.query_one(f"#{_input_id(section, fld)}", Input).value.strip()
            if value or fld not in OPTIONAL_FIELDS:
                data[fld] = value
        return data

    def form_data(self) -> Dict[str, Any]:
        use_billing = self.query_one("#chk-use-billing", Checkbox).value
        return {
            "billing_address": self._address("billing_address"),
            "shipping_address": None if use_billing else self._address("shipping_address"),
            "use_billing_as_shipping": use_billing,
            "payment_method": "paypal",
            "notes": self.query_one("#input-notes", Input).value.strip() or None,
        }

    def _mark_invalid(self, field_errors: Dict[str, Any]) -> None:
        for widget in self.query(Input):
            widget.remove_class("-invalid")
        for fld in field_errors:
            if "." in fld:
                section, name = fld.split(".", 1)
                for widget in self.query(f"#{_input_id(section, name)}"):
                    widget.add_class("-invalid")

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        data = self.form_data()

        if not await self.app.push_screen_wait(
            DialogModal(
                "Place order? This cannot be undone.",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        try:
            order_id = await place_order(self.app.state.user_id, data)
        except ValidationError as exc:
            self._mark_invalid(exc.field_errors)
            await self.app.push_screen_wait(
                FieldErrorsModal("Please correct the highlighted fields.", exc.field_errors)
            )
            return
        except PaymentError as exc:
            self.notify(exc.message, severity="error")
            return
        except TimberlineError as exc:
            _logger.error(f"Checkout failed: {exc}")
            self.notify(exc.message, severity="error")
            return

        self.notify(f"Order placed. Your order reference is {order_id[:8].upper()}.")
        self.dismiss(order_id)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
