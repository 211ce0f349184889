from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Button, Input, Label, Select, TabbedContent, TabPane, TextArea

from timberline.db import leads
from timberline.utils.errors import TimberlineError, ValidationError
from timberline.views.base_screen import BaseScreen

PRODUCT_TYPES = ["Garage", "Gazebo", "Porch", "Beams", "Flooring", "Other"]


class ContactScreen(BaseScreen):
    """
    Contact form and custom order inquiry. Both create a CRM lead.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="tabs-contact"):
            with TabPane("Contact us", id="tab-contact"):
                with VerticalScroll():
                    yield Label("Name")
                    yield Input(id="input-contact-name")
                    yield Label("Email")
                    yield Input(id="input-contact-email")
                    yield Label("Subject")
                    yield Input(id="input-contact-subject")
                    yield Label("Message")
                    yield TextArea(id="input-contact-message")
                    with Horizontal(classes="form-btns"):
                        yield Button("Send", id="btn-send-contact", variant="primary")
            with TabPane("Custom order", id="tab-custom"):
                with VerticalScroll():
                    yield Label("Full name")
                    yield Input(id="input-custom-full-name")
                    yield Label("Email")
                    yield Input(id="input-custom-email")
                    yield Label("Phone (optional)")
                    yield Input(id="input-custom-phone")
                    yield Label("Product type")
                    yield Select([(p, p) for p in PRODUCT_TYPES], id="input-custom-product-type")
                    yield Label("Describe what you need (10 characters or more)")
                    yield TextArea(id="input-custom-description")
                    yield Label("Budget (optional)")
                    yield Input(id="input-custom-budget")
                    with Horizontal(classes="form-btns"):
                        yield Button("Send inquiry", id="btn-send-custom", variant="primary")

    def on_mount(self) -> None:
        state = self.app.state
        for prefix in ("contact", "custom"):
            if state.email:
                self.query_one(f"#input-{prefix}-email", Input).value = state.email
        if state.display_name:
            self.query_one("#input-contact-name", Input).value = state.display_name
            self.query_one("#input-custom-full-name", Input).value = state.display_name

    def _value(self, widget_id: str) -> str:
        widget = self.query_one(f"#{widget_id}")
        if isinstance(widget, TextArea):
            return widget.text.strip()
        if isinstance(widget, Select):
            return "" if widget.is_blank() else widget.value
        return widget.value.strip()

    def _clear(self, *widget_ids: str) -> None:
        for widget_id in widget_ids:
            widget = self.query_one(f"#{widget_id}")
            widget.remove_class("-invalid")
            if isinstance(widget, TextArea):
                widget.clear()
            elif isinstance(widget, Input):
                widget.value = ""

    @on(Button.Pressed, "#btn-send-contact")
    @work(exclusive=True)
    async def handle_contact(self) -> None:
        data = {
            "name": self._value("input-contact-name"),
            "email": self._value("input-contact-email"),
            "subject": self._value("input-contact-subject"),
            "message": self._value("input-contact-message"),
        }
        try:
            await leads.submit_contact(data)
        except ValidationError as exc:
            self.show_field_errors(exc.field_errors, prefix="input-contact-")
            return
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        self.notify("Your message has been sent successfully!")
        self._clear("input-contact-subject", "input-contact-message")

    @on(Button.Pressed, "#btn-send-custom")
    @work(exclusive=True)
    async def handle_custom(self) -> None:
        data = {
            "full_name": self._value("input-custom-full-name"),
            "email": self._value("input-custom-email"),
            "phone": self._value("input-custom-phone") or None,
            "product_type": self._value("input-custom-product-type") or None,
            "description": self._value("input-custom-description"),
            "budget": self._value("input-custom-budget") or None,
        }
        try:
            await leads.submit_custom_order(data)
        except ValidationError as exc:
            self.show_field_errors(exc.field_errors, prefix="input-custom-")
            return
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        self.notify("Thanks! We'll be in touch about your custom order.")
        self._clear("input-custom-description", "input-custom-budget")
