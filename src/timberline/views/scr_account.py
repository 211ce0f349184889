from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.events import ScreenResume
from textual.widgets import Button, Checkbox, DataTable, Input, Label, Select, TabbedContent, TabPane

from timberline.db import addresses, identity
from timberline.db.models import Address, AddressType
from timberline.utils.errors import TimberlineError, ValidationError
from timberline.views.base_screen import BaseScreen
from timberline.views.modal_dialog import DialogModal

ADDRESS_INPUTS = ("line1", "line2", "town", "county", "postcode")
PASSWORD_INPUTS = ("current-password", "new-password", "confirm-password")


class AccountScreen(BaseScreen):
    """
    Saved addresses and password change for the signed-in customer.

    Selecting a row loads the address into the form; "Save" updates it and
    "Add" stores the form as a new address.
    """

    def __init__(self) -> None:
        super().__init__()
        self._addresses: Dict[str, Address] = {}
        self._selected: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="tabs-account"):
            with TabPane("Addresses", id="tab-addresses"):
                yield DataTable(id="table-addresses")
                with VerticalScroll(id="div-address-form"):
                    yield Label("Type")
                    yield Select(
                        [(t.value, t.value) for t in AddressType],
                        value=AddressType.BOTH.value,
                        allow_blank=False,
                        id="input-address-type",
                    )
                    yield Label("Address line 1")
                    yield Input(id="input-address-line1")
                    yield Label("Address line 2 (optional)")
                    yield Input(id="input-address-line2")
                    yield Label("Town")
                    yield Input(id="input-address-town")
                    yield Label("County (optional)")
                    yield Input(id="input-address-county")
                    yield Label("Postcode")
                    yield Input(id="input-address-postcode")
                    yield Checkbox("Default address", id="input-address-is-default")
                    with Horizontal(classes="form-btns"):
                        yield Button("New", id="btn-address-new")
                        yield Button("Delete", id="btn-address-delete", variant="error")
                        yield Button("Set default", id="btn-address-default")
                        yield Button("Save", id="btn-address-save", variant="primary")
                        yield Button("Add", id="btn-address-add", variant="success")
            with TabPane("Password", id="tab-password"):
                with VerticalScroll():
                    yield Label("Current password")
                    yield Input(id="input-password-current-password", password=True)
                    yield Label("New password (8 characters or more)")
                    yield Input(id="input-password-new-password", password=True)
                    yield Label("Confirm new password")
                    yield Input(id="input-password-confirm-password", password=True)
                    with Horizontal(classes="form-btns"):
                        yield Button("Change password", id="btn-change-password", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Type", "Default", "Address", "Postcode")
        self._refresh_buttons()

    @on(ScreenResume)
    def handle_resume(self) -> None:
        self._load_addresses()

    @work(exclusive=True, group="addresses")
    async def _load_addresses(self) -> None:
        user_id = self.app.state.user_id
        if user_id is None:
            return
        try:
            found = await addresses.list_addresses(user_id)
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        self._addresses = {a.id: a for a in found}
        table = self.query_one(DataTable)
        table.clear()
        for a in found:
            table.add_row(
                a.type.value,
                "Yes" if a.is_default else "",
                ", ".join(p for p in (a.line1, a.line2, a.town, a.county) if p),
                a.postcode,
                key=a.id,
            )
        if self._selected not in self._addresses:
            self._select(None)

    @on(DataTable.RowSelected, "#table-addresses")
    def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        self._select(event.row_key.value if event.row_key else None)

    @on(Button.Pressed, "#btn-address-new")
    def handle_new(self) -> None:
        self._select(None)

    def _select(self, address_id: Optional[str]) -> None:
        self._selected = address_id
        address = self._addresses.get(address_id) if address_id else None
        for key in ADDRESS_INPUTS:
            widget = self.query_one(f"#input-address-{key}", Input)
            widget.remove_class("-invalid")
            widget.value = (getattr(address, key) or "") if address else ""
        kind = address.type if address else AddressType.BOTH
        self.query_one("#input-address-type", Select).value = kind.value
        self.query_one("#input-address-is-default", Checkbox).value = bool(address and address.is_default)
        self._refresh_buttons()

    def _refresh_buttons(self) -> None:
        for btn_id in ("#btn-address-save", "#btn-address-delete", "#btn-address-default"):
            self.query_one(btn_id, Button).disabled = self._selected is None

    def _address_form(self) -> dict:
        data = {key: self.query_one(f"#input-address-{key}", Input).value.strip() for key in ADDRESS_INPUTS}
        for optional in ("line2", "county"):
            data[optional] = data[optional] or None
        data["type"] = self.query_one("#input-address-type", Select).value
        data["is_default"] = self.query_one("#input-address-is-default", Checkbox).value
        return data

    @on(Button.Pressed, "#btn-address-add")
    @work(exclusive=True, group="address-edit")
    async def handle_add(self) -> None:
        try:
            address = await addresses.add_address(self.app.state.user_id, self._address_form())
        except ValidationError as exc:
            self.show_field_errors(exc.field_errors, prefix="input-address-")
            return
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        self.notify("Address added.")
        self._selected = address.id
        self._load_addresses()

    @on(Button.Pressed, "#btn-address-save")
    @work(exclusive=True, group="address-edit")
    async def handle_save(self) -> None:
        if self._selected is None:
            return
        try:
            await addresses.update_address(self.app.state.user_id, self._selected, self._address_form())
        except ValidationError as exc:
            self.show_field_errors(exc.field_errors, prefix="input-address-")
            return
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        self.notify("Address saved.")
        self._load_addresses()

    @on(Button.Pressed, "#btn-address-default")
    @work(exclusive=True, group="address-edit")
    async def handle_set_default(self) -> None:
        if self._selected is None:
            return
        try:
            await addresses.set_default(self.app.state.user_id, self._selected)
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        self.query_one("#input-address-is-default", Checkbox).value = True
        self._load_addresses()

    @on(Button.Pressed, "#btn-address-delete")
    @work(exclusive=True, group="address-edit")
    async def handle_delete(self) -> None:
        if self._selected is None:
            return
        confirmed = await self.app.push_screen_wait(
            DialogModal("Delete this address?", "Delete", "Cancel", "error")
        )
        if not confirmed:
            return
        try:
            await addresses.delete_address(self.app.state.user_id, self._selected)
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        self.notify("Address deleted.")
        self._select(None)
        self._load_addresses()

    @on(Button.Pressed, "#btn-change-password")
    @work(exclusive=True, group="password")
    async def handle_change_password(self) -> None:
        values = {
            key: self.query_one(f"#input-password-{key}", Input).value for key in PASSWORD_INPUTS
        }
        for key in PASSWORD_INPUTS:
            self.query_one(f"#input-password-{key}", Input).remove_class("-invalid")
        if values["new-password"] != values["confirm-password"]:
            self.show_field_errors({"confirm_password": ["Passwords do not match."]}, prefix="input-password-")
            return
        try:
            await identity.change_password(
                self.app.state.user_id, values["current-password"], values["new-password"]
            )
        except ValidationError as exc:
            self.show_field_errors(exc.field_errors, prefix="input-password-")
            return
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        for key in PASSWORD_INPUTS:
            self.query_one(f"#input-password-{key}", Input).value = ""
        self.notify("Password changed.")
