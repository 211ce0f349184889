from typing import Dict

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Select

from timberline.db import activity, users
from timberline.db.models import UserAccount, UserRole
from timberline.db.permissions import can
from timberline.utils.errors import TimberlineError
from timberline.views.base_screen import BaseScreen
from timberline.views.modal_dialog import DialogModal

ROLE_OPTIONS = [(r.value.replace("_", " ").title(), r.value) for r in UserRole if r != UserRole.GUEST]


class AdminUsersScreen(BaseScreen):
    """
    User accounts: role changes, enable/disable and delete.
    Protected system accounts are listed but cannot be changed.
    """

    def __init__(self) -> None:
        super().__init__()
        self._users: Dict[str, UserAccount] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-filter"):
            yield Label("Role")
            yield Select(ROLE_OPTIONS, prompt="All", id="select-filter-role")
        with Vertical():
            yield DataTable(id="table-users")
        with Horizontal(id="hort-controls"):
            yield Select(ROLE_OPTIONS, allow_blank=False, id="select-user-role")
            yield Button("Set Role", id="btn-set-role", variant="success")
            yield Button("Enable / Disable", id="btn-toggle-disabled", variant="warning")
            yield Button("Delete", id="btn-delete-user", variant="error")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Email", "Name", "Role", "Status", "Created")
        role = self.app.state.role
        self.query_one("#hort-controls").display = can(role, "users", "edit")
        self.query_one("#btn-delete-user").display = can(role, "users", "delete")

    @on(ScreenResume)
    @on(Select.Changed, "#select-filter-role")
    @work(exclusive=True, group="users")
    async def handle_refresh(self) -> None:
        role_select = self.query_one("#select-filter-role", Select)
        role = None if role_select.is_blank() else role_select.value
        accounts = await users.list_users(role=role)
        table = self.query_one(DataTable)
        table.clear()
        self._users = {u.id: u for u in accounts}
        for u in accounts:
            status = "Disabled" if u.disabled else "Active"
            if u.is_system:
                status += " (protected)"
            table.add_row(u.email, u.display_name, u.role.value, status, (u.created_at or "")[:10], key=u.id)

    def _selected(self):
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return self._users.get(row_key.value)

    @on(DataTable.RowHighlighted, "#table-users")
    def handle_row_highlight(self) -> None:
        user = self._selected()
        if user is not None and user.role != UserRole.GUEST:
            self.query_one("#select-user-role", Select).value = user.role.value

    @on(Button.Pressed, "#btn-set-role")
    @work(exclusive=True)
    async def handle_set_role(self) -> None:
        user = self._selected()
        if user is None:
            return
        role = self.query_one("#select-user-role", Select).value
        try:
            updated = await users.update_user_role(user.id, role)
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        await activity.log_activity(
            self.app.state.user_id, "user_role_changed", {"user": updated.email, "role": updated.role}
        )
        self.notify(f"{updated.email} is now {updated.role.value}.")
        self.handle_refresh()

    @on(Button.Pressed, "#btn-toggle-disabled")
    @work(exclusive=True)
    async def handle_toggle(self) -> None:
        user = self._selected()
        if user is None:
            return
        try:
            updated = await users.set_disabled(user.id, not user.disabled)
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        self.notify(f"{updated.email} {'disabled' if updated.disabled else 'enabled'}.")
        self.handle_refresh()

    @on(Button.Pressed, "#btn-delete-user")
    @work(exclusive=True)
    async def handle_delete(self) -> None:
        user = self._selected()
        if user is None:
            return
        if not await self.app.push_screen_wait(
            DialogModal(f"Delete {user.email}? This cannot be undone.", "Delete", "Cancel", "error")
        ):
            return
        try:
            await users.delete_user(user.id)
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
            return
        await activity.log_activity(self.app.state.user_id, "user_deleted", {"user": user.email})
        self.notify(f"Deleted {user.email}.")
        self.handle_refresh()
