from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import Resize, ScreenResume
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from timberline.db.permissions import can
from timberline.utils.messages import ModeSwitchedMessage, UserLoginMessage, UserLogoutMessage
from timberline.utils.pure import generate_markdown_table
from timberline.views.modal_dialog import DialogModal, QuitDialogModal
from timberline.views.modal_resize import ResizeScreenPromptModal


def menu_modes(app) -> dict:
    """Modes the signed-in user may open, in menu order."""
    state = app.state
    if not state.is_staff:
        return dict(app.CUSTOMER_MODES)
    return {
        k: v
        for k, v in app.ADMIN_MODES.items()
        if can(state.role, k.removeprefix("admin_"), "view")
    }


class Sidebar(Container):
    init_mode = ""

    def compose(self) -> ComposeResult:
        yield Label("User Info", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("Log out", id="btn-logout", variant="error")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")

    async def on_mount(self):
        await self.populate()

    async def populate(self):
        """Fill user info and menu for whoever is signed in now."""
        self.init_mode = self.app.current_mode
        state = self.app.state
        if state.user_id is None:
            return

        table_rows = [
            ["Name", state.display_name or "-"],
            ["Email", state.email],
            ["Role", state.role.value.replace("_", " ").title()],
        ]
        md_table_str = generate_markdown_table(None, table_rows, ["l", "l"])
        await self.query_one(Markdown).update(md_table_str)

        list_menu: ListView = self.query_one("#list-menu")
        await list_menu.clear()
        await list_menu.extend(
            [ListItem(Label(v), id="list-menu-item-" + k) for k, v in menu_modes(self.app).items()]
        )
        self.highlight_item(self.init_mode)

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.init_mode)
        if self.app.current_mode != selected_mode:
            self.post_message(ModeSwitchedMessage(self.app.current_mode, selected_mode))
            await self.app.switch_mode(selected_mode)

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self):
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.post_message(UserLogoutMessage())

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = item.id == "list-menu-item-" + mode_str


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    def __init__(self):
        super().__init__()

        self.configure()

    def configure(
        self,
        header_sub_title: str = "Timberline",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        """

        self.app.title = "Timberline Oak Frames"
        self.sub_title = header_sub_title
        titles = {**self.app.CUSTOMER_MODES, **self.app.ADMIN_MODES}
        for k, v in self.app.MODES.items():
            if isinstance(v, type) and isinstance(self, v) and k in titles:
                self.sub_title = titles[k]

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    async def on_resize(self, event: Resize) -> None:
        min_width = 80
        min_height = 24
        if event.size.width < min_width or event.size.height < min_height:
            self.app.push_screen(ResizeScreenPromptModal(min_width, min_height))

    @on(ScreenResume)
    async def _sync_sidebar(self) -> None:
        if self._show_sidebar:
            for sidebar in self.query(Sidebar):
                await sidebar.populate()

    @on(UserLoginMessage)
    def handle_user_login(self):
        self.refresh()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())

    def show_field_errors(self, field_errors: dict, prefix: str = "input-") -> None:
        """Mark inputs whose id matches an error field, and notify every message."""
        for fld, messages in field_errors.items():
            widget_id = prefix + fld.replace(".", "-").replace("_", "-")
            for widget in self.query(f"#{widget_id}"):
                widget.add_class("-invalid")
            self.notify(f"{fld}: {'; '.join(messages)}", severity="error")
