from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.events import Key
from textual.widgets import Button, Input, Label, TabbedContent, TabPane

from timberline.db import identity
from timberline.utils.errors import PermissionDeniedError, TimberlineError, ValidationError
from timberline.utils.logger import get_logger
from timberline.utils.messages import UserLoginMessage
from timberline.views.base_screen import BaseScreen
from timberline.views.modal_dialog import QuitDialogModal, SimpleDialogModal

_logger = get_logger(__name__)


class LoginScreen(BaseScreen):
    """
    Sign in or sign up. Dismisses once GlobalState holds the signed-in user.
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Sign in", show_sidebar=False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane("Sign in", id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label("Email")
                    yield Input(placeholder="you@example.com", id="input-login-email")
                    yield Label("Password")
                    yield Input(placeholder="*********", password=True, id="input-login-password")
                    with Horizontal(id="div-login-btns"):
                        yield Button("Quit", id="btn-quit")
                        yield Button("Sign in", id="btn-login", variant="primary")

            with TabPane("Sign up", id="tab-signup"):
                with Vertical(id="div-reg"):
                    yield Label("Name")
                    yield Input(placeholder="Jane Doe", id="input-reg-display-name")
                    yield Label("Email")
                    yield Input(placeholder="you@example.com", id="input-reg-email")
                    yield Label("Password (8 characters or more)")
                    yield Input(placeholder="*********", password=True, id="input-reg-password")
                    with Container(id="div-reg-btns"):
                        yield Button("Create account", id="btn-reg", variant="primary")

    def on_mount(self):
        self.query_one("#input-login-email").focus()

    def on_key(self, event: Key) -> None:
        if event.key != "enter":
            return
        if self.focused == self.query_one("#input-login-password"):
            self.handle_login_submit()
        elif self.focused == self.query_one("#input-reg-password"):
            self.handle_registration_submit()

    def _clear_invalid(self) -> None:
        for widget in self.query(Input):
            widget.remove_class("-invalid")

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        self._clear_invalid()
        email = self.query_one("#input-login-email", Input).value.strip()
        password = self.query_one("#input-login-password", Input).value

        if not email or not password:
            self.notify("Email and password are required.", severity="error")
            return

        try:
            user = await identity.sign_in(email, password)
        except ValidationError as exc:
            self.show_field_errors(exc.field_errors, prefix="input-login-")
            input_pwd = self.query_one("#input-login-password", Input)
            input_pwd.value = ""
            input_pwd.focus()
            return
        except PermissionDeniedError as exc:
            self.notify(exc.message, severity="error")
            return
        except TimberlineError as exc:
            _logger.error(f"Sign-in failed: {exc}")
            self.notify(exc.message, severity="error")
            return

        self.app.state.sign_in(user)
        self.notify(f"Hello {user.display_name or user.email}!")
        self.app.post_message(UserLoginMessage())
        self.dismiss()

    @on(Button.Pressed, "#btn-reg")
    @work(exclusive=True)
    async def handle_registration_submit(self) -> None:
        self._clear_invalid()
        name = self.query_one("#input-reg-display-name", Input).value.strip()
        email = self.query_one("#input-reg-email", Input).value.strip()
        password = self.query_one("#input-reg-password", Input).value

        try:
            user = await identity.sign_up(email, password, name)
        except ValidationError as exc:
            self.show_field_errors(exc.field_errors, prefix="input-reg-")
            return
        except TimberlineError as exc:
            _logger.error(f"Sign-up failed: {exc}")
            self.notify(exc.message, severity="error")
            return

        await self.app.push_screen_wait(SimpleDialogModal(f"Account created for {user.email}."))

        self.get_child_by_type(TabbedContent).active = "tab-login"
        self.query_one("#input-login-email", Input).value = user.email
        input_pwd = self.query_one("#input-login-password", Input)
        input_pwd.value = password
        input_pwd.focus()

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())
