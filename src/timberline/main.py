from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from timberline.db.identity import ensure_admin_account
from timberline.utils.config import get_settings
from timberline.utils.errors import TimberlineError
from timberline.utils.logger import get_logger
from timberline.utils.messages import ModeSwitchedMessage, QuitRequestedMessage, UserLogoutMessage
from timberline.utils.state import GlobalState
from timberline.views.base_screen import menu_modes
from timberline.views.scr_account import AccountScreen
from timberline.views.scr_admin_dashboard import AdminDashboardScreen
from timberline.views.scr_admin_deals import AdminDealsScreen
from timberline.views.scr_admin_leads import AdminLeadsScreen
from timberline.views.scr_admin_orders import AdminOrdersScreen
from timberline.views.scr_admin_prices import AdminPricesScreen
from timberline.views.scr_admin_settings import AdminSettingsScreen
from timberline.views.scr_admin_users import AdminUsersScreen
from timberline.views.scr_basket import BasketScreen
from timberline.views.scr_catalogue import CatalogueScreen
from timberline.views.scr_contact import ContactScreen
from timberline.views.scr_deals import DealsScreen
from timberline.views.scr_login import LoginScreen
from timberline.views.scr_past_orders import PastOrdersScreen

_logger = get_logger(__name__)


class TimberlineApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "products": CatalogueScreen,
        "deals": DealsScreen,
        "basket": BasketScreen,
        "past_orders": PastOrdersScreen,
        "account": AccountScreen,
        "contact": ContactScreen,
        "admin_dashboard": AdminDashboardScreen,
        "admin_orders": AdminOrdersScreen,
        "admin_users": AdminUsersScreen,
        "admin_leads": AdminLeadsScreen,
        "admin_deals": AdminDealsScreen,
        "admin_prices": AdminPricesScreen,
        "admin_settings": AdminSettingsScreen,
    }

    CUSTOMER_MODES = {
        "products": "Products",
        "deals": "Special Deals",
        "basket": "Basket",
        "past_orders": "Past Orders",
        "account": "My Account",
        "contact": "Contact",
    }
    ADMIN_MODES = {
        "admin_dashboard": "Dashboard",
        "admin_orders": "Orders",
        "admin_users": "Users",
        "admin_leads": "Leads",
        "admin_deals": "Special Deals",
        "admin_prices": "Prices",
        "admin_settings": "Settings",
    }

    CSS_PATH = [
        "styles/index.tcss",
        "styles/login.tcss",
        "styles/basket.tcss",
        "styles/admin.tcss",
    ]

    state: GlobalState

    def __init__(self):
        super().__init__()
        self.state = GlobalState()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        await self.bootstrap_admin()
        self.main_flow()

    async def bootstrap_admin(self) -> None:
        settings = get_settings()
        if not (settings.admin_email and settings.admin_password):
            return
        try:
            await ensure_admin_account(settings.admin_email, settings.admin_password)
        except TimberlineError as exc:
            _logger.error(f"Could not create the admin account: {exc}")
            self.notify("Could not create the admin account, check the logs.", severity="error")

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLogoutMessage)
    def handle_user_logout(self):
        self.state.sign_out()
        self.notify("Logout successful.")
        self.main_flow()

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.state.sign_out()
        self.exit()

    @work
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())
        first_mode = next(iter(menu_modes(self)), None)
        if first_mode is None:
            self.notify("This account has no screens available.", severity="error")
            self.state.sign_out()
            self.main_flow()
            return
        self.post_message(ModeSwitchedMessage(self.current_mode, first_mode))
        await self.switch_mode(first_mode)


def run() -> None:
    TimberlineApp().run()


if __name__ == "__main__":
    run()
