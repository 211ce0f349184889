import unittest

from timberline.db.models import UserAccount, UserRole
from timberline.main import TimberlineApp
from timberline.views.base_screen import menu_modes
from timberline.views.scr_account import AccountScreen


class MenuTestCase(unittest.TestCase):
    def setUp(self):
        self.app = TimberlineApp()

    def sign_in(self, role):
        self.app.state.sign_in(UserAccount("u1", "u1@example.com", "U1", role))

    def test_customer_menu_includes_account(self):
        self.sign_in(UserRole.CUSTOMER)
        modes = menu_modes(self.app)
        self.assertEqual(modes["account"], "My Account")
        self.assertIs(TimberlineApp.MODES["account"], AccountScreen)
        self.assertFalse(any(k.startswith("admin_") for k in modes))

    def test_manager_menu_follows_permissions(self):
        self.sign_in(UserRole.MANAGER)
        modes = menu_modes(self.app)
        self.assertIn("admin_orders", modes)
        self.assertNotIn("admin_users", modes)
        self.assertNotIn("admin_settings", modes)
        self.assertNotIn("account", modes)


if __name__ == "__main__":
    unittest.main()
