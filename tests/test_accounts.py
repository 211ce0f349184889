import unittest

from support import TempStoreTestCase

from timberline.db import addresses, identity, store, users
from timberline.db.models import AddressType, UserRole
from timberline.shop import basket, options
from timberline.utils.errors import NotFoundError, PermissionDeniedError, ValidationError

HOME = {"line1": "1 Mill Lane", "town": "Hereford", "postcode": "HR1 2AB"}


class IdentityTestCase(TempStoreTestCase):
    async def test_sign_up_and_sign_in(self):
        user = await identity.sign_up("Cust@Example.com", "password1", "Cust")
        self.assertEqual(user.email, "cust@example.com")
        self.assertEqual(user.role, UserRole.CUSTOMER)
        self.assertFalse(user.is_staff)

        signed_in = await identity.sign_in("cust@example.com", "password1")
        self.assertEqual(signed_in.id, user.id)

        with self.assertRaises(ValidationError) as ctx:
            await identity.sign_in("cust@example.com", "wrong-password")
        self.assertIn("password", ctx.exception.field_errors)
        with self.assertRaises(ValidationError):
            await identity.sign_in("nobody@example.com", "password1")

    async def test_sign_up_rejects_bad_input(self):
        await identity.sign_up("cust@example.com", "password1", "Cust")
        with self.assertRaises(ValidationError) as ctx:
            await identity.sign_up("CUST@example.com", "password1", "Again")
        self.assertIn("email", ctx.exception.field_errors)

        with self.assertRaises(ValidationError) as ctx:
            await identity.sign_up("not-an-email", "short", "")
        self.assertEqual(set(ctx.exception.fields), {"email", "password", "display_name"})

    async def test_password_is_hashed(self):
        await identity.sign_up("cust@example.com", "password1", "Cust")
        doc = await users.find_by_email("cust@example.com")
        self.assertNotEqual(doc["password_hash"], "password1")
        self.assertTrue(identity.check_password("password1", doc["password_hash"]))
        self.assertFalse(identity.check_password("password1", None))

    async def test_disabled_account_cannot_sign_in(self):
        user = await identity.sign_up("cust@example.com", "password1", "Cust")
        await users.set_disabled(user.id, True)
        with self.assertRaises(PermissionDeniedError):
            await identity.sign_in("cust@example.com", "password1")

    async def test_change_password(self):
        user = await identity.sign_up("cust@example.com", "password1", "Cust")
        with self.assertRaises(ValidationError) as ctx:
            await identity.change_password(user.id, "wrong", "password2")
        self.assertIn("current_password", ctx.exception.field_errors)
        with self.assertRaises(ValidationError):
            await identity.change_password(user.id, "password1", "short")

        await identity.change_password(user.id, "password1", "password2")
        await identity.sign_in("cust@example.com", "password2")

    async def test_password_limit_counts_bytes(self):
        # 40 characters, 80 bytes once encoded
        long_password = "é" * 40
        with self.assertRaises(ValidationError) as ctx:
            await identity.sign_up("cust@example.com", long_password, "Cust")
        self.assertEqual(ctx.exception.field_errors["password"], ["Password is too long."])
        self.assertIsNone(await users.find_by_email("cust@example.com"))

        user = await identity.sign_up("cust@example.com", "é" * 36, "Cust")
        await identity.sign_in("cust@example.com", "é" * 36)
        with self.assertRaises(ValidationError):
            await identity.sign_in("cust@example.com", long_password)
        with self.assertRaises(ValidationError) as ctx:
            await identity.change_password(user.id, "é" * 36, long_password)
        self.assertIn("new_password", ctx.exception.field_errors)

    async def test_ensure_admin_account(self):
        admin = await identity.ensure_admin_account("admin@example.com", "adminpass1")
        self.assertEqual(admin.role, UserRole.SUPER_ADMIN)
        self.assertTrue(admin.is_system)

        again = await identity.ensure_admin_account("admin@example.com", "adminpass1")
        self.assertEqual(again.id, admin.id)
        self.assertEqual(await store.count_documents(users.COLLECTION), 1)

    async def test_ensure_admin_account_upgrades_existing_user(self):
        user = await identity.sign_up("boss@example.com", "password1", "Boss")
        admin = await identity.ensure_admin_account("boss@example.com", "ignored-pass")
        self.assertEqual(admin.id, user.id)
        self.assertEqual(admin.role, UserRole.SUPER_ADMIN)
        self.assertTrue(admin.is_system)


class UsersTestCase(TempStoreTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.admin = await identity.ensure_admin_account("admin@example.com", "adminpass1")
        self.alice = await identity.sign_up("alice@example.com", "password1", "Alice")
        self.bob = await identity.sign_up("bob@example.com", "password1", "Bob")

    async def test_list_and_count(self):
        emails = [u.email for u in await users.list_users()]
        self.assertEqual(emails, ["admin@example.com", "alice@example.com", "bob@example.com"])
        customers = await users.list_users(role="customer")
        self.assertEqual({u.id for u in customers}, {self.alice.id, self.bob.id})
        self.assertEqual(await users.customer_count(), 2)
        with self.assertRaises(ValidationError):
            await users.list_users(role="owner")

    async def test_update_role(self):
        updated = await users.update_user_role(self.alice.id, "manager")
        self.assertEqual(updated.role, UserRole.MANAGER)
        self.assertTrue(updated.is_staff)
        with self.assertRaises(ValidationError):
            await users.update_user_role(self.alice.id, "owner")
        with self.assertRaises(NotFoundError):
            await users.update_user_role("missing", "admin")

    async def test_protected_account_is_refused(self):
        with self.assertRaises(PermissionDeniedError):
            await users.update_user_role(self.admin.id, "customer")
        with self.assertRaises(PermissionDeniedError):
            await users.set_disabled(self.admin.id, True)
        with self.assertRaises(PermissionDeniedError):
            await users.delete_user(self.admin.id)
        self.assertEqual((await users.get_user(self.admin.id)).role, UserRole.SUPER_ADMIN)

    async def test_batch_update_roles(self):
        updated = await users.batch_update_roles(
            [(self.alice.id, "admin"), {"userId": self.bob.id, "role": "manager"}]
        )
        self.assertEqual([u.role for u in updated], [UserRole.ADMIN, UserRole.MANAGER])
        self.assertEqual(await users.batch_update_roles([]), [])

    async def test_batch_update_roles_is_all_or_nothing(self):
        with self.assertRaises(PermissionDeniedError):
            await users.batch_update_roles([(self.alice.id, "admin"), (self.admin.id, "customer")])
        self.assertEqual((await users.get_user(self.alice.id)).role, UserRole.CUSTOMER)

        with self.assertRaises(ValidationError) as ctx:
            await users.batch_update_roles([(self.alice.id, "admin"), (self.bob.id, "owner")])
        self.assertIn("updates.1.role", ctx.exception.field_errors)
        self.assertEqual((await users.get_user(self.alice.id)).role, UserRole.CUSTOMER)

        with self.assertRaises(NotFoundError):
            await users.batch_update_roles([(self.alice.id, "admin"), ("missing", "admin")])

    async def test_delete_user_removes_basket(self):
        await basket.add(self.alice.id, "porch", options.default_configuration("porches"), "porches")
        await basket.add(self.bob.id, "porch", options.default_configuration("porches"), "porches")
        await users.delete_user(self.alice.id)
        await users.delete_user(self.alice.id)
        self.assertIsNone(await users.get_user(self.alice.id))
        self.assertEqual(await basket.list_items(self.alice.id), [])
        self.assertEqual(len(await basket.list_items(self.bob.id)), 1)


class AddressesTestCase(TempStoreTestCase):
    async def test_one_default_per_type(self):
        billing = await addresses.add_address("u1", {**HOME, "type": "Billing", "is_default": True})
        shipping = await addresses.add_address(
            "u1", {**HOME, "line1": "2 Barn Road", "type": "Shipping", "is_default": True}
        )
        self.assertTrue((await addresses._owned("u1", billing.id)).is_default)

        both = await addresses.add_address(
            "u1", {**HOME, "line1": "3 Oak Way", "type": "Both", "is_default": True}
        )
        defaults = [a.id for a in await addresses.list_addresses("u1") if a.is_default]
        self.assertEqual(defaults, [both.id])

        await addresses.set_default("u1", shipping.id)
        listed = await addresses.list_addresses("u1")
        self.assertEqual([a.id for a in listed if a.is_default], [shipping.id])
        self.assertEqual(listed[0].id, shipping.id)

    async def test_other_users_defaults_untouched(self):
        theirs = await addresses.add_address("u2", {**HOME, "is_default": True})
        await addresses.add_address("u1", {**HOME, "is_default": True})
        self.assertTrue((await addresses._owned("u2", theirs.id)).is_default)

    async def test_validation_and_normalisation(self):
        saved = await addresses.add_address("u1", {**HOME, "postcode": "hr1 2ab"})
        self.assertEqual(saved.postcode, "HR1 2AB")
        self.assertEqual(saved.type, AddressType.BOTH)
        with self.assertRaises(ValidationError) as ctx:
            await addresses.add_address("u1", {**HOME, "postcode": "nope!", "town": ""})
        self.assertEqual(set(ctx.exception.fields), {"postcode", "town"})

    async def test_ownership(self):
        mine = await addresses.add_address("u1", HOME)
        with self.assertRaises(PermissionDeniedError):
            await addresses.update_address("u2", mine.id, {"town": "Leominster"})
        with self.assertRaises(PermissionDeniedError):
            await addresses.delete_address("u2", mine.id)
        with self.assertRaises(NotFoundError):
            await addresses.update_address("u1", "missing", {"town": "Leominster"})

        updated = await addresses.update_address("u1", mine.id, {"town": "Leominster"})
        self.assertEqual(updated.town, "Leominster")
        self.assertEqual(updated.line1, HOME["line1"])

        await addresses.delete_address("u1", mine.id)
        await addresses.delete_address("u1", mine.id)
        self.assertEqual(await addresses.list_addresses("u1"), [])


if __name__ == "__main__":
    unittest.main()
