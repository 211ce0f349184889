import unittest
from decimal import Decimal

from support import TempStoreTestCase

from timberline.db import activity, deals, identity, leads, orders, store
from timberline.db import settings as db_settings
from timberline.db.models import LeadSource, LeadStatus, OrderStatus, UserRole
from timberline.db.permissions import can, sections_for
from timberline.utils.errors import NotFoundError, ValidationError

CONTACT = {
    "name": "Sam Carter",
    "email": "sam@example.com",
    "subject": "Garage lead times",
    "message": "How long for a three bay garage?",
}
CUSTOM = {
    "full_name": "Pat Jones",
    "email": "pat@example.com",
    "description": "An oak framed car port with a log store.",
    "product_type": "Garage",
    "budget": "15000",
}


class PermissionsTestCase(unittest.TestCase):
    def test_roles(self):
        self.assertTrue(can("super_admin", "settings", "delete"))
        self.assertTrue(can("admin", "users", "edit"))
        self.assertFalse(can("admin", "users", "delete"))
        self.assertTrue(can("manager", "orders", "edit"))
        self.assertFalse(can("manager", "settings"))
        self.assertFalse(can("customer", "dashboard"))
        self.assertFalse(can("owner", "dashboard"))
        self.assertEqual(sections_for(UserRole.MANAGER), ["dashboard", "orders", "leads", "deals", "prices"])
        self.assertEqual(sections_for("guest"), [])


class LeadsTestCase(TempStoreTestCase):
    async def test_submit_and_list(self):
        contact_id = await leads.submit_contact(CONTACT)
        custom_id = await leads.submit_custom_order(CUSTOM)

        everything = await leads.list_leads()
        self.assertEqual([lead.id for lead in everything], [custom_id, contact_id])

        contact = await leads.get_lead(contact_id)
        self.assertEqual(contact.source, LeadSource.CONTACT_FORM)
        self.assertEqual(contact.status, LeadStatus.NEW)
        self.assertEqual(contact.notes, CONTACT["message"])

        custom = await leads.get_lead(custom_id)
        self.assertEqual(custom.subject, "Custom Garage inquiry")
        self.assertEqual(custom.details["budget"], "15000")

        only_custom = await leads.list_leads(source="custom_order")
        self.assertEqual([lead.id for lead in only_custom], [custom_id])

    async def test_invalid_submissions(self):
        with self.assertRaises(ValidationError) as ctx:
            await leads.submit_contact({**CONTACT, "email": "nope", "message": ""})
        self.assertEqual(set(ctx.exception.fields), {"email", "message"})
        with self.assertRaises(ValidationError) as ctx:
            await leads.submit_custom_order({**CUSTOM, "description": "short"})
        self.assertIn("description", ctx.exception.field_errors)
        self.assertEqual(await leads.list_leads(), [])

    async def test_update_and_summary(self):
        await identity.sign_up("cust@example.com", "password1", "Cust")
        first = await leads.submit_contact(CONTACT)
        await leads.submit_contact(CONTACT)

        updated = await leads.update_lead(first, status="Converted", notes="Ordered a garage")
        self.assertEqual(updated.status, LeadStatus.CONVERTED)
        self.assertFalse(updated.is_open)
        self.assertEqual(updated.notes, "Ordered a garage")

        summary = await leads.customer_summary()
        self.assertEqual(summary.total_customers, 1)
        self.assertEqual(summary.total_leads, 2)
        self.assertEqual(summary.open_inquiries, 1)
        self.assertEqual(summary.conversion_rate, 50)

        with self.assertRaises(ValidationError):
            await leads.update_lead(first, status="Won")
        with self.assertRaises(NotFoundError):
            await leads.update_lead("missing", notes="x")

        await leads.delete_lead(first)
        self.assertIsNone(await leads.get_lead(first))


class SettingsTestCase(TempStoreTestCase):
    async def test_seeded_values(self):
        delivery = await db_settings.get_delivery_settings()
        self.assertEqual(delivery.free_delivery_threshold, Decimal("1000.00"))
        self.assertEqual(delivery.minimum_delivery_charge, Decimal("25.00"))
        financial = await db_settings.get_financial_settings()
        self.assertEqual(financial.vat_fraction, Decimal("0.2"))

    async def test_defaults_when_missing_or_invalid(self):
        await store.delete_document(db_settings.COLLECTION, db_settings.DELIVERY_DOC)
        self.assertEqual((await db_settings.get_delivery_settings()).rate_per_m3, Decimal("50.00"))

        await store.set_document(
            db_settings.COLLECTION, db_settings.FINANCIAL_DOC, {"vat_rate": "lots"}
        )
        self.assertEqual((await db_settings.get_financial_settings()).vat_rate, Decimal("20"))

    async def test_update_delivery(self):
        saved = await db_settings.update_delivery_settings(
            {
                "free_delivery_threshold": 2000,
                "reduced_delivery_threshold": 750,
                "minimum_delivery_charge": 30,
                "standard_delivery_charge": 60,
                "rate_per_m3": 55,
            }
        )
        self.assertEqual(saved.free_delivery_threshold, Decimal("2000.00"))
        stored = await db_settings.get_delivery_settings()
        self.assertEqual(stored.standard_delivery_charge, Decimal("60.00"))

    async def test_update_delivery_rejects_bad_values(self):
        with self.assertRaises(ValidationError) as ctx:
            await db_settings.update_delivery_settings(
                {"free_delivery_threshold": -1, "minimum_delivery_charge": "x"}
            )
        self.assertEqual(
            set(ctx.exception.fields),
            {"free_delivery_threshold", "minimum_delivery_charge", "rate_per_m3"},
        )
        with self.assertRaises(ValidationError) as ctx:
            await db_settings.update_delivery_settings(
                {
                    "free_delivery_threshold": 400,
                    "reduced_delivery_threshold": 500,
                    "minimum_delivery_charge": 25,
                    "rate_per_m3": 50,
                }
            )
        self.assertIn("reduced_delivery_threshold", ctx.exception.field_errors)

    async def test_update_financial(self):
        saved = await db_settings.update_financial_settings({"vat_rate": "17.5"})
        self.assertEqual(saved.vat_fraction, Decimal("0.175"))
        with self.assertRaises(ValidationError):
            await db_settings.update_financial_settings({"vat_rate": 150})


class DealsTestCase(TempStoreTestCase):
    async def test_list(self):
        self.assertEqual(len(await deals.list_deals()), 4)
        active = await deals.list_deals(active_only=True)
        self.assertEqual(
            [d.id for d in active], ["deal-double-garage", "deal-gazebo-kit", "deal-beam-bundle"]
        )
        self.assertEqual(active[0].saving, Decimal("700.00"))

    async def test_save_and_delete(self):
        created = await deals.save_deal({"name": "Porch Kit", "price": "1999.99"})
        self.assertEqual(created.price, Decimal("1999.99"))
        self.assertTrue(created.is_structure_type)

        updated = await deals.save_deal({"name": "Porch Kit", "price": 1800, "is_active": False}, created.id)
        self.assertFalse(updated.is_active)
        with self.assertRaises(NotFoundError):
            await deals.save_deal({"name": "Ghost", "price": 1}, "missing")

        await deals.delete_deal(created.id)
        self.assertIsNone(await deals.get_deal(created.id))

    async def test_materials_need_a_volume(self):
        with self.assertRaises(ValidationError) as ctx:
            await deals.save_deal({"name": "Beams", "price": 100, "is_structure_type": False})
        self.assertIn("volume_m3", ctx.exception.field_errors)
        with self.assertRaises(ValidationError) as ctx:
            await deals.save_deal({"name": "", "price": -5})
        self.assertEqual(set(ctx.exception.fields), {"name", "price"})


class OrdersTestCase(TempStoreTestCase):
    async def _order(self, user_id, total, status=OrderStatus.PENDING):
        return await store.add_document(
            orders.COLLECTION,
            {
                "user_id": user_id,
                "billing_address": {"first_name": "Jane", "last_name": "Doe"},
                "payment_method": "paypal",
                "items": [],
                "subtotal": total,
                "vat": 0,
                "shipping_cost": 0,
                "total": total,
                "status": status,
            },
        )

    async def test_pagination_newest_first(self):
        ids = [await self._order("u1", 100 + n) for n in range(7)]
        await self._order("u2", 50)

        page, total = await orders.list_orders(user_id="u1", page=1, page_size=5)
        self.assertEqual(total, 7)
        self.assertEqual([o.id for o in page], ids[::-1][:5])
        page, _ = await orders.list_orders(user_id="u1", page=2, page_size=5)
        self.assertEqual([o.id for o in page], ids[1::-1])
        self.assertEqual((await orders.list_orders())[1], 8)

    async def test_status_updates(self):
        order_id = await self._order("u1", 100)
        shipped = await orders.update_order_status(order_id, "Shipped")
        self.assertEqual(shipped.status, OrderStatus.SHIPPED)
        only_shipped, total = await orders.list_orders(status=OrderStatus.SHIPPED)
        self.assertEqual(total, 1)
        self.assertEqual(only_shipped[0].id, order_id)

        with self.assertRaises(ValidationError):
            await orders.update_order_status(order_id, "Lost")
        with self.assertRaises(NotFoundError):
            await orders.update_order_status("missing", "Shipped")

    async def test_sales_summary_excludes_cancelled(self):
        await self._order("u1", 100)
        await self._order("u1", 300, OrderStatus.DELIVERED)
        await self._order("u1", 1000, OrderStatus.CANCELLED)
        summary = await orders.sales_summary()
        self.assertEqual(summary.order_count, 3)
        self.assertEqual(summary.revenue, Decimal("400.00"))
        self.assertEqual(summary.average_order, Decimal("200.00"))
        self.assertEqual(summary.by_status["Cancelled"], 1)


class ActivityTestCase(TempStoreTestCase):
    async def test_recent_activity_newest_first(self):
        for n in range(12):
            await activity.log_activity("admin", f"action_{n}", {"n": n})
        recent = await activity.recent_activity()
        self.assertEqual(len(recent), 10)
        self.assertEqual(recent[0].action, "action_11")
        self.assertEqual(recent[0].details, {"n": 11})


if __name__ == "__main__":
    unittest.main()
