import contextlib
import unittest
from decimal import Decimal
from unittest import mock

from support import BILLING, TempStoreTestCase, checkout_data

from timberline.db import activity, orders, store
from timberline.db.models import OrderStatus, PaymentMethod
from timberline.shop import basket, checkout, options
from timberline.shop.payments import (
    DecliningPaymentGateway,
    ManualPaymentGateway,
    PaymentGateway,
    PaymentRequest,
    PaymentResult,
    gateway_for,
)
from timberline.utils.config import Settings
from timberline.utils.errors import ExternalServiceError, PaymentError, ValidationError


class RecordingGateway(PaymentGateway):
    name = "recording"

    def __init__(self):
        self.voided = []

    async def capture(self, request):
        return PaymentResult(success=True, reference="rec-1")

    async def void(self, result):
        self.voided.append(result.reference)


class CheckoutFormTestCase(unittest.TestCase):
    def test_valid_form_normalises_postcode(self):
        form = checkout.validate_checkout(
            checkout_data(billing_address={**BILLING, "postcode": " hr1 2ab "})
        )
        self.assertEqual(form.billing_address.postcode, "HR1 2AB")
        self.assertIs(form.delivery_address, form.billing_address)

    def test_every_bad_field_is_reported(self):
        with self.assertRaises(ValidationError) as ctx:
            checkout.validate_checkout(
                checkout_data(billing_address={**BILLING, "postcode": "12", "email": "nope", "town": ""})
            )
        fields = set(ctx.exception.fields)
        self.assertTrue(
            {"billing_address.postcode", "billing_address.email", "billing_address.town"} <= fields
        )

    def test_well_formed_but_not_uk_postcode(self):
        with self.assertRaises(ValidationError) as ctx:
            checkout.validate_checkout(checkout_data(billing_address={**BILLING, "postcode": "123456"}))
        self.assertIn("billing_address.postcode", ctx.exception.field_errors)

    def test_separate_shipping_address_required(self):
        with self.assertRaises(ValidationError) as ctx:
            checkout.validate_checkout(checkout_data(use_billing_as_shipping=False))
        self.assertIn("shipping_address", ctx.exception.field_errors)

        shipping = {**BILLING, "address_line1": "2 Barn Road", "postcode": "SW1A 1AA"}
        form = checkout.validate_checkout(
            checkout_data(use_billing_as_shipping=False, shipping_address=shipping)
        )
        self.assertEqual(form.delivery_address.address_line1, "2 Barn Road")

    def test_shipping_flag_is_read_after_coercion(self):
        for flag in ("false", 0, "no"):
            with self.subTest(flag=flag):
                with self.assertRaises(ValidationError) as ctx:
                    checkout.validate_checkout(checkout_data(use_billing_as_shipping=flag))
                self.assertEqual(
                    ctx.exception.field_errors["shipping_address"], [checkout.SHIPPING_REQUIRED]
                )

    def test_shipping_error_is_merged_with_other_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            checkout.validate_checkout(
                checkout_data(
                    billing_address={**BILLING, "postcode": "12"}, use_billing_as_shipping="false"
                )
            )
        self.assertTrue({"billing_address.postcode", "shipping_address"} <= set(ctx.exception.fields))


class PaymentsTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_gateways(self):
        request = PaymentRequest(Decimal("10.00"), "GBP", PaymentMethod.PAYPAL)
        result = await ManualPaymentGateway().charge(request)
        self.assertTrue(result.success)
        self.assertTrue(result.reference.startswith("manual-"))

        with self.assertRaises(PaymentError):
            await DecliningPaymentGateway().charge(request)
        with self.assertRaises(PaymentError):
            await ManualPaymentGateway().charge(
                PaymentRequest(Decimal("0"), "GBP", PaymentMethod.PAYPAL)
            )

    def test_gateway_for_settings(self):
        self.assertIsInstance(gateway_for(Settings()), ManualPaymentGateway)
        with self.assertRaises(PaymentError):
            gateway_for(Settings(payment_provider="stripe"))


class PlaceOrderTestCase(TempStoreTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        await basket.add("u1", "garage", options.default_configuration("garages"), "garages")
        await basket.add("u1", "beam", options.default_configuration("oak-beams"), "oak-beams", 2)

    async def test_successful_order(self):
        order_id = await checkout.place_order(
            "u1", checkout_data(notes="Side gate access"), ManualPaymentGateway()
        )
        order = await orders.get_order(order_id)
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.user_id, "u1")
        self.assertEqual(len(order.items), 2)
        self.assertEqual(order.subtotal, Decimal("11072.00"))
        self.assertEqual(order.vat, Decimal("2214.40"))
        self.assertEqual(order.shipping_cost, Decimal("0.00"))
        self.assertEqual(order.total, Decimal("13286.40"))
        self.assertEqual(order.customer_name, "Jane Doe")
        self.assertEqual(order.notes, "Side gate access")
        self.assertTrue(order.payment_reference.startswith("manual-"))

        self.assertEqual(await basket.list_items("u1"), [])
        logged = await activity.recent_activity()
        self.assertEqual(logged[0].action, "order_placed")
        self.assertEqual(logged[0].details["order_id"], order_id)

    async def test_invalid_form_creates_nothing(self):
        data = checkout_data(billing_address={**BILLING, "postcode": "12"})
        with self.assertRaises(ValidationError) as ctx:
            await checkout.place_order("u1", data, ManualPaymentGateway())
        self.assertIn("billing_address.postcode", ctx.exception.field_errors)
        self.assertEqual((await orders.list_orders())[1], 0)
        self.assertEqual(len(await basket.list_items("u1")), 2)

    async def test_empty_basket(self):
        with self.assertRaises(ValidationError) as ctx:
            await checkout.place_order("u2", checkout_data(), ManualPaymentGateway())
        self.assertIn("items", ctx.exception.field_errors)

    async def test_declined_payment_keeps_basket(self):
        with self.assertRaises(PaymentError):
            await checkout.place_order("u1", checkout_data(), DecliningPaymentGateway())
        self.assertEqual((await orders.list_orders())[1], 0)
        self.assertEqual(len(await basket.list_items("u1")), 2)

    async def test_failed_order_write_voids_the_payment(self):
        gateway = RecordingGateway()

        @contextlib.asynccontextmanager
        async def broken_batch():
            raise ExternalServiceError("document-store")
            yield

        with mock.patch.object(store, "batch", broken_batch):
            with self.assertRaises(ExternalServiceError):
                await checkout.place_order("u1", checkout_data(), gateway)
        self.assertEqual(gateway.voided, ["rec-1"])
        self.assertEqual((await orders.list_orders())[1], 0)
        self.assertEqual(len(await basket.list_items("u1")), 2)


if __name__ == "__main__":
    unittest.main()
