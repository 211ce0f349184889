"""
Checkout: form validation, payment capture and order creation.

place_order() writes nothing until the payment has been captured, and then
creates the order and empties the basket in one atomic batch.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from timberline.db import activity
from timberline.db import orders as db_orders
from timberline.db import settings as db_settings
from timberline.db import store
from timberline.db.models import OrderLine, OrderStatus, PaymentMethod
from timberline.shop import basket
from timberline.shop.payments import PaymentGateway, PaymentRequest, gateway_for
from timberline.utils.config import get_settings
from timberline.utils.errors import ExternalServiceError, ValidationError
from timberline.utils.logger import get_logger
from timberline.utils.pure import is_uk_postcode

_logger = get_logger(__name__)

CURRENCY = "GBP"
SHIPPING_REQUIRED = "A shipping address is required when it differs from the billing address."


class AddressForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    email: EmailStr
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    address_line1: str = Field(min_length=1)
    address_line2: Optional[str] = None
    town: str = Field(min_length=1)
    postcode: str = Field(min_length=5, max_length=8)
    phone: Optional[str] = None

    @field_validator("postcode")
    @classmethod
    def _uk_postcode(cls, value: str) -> str:
        value = value.upper()
        if not is_uk_postcode(value):
            raise ValueError("Enter a valid UK postcode.")
        return value


class CheckoutForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    billing_address: AddressForm
    shipping_address: Optional[AddressForm] = None
    use_billing_as_shipping: bool = True
    payment_method: PaymentMethod = PaymentMethod.PAYPAL
    notes: Optional[str] = Field(default=None, max_length=2000)

    @property
    def delivery_address(self) -> AddressForm:
        if self.use_billing_as_shipping:
            return self.billing_address
        return self.shipping_address


class _DeliveryChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    use_billing_as_shipping: bool = True
    shipping_address: Any = None


def _shipping_error(data: Any) -> Optional[ValidationError]:
    try:
        choice = _DeliveryChoice.model_validate(data)
    except PydanticValidationError:
        # reported by CheckoutForm
        return None
    if choice.use_billing_as_shipping or choice.shipping_address:
        return None
    return ValidationError.single("shipping_address", SHIPPING_REQUIRED)


def validate_checkout(data: Dict[str, Any]) -> CheckoutForm:
    """Validate the checkout form, reporting every failing field by dotted path."""
    error: Optional[ValidationError] = None
    form: Optional[CheckoutForm] = None
    try:
        form = CheckoutForm.model_validate(data)
    except PydanticValidationError as exc:
        error = ValidationError.from_pydantic(exc)

    shipping = _shipping_error(data)
    if shipping is not None:
        error = shipping if error is None else error.merge(shipping)

    if error is not None:
        raise error
    return form


async def place_order(
    user_id: str, data: Dict[str, Any], gateway: Optional[PaymentGateway] = None
) -> str:
    """
    Turn ``user_id``'s basket into a Pending order and return the order id.

    Raises ValidationError (form or empty basket), PaymentError (capture
    failed, nothing written) or ExternalServiceError (store failure; the
    captured payment is handed back to ``gateway.void``).
    """
    form = validate_checkout(data)

    items = await basket.list_items(user_id)
    if not items:
        raise ValidationError.single("items", "Order must contain at least one item.")

    delivery = await db_settings.get_delivery_settings()
    financial = await db_settings.get_financial_settings()
    totals = basket.totals_for_settings(items, delivery, financial)

    gateway = gateway or gateway_for(get_settings())
    payment = await gateway.charge(
        PaymentRequest(
            amount=totals.total,
            currency=CURRENCY,
            method=form.payment_method,
            user_id=user_id,
            description=f"{totals.item_count} item(s)",
        )
    )

    lines = [OrderLine.from_basket_item(item).to_doc() for item in items]
    try:
        async with store.batch() as b:
            order_id = b.add(
                db_orders.COLLECTION,
                {
                    "user_id": user_id,
                    "billing_address": form.billing_address.model_dump(),
                    "shipping_address": form.delivery_address.model_dump(),
                    "use_billing_as_shipping": form.use_billing_as_shipping,
                    "payment_method": form.payment_method,
                    "payment_reference": payment.reference,
                    "items": lines,
                    "subtotal": totals.subtotal,
                    "vat": totals.vat,
                    "shipping_cost": totals.shipping_cost,
                    "total": totals.total,
                    "status": OrderStatus.PENDING,
                    "notes": form.notes,
                },
            )
            for item in items:
                b.delete(basket.COLLECTION, item.id)
    except ExternalServiceError:
        _logger.error(
            f"Order for {user_id} not saved after {gateway.name} captured "
            f"{totals.total} ({payment.reference})"
        )
        await gateway.void(payment)
        raise

    _logger.info(f"Order {order_id} placed by {user_id}: {totals.total}")
    await activity.log_activity(
        user_id, "order_placed", {"order_id": order_id, "total": totals.total}
    )
    return order_id
