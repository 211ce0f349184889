# site settings documents (siteSettings/deliverySettings, siteSettings/financialSettings)
from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from timberline.db import store
from timberline.db.models import DeliverySettings, FinancialSettings
from timberline.utils.errors import ValidationError
from timberline.utils.logger import get_logger
from timberline.utils.pure import to_money

_logger = get_logger(__name__)

COLLECTION = "siteSettings"
DELIVERY_DOC = "deliverySettings"
FINANCIAL_DOC = "financialSettings"


class DeliverySettingsForm(BaseModel):
    model_config = ConfigDict(extra="ignore")

    free_delivery_threshold: Decimal = Field(ge=0)
    reduced_delivery_threshold: Decimal = Field(default=Decimal("500"), ge=0)
    minimum_delivery_charge: Decimal = Field(ge=0)
    standard_delivery_charge: Decimal = Field(default=Decimal("50"), ge=0)
    rate_per_m3: Decimal = Field(ge=0)


class FinancialSettingsForm(BaseModel):
    model_config = ConfigDict(extra="ignore")

    currency_symbol: str = Field(default="£", min_length=1, max_length=3)
    vat_rate: Decimal = Field(ge=0, le=100)


def _delivery_from(form: DeliverySettingsForm) -> DeliverySettings:
    return DeliverySettings(
        free_delivery_threshold=to_money(form.free_delivery_threshold),
        reduced_delivery_threshold=to_money(form.reduced_delivery_threshold),
        minimum_delivery_charge=to_money(form.minimum_delivery_charge),
        standard_delivery_charge=to_money(form.standard_delivery_charge),
        rate_per_m3=to_money(form.rate_per_m3),
    )


async def get_delivery_settings() -> DeliverySettings:
    """Stored delivery settings, or the defaults if absent or invalid."""
    doc = await store.get_document(COLLECTION, DELIVERY_DOC)
    if doc is None:
        return DeliverySettings()
    try:
        return _delivery_from(DeliverySettingsForm.model_validate(doc))
    except PydanticValidationError as exc:
        _logger.warning(f"Invalid delivery settings document, using defaults: {exc}")
        return DeliverySettings()


async def update_delivery_settings(data: Dict[str, Any]) -> DeliverySettings:
    try:
        form = DeliverySettingsForm.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc
    if form.reduced_delivery_threshold > form.free_delivery_threshold:
        raise ValidationError.single(
            "reduced_delivery_threshold",
            "Must not be above the free delivery threshold.",
        )
    settings = _delivery_from(form)
    await store.set_document(COLLECTION, DELIVERY_DOC, asdict(settings))
    _logger.info("Delivery settings updated")
    return settings


async def get_financial_settings() -> FinancialSettings:
    doc = await store.get_document(COLLECTION, FINANCIAL_DOC)
    if doc is None:
        return FinancialSettings()
    try:
        form = FinancialSettingsForm.model_validate(doc)
    except PydanticValidationError as exc:
        _logger.warning(f"Invalid financial settings document, using defaults: {exc}")
        return FinancialSettings()
    return FinancialSettings(currency_symbol=form.currency_symbol, vat_rate=form.vat_rate)


async def update_financial_settings(data: Dict[str, Any]) -> FinancialSettings:
    try:
        form = FinancialSettingsForm.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc
    settings = FinancialSettings(currency_symbol=form.currency_symbol, vat_rate=form.vat_rate)
    await store.set_document(COLLECTION, FINANCIAL_DOC, asdict(settings))
    _logger.info(f"Financial settings updated (VAT {settings.vat_rate}%)")
    return settings
