"""
Basket line items and totals.

Line items live in the ``basket`` collection, one document per item. The
unit price is computed once when the item is added and never re-priced,
so later changes to the price tables do not alter a basket in progress.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from timberline.db import deals as db_deals
from timberline.db import store
from timberline.db.models import BasketLineItem, DeliverySettings, FinancialSettings
from timberline.shop.options import validate_configuration
from timberline.shop.pricing import describe, price
from timberline.utils.errors import NotFoundError, ValidationError
from timberline.utils.logger import get_logger
from timberline.utils.pure import PENNY, to_money

_logger = get_logger(__name__)

COLLECTION = "basket"
DEAL_CATEGORY = "special-deals"

VAT_RATE = Decimal("0.20")
# (subtotal threshold, shipping cost), highest threshold first
SHIPPING_TIERS: Tuple[Tuple[Decimal, Decimal], ...] = (
    (Decimal("1000"), Decimal("0")),
    (Decimal("500"), Decimal("25")),
    (Decimal("0"), Decimal("50")),
)


@dataclass(frozen=True)
class BasketTotals:
    subtotal: Decimal
    vat: Decimal
    shipping_cost: Decimal
    total: Decimal
    item_count: int


def _check_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError.single("quantity", "Quantity must be a whole number of at least 1.")
    return quantity


async def _matching_item(
    user_id: str, product_id: str, configuration: Dict[str, Any]
) -> BasketLineItem | None:
    docs = await store.query_documents(
        COLLECTION, where={"user_id": user_id, "product_id": product_id}
    )
    for doc in docs:
        if (doc.get("configuration") or {}) == configuration:
            return BasketLineItem.from_doc(doc)
    return None


async def _add_line(
    user_id: str,
    product_id: str,
    category: str,
    description: str,
    unit_price: Decimal,
    configuration: Dict[str, Any],
    quantity: int,
) -> BasketLineItem:
    existing = await _matching_item(user_id, product_id, configuration)
    if existing is not None:
        new_quantity = existing.quantity + quantity
        await store.update_document(COLLECTION, existing.id, {"quantity": new_quantity})
        _logger.info(f"Basket {user_id}: {product_id} quantity -> {new_quantity}")
        return await get_item(existing.id)

    item_id = await store.add_document(
        COLLECTION,
        {
            "user_id": user_id,
            "product_id": product_id,
            "category": category,
            "description": description,
            "unit_price": unit_price,
            "quantity": quantity,
            "configuration": configuration,
        },
    )
    _logger.info(f"Basket {user_id}: added {product_id} x{quantity} at {unit_price}")
    return await get_item(item_id)


async def add(
    user_id: str,
    product_id: str,
    configuration: Dict[str, Any],
    category: str,
    quantity: int = 1,
) -> BasketLineItem:
    """
    Add a configured product. An item with the same product and configuration
    has its quantity increased instead of a second line being created.
    """
    _check_quantity(quantity)
    config = validate_configuration(category, configuration)
    unit_price = price(category, config)
    return await _add_line(
        user_id, product_id, category, describe(category, config), unit_price, config, quantity
    )


async def add_deal(user_id: str, deal_id: str, quantity: int = 1) -> BasketLineItem:
    _check_quantity(quantity)
    deal = await db_deals.get_deal(deal_id)
    if deal is None or not deal.is_active:
        raise NotFoundError("deal", deal_id)
    return await _add_line(
        user_id, deal.id, DEAL_CATEGORY, deal.name, deal.price, {}, quantity
    )


async def get_item(line_item_id: str) -> BasketLineItem:
    doc = await store.get_document(COLLECTION, line_item_id)
    if doc is None:
        raise NotFoundError("basket item", line_item_id)
    return BasketLineItem.from_doc(doc)


async def update_quantity(line_item_id: str, quantity: int) -> BasketLineItem:
    _check_quantity(quantity)
    await get_item(line_item_id)
    await store.update_document(COLLECTION, line_item_id, {"quantity": quantity})
    return await get_item(line_item_id)


async def remove(line_item_id: str) -> None:
    await store.delete_document(COLLECTION, line_item_id)


async def clear(user_id: str) -> None:
    docs = await store.query_documents(COLLECTION, where={"user_id": user_id})
    async with store.batch() as b:
        for doc in docs:
            b.delete(COLLECTION, doc["id"])
    _logger.info(f"Basket {user_id}: cleared {len(docs)} items")


async def list_items(user_id: str) -> List[BasketLineItem]:
    docs = await store.query_documents(
        COLLECTION, where={"user_id": user_id}, order_by="created_at", descending=True
    )
    return [BasketLineItem.from_doc(d) for d in docs]


# ---------------------------
# Totals
# ---------------------------


def shipping_for(
    subtotal: Decimal, shipping: Iterable[Tuple[Any, Any]] = SHIPPING_TIERS
) -> Decimal:
    for threshold, cost in shipping:
        if subtotal >= Decimal(str(threshold)):
            return to_money(cost)
    return Decimal("0.00")


def totals(
    items: Sequence[BasketLineItem],
    vat_rate: Decimal = VAT_RATE,
    shipping: Iterable[Tuple[Any, Any]] = SHIPPING_TIERS,
) -> BasketTotals:
    """Pure: subtotal, VAT on the subtotal, tiered shipping and the grand total."""
    subtotal = to_money(sum((item.line_total for item in items), Decimal("0")))
    vat = (subtotal * Decimal(str(vat_rate))).quantize(PENNY, rounding=ROUND_HALF_UP)
    shipping_cost = shipping_for(subtotal, shipping) if items else Decimal("0.00")
    return BasketTotals(
        subtotal=subtotal,
        vat=vat,
        shipping_cost=shipping_cost,
        total=subtotal + vat + shipping_cost,
        item_count=sum(item.quantity for item in items),
    )


def shipping_tiers(delivery: DeliverySettings) -> Tuple[Tuple[Decimal, Decimal], ...]:
    return (
        (delivery.free_delivery_threshold, Decimal("0")),
        (delivery.reduced_delivery_threshold, delivery.minimum_delivery_charge),
        (Decimal("0"), delivery.standard_delivery_charge),
    )


def totals_for_settings(
    items: Sequence[BasketLineItem],
    delivery: DeliverySettings,
    financial: FinancialSettings,
) -> BasketTotals:
    return totals(items, financial.vat_fraction, shipping_tiers(delivery))
