# order listing and status management for the back office
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from timberline.db import store
from timberline.db.models import Order, OrderStatus
from timberline.utils.errors import NotFoundError, ValidationError
from timberline.utils.logger import get_logger
from timberline.utils.pure import to_money

_logger = get_logger(__name__)

COLLECTION = "orders"


@dataclass(frozen=True)
class SalesSummary:
    order_count: int
    revenue: Decimal  # excludes cancelled orders
    average_order: Decimal
    by_status: Dict[str, int]


async def list_orders(
    status: Optional[OrderStatus] = None,
    user_id: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[Order], int]:
    """Newest first. Returns (orders on the page, total matching)."""
    where = {}
    if status is not None:
        where["status"] = OrderStatus(status)
    if user_id is not None:
        where["user_id"] = user_id
    page = max(int(page), 1)
    page_size = max(int(page_size), 1)

    total = await store.count_documents(COLLECTION, where)
    docs = await store.query_documents(
        COLLECTION,
        where=where,
        order_by="created_at",
        descending=True,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    return [Order.from_doc(d) for d in docs], total


async def get_order(order_id: str) -> Optional[Order]:
    doc = await store.get_document(COLLECTION, order_id)
    return Order.from_doc(doc) if doc else None


async def update_order_status(order_id: str, status: str) -> Order:
    try:
        status = OrderStatus(status)
    except ValueError:
        raise ValidationError.single("status", f"Unknown order status: {status}") from None
    if await get_order(order_id) is None:
        raise NotFoundError("order", order_id)
    await store.update_document(COLLECTION, order_id, {"status": status})
    _logger.info(f"Order {order_id} -> {status}")
    return await get_order(order_id)


async def sales_summary() -> SalesSummary:
    docs = await store.query_documents(COLLECTION)
    orders = [Order.from_doc(d) for d in docs]
    by_status = {s.value: 0 for s in OrderStatus}
    revenue = Decimal("0")
    counted = 0
    for order in orders:
        by_status[order.status.value] += 1
        if order.status != OrderStatus.CANCELLED:
            revenue += order.total
            counted += 1
    average = to_money(revenue / counted) if counted else Decimal("0.00")
    return SalesSummary(
        order_count=len(orders),
        revenue=to_money(revenue),
        average_order=average,
        by_status=by_status,
    )
