# special deals: fixed-price pre-configured products
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from timberline.db import store
from timberline.db.models import Deal
from timberline.utils.errors import NotFoundError, ValidationError
from timberline.utils.logger import get_logger
from timberline.utils.pure import to_money

_logger = get_logger(__name__)

COLLECTION = "specialDeals"


class DealForm(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=120)
    description: str = ""
    price: Decimal = Field(ge=0)
    original_price: Optional[Decimal] = Field(default=None, ge=0)
    is_active: bool = True
    is_structure_type: bool = True
    volume_m3: Optional[float] = Field(default=None, gt=0)


def _to_doc(form: DealForm) -> Dict[str, Any]:
    return {
        "name": form.name,
        "description": form.description,
        "price": to_money(form.price),
        "original_price": to_money(form.original_price) if form.original_price is not None else None,
        "is_active": form.is_active,
        "is_structure_type": form.is_structure_type,
        "volume_m3": form.volume_m3,
    }


async def list_deals(active_only: bool = False) -> List[Deal]:
    where = {"is_active": True} if active_only else None
    docs = await store.query_documents(COLLECTION, where=where, order_by="created_at")
    return [Deal.from_doc(d) for d in docs]


async def get_deal(deal_id: str) -> Optional[Deal]:
    doc = await store.get_document(COLLECTION, deal_id)
    return Deal.from_doc(doc) if doc else None


async def save_deal(data: Dict[str, Any], deal_id: Optional[str] = None) -> Deal:
    """Create a deal, or overwrite ``deal_id``. NotFoundError if it is absent."""
    try:
        form = DealForm.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc
    # beams and flooring are charged delivery by volume
    if not form.is_structure_type and form.volume_m3 is None:
        raise ValidationError.single("volume_m3", "Volume (m³) is required for non-structure deals.")

    doc = _to_doc(form)
    if deal_id is None:
        deal_id = await store.add_document(COLLECTION, doc)
        _logger.info(f"Created deal {deal_id} ({form.name})")
    else:
        await store.update_document(COLLECTION, deal_id, doc)
        _logger.info(f"Updated deal {deal_id}")
    saved = await get_deal(deal_id)
    if saved is None:
        raise NotFoundError("deal", deal_id)
    return saved


async def delete_deal(deal_id: str) -> None:
    await store.delete_document(COLLECTION, deal_id)
