# saved customer addresses with one default per address type
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from timberline.db import store
from timberline.db.models import Address, AddressType
from timberline.utils.errors import NotFoundError, PermissionDeniedError, ValidationError
from timberline.utils.logger import get_logger
from timberline.utils.pure import is_uk_postcode

_logger = get_logger(__name__)

COLLECTION = "addresses"


class AddressInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    type: AddressType = AddressType.BOTH
    is_default: bool = False
    line1: str = Field(min_length=1)
    line2: Optional[str] = None
    town: str = Field(min_length=1)
    county: Optional[str] = None
    postcode: str = Field(min_length=5, max_length=8)
    country: str = "United Kingdom"

    @field_validator("postcode")
    @classmethod
    def _uk_postcode(cls, value: str) -> str:
        if not is_uk_postcode(value):
            raise ValueError("Enter a valid UK postcode.")
        return value.upper()


def _conflicts(new_type: AddressType, other: Address) -> bool:
    """Would ``other`` stop being a default when a ``new_type`` default is set?"""
    if not other.is_default:
        return False
    if new_type == AddressType.BOTH:
        return True
    return other.type in (new_type, AddressType.BOTH)


def _parse(data: Dict[str, Any]) -> AddressInput:
    try:
        return AddressInput.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


async def _owned(user_id: str, address_id: str) -> Address:
    doc = await store.get_document(COLLECTION, address_id)
    if doc is None:
        raise NotFoundError("address", address_id)
    address = Address.from_doc(doc)
    if address.user_id != user_id:
        raise PermissionDeniedError("This address belongs to another account.")
    return address


async def list_addresses(user_id: str) -> List[Address]:
    """Defaults first, then oldest first."""
    docs = await store.query_documents(COLLECTION, where={"user_id": user_id}, order_by="created_at")
    addresses = [Address.from_doc(d) for d in docs]
    return sorted(addresses, key=lambda a: not a.is_default)


async def _unset_conflicting(b: store.WriteBatch, user_id: str, new_type: AddressType, keep: str) -> None:
    for other in await list_addresses(user_id):
        if other.id != keep and _conflicts(new_type, other):
            b.update(COLLECTION, other.id, {"is_default": False})


async def add_address(user_id: str, data: Dict[str, Any]) -> Address:
    form = _parse(data)
    async with store.batch() as b:
        address_id = b.add(COLLECTION, {"user_id": user_id, **form.model_dump()})
        if form.is_default:
            await _unset_conflicting(b, user_id, form.type, address_id)
    _logger.info(f"Added {form.type} address for {user_id}")
    return await _owned(user_id, address_id)


async def update_address(user_id: str, address_id: str, data: Dict[str, Any]) -> Address:
    current = await _owned(user_id, address_id)
    merged = {
        "type": current.type,
        "is_default": current.is_default,
        "line1": current.line1,
        "line2": current.line2,
        "town": current.town,
        "county": current.county,
        "postcode": current.postcode,
        "country": current.country,
        **data,
    }
    form = _parse(merged)
    async with store.batch() as b:
        b.update(COLLECTION, address_id, form.model_dump())
        if form.is_default:
            await _unset_conflicting(b, user_id, form.type, address_id)
    return await _owned(user_id, address_id)


async def set_default(user_id: str, address_id: str) -> Address:
    return await update_address(user_id, address_id, {"is_default": True})


async def delete_address(user_id: str, address_id: str) -> None:
    doc = await store.get_document(COLLECTION, address_id)
    if doc is None:
        return
    await _owned(user_id, address_id)
    await store.delete_document(COLLECTION, address_id)
