# CRM leads from the contact form and custom order inquiries
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic import ValidationError as PydanticValidationError

from timberline.db import store, users
from timberline.db.models import OPEN_LEAD_STATUSES, Lead, LeadSource, LeadStatus
from timberline.utils.errors import NotFoundError, ValidationError
from timberline.utils.logger import get_logger

_logger = get_logger(__name__)

COLLECTION = "leads"


class ContactForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=5000)


class CustomOrderForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    full_name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    description: str = Field(min_length=10, max_length=5000)
    phone: Optional[str] = None
    postcode: Optional[str] = None
    company_name: Optional[str] = None
    product_type: Optional[Literal["Garage", "Gazebo", "Porch", "Beams", "Flooring", "Other"]] = None
    contact_method: Optional[Literal["Email", "Phone"]] = None
    budget: Optional[str] = None
    timescale: Optional[str] = None


@dataclass(frozen=True)
class CustomerSummary:
    total_customers: int
    total_leads: int
    open_inquiries: int
    conversion_rate: int  # percent of leads marked Converted


def _parse(model, data: Dict[str, Any]):
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


async def submit_contact(data: Dict[str, Any]) -> str:
    form = _parse(ContactForm, data)
    lead_id = await store.add_document(
        COLLECTION,
        {
            "name": form.name,
            "email": form.email,
            "subject": form.subject,
            "notes": form.message,
            "source": LeadSource.CONTACT_FORM,
            "status": LeadStatus.NEW,
        },
    )
    _logger.info(f"Contact form lead {lead_id} from {form.email}")
    return lead_id


async def submit_custom_order(data: Dict[str, Any]) -> str:
    form = _parse(CustomOrderForm, data)
    details = form.model_dump(exclude={"full_name", "email", "description", "phone"}, exclude_none=True)
    lead_id = await store.add_document(
        COLLECTION,
        {
            "name": form.full_name,
            "email": form.email,
            "phone": form.phone,
            "subject": f"Custom {form.product_type or 'order'} inquiry",
            "notes": form.description,
            "details": details,
            "source": LeadSource.CUSTOM_ORDER,
            "status": LeadStatus.NEW,
        },
    )
    _logger.info(f"Custom order lead {lead_id} from {form.email}")
    return lead_id


async def list_leads(
    status: Optional[str] = None, source: Optional[str] = None, limit: Optional[int] = None
) -> List[Lead]:
    where: Dict[str, Any] = {}
    if status is not None:
        where["status"] = LeadStatus(status)
    if source is not None:
        where["source"] = LeadSource(source)
    docs = await store.query_documents(
        COLLECTION, where=where, order_by="created_at", descending=True, limit=limit
    )
    return [Lead.from_doc(d) for d in docs]


async def get_lead(lead_id: str) -> Optional[Lead]:
    doc = await store.get_document(COLLECTION, lead_id)
    return Lead.from_doc(doc) if doc else None


async def update_lead(
    lead_id: str, status: Optional[str] = None, notes: Optional[str] = None
) -> Lead:
    fields: Dict[str, Any] = {}
    if status is not None:
        try:
            fields["status"] = LeadStatus(status)
        except ValueError:
            raise ValidationError.single("status", f"Unknown lead status: {status}") from None
    if notes is not None:
        fields["notes"] = notes
    if await get_lead(lead_id) is None:
        raise NotFoundError("lead", lead_id)
    if fields:
        await store.update_document(COLLECTION, lead_id, fields)
        _logger.info(f"Lead {lead_id} updated: {sorted(fields)}")
    return await get_lead(lead_id)


async def delete_lead(lead_id: str) -> None:
    await store.delete_document(COLLECTION, lead_id)


async def customer_summary() -> CustomerSummary:
    total_leads = await store.count_documents(COLLECTION)
    open_inquiries = await store.count_documents(COLLECTION, {"status": list(OPEN_LEAD_STATUSES)})
    converted = await store.count_documents(COLLECTION, {"status": LeadStatus.CONVERTED})
    return CustomerSummary(
        total_customers=await users.customer_count(),
        total_leads=total_leads,
        open_inquiries=open_inquiries,
        conversion_rate=round(converted * 100 / total_leads) if total_leads else 0,
    )
