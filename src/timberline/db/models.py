# provide dataclass models for the documents held in each collection
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any, Dict, Optional, Tuple

from timberline.utils.pure import to_money


class UserRole(StrEnum):
    GUEST = "guest"
    CUSTOMER = "customer"
    MANAGER = "manager"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


STAFF_ROLES = frozenset({UserRole.MANAGER, UserRole.ADMIN, UserRole.SUPER_ADMIN})


class AddressType(StrEnum):
    BILLING = "Billing"
    SHIPPING = "Shipping"
    BOTH = "Both"


class OrderStatus(StrEnum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class LeadStatus(StrEnum):
    NEW = "New"
    CONTACTED = "Contacted"
    QUALIFIED = "Qualified"
    PROPOSAL = "Proposal"
    CONVERTED = "Converted"
    LOST = "Lost"


OPEN_LEAD_STATUSES = (
    LeadStatus.NEW,
    LeadStatus.CONTACTED,
    LeadStatus.QUALIFIED,
    LeadStatus.PROPOSAL,
)


class LeadSource(StrEnum):
    CONTACT_FORM = "contact_form"
    CUSTOM_ORDER = "custom_order"


class PaymentMethod(StrEnum):
    PAYPAL = "paypal"


@dataclass(frozen=True)
class UserAccount:
    id: str
    email: str
    display_name: str
    role: UserRole
    is_system: bool = False  # protected account: role/disable/delete are refused
    disabled: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "UserAccount":
        role = doc.get("role") or UserRole.CUSTOMER
        try:
            role = UserRole(role)
        except ValueError:
            role = UserRole.CUSTOMER
        return cls(
            id=doc["id"],
            email=doc.get("email", ""),
            display_name=doc.get("display_name") or "",
            role=role,
            is_system=bool(doc.get("is_system", False)),
            disabled=bool(doc.get("disabled", False)),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    def public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "displayName": self.display_name,
            "role": self.role.value,
            "isSystem": self.is_system,
            "disabled": self.disabled,
        }


@dataclass(frozen=True)
class Address:
    id: str
    user_id: str
    type: AddressType
    is_default: bool
    line1: str
    town: str
    postcode: str
    country: str = "United Kingdom"
    line2: Optional[str] = None
    county: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Address":
        return cls(
            id=doc["id"],
            user_id=doc["user_id"],
            type=AddressType(doc["type"]),
            is_default=bool(doc.get("is_default", False)),
            line1=doc.get("line1", ""),
            town=doc.get("town", ""),
            postcode=doc.get("postcode", ""),
            country=doc.get("country") or "United Kingdom",
            line2=doc.get("line2"),
            county=doc.get("county"),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


@dataclass(frozen=True)
class BasketLineItem:
    id: str
    user_id: str
    product_id: str
    category: str
    description: str
    unit_price: Decimal  # frozen when the item is added
    quantity: int
    configuration: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "BasketLineItem":
        return cls(
            id=doc["id"],
            user_id=doc["user_id"],
            product_id=doc["product_id"],
            category=doc.get("category") or "",
            description=doc.get("description") or "",
            unit_price=to_money(doc.get("unit_price")),
            quantity=int(doc.get("quantity", 1)),
            configuration=dict(doc.get("configuration") or {}),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    category: str
    description: str
    unit_price: Decimal
    quantity: int
    configuration: Dict[str, Any] = field(default_factory=dict)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    @classmethod
    def from_basket_item(cls, item: BasketLineItem) -> "OrderLine":
        return cls(
            product_id=item.product_id,
            category=item.category,
            description=item.description,
            unit_price=item.unit_price,
            quantity=item.quantity,
            configuration=dict(item.configuration),
        )

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "OrderLine":
        return cls(
            product_id=doc["product_id"],
            category=doc.get("category") or "",
            description=doc.get("description") or "",
            unit_price=to_money(doc.get("unit_price")),
            quantity=int(doc.get("quantity", 1)),
            configuration=dict(doc.get("configuration") or {}),
        )

    def to_doc(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "category": self.category,
            "description": self.description,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "configuration": self.configuration,
        }


@dataclass(frozen=True)
class Order:
    id: str
    user_id: Optional[str]
    billing_address: Dict[str, Any]
    shipping_address: Optional[Dict[str, Any]]
    payment_method: PaymentMethod
    items: Tuple[OrderLine, ...]
    subtotal: Decimal
    vat: Decimal
    shipping_cost: Decimal
    total: Decimal
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None
    payment_reference: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def customer_name(self) -> str:
        first = self.billing_address.get("first_name", "")
        last = self.billing_address.get("last_name", "")
        return f"{first} {last}".strip()

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Order":
        return cls(
            id=doc["id"],
            user_id=doc.get("user_id"),
            billing_address=dict(doc.get("billing_address") or {}),
            shipping_address=doc.get("shipping_address"),
            payment_method=PaymentMethod(doc.get("payment_method", PaymentMethod.PAYPAL)),
            items=tuple(OrderLine.from_doc(i) for i in doc.get("items", [])),
            subtotal=to_money(doc.get("subtotal")),
            vat=to_money(doc.get("vat")),
            shipping_cost=to_money(doc.get("shipping_cost")),
            total=to_money(doc.get("total")),
            status=OrderStatus(doc.get("status", OrderStatus.PENDING)),
            notes=doc.get("notes"),
            payment_reference=doc.get("payment_reference"),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


@dataclass(frozen=True)
class Lead:
    id: str
    name: str
    email: str
    source: LeadSource
    status: LeadStatus
    notes: Optional[str] = None
    subject: Optional[str] = None
    phone: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_LEAD_STATUSES

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Lead":
        try:
            status = LeadStatus(doc.get("status") or LeadStatus.NEW)
        except ValueError:
            status = LeadStatus.NEW
        return cls(
            id=doc["id"],
            name=doc.get("name") or "Unknown",
            email=doc.get("email") or "No email",
            source=LeadSource(doc.get("source", LeadSource.CONTACT_FORM)),
            status=status,
            notes=doc.get("notes"),
            subject=doc.get("subject"),
            phone=doc.get("phone"),
            details=dict(doc.get("details") or {}),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


@dataclass(frozen=True)
class Deal:
    id: str
    name: str
    description: str
    price: Decimal
    original_price: Optional[Decimal] = None
    is_active: bool = True
    is_structure_type: bool = True  # structures ship included; beams/flooring need a volume
    volume_m3: Optional[float] = None

    @property
    def saving(self) -> Decimal:
        if self.original_price is None:
            return Decimal("0.00")
        return max(to_money(self.original_price - self.price), Decimal("0.00"))

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Deal":
        original = doc.get("original_price")
        volume = doc.get("volume_m3")
        return cls(
            id=doc["id"],
            name=doc.get("name", ""),
            description=doc.get("description", ""),
            price=to_money(doc.get("price")),
            original_price=to_money(original) if original is not None else None,
            is_active=bool(doc.get("is_active", True)),
            is_structure_type=bool(doc.get("is_structure_type", True)),
            volume_m3=float(volume) if volume is not None else None,
        )


@dataclass(frozen=True)
class DeliverySettings:
    free_delivery_threshold: Decimal = Decimal("1000.00")
    reduced_delivery_threshold: Decimal = Decimal("500.00")
    minimum_delivery_charge: Decimal = Decimal("25.00")
    standard_delivery_charge: Decimal = Decimal("50.00")
    rate_per_m3: Decimal = Decimal("50.00")


@dataclass(frozen=True)
class FinancialSettings:
    currency_symbol: str = "£"
    vat_rate: Decimal = Decimal("20")  # percent

    @property
    def vat_fraction(self) -> Decimal:
        return self.vat_rate / Decimal(100)


@dataclass(frozen=True)
class ActivityLog:
    id: str
    user_id: Optional[str]
    action: str
    details: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "ActivityLog":
        return cls(
            id=doc["id"],
            user_id=doc.get("user_id"),
            action=doc.get("action", ""),
            details=dict(doc.get("details") or {}),
            created_at=doc.get("created_at"),
        )
