"""
Data models and type definitions for the estate admin client.

Every backend resource is a ``Record``: an opaque string id plus domain
attributes. Foreign keys are plain id strings; nested objects the backend
chooses to embed are kept but never shared between stores.
"""

from __future__ import annotations

import datetime as dt
import math
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator


class PaymentStatus(str, Enum):
    """Billing state of a water supply reading."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    CARD = "card"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    BUSINESS = "business"


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    OPERATOR = "operator"
    CASHIER = "cashier"


class ActiveStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


def _coerce_id(v: Any) -> Any:
    if v is None or v == "":
        return None
    if isinstance(v, (int, str)):
        return str(v)
    return v


def _coerce_date(v: Any) -> Any:
    """Accept ``YYYY-MM-DD`` as well as full ISO timestamps from the backend."""
    if isinstance(v, str):
        if not v:
            return None
        return v[:10]
    if isinstance(v, dt.datetime):
        return v.date()
    return v


IdRef = Annotated[str, BeforeValidator(_coerce_id)]
DateField = Annotated[dt.date, BeforeValidator(_coerce_date)]
OptionalIdRef = Annotated[Optional[str], BeforeValidator(_coerce_id)]
OptionalDate = Annotated[Optional[dt.date], BeforeValidator(_coerce_date)]


# Pagination


class PaginationDescriptor(BaseModel):
    """One page of a server-side collection."""

    current_page: int = Field(default=1, ge=1)
    total_pages: int = Field(default=0, ge=0)
    total_items: int = Field(default=0, ge=0)
    items_per_page: int = Field(default=1, ge=1)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def derive_total_pages(cls, data):
        """Recompute total pages from the counts and keep current page in range."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        per_page = max(int(data.get("items_per_page") or 1), 1)
        total_items = max(int(data.get("total_items") or 0), 0)
        total_pages = math.ceil(total_items / per_page)
        current_page = max(int(data.get("current_page") or 1), 1)
        if total_pages and current_page > total_pages:
            current_page = total_pages
        data.update(
            items_per_page=per_page,
            total_items=total_items,
            total_pages=total_pages,
            current_page=current_page,
        )
        return data

    @classmethod
    def from_counts(
        cls, total_items: int, items_per_page: int, current_page: int = 1
    ) -> PaginationDescriptor:
        return cls(
            current_page=current_page,
            total_items=total_items,
            items_per_page=items_per_page,
        )

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1


# Base Models


class Record(BaseModel):
    """Base class for all backend resources."""

    id: str

    model_config = ConfigDict(
        extra="allow",
        use_enum_values=True,
        validate_assignment=True,
        populate_by_name=True,
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        """Backend ids are integers; the client treats them as opaque strings."""
        return _coerce_id(v)


# Banking


class BankAccount(Record):
    account_name: str = ""
    bank_name: str = ""
    branch_name: Optional[str] = None
    account_number: str = ""
    opening_balance: Decimal = Decimal("0")
    type: AccountType = AccountType.BUSINESS


class BankTransaction(Record):
    account_id: IdRef
    type: TransactionType
    amount: Decimal
    date: OptionalDate = None
    description: Optional[str] = None
    category: Optional[str] = None
    reference: Optional[str] = None
    account: Optional[BankAccount] = None


# Users


class User(Record):
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    role: UserRole = UserRole.OPERATOR
    status: ActiveStatus = ActiveStatus.ACTIVE
    date_created: Optional[str] = Field(default=None, alias="created_at")
    last_login: Optional[str] = None


# Water supply


class WaterSupplyCustomer(Record):
    name: str = ""
    phone: Optional[str] = None
    location: Optional[str] = None
    meter_number: Optional[str] = None
    starting_reading: Decimal = Decimal("0")
    unit_price: Decimal = Decimal("0")
    status: ActiveStatus = ActiveStatus.ACTIVE
    date_registered: OptionalDate = None


class WaterSupplyReading(Record):
    """A meter reading and the bill derived from it.

    ``amount_due`` is a snapshot of ``units_consumed * unit_price`` taken
    when the reading was created; it is never re-derived from the customer.
    """

    customer_id: IdRef
    customer: Optional[WaterSupplyCustomer] = None
    reading_date: DateField
    meter_reading: Decimal
    previous_reading: Decimal = Decimal("0")
    units_consumed: Decimal = Decimal("0")
    amount_due: Decimal = Decimal("0")
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_date: OptionalDate = None
    month: Optional[str] = None


class WaterSupplyPayment(Record):
    reading_id: IdRef
    customer_id: IdRef
    amount: Decimal
    payment_date: DateField
    payment_method: PaymentMethod = PaymentMethod.CASH
    bank_account_id: OptionalIdRef = None
    bank_account: Optional[BankAccount] = None
    bank_receipt: Optional[str] = None
    reference: Optional[str] = None


# Deposited cash collections


class WaterWellCollection(Record):
    """Daily bucket sales at a water well.

    Created with ``is_deposited=False``; flips to ``True`` once, when the cash
    is banked, together with ``deposit_id`` and ``deposit_date``.
    """

    date: DateField
    buckets_sold: int = Field(ge=0)
    unit_price: Decimal
    total_amount: Decimal = Decimal("0")
    operator_id: OptionalIdRef = None
    operator: Optional[User] = None
    bank_account_id: OptionalIdRef = None
    bank_account: Optional[BankAccount] = None
    deposit_id: Optional[str] = None
    deposit_date: OptionalDate = None
    is_deposited: bool = False
    notes: Optional[str] = None


class ToiletCollection(Record):
    """Daily public toilet revenue, deposited the same way as well collections."""

    date: DateField
    total_users: int = Field(default=0, ge=0)
    amount_collected: Decimal = Decimal("0")
    cashier_id: OptionalIdRef = None
    cashier: Optional[User] = None
    bank_account_id: OptionalIdRef = None
    bank_account: Optional[BankAccount] = None
    deposit_id: Optional[str] = None
    deposit_date: OptionalDate = None
    is_deposited: bool = False
    notes: Optional[str] = None


# Property management


class Property(Record):
    name: str = ""
    property_type_id: OptionalIdRef = None
    location_id: OptionalIdRef = None
    size: Optional[str] = None
    status: str = "available"
    monthly_rent: Decimal = Decimal("0")
    date_added: OptionalDate = None


class Tenant(Record):
    name: str = ""
    phone: Optional[str] = None
    id_number: Optional[str] = None
    business_type: Optional[str] = None
    property_ids: List[str] = Field(default_factory=list)
    status: str = "active"

    @field_validator("property_ids", mode="before")
    @classmethod
    def coerce_property_ids(cls, v):
        return [str(i) for i in (v or [])]


class Contract(Record):
    contract_number: Optional[str] = None
    tenant_id: IdRef
    property_id: IdRef
    rent_amount: Decimal = Decimal("0")
    start_date: OptionalDate = None
    end_date: OptionalDate = None
    terms: Optional[str] = None
    status: str = "active"


class RentPayment(Record):
    tenant_id: IdRef
    contract_id: OptionalIdRef = None
    bank_account_id: OptionalIdRef = None
    amount: Decimal = Decimal("0")
    month: Optional[str] = None
    payment_date: OptionalDate = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    bank_receipt: Optional[str] = None
    status: str = "paid"


# Construction


class ConstructionProject(Record):
    name: str = ""
    description: Optional[str] = None
    start_date: OptionalDate = None
    end_date: OptionalDate = None
    budget: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    status: str = "planning"
    progress: int = Field(default=0, ge=0, le=100)


class ConstructionExpense(Record):
    project_id: IdRef
    type: str = "materials"
    material_id: OptionalIdRef = None
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    amount: Decimal = Decimal("0")
    date: OptionalDate = None
    vendor_id: OptionalIdRef = None
    bank_account_id: OptionalIdRef = None
    description: Optional[str] = None
    receipt_url: Optional[str] = None


# Lookup tables managed from settings


class PropertyType(Record):
    name: str = ""
    description: Optional[str] = None


class BusinessType(Record):
    name: str = ""
    description: Optional[str] = None


class TransactionCategory(Record):
    name: str = ""
    type: str = "expense"
    description: Optional[str] = None


class ConstructionMaterial(Record):
    name: str = ""
    unit: Optional[str] = None
    description: Optional[str] = None


class Vendor(Record):
    name: str = ""
    location: Optional[str] = None
    phone: Optional[str] = None


class Location(Record):
    name: str = ""
    description: Optional[str] = None
