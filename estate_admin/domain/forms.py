"""
Client-side forms.

Each form is validated before anything is sent; a failure raises
``FormValidationError`` naming the offending field. The ``build_*`` helpers
turn a valid form into the payload submitted to the backend, filling in the
derived fields with the same calculators the live preview uses.
"""

from __future__ import annotations

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any, Dict, Iterable, Mapping, NamedTuple, Optional, Type, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from estate_admin.core.exceptions import FormValidationError
from estate_admin.core.models import (
    PaymentMethod,
    PaymentStatus,
    TransactionType,
    WaterSupplyCustomer,
    WaterSupplyReading,
)
from estate_admin.domain.calculators import (
    amount_due,
    month_of,
    previous_reading,
    to_decimal,
    total_amount,
    units_consumed,
)

F = TypeVar("F", bound="BaseForm")


class BaseForm(BaseModel):
    """Common behaviour: strip strings, reject unknown fields."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid", use_enum_values=True)

    @classmethod
    def parse(cls: Type[F], data: Mapping[str, Any]) -> F:
        """Validate raw input, raising ``FormValidationError`` on the first problem."""
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or cls.__name__
            raise FormValidationError(field, first["msg"])


def _required_id(v: Any) -> str:
    if v is None or str(v).strip() == "":
        raise ValueError("is required")
    return str(v).strip()


RequiredId = Annotated[str, BeforeValidator(_required_id)]

PRICE_QUANTUM = Decimal("0.01")


# Water supply readings


class ReadingForm(BaseForm):
    customer_id: RequiredId
    reading_date: dt.date
    meter_reading: Decimal = Field(ge=0)


class ReadingPreview(NamedTuple):
    """Figures shown while a reading is typed in and persisted on submit."""

    previous_reading: Decimal
    units_consumed: Decimal
    unit_price: Decimal
    amount_due: Decimal


def _snapshot_unit_price(
    customer: WaterSupplyCustomer, editing: Optional[WaterSupplyReading]
) -> Decimal:
    """Price the bill was issued at; an edited bill keeps its original price."""
    if editing is not None and editing.units_consumed > 0:
        price = to_decimal(editing.amount_due) / to_decimal(editing.units_consumed)
        # amount_due is stored to the cent, so the recovered price is too
        return price.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
    return to_decimal(customer.unit_price)


def preview_reading(
    customer: WaterSupplyCustomer,
    readings: Iterable[WaterSupplyReading],
    meter_reading: Any,
    editing: Optional[WaterSupplyReading] = None,
) -> ReadingPreview:
    """Derive previous reading, consumption and amount for a (possibly partial) entry."""
    previous = previous_reading(customer, readings, excluding_id=editing.id if editing else None)
    units = units_consumed(previous, meter_reading)
    price = _snapshot_unit_price(customer, editing)
    return ReadingPreview(previous, units, price, amount_due(units, price))


def build_reading_payload(
    form: ReadingForm,
    customer: WaterSupplyCustomer,
    readings: Iterable[WaterSupplyReading],
    editing: Optional[WaterSupplyReading] = None,
) -> Dict[str, Any]:
    """
    Payload for creating (or, with ``editing``, updating) a meter reading.

    Raises:
        FormValidationError: wrong customer, or reading below the previous one
    """
    if form.customer_id != customer.id:
        raise FormValidationError("customer_id", f"does not match customer {customer.id}")

    preview = preview_reading(customer, readings, form.meter_reading, editing)
    if form.meter_reading < preview.previous_reading:
        raise FormValidationError(
            "meter_reading", f"Reading must be >= {preview.previous_reading}"
        )

    payload: Dict[str, Any] = {
        "customer_id": form.customer_id,
        "reading_date": form.reading_date,
        "meter_reading": form.meter_reading,
        "previous_reading": preview.previous_reading,
        "units_consumed": preview.units_consumed,
        "amount_due": preview.amount_due,
        "month": month_of(form.reading_date),
    }
    if editing is None:
        payload["payment_status"] = PaymentStatus.PENDING.value
    return payload


# Water supply payments


class PaymentForm(BaseForm):
    amount: Decimal = Field(gt=0)
    payment_date: dt.date
    bank_account_id: RequiredId
    bank_receipt: Optional[str] = None
    reference: Optional[str] = None


def build_payment_payload(form: PaymentForm, reading: WaterSupplyReading) -> Dict[str, Any]:
    """Payment against one bill; it may not exceed what the bill asks for."""
    if form.amount > reading.amount_due:
        raise FormValidationError(
            "amount", f"Amount cannot exceed {to_decimal(reading.amount_due):,.2f}"
        )
    return {
        "reading_id": reading.id,
        "customer_id": reading.customer_id,
        "amount": form.amount,
        "payment_date": form.payment_date,
        "payment_method": PaymentMethod.BANK_TRANSFER.value,
        "bank_account_id": form.bank_account_id,
        "bank_receipt": form.bank_receipt,
        "reference": form.reference,
    }


# Water well collections


class CollectionForm(BaseForm):
    date: dt.date
    buckets_sold: int = Field(ge=1)
    unit_price: Decimal = Field(default=Decimal("5"), gt=0)
    operator_id: RequiredId
    bank_account_id: RequiredId
    notes: Optional[str] = None


def build_collection_payload(form: CollectionForm, editing: bool = False) -> Dict[str, Any]:
    payload = form.model_dump()
    payload["total_amount"] = total_amount(form.buckets_sold, form.unit_price)
    if not editing:
        payload["is_deposited"] = False
    return payload


# Banking


class TransactionForm(BaseForm):
    account_id: RequiredId
    type: TransactionType
    amount: Decimal = Field(gt=0)
    date: dt.date
    category: str = Field(min_length=1)
    description: str = Field(min_length=1)
    reference: Optional[str] = None


def build_transaction_payload(form: TransactionForm) -> Dict[str, Any]:
    return form.model_dump()
