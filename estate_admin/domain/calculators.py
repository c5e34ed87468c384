"""
Derived billing fields.

Pure functions shared by the live preview while a form is being filled in
and by the payload builder at submit time, so the two never disagree.
Money is handled as ``Decimal``; ints, floats and numeric strings are
accepted and converted through ``str`` to avoid binary float artefacts.
"""

import datetime as dt
from decimal import Decimal
from typing import Iterable, Optional, Union

from estate_admin.core.models import WaterSupplyCustomer, WaterSupplyReading

Number = Union[int, float, str, Decimal]


def to_decimal(value: Optional[Number]) -> Decimal:
    """Convert a user or backend supplied number to ``Decimal``; blanks count as zero."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def units_consumed(previous: Number, current: Number) -> Decimal:
    """Meter units used since the previous reading; a lower reading means zero, never negative."""
    return max(Decimal("0"), to_decimal(current) - to_decimal(previous))


def amount_due(units: Number, unit_price: Number) -> Decimal:
    return to_decimal(units) * to_decimal(unit_price)


def total_amount(quantity: Number, unit_price: Number) -> Decimal:
    return to_decimal(quantity) * to_decimal(unit_price)


def previous_reading(
    customer: WaterSupplyCustomer,
    readings: Iterable[WaterSupplyReading],
    excluding_id: Optional[str] = None,
) -> Decimal:
    """
    Meter value the next reading for ``customer`` is measured against.

    The latest reading by ``reading_date`` wins; among readings on the same
    date the one that appears later in ``readings`` wins. The reading being
    edited (``excluding_id``) is ignored. With no earlier reading the
    customer's starting reading is used.
    """
    latest: Optional[WaterSupplyReading] = None
    for reading in readings:
        if reading.customer_id != customer.id or reading.id == excluding_id:
            continue
        if latest is None or reading.reading_date >= latest.reading_date:
            latest = reading

    if latest is None:
        return to_decimal(customer.starting_reading)
    return to_decimal(latest.meter_reading)


def month_of(day: dt.date) -> str:
    """Billing month key, ``YYYY-MM``."""
    return day.strftime("%Y-%m")
