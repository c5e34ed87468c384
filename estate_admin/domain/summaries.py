"""
Summary figures shown above each list.

Figures are computed over whatever records the store currently holds. That
is normally just the visible page; only when the whole collection was loaded
(see ``ResourceStore.fetch_all``) does a figure describe the full collection.
Every figure carries its scope so the two are never confused on one screen.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from estate_admin.core.models import (
    BankAccount,
    BankTransaction,
    PaymentStatus,
    ToiletCollection,
    TransactionType,
    WaterSupplyReading,
    WaterWellCollection,
)
from estate_admin.domain.calculators import month_of, to_decimal
from estate_admin.store.resource_store import StoreState


class SummaryScope(str, Enum):
    PAGE = "page"
    COLLECTION = "collection"


@dataclass(frozen=True)
class SummaryFigure:
    label: str
    value: Decimal
    scope: SummaryScope
    is_count: bool = False

    @property
    def formatted(self) -> str:
        if self.is_count:
            return f"{int(self.value):,}"
        return f"{self.value:,.2f}"

    def __str__(self) -> str:
        return f"{self.label}: {self.formatted} ({self.scope.value})"


def scope_of(state: StoreState) -> SummaryScope:
    """Collection scope only when every remote record is loaded."""
    return SummaryScope.COLLECTION if state.is_complete else SummaryScope.PAGE


def _sum(values: Iterable) -> Decimal:
    return sum((to_decimal(v) for v in values), Decimal("0"))


def water_well_summary(
    collections: Sequence[WaterWellCollection],
    scope: SummaryScope = SummaryScope.PAGE,
    today: Optional[dt.date] = None,
) -> List[SummaryFigure]:
    """Today's takings, this month's total, deposited vs collected, and missing deposits."""
    today = today or dt.date.today()
    month = month_of(today)

    todays = next((c for c in collections if c.date == today), None)
    monthly = [c for c in collections if month_of(c.date) == month]
    deposited = [c for c in collections if c.is_deposited]
    missing = [c for c in collections if not c.is_deposited]

    return [
        SummaryFigure("Today's collection", to_decimal(todays.total_amount if todays else 0), scope),
        SummaryFigure("This month", _sum(c.total_amount for c in monthly), scope),
        SummaryFigure("Deposited", _sum(c.total_amount for c in deposited), scope),
        SummaryFigure("Collected", _sum(c.total_amount for c in collections), scope),
        SummaryFigure("Missing deposits", Decimal(len(missing)), scope, is_count=True),
    ]


def toilet_summary(
    collections: Sequence[ToiletCollection],
    scope: SummaryScope = SummaryScope.PAGE,
    today: Optional[dt.date] = None,
) -> List[SummaryFigure]:
    today = today or dt.date.today()
    month = month_of(today)
    todays = next((c for c in collections if c.date == today), None)
    monthly = [c for c in collections if month_of(c.date) == month]

    return [
        SummaryFigure(
            "Today's collection", to_decimal(todays.amount_collected if todays else 0), scope
        ),
        SummaryFigure("This month", _sum(c.amount_collected for c in monthly), scope),
        SummaryFigure(
            "Deposited", _sum(c.amount_collected for c in collections if c.is_deposited), scope
        ),
        SummaryFigure(
            "Missing deposits",
            Decimal(sum(1 for c in collections if not c.is_deposited)),
            scope,
            is_count=True,
        ),
    ]


def readings_summary(
    readings: Sequence[WaterSupplyReading],
    scope: SummaryScope = SummaryScope.PAGE,
    today: Optional[dt.date] = None,
) -> List[SummaryFigure]:
    """Reading count, revenue collected this month, outstanding bills and units this month."""
    month = month_of(today or dt.date.today())
    monthly = [r for r in readings if (r.month or month_of(r.reading_date)) == month]
    unpaid = (PaymentStatus.PENDING.value, PaymentStatus.OVERDUE.value)

    return [
        SummaryFigure("Total readings", Decimal(len(readings)), scope, is_count=True),
        SummaryFigure(
            "Monthly revenue",
            _sum(r.amount_due for r in monthly if r.payment_status == PaymentStatus.PAID.value),
            scope,
        ),
        SummaryFigure(
            "Pending bills", _sum(r.amount_due for r in readings if r.payment_status in unpaid), scope
        ),
        SummaryFigure("Units consumed this month", _sum(r.units_consumed for r in monthly), scope),
    ]


def account_balances(
    accounts: Iterable[BankAccount], transactions: Iterable[BankTransaction]
) -> Dict[str, Decimal]:
    """Opening balance plus deposits minus withdrawals, per account id."""
    balances = {a.id: to_decimal(a.opening_balance) for a in accounts}
    for t in transactions:
        if t.account_id not in balances:
            continue
        amount = to_decimal(t.amount)
        if t.type == TransactionType.DEPOSIT.value:
            balances[t.account_id] += amount
        else:
            balances[t.account_id] -= amount
    return balances


def banking_summary(
    accounts_state: StoreState,
    transactions_state: StoreState,
    today: Optional[dt.date] = None,
) -> List[SummaryFigure]:
    """
    Totals for the banking screen.

    The total balance is the sum of opening balances over the account list,
    so it is as wide as the accounts load. Deposits and withdrawals only
    cover this month's transactions among those loaded.
    """
    month = month_of(today or dt.date.today())
    accounts_scope = scope_of(accounts_state)
    tx_scope = scope_of(transactions_state)
    monthly = [
        t for t in transactions_state.records if t.date is not None and month_of(t.date) == month
    ]

    return [
        SummaryFigure(
            "Accounts", Decimal(len(accounts_state.records)), accounts_scope, is_count=True
        ),
        SummaryFigure(
            "Total balance", _sum(a.opening_balance for a in accounts_state.records), accounts_scope
        ),
        SummaryFigure(
            "Deposits this month",
            _sum(t.amount for t in monthly if t.type == TransactionType.DEPOSIT.value),
            tx_scope,
        ),
        SummaryFigure(
            "Withdrawals this month",
            _sum(t.amount for t in monthly if t.type == TransactionType.WITHDRAWAL.value),
            tx_scope,
        ),
    ]
