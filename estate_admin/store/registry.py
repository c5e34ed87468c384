"""
One store per backend resource, plus the cross-store cascades between them.

Stores are independent; the few places where a change to one must be
reflected in another are wired up here explicitly.
"""

import datetime as dt
import time
from typing import Dict, Iterator, Optional

import structlog

from estate_admin.core.models import (
    PaymentStatus,
    ToiletCollection,
    WaterSupplyPayment,
    WaterWellCollection,
)
from estate_admin.data.api_client import ApiClient
from estate_admin.data.resources import DEFINITIONS, ResourceDefinition, build_service
from estate_admin.store.resource_store import ResourceStore

logger = structlog.get_logger(__name__)

DEPOSIT_PREFIXES = {
    WaterWellCollection: "DEP-WW",
    ToiletCollection: "DEP-TL",
}


class StoreRegistry:
    """Builds a ``ResourceStore`` for every known resource and links them."""

    def __init__(
        self,
        client: ApiClient,
        definitions: Optional[Dict[str, ResourceDefinition]] = None,
    ):
        self.client = client
        self._stores: Dict[str, ResourceStore] = {
            name: ResourceStore(build_service(client, definition))
            for name, definition in (definitions or DEFINITIONS).items()
        }
        self._wire_cascades()

    def __getitem__(self, name: str) -> ResourceStore:
        try:
            return self._stores[name]
        except KeyError:
            raise KeyError(f"No store for resource '{name}'")

    def __contains__(self, name: str) -> bool:
        return name in self._stores

    def __iter__(self) -> Iterator[str]:
        return iter(self._stores)

    def _wire_cascades(self) -> None:
        if "bank-accounts" in self and "bank-transactions" in self:
            transactions = self["bank-transactions"]

            def drop_account_transactions(account_id: str) -> None:
                removed = transactions.remove_cached(lambda t: t.account_id == account_id)
                if removed:
                    logger.debug(
                        "Dropped transactions of deleted account",
                        account_id=account_id,
                        count=removed,
                    )

            self["bank-accounts"].on_deleted(drop_account_transactions)

        if "water-supply-payments" in self and "water-supply-readings" in self:
            readings = self["water-supply-readings"]

            def mark_reading_paid(payment: WaterSupplyPayment) -> None:
                reading = readings.state.find(payment.reading_id)
                if reading is None:
                    return
                readings.replace_cached(
                    reading.model_copy(
                        update={
                            "payment_status": PaymentStatus.PAID.value,
                            "payment_date": payment.payment_date,
                        }
                    )
                )

            self["water-supply-payments"].on_created(mark_reading_paid)


def default_deposit_id(model: type, now: Optional[float] = None) -> str:
    """``DEP-WW-<epoch ms>`` for well collections, ``DEP-TL-<epoch ms>`` for toilets."""
    prefix = DEPOSIT_PREFIXES.get(model, "DEP")
    millis = int((now if now is not None else time.time()) * 1000)
    return f"{prefix}-{millis}"


def mark_deposited(
    store: ResourceStore,
    record_id: str,
    deposit_id: Optional[str] = None,
    deposit_date: Optional[dt.date] = None,
):
    """
    Record that a collection's cash has been banked.

    A collection flips to deposited exactly once: if it already is, it is
    returned as-is and nothing is sent. Returns ``None`` when the record
    cannot be loaded or the update fails (the store's error says why).
    """
    record = store.state.find(record_id) or store.fetch_by_id(record_id)
    if record is None:
        return None
    if record.is_deposited:
        logger.info("Collection already deposited", id=record_id, deposit_id=record.deposit_id)
        return record

    # Generated id and default date come from the same instant
    now = time.time()
    payload = {
        "is_deposited": True,
        "deposit_id": deposit_id or default_deposit_id(type(record), now),
        "deposit_date": (deposit_date or dt.date.fromtimestamp(now)).isoformat(),
    }
    return store.update(record_id, payload)
