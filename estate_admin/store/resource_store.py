"""
Client-side cache and lifecycle state for one resource.

A store holds the currently loaded page of records, its pagination
descriptor and the ``loading``/``error`` flags. List fetches move the store
through ``Idle -> Loading -> Loaded | Failed``; creates, updates and deletes
are independent operations that reconcile their result into the cached page
without touching ``loading``.

Each fetch is tagged with a sequence number. Only the response to the most
recently issued fetch is applied; answers to superseded fetches are dropped,
so a slow early request can never overwrite a newer page.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, List, Mapping, Optional, Tuple, TypeVar

import structlog

from estate_admin.core.exceptions import EstateAdminError
from estate_admin.core.models import PaginationDescriptor, Record
from estate_admin.data.resources import Page, Payload, ResourceService
from estate_admin.store.errors import normalize_error

logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=Record)

# Page size used when a screen deliberately loads a whole collection
FULL_COLLECTION_PAGE_SIZE = 1000


@dataclass(frozen=True)
class StoreState(Generic[R]):
    """Immutable snapshot of a store."""

    records: Tuple[R, ...] = ()
    pagination: Optional[PaginationDescriptor] = None
    loading: bool = False
    error: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        """True when the loaded records are the entire remote collection."""
        return self.pagination is not None and len(self.records) >= self.pagination.total_items

    def find(self, record_id: str) -> Optional[R]:
        for record in self.records:
            if record.id == record_id:
                return record
        return None


Listener = Callable[[StoreState], None]


class ResourceStore(Generic[R]):
    """
    Cache of one resource's current page, kept in sync with the backend.
    """

    def __init__(self, service: ResourceService[R]):
        self.service = service
        self.label = service.definition.label
        self.plural = service.definition.plural

        self._state: StoreState[R] = StoreState()
        self._lock = threading.RLock()
        self._latest_fetch = 0
        self._listeners: List[Listener] = []
        self._after_create: List[Callable[[R], None]] = []
        self._after_delete: List[Callable[[str], None]] = []

    def __repr__(self) -> str:
        return f"<ResourceStore {self.service.definition.name} records={len(self.records)}>"

    # ------------------------------------------------------------------ #
    # State access
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> StoreState[R]:
        return self._state

    @property
    def records(self) -> Tuple[R, ...]:
        return self._state.records

    @property
    def pagination(self) -> Optional[PaginationDescriptor]:
        return self._state.pagination

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the new state after every change; returns an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_created(self, hook: Callable[[R], None]) -> None:
        self._after_create.append(hook)

    def on_deleted(self, hook: Callable[[str], None]) -> None:
        self._after_delete.append(hook)

    def _commit(self, **changes: Any) -> StoreState[R]:
        with self._lock:
            self._state = replace(self._state, **changes)
            snapshot = self._state
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    def clear_error(self) -> None:
        self._commit(error=None)

    # ------------------------------------------------------------------ #
    # List fetch
    # ------------------------------------------------------------------ #

    def fetch(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> Optional[Page[R]]:
        """
        Load one page into the store.

        Returns the page, or ``None`` when the fetch failed or was superseded
        by a newer one. A failure keeps the previously loaded records.
        """
        with self._lock:
            self._latest_fetch += 1
            token = self._latest_fetch
        self._commit(loading=True, error=None)

        try:
            result = self.service.list(filters=filters, page=page, per_page=per_page)
        except EstateAdminError as e:
            with self._lock:
                if token != self._latest_fetch:
                    logger.debug("Dropping failure of superseded fetch", store=self.plural, token=token)
                    return None
                message = normalize_error(e, f"Failed to fetch {self.plural}")
                logger.warning("Fetch failed", store=self.plural, error=message)
                self._commit(loading=False, error=message)
            return None

        with self._lock:
            if token != self._latest_fetch:
                logger.debug("Dropping superseded page", store=self.plural, token=token)
                return None
            self._commit(records=tuple(result.data), pagination=result.pagination, loading=False)
        return result

    def fetch_all(self, filters: Optional[Mapping[str, Any]] = None) -> Optional[Page[R]]:
        """Load the whole collection in one large page, for collection-wide figures."""
        return self.fetch(filters=filters, page=1, per_page=FULL_COLLECTION_PAGE_SIZE)

    def fetch_by_id(self, record_id: str) -> Optional[R]:
        """Fetch a single record without touching the cached page."""
        try:
            return self.service.get_by_id(record_id)
        except EstateAdminError as e:
            self._fail(e, f"Failed to fetch {self.label}")
            return None

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def _fail(self, exc: EstateAdminError, fallback: str) -> None:
        message = normalize_error(exc, fallback)
        logger.warning("Operation failed", store=self.plural, error=message)
        self._commit(error=message)

    def create(self, payload: Payload) -> Optional[R]:
        """Create a record and append it to the loaded page."""
        try:
            record = self.service.create(payload)
        except EstateAdminError as e:
            self._fail(e, f"Failed to create {self.label}")
            return None

        with self._lock:
            self._commit(records=self._state.records + (record,))
        logger.debug("Record created", store=self.plural, id=record.id)

        for hook in self._after_create:
            hook(record)
        return record

    def update(self, record_id: str, payload: Payload) -> Optional[R]:
        """Update a record and replace the cached copy with the backend's version."""
        try:
            record = self.service.update(record_id, payload)
        except EstateAdminError as e:
            self._fail(e, f"Failed to update {self.label}")
            return None

        self.replace_cached(record)
        return record

    def delete(self, record_id: str) -> bool:
        """Delete a record and drop it from the loaded page."""
        try:
            self.service.delete(record_id)
        except EstateAdminError as e:
            self._fail(e, f"Failed to delete {self.label}")
            return False

        self.remove_cached(lambda r: r.id == record_id)
        logger.debug("Record deleted", store=self.plural, id=record_id)

        for hook in self._after_delete:
            hook(record_id)
        return True

    # ------------------------------------------------------------------ #
    # Cache reconciliation
    # ------------------------------------------------------------------ #

    def replace_cached(self, record: R) -> bool:
        """Swap in ``record`` for the cached entry with the same id; no-op when absent."""
        with self._lock:
            records = self._state.records
            index = next((i for i, r in enumerate(records) if r.id == record.id), None)
            if index is None:
                return False
            self._commit(records=records[:index] + (record,) + records[index + 1 :])
        return True

    def remove_cached(self, predicate: Callable[[R], bool]) -> int:
        """Drop every cached record matching ``predicate``; returns how many were removed."""
        with self._lock:
            kept = tuple(r for r in self._state.records if not predicate(r))
            removed = len(self._state.records) - len(kept)
            if removed:
                self._commit(records=kept)
        return removed
