"""
Client-side resource stores.

Caches of the backend collections, kept in sync with create, update and
delete operations and linked by explicit cascades.
"""

from .errors import normalize_error
from .registry import StoreRegistry, mark_deposited
from .resource_store import FULL_COLLECTION_PAGE_SIZE, ResourceStore, StoreState

__all__ = [
    "FULL_COLLECTION_PAGE_SIZE",
    "ResourceStore",
    "StoreRegistry",
    "StoreState",
    "mark_deposited",
    "normalize_error",
]
