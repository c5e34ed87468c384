"""
Per-domain CRUD services over the backend REST API.

Every resource speaks the same contract (``GET /path``, ``GET /path/{id}``,
``POST /path``, ``PUT /path/{id}``, ``DELETE /path/{id}``); what differs per
domain is captured by a ``ResourceDefinition``. List responses arrive in three
shapes (Laravel top-level paginator, nested ``pagination`` object, bare array)
and are normalised here into one ``Page``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Mapping, Optional, Tuple, Type, TypeVar, Union

import structlog
from pydantic import BaseModel, ValidationError
from pydantic_core import to_jsonable_python

from estate_admin.core.exceptions import ResponseFormatError
from estate_admin.core.models import (
    BankAccount,
    BankTransaction,
    BusinessType,
    ConstructionExpense,
    ConstructionMaterial,
    ConstructionProject,
    Contract,
    Location,
    PaginationDescriptor,
    Property,
    PropertyType,
    Record,
    RentPayment,
    Tenant,
    ToiletCollection,
    TransactionCategory,
    User,
    Vendor,
    WaterSupplyCustomer,
    WaterSupplyPayment,
    WaterSupplyReading,
    WaterWellCollection,
)
from estate_admin.data.api_client import ApiClient
from estate_admin.data.transform import coerce_id_fields, snake_case_keys

logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=Record)

Payload = Union[Mapping[str, Any], BaseModel]


@dataclass(frozen=True)
class ResourceDefinition:
    """Everything that distinguishes one backend resource from another."""

    name: str
    path: str
    model: Type[Record]
    label: str
    plural: str
    filters: Tuple[str, ...] = ()
    id_fields: Tuple[str, ...] = ()


@dataclass
class Page(Generic[R]):
    """One page of records with its pagination descriptor."""

    data: List[R]
    pagination: PaginationDescriptor


def _first(meta: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if meta.get(key) is not None:
            return meta[key]
    return default


def normalize_list_response(body: Any) -> Tuple[List[Any], PaginationDescriptor]:
    """
    Reduce any list envelope to ``(items, pagination)``.

    Accepts the Laravel paginator (``data`` plus top-level ``current_page``,
    ``last_page``, ``per_page``, ``total``), a nested ``pagination``/``meta``
    object in snake or camel case, or a bare JSON array.
    """
    body = snake_case_keys(body)

    if isinstance(body, list):
        count = len(body)
        return body, PaginationDescriptor.from_counts(count, max(count, 1))

    if not isinstance(body, dict) or not isinstance(body.get("data"), list):
        raise ResponseFormatError(
            "List response has neither a data array nor a bare array",
            details={"keys": sorted(body) if isinstance(body, dict) else type(body).__name__},
        )

    items = body["data"]
    meta = body.get("pagination") or body.get("meta") or body
    per_page = _first(meta, "items_per_page", "per_page", default=max(len(items), 1))
    total = _first(meta, "total_items", "total", default=len(items))
    current = _first(meta, "current_page", default=1)

    try:
        counts = {
            "total_items": int(total),
            "items_per_page": int(per_page),
            "current_page": int(current),
        }
    except (TypeError, ValueError):
        raise ResponseFormatError(
            "List response has non-numeric pagination counts",
            details={"total": total, "per_page": per_page, "current_page": current},
        )
    return items, PaginationDescriptor.from_counts(**counts)


class ResourceService(Generic[R]):
    """
    Thin CRUD client for one resource. Performs no retries.
    """

    def __init__(self, client: ApiClient, definition: ResourceDefinition):
        self.client = client
        self.definition = definition

    @property
    def path(self) -> str:
        return self.definition.path

    def _parse(self, item: Any) -> R:
        try:
            return self.definition.model.model_validate(snake_case_keys(item))
        except ValidationError as e:
            logger.error(
                "Unparseable record from backend",
                resource=self.definition.name,
                errors=e.error_count(),
            )
            raise ResponseFormatError(
                f"Backend returned an invalid {self.definition.label}",
                details={"resource": self.definition.name, "errors": e.errors()},
            )

    def _serialize(self, payload: Payload) -> Dict[str, Any]:
        if isinstance(payload, BaseModel):
            data = payload.model_dump(mode="json", exclude_none=True)
        else:
            data = to_jsonable_python(snake_case_keys(dict(payload)))
        data.pop("id", None)
        return coerce_id_fields(data, self.definition.id_fields)

    def list(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> Page[R]:
        """Fetch one page of records, optionally filtered."""
        params: Dict[str, Any] = dict(filters or {})
        params.update(page=page, per_page=per_page)
        body = self.client.get(self.path, params=params)
        items, pagination = normalize_list_response(body)
        records = [self._parse(item) for item in items]

        logger.debug(
            "Fetched page",
            resource=self.definition.name,
            count=len(records),
            page=pagination.current_page,
            total=pagination.total_items,
        )
        return Page(data=records, pagination=pagination)

    def get_by_id(self, record_id: str) -> R:
        return self._parse(self.client.get(f"{self.path}/{record_id}"))

    def create(self, payload: Payload) -> R:
        """Create a record; the backend assigns the id."""
        return self._parse(self.client.post(self.path, json=self._serialize(payload)))

    def update(self, record_id: str, payload: Payload) -> R:
        """Send a partial update and return the full record as stored by the backend."""
        return self._parse(
            self.client.put(f"{self.path}/{record_id}", json=self._serialize(payload))
        )

    def delete(self, record_id: str) -> None:
        self.client.delete(f"{self.path}/{record_id}")


class UserService(ResourceService[User]):
    """Users carry two extra account-management endpoints."""

    def _serialize(self, payload: Payload) -> Dict[str, Any]:
        data = super()._serialize(payload)
        # An empty password on edit means "keep the current one"
        if data.get("password") == "":
            data.pop("password")
        return data

    def reset_password(self, user_id: str) -> None:
        self.client.post(f"{self.path}/{user_id}/reset-password")

    def toggle_status(self, user_id: str) -> User:
        return self._parse(self.client.post(f"{self.path}/{user_id}/toggle-status"))


DEFINITIONS: Dict[str, ResourceDefinition] = {
    d.name: d
    for d in (
        ResourceDefinition("bank-accounts", "/bank-accounts", BankAccount, "account", "accounts"),
        ResourceDefinition(
            "bank-transactions",
            "/bank-transactions",
            BankTransaction,
            "transaction",
            "transactions",
            filters=("account_id",),
            id_fields=("account_id",),
        ),
        ResourceDefinition(
            "water-supply-customers",
            "/water-supply-customers",
            WaterSupplyCustomer,
            "customer",
            "customers",
        ),
        ResourceDefinition(
            "water-supply-readings",
            "/water-supply-readings",
            WaterSupplyReading,
            "reading",
            "readings",
            filters=("customer_id",),
            id_fields=("customer_id",),
        ),
        ResourceDefinition(
            "water-supply-payments",
            "/water-supply-payments",
            WaterSupplyPayment,
            "payment",
            "payments",
            filters=("reading_id", "customer_id"),
            id_fields=("reading_id", "customer_id", "bank_account_id"),
        ),
        ResourceDefinition(
            "water-well-collections",
            "/water-well-collections",
            WaterWellCollection,
            "collection",
            "collections",
            id_fields=("operator_id", "bank_account_id"),
        ),
        ResourceDefinition(
            "toilet-collections",
            "/toilet-collections",
            ToiletCollection,
            "collection",
            "collections",
            id_fields=("cashier_id", "bank_account_id"),
        ),
        ResourceDefinition("users", "/users", User, "user", "users"),
        ResourceDefinition(
            "properties", "/properties", Property, "property", "properties", filters=("search",)
        ),
        ResourceDefinition("tenants", "/tenants", Tenant, "tenant", "tenants", filters=("search",)),
        ResourceDefinition(
            "contracts",
            "/contracts",
            Contract,
            "contract",
            "contracts",
            filters=("search",),
            id_fields=("tenant_id", "property_id"),
        ),
        ResourceDefinition(
            "rent-payments",
            "/rent-payments",
            RentPayment,
            "rent payment",
            "rent payments",
            filters=("search",),
            id_fields=("tenant_id", "contract_id", "bank_account_id"),
        ),
        ResourceDefinition(
            "construction-projects",
            "/construction-projects",
            ConstructionProject,
            "project",
            "projects",
        ),
        ResourceDefinition(
            "construction-expenses",
            "/construction-expenses",
            ConstructionExpense,
            "expense",
            "expenses",
            filters=("project_id",),
            id_fields=("project_id", "material_id", "vendor_id", "bank_account_id"),
        ),
        ResourceDefinition(
            "property-types", "/property-types", PropertyType, "property type", "property types"
        ),
        ResourceDefinition(
            "business-types", "/business-types", BusinessType, "business type", "business types"
        ),
        ResourceDefinition(
            "transaction-categories",
            "/transaction-categories",
            TransactionCategory,
            "category",
            "categories",
        ),
        ResourceDefinition(
            "construction-materials",
            "/construction-materials",
            ConstructionMaterial,
            "material",
            "materials",
        ),
        ResourceDefinition("locations", "/locations", Location, "location", "locations"),
        ResourceDefinition("vendors", "/vendors", Vendor, "vendor", "vendors"),
    )
}


def get_definition(name: str) -> ResourceDefinition:
    """Look up a resource by its name (``bank-accounts``, ``users`` ...)."""
    try:
        return DEFINITIONS[name]
    except KeyError:
        raise KeyError(f"Unknown resource '{name}'. Known: {', '.join(sorted(DEFINITIONS))}")


def build_service(client: ApiClient, definition: ResourceDefinition) -> ResourceService:
    if definition.model is User:
        return UserService(client, definition)
    return ResourceService(client, definition)
