"""Configure pytest fixtures and environment for Estate Admin tests."""

import json
from collections import defaultdict
from typing import Any, Dict, List, Optional

import httpx
import pytest
from dotenv import load_dotenv

from estate_admin.core.config import ApiConfig, reset_settings
from estate_admin.data.api_client import ApiClient
from estate_admin.store.registry import StoreRegistry

BASE_URL = "http://testserver/api"


def pytest_sessionstart(session):
    """Load environment variables from .env when present."""
    load_dotenv()


class FakeBackend:
    """
    In-memory stand-in for the REST backend, served through ``httpx.MockTransport``.

    Lists answer with the Laravel paginator envelope. Queued responses in
    ``fail_next`` are returned, in order, before any routing happens.
    """

    def __init__(self):
        self.collections: Dict[str, Dict[int, Dict[str, Any]]] = defaultdict(dict)
        self.requests: List[httpx.Request] = []
        self.queued: List[httpx.Response] = []
        self.users: Dict[str, Dict[str, Any]] = {}
        self._next_id = 1

    def seed(self, resource: str, **fields) -> Dict[str, Any]:
        record = {"id": self._next_id, **fields}
        self._next_id += 1
        self.collections[resource][record["id"]] = record
        return record

    def fail_next(self, status: int, json: Optional[Any] = None) -> None:
        self.queued.append(httpx.Response(status, json=json))

    def requests_to(self, method: str, path: str) -> List[httpx.Request]:
        return [
            r for r in self.requests if r.method == method and r.url.path == f"/api{path}"
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.queued:
            return self.queued.pop(0)

        parts = request.url.path.split("/api/", 1)[1].strip("/").split("/")
        body = json.loads(request.content) if request.content else None

        if parts[0] in ("login", "logout", "user"):
            return self._auth(request, parts, body)

        store = self.collections[parts[0]]
        if len(parts) == 1:
            if request.method == "GET":
                return self._list(store, dict(request.url.params))
            if request.method == "POST":
                record = {"id": self._next_id, **body}
                self._next_id += 1
                store[record["id"]] = record
                return httpx.Response(201, json=record)
            return httpx.Response(405, json={"message": "Method not allowed"})

        record_id = int(parts[1]) if parts[1].isdigit() else None
        if record_id not in store:
            return httpx.Response(404, json={"message": "Record not found"})
        if request.method == "GET":
            return httpx.Response(200, json=store[record_id])
        if request.method == "PUT":
            store[record_id].update(body or {})
            return httpx.Response(200, json=store[record_id])
        if request.method == "DELETE":
            del store[record_id]
            return httpx.Response(204)
        return httpx.Response(405, json={"message": "Method not allowed"})

    def _list(self, store: Dict[int, Dict[str, Any]], params: Dict[str, str]) -> httpx.Response:
        page = int(params.pop("page", 1))
        per_page = int(params.pop("per_page", 15))
        items = [
            r for r in store.values() if all(str(r.get(k)) == v for k, v in params.items())
        ]
        start = (page - 1) * per_page
        total = len(items)
        return httpx.Response(
            200,
            json={
                "data": items[start : start + per_page],
                "current_page": page,
                "last_page": max(-(-total // per_page), 1),
                "per_page": per_page,
                "total": total,
            },
        )

    def _auth(self, request, parts, body) -> httpx.Response:
        if parts[0] == "login":
            user = self.users.get(body.get("email"))
            if user is None or user["password"] != body.get("password"):
                return httpx.Response(401, json={"message": "Invalid credentials"})
            profile = {k: v for k, v in user.items() if k != "password"}
            return httpx.Response(200, json={"token": "issued-token", "user": profile})
        if parts[0] == "logout":
            return httpx.Response(200, json={"message": "Logged out"})
        if len(parts) > 1 and parts[1] == "password":
            return httpx.Response(200, json={"message": "Password updated"})
        if request.headers.get("Authorization") is None:
            return httpx.Response(401, json={"message": "Unauthenticated."})
        profile = next(iter(self.users.values()), None)
        return httpx.Response(200, json={k: v for k, v in profile.items() if k != "password"})


@pytest.fixture(autouse=True)
def clean_settings():
    """Drop cached settings between tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def api_config():
    return ApiConfig(ESTATE_API_BASE_URL=BASE_URL, ESTATE_API_TOKEN="test-token")


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def api_client(api_config, backend):
    client = ApiClient(api_config, transport=httpx.MockTransport(backend.handler))
    yield client
    client.close()


@pytest.fixture
def registry(api_client):
    return StoreRegistry(api_client)
