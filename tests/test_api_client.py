"""
Tests for the HTTP transport and its error mapping.
"""

from unittest.mock import Mock

import httpx
import pytest

from estate_admin.core.config import ApiConfig
from estate_admin.core.exceptions import (
    ApiValidationError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ResponseFormatError,
    ServerError,
)
from estate_admin.data.api_client import ApiClient


def _client(handler, **kwargs) -> ApiClient:
    config = ApiConfig(ESTATE_API_BASE_URL="http://testserver/api/", ESTATE_API_TOKEN="abc")
    return ApiClient(config, transport=httpx.MockTransport(handler), **kwargs)


class TestRequests:
    """Test request construction."""

    def test_bearer_token_and_json_headers(self):
        """Test every request carries the token and JSON headers."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        with _client(handler) as client:
            assert client.get("/bank-accounts") == {"ok": True}

        request = seen[0]
        assert request.url == "http://testserver/api/bank-accounts"
        assert request.headers["Authorization"] == "Bearer abc"
        assert request.headers["Accept"] == "application/json"

    def test_none_params_dropped(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        with _client(handler) as client:
            client.get("/readings", params={"customer_id": "4", "page": None})

        assert dict(seen[0].url.params) == {"customer_id": "4"}

    def test_token_provider_consulted_per_request(self):
        """Test the token is read at request time, not construction time."""
        tokens = iter(["first", None])
        seen = []

        def handler(request):
            seen.append(request.headers.get("Authorization"))
            return httpx.Response(200, json={})

        with _client(handler, token_provider=lambda: next(tokens)) as client:
            client.get("/user")
            client.get("/user")

        assert seen == ["Bearer first", None]

    def test_empty_response_returns_none(self):
        with _client(lambda r: httpx.Response(204)) as client:
            assert client.delete("/vendors/1") is None

    def test_non_json_success_body(self):
        with _client(lambda r: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(ResponseFormatError):
                client.get("/vendors")


class TestErrorMapping:
    """Test non-2xx responses and transport failures."""

    def test_connection_failure_is_network_error(self):
        """Test a request that never got a response."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with _client(handler) as client:
            with pytest.raises(NetworkError):
                client.get("/bank-accounts")

    def test_timeout_is_network_error(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with _client(handler) as client:
            with pytest.raises(NetworkError):
                client.get("/bank-accounts")

    def test_not_found(self):
        """Test 404 keeps the backend message."""
        with _client(lambda r: httpx.Response(404, json={"message": "No query results"})) as client:
            with pytest.raises(NotFoundError) as exc_info:
                client.get("/bank-accounts/9")

        assert exc_info.value.status == 404
        assert exc_info.value.server_message == "No query results"

    def test_validation_errors(self):
        """Test 422 with field errors."""
        body = {
            "message": "The given data was invalid.",
            "errors": {"account_number": ["The account number has already been taken."]},
        }
        with _client(lambda r: httpx.Response(422, json=body)) as client:
            with pytest.raises(ApiValidationError) as exc_info:
                client.post("/bank-accounts", json={})

        error = exc_info.value
        assert error.field == "account_number"
        assert error.first_error == "The account number has already been taken."
        assert error.server_message == "The given data was invalid."

    def test_unauthorized_triggers_callback(self):
        """Test 401 notifies the session owner."""
        on_unauthorized = Mock()
        with _client(
            lambda r: httpx.Response(401, json={"message": "Unauthenticated."}),
            on_unauthorized=on_unauthorized,
        ) as client:
            with pytest.raises(AuthenticationError):
                client.get("/user")

        on_unauthorized.assert_called_once_with()

    def test_server_error_without_body(self):
        with _client(lambda r: httpx.Response(500, text="boom")) as client:
            with pytest.raises(ServerError) as exc_info:
                client.get("/users")

        assert exc_info.value.status == 500
        assert exc_info.value.server_message is None
        assert "HTTP 500" in exc_info.value.message

    def test_requests_are_not_retried(self):
        """Test a failing call is made exactly once."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        with _client(handler) as client:
            with pytest.raises(ServerError):
                client.get("/users")

        assert len(calls) == 1
