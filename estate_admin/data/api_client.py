"""
HTTP transport for the estate management backend.

Wraps a single ``httpx.Client`` with the bearer token, JSON headers and the
mapping from HTTP failures to the client's error taxonomy. Requests are made
exactly once; failures propagate to the caller.
"""

from typing import Any, Callable, Dict, Optional

import httpx
import structlog

from estate_admin.core.config import ApiConfig
from estate_admin.core.exceptions import (
    ApiValidationError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ResponseFormatError,
    ServerError,
)

logger = structlog.get_logger(__name__)

TokenProvider = Callable[[], Optional[str]]


class ApiClient:
    """
    Authenticated JSON client for the backend REST API.
    """

    def __init__(
        self,
        config: ApiConfig,
        token_provider: Optional[TokenProvider] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config
        self._token_provider = token_provider or (lambda: config.token)
        self._on_unauthorized = on_unauthorized

        self.client = httpx.Client(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            follow_redirects=True,
            transport=transport,
        )

        logger.debug("API client initialized", base_url=config.base_url)

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def _auth_headers(self) -> Dict[str, str]:
        token = self._token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Make an authenticated request.

        Args:
            method: HTTP method
            path: API path relative to the base URL
            json: JSON payload
            params: Query parameters; ``None`` values are dropped

        Returns:
            Decoded JSON body, or ``None`` for an empty response

        Raises:
            NetworkError: No response was received
            NotFoundError: 404
            AuthenticationError: 401
            ApiValidationError: 4xx carrying field errors
            ServerError: Any other non-2xx status
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}

        logger.debug("Making API request", method=method, path=path, params=query or None)

        try:
            response = self.client.request(
                method, path, json=json, params=query or None, headers=self._auth_headers()
            )
        except httpx.TimeoutException as e:
            logger.error("API request timed out", method=method, path=path, error=str(e))
            raise NetworkError(f"Request timed out: {e}", details={"path": path})
        except httpx.TransportError as e:
            logger.error("API request failed", method=method, path=path, error=str(e))
            raise NetworkError(f"Network error: {e}", details={"path": path})

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError:
                raise ResponseFormatError(
                    f"{method} {path} returned a body that is not JSON",
                    details={"path": path, "status_code": response.status_code},
                )

        raise self._error_for(response, method, path)

    def _error_for(self, response: httpx.Response, method: str, path: str) -> ServerError:
        """Translate a non-2xx response into the matching exception."""
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        server_message = body.get("message") if isinstance(body.get("message"), str) else None
        errors = body.get("errors") if isinstance(body.get("errors"), dict) else None
        message = f"{method} {path} failed with HTTP {status}"
        details = {"status_code": status, "path": path}

        logger.error(
            "API HTTP error",
            status_code=status,
            path=path,
            response_text=response.text[:500],
        )

        if status == 401:
            if self._on_unauthorized:
                self._on_unauthorized()
            return AuthenticationError(message, server_message=server_message, details=details)
        if status == 404:
            return NotFoundError(message, server_message=server_message, details=details)
        if errors and 400 <= status < 500:
            return ApiValidationError(
                status, message, errors=errors, server_message=server_message, details=details
            )
        return ServerError(status, message, server_message=server_message, details=details)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Optional[Any] = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Optional[Any] = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)
