"""
Custom exceptions for the estate admin client.

Provides a hierarchy of exceptions mirroring what the backend can answer with,
plus client-side form validation failures.
"""

from typing import Any, Dict, List, Optional


class EstateAdminError(Exception):
    """Base exception for all estate admin errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(EstateAdminError):
    """Raised when there are configuration issues."""
    pass


class DataAccessError(EstateAdminError):
    """Base class for backend access errors."""
    pass


class NetworkError(DataAccessError):
    """The request never produced a response (connection refused, timeout, DNS)."""
    pass


class ServerError(DataAccessError):
    """Backend answered with a non-2xx status."""

    def __init__(
        self,
        status: int,
        message: str,
        server_message: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status = status
        # Message taken verbatim from the response body, if any
        self.server_message = server_message


class NotFoundError(ServerError):
    """404 on get, update or delete of a missing id."""

    def __init__(self, message: str, server_message: Optional[str] = None, **kwargs):
        super().__init__(404, message, server_message=server_message, **kwargs)


class AuthenticationError(ServerError):
    """401 from the backend; the stored session is no longer valid."""

    def __init__(self, message: str, server_message: Optional[str] = None, **kwargs):
        super().__init__(401, message, server_message=server_message, **kwargs)


class ApiValidationError(ServerError):
    """4xx carrying field-keyed validation errors."""

    def __init__(
        self,
        status: int,
        message: str,
        errors: Optional[Dict[str, List[str]]] = None,
        server_message: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(status, message, server_message=server_message, **kwargs)
        self.errors = errors or {}

    @property
    def field(self) -> Optional[str]:
        """Name of the first field that failed validation."""
        for name, messages in self.errors.items():
            if messages:
                return name
        return None

    @property
    def first_error(self) -> Optional[str]:
        """First validation message reported by the backend."""
        for messages in self.errors.values():
            if isinstance(messages, str) and messages:
                return messages
            for message in messages or []:
                if message:
                    return message
        return None


class FormValidationError(EstateAdminError):
    """Client-side form check failed; nothing was sent to the backend."""

    def __init__(self, field: str, message: str, **kwargs):
        super().__init__(f"{field}: {message}", **kwargs)
        self.field = field
        self.reason = message


class ResponseFormatError(DataAccessError):
    """Backend answered 2xx with a body the client cannot interpret."""
    pass
