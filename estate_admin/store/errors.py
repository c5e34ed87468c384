"""Reduce any failed backend call to one human-readable line."""

from estate_admin.core.exceptions import ApiValidationError, FormValidationError, ServerError


def normalize_error(exc: BaseException, fallback: str) -> str:
    """
    Pick the message shown to the operator for a failed operation.

    Preference order, the same for every resource:
      1. the backend's own ``message``
      2. the first field validation error the backend reported
      3. the generic HTTP status message when a response did arrive
      4. ``fallback`` (no response at all, unreadable body, anything else)
    """
    if isinstance(exc, ServerError):
        if exc.server_message:
            return exc.server_message
        if isinstance(exc, ApiValidationError) and exc.first_error:
            return exc.first_error
        return exc.message
    if isinstance(exc, FormValidationError):
        return exc.message
    return fallback
