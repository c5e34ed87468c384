"""Key-case and id transforms between the backend JSON and client records."""

import re
from typing import Any, Dict, Iterable

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def camel_to_snake(key: str) -> str:
    """``itemsPerPage`` -> ``items_per_page``; snake_case keys pass through."""
    return _CAMEL_BOUNDARY.sub(lambda m: "_" + m.group(1), key).lower()


def snake_case_keys(obj: Any) -> Any:
    """Recursively convert mapping keys to snake_case."""
    if isinstance(obj, list):
        return [snake_case_keys(item) for item in obj]
    if isinstance(obj, dict):
        return {
            camel_to_snake(k) if isinstance(k, str) else k: snake_case_keys(v)
            for k, v in obj.items()
        }
    return obj


def coerce_id_fields(payload: Dict[str, Any], id_fields: Iterable[str]) -> Dict[str, Any]:
    """Send numeric foreign keys as integers, as the backend stores them."""
    result = dict(payload)
    for name in id_fields:
        value = result.get(name)
        if isinstance(value, str) and value.isdigit():
            result[name] = int(value)
    return result
