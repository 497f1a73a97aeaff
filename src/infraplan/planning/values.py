"""Resolve references inside attribute values."""

from typing import Any, Callable
from ..ingest.expressions import Reference


class _Unknown:
    """Placeholder for a value that is only known after apply."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "(known after apply)"

    def __reduce__(self):
        return (_Unknown, ())


UNKNOWN = _Unknown()


def resolve_value(value: Any, lookup: Callable[[Reference], Any]) -> Any:
    """Replace every Reference in a (nested) value with lookup(reference)."""
    if isinstance(value, Reference):
        return lookup(value)
    if isinstance(value, list):
        return [resolve_value(item, lookup) for item in value]
    if isinstance(value, dict):
        return {key: resolve_value(item, lookup) for key, item in value.items()}
    return value


def contains_unknown(value: Any) -> bool:
    if value is UNKNOWN:
        return True
    if isinstance(value, list):
        return any(contains_unknown(item) for item in value)
    if isinstance(value, dict):
        return any(contains_unknown(item) for item in value.values())
    return False


def render_value(value: Any) -> Any:
    """JSON-friendly rendering: references as ${...}, unknowns as '(known after apply)'."""
    if value is UNKNOWN:
        return repr(UNKNOWN)
    if isinstance(value, Reference):
        return str(value)
    if isinstance(value, list):
        return [render_value(item) for item in value]
    if isinstance(value, dict):
        return {key: render_value(item) for key, item in value.items()}
    return value
