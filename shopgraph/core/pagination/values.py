"""Type-preserving JSON encoding for sort key and filter values.

JSON alone cannot tell a datetime from a string, so non-native values are
wrapped in single-key tagged objects:

    datetime -> {"$dt": "2025-01-15T10:30:00+00:00"}
    date     -> {"$d": "2025-01-15"}
    Decimal  -> {"$dec": "19.99"}
    UUID     -> {"$uuid": "6f1c..."}
    dict     -> {"$obj": {...}}

``str``, ``int``, ``float``, ``bool`` and ``None`` are stored as-is. Plain
objects are never produced for anything else, so the mapping is injective.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

_NATIVE = (str, int, float, bool, type(None))


def dump_value(value: Any) -> Any:
    """Convert a Python value to its tagged JSON form.

    Raises:
        TypeError: If the value has no tagged representation.
    """
    if isinstance(value, _NATIVE):
        return value
    # datetime is a date subclass
    if isinstance(value, datetime):
        return {"$dt": value.isoformat()}
    if isinstance(value, date):
        return {"$d": value.isoformat()}
    if isinstance(value, Decimal):
        return {"$dec": str(value)}
    if isinstance(value, UUID):
        return {"$uuid": str(value)}
    if isinstance(value, (list, tuple)):
        return [dump_value(v) for v in value]
    if isinstance(value, dict):
        return {"$obj": {str(k): dump_value(v) for k, v in value.items()}}
    msg = f"Unsupported value type: {type(value).__name__}"
    raise TypeError(msg)


def load_value(raw: Any) -> Any:
    """Inverse of :func:`dump_value`.

    Raises:
        ValueError: If ``raw`` is not a valid tagged value.
    """
    if isinstance(raw, _NATIVE):
        return raw
    if isinstance(raw, list):
        return [load_value(v) for v in raw]
    if not isinstance(raw, dict) or len(raw) != 1:
        msg = f"Malformed tagged value: {raw!r}"
        raise ValueError(msg)

    (tag, text), = raw.items()
    if tag == "$obj":
        if not isinstance(text, dict):
            msg = "Tagged object must wrap an object"
            raise ValueError(msg)
        return {k: load_value(v) for k, v in text.items()}
    if not isinstance(text, str):
        msg = f"Tagged value {tag!r} must wrap a string"
        raise ValueError(msg)
    if tag == "$dt":
        return datetime.fromisoformat(text)
    if tag == "$d":
        return date.fromisoformat(text)
    if tag == "$dec":
        try:
            return Decimal(text)
        except InvalidOperation as e:
            raise ValueError(f"Invalid decimal: {text!r}") from e
    if tag == "$uuid":
        return UUID(text)
    msg = f"Unknown value tag: {tag!r}"
    raise ValueError(msg)


__all__ = ["dump_value", "load_value"]
