"""Canonical text encoding for audited field values.

Audited values share one nullable text column. ``None`` maps to SQL NULL and
every other value is JSON-encoded, with datetimes and enums reduced to their
ISO string or underlying value first.
"""
from __future__ import annotations

import json
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Union

AuditValue = Union[str, int, float, bool, None]


def to_audit_value(value: Any) -> AuditValue:
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Unsupported audit value type: {type(value).__name__}")


def encode_value(value: Any) -> str | None:
    plain = to_audit_value(value)
    if plain is None:
        return None
    return json.dumps(plain)


def decode_value(raw: str | None) -> AuditValue:
    if raw is None:
        return None
    return json.loads(raw)


def to_naive_utc(value: Any) -> Any:
    """Convert an aware datetime to the naive UTC form the store keeps."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
