"""Firestore typed-value encoding.

Firestore's REST API wraps every field value in a single-key object naming
its type (``{"stringValue": "hi"}``, ``{"timestampValue": "..."}``).  The
embedded DuckDB store keeps documents in the same shape, so one codec serves
both backends and timestamps always sort lexicographically.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

_TS_RE = re.compile(r"^(?P<base>[^.Z+]+?)(?:\.(?P<frac>\d+))?(?P<tz>Z|[+-]\d{2}:\d{2})?$")


def format_timestamp(value: datetime) -> str:
    """RFC 3339 in UTC with fixed microsecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp; nanosecond precision is truncated."""
    m = _TS_RE.match(raw.strip())
    if m is None:
        raise ValueError(f"Not an RFC 3339 timestamp: {raw!r}")
    frac = (m.group("frac") or "")[:6].ljust(6, "0")
    tz = m.group("tz") or "Z"
    tz = "+00:00" if tz == "Z" else tz
    return datetime.fromisoformat(f"{m.group('base')}.{frac}{tz}").astimezone(timezone.utc)


def encode_value(value: Any) -> dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def decode_value(value: dict[str, Any]) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    raise ValueError(f"Unsupported Firestore value: {value!r}")


def encode_fields(fields: dict[str, Any]) -> dict[str, dict[str, Any]]:
    return {key: encode_value(val) for key, val in fields.items()}


def decode_fields(fields: dict[str, dict[str, Any]]) -> dict[str, Any]:
    return {key: decode_value(val) for key, val in fields.items()}
