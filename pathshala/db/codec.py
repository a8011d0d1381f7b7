"""Date normalisation between Python values and the store's ISO-8601 text.

Supabase returns ``timestamptz`` columns as ISO strings (``...Z`` or
``+00:00``). On write every ``datetime``/``date`` in the payload becomes an
ISO string; on read the fields a schema declares as dates are parsed back.
Naive datetimes are taken to be UTC so the round trip keeps the instant.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Mapping


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {k: encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def encode_dates(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``record`` that is safe to send to the store."""
    return {key: encode_value(value) for key, value in record.items()}


def parse_datetime(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return value
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return value
    # Bare dates ("2024-05-01") stay dates
    if len(text) == 10:
        return parsed.date()
    return as_utc(parsed)


def decode_dates(record: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    out = dict(record)
    for name in fields:
        if name in out and out[name] is not None:
            out[name] = parse_datetime(out[name])
    return out
