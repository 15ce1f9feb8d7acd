"""
Pull scalar readings out of SWPC JSON payloads.

SWPC products come in two shapes: tables (a list of rows whose first row is a
header and last row is the newest sample) and record lists (a list of dicts,
newest first). Values inside either are sometimes numbers, sometimes numeric
strings and sometimes null markers. Everything here converts bad input into a
fallback result instead of raising.
"""

from __future__ import annotations

import math
from typing import Any, NamedTuple

from .cache import CacheEntry
from .metrics import Number

NULL_TOKENS = frozenset({"", "null", "NULL"})


class _Absent:
    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()


class Extraction(NamedTuple):
    value: Number
    used_fallback: bool
    error: str | None = None


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            # "4.7" reads as 4, the same as the feed's C consumers do
            return _to_int(float(text))
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"non-finite value {value!r}")
    return int(value)


def _to_float(value: Any) -> float:
    result = float(value)
    if not math.isfinite(result):
        raise ValueError(f"non-finite value {value!r}")
    return result


def coerce(value: Any, kind: type) -> Number:
    """Convert a JSON scalar to ``kind``, raising ValueError when it can't."""
    if value is None or value is ABSENT:
        raise ValueError("value is absent")
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"unsupported value type {type(value).__name__}")
    if isinstance(value, str) and value in NULL_TOKENS:
        raise ValueError(f"null marker {value!r}")
    try:
        return _to_int(value) if kind is int else _to_float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"cannot parse {value!r} as {kind.__name__}: {exc}") from exc


def extract(raw: Any, entry: CacheEntry) -> Extraction:
    """Parse ``raw`` into the entry's metric kind, falling back to the cache.

    A successful parse stores the value and marks the entry valid. Anything
    else leaves the entry untouched and returns its last good value (or the
    kind's zero value if it never had one).
    """
    try:
        value = coerce(raw, entry.metric.kind)
    except ValueError as exc:
        return Extraction(entry.current(), True, str(exc))
    entry.store(value)
    return Extraction(value, False)


def fallback(entry: CacheEntry, reason: str | None = None) -> Extraction:
    return Extraction(entry.current(), True, reason)


# --- Container helpers ----------------------------------------------------------

def latest_row(payload: Any) -> list | None:
    """Return the newest data row of an SWPC table, or None if there is none."""
    if not isinstance(payload, list) or len(payload) < 2:
        return None
    row = payload[-1]
    return row if isinstance(row, list) else None


def first_record(payload: Any) -> dict | None:
    """Return today's entry of an SWPC record list, or None if there is none."""
    if not isinstance(payload, list) or not payload:
        return None
    record = payload[0]
    return record if isinstance(record, dict) else None


def pick(container: Any, selector: int | str) -> Any:
    if isinstance(selector, int):
        if isinstance(container, list) and 0 <= selector < len(container):
            return container[selector]
        return ABSENT
    if isinstance(container, dict):
        return container.get(selector, ABSENT)
    return ABSENT
