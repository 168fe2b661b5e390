# ==============================================================================
# Best-Effort Field Extraction
# ==============================================================================
"""
Pure helpers that pull typed values out of loosely structured documents.

Raw tracking, listing and category documents come from a schemaless store and
may carry identifiers as plain strings, ``ObjectId`` instances or ``{"$oid"}``
wrappers, dates as native values, epoch milliseconds or strings, and prices as
anything at all. Every function here returns a usable value or ``None`` and
never raises, so the typed domain layer never sees untyped data.
"""

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from bson import Decimal128, ObjectId
from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

_DATETIME_ADAPTER = TypeAdapter(datetime)


def safe_get(doc: Any, path: str) -> Any:
    """
    Walk a dotted path through nested mappings and sequences.

    Numeric path segments index into lists, so ``"productInfo.brand.0.value"``
    reaches the first brand entry.

    Args:
        doc: Document to read from
        path: Dotted path (e.g. "prodPricing.retailPrice")

    Returns:
        The value at the path, or None if any step is missing
    """
    current = doc
    for key in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not key.isdigit() or int(key) >= len(current):
                return None
            current = current[int(key)]
        else:
            return None
        if current is None:
            return None
    return current


def first_of(doc: Any, paths: Iterable[str]) -> Any:
    """Return the first non-None value among candidate paths."""
    for path in paths:
        value = safe_get(doc, path)
        if value is not None:
            return value
    return None


def str_id(value: Any, seen: set[int] | None = None) -> str | None:
    """
    Resolve an identifier to its string form.

    Handles plain strings, ObjectId instances, ``{"$oid": ...}`` wrappers and
    nested ``{"_id": ...}`` objects. The ``seen`` set tracks mappings already
    visited, so a self-referential document resolves to None instead of
    recursing forever.

    Args:
        value: Raw identifier value
        seen: Object ids of mappings visited so far in this resolution

    Returns:
        Identifier string, or None if the value is empty or unresolvable
    """
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, ObjectId):
        return str(value)

    if isinstance(value, Mapping):
        if seen is None:
            seen = set()
        if id(value) in seen:
            logger.warning("Circular reference detected while resolving identifier")
            return None
        seen.add(id(value))

        oid = value.get("$oid")
        if isinstance(oid, str):
            return oid
        if "_id" in value:
            return str_id(value["_id"], seen)
        return None

    if isinstance(value, Sequence):
        return None

    return str(value)


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def parse_date(value: Any, seen: set[int] | None = None) -> datetime | None:
    """
    Parse a timestamp from any of the shapes found in raw documents.

    Accepts datetime/date objects, epoch milliseconds, ISO-like strings and
    ``{"$date": ...}`` / ``{"date": ...}`` wrappers. Naive datetimes are taken
    as UTC.

    Returns:
        Timezone-aware UTC datetime, or None if the value cannot be parsed
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        try:
            return _as_utc(_DATETIME_ADAPTER.validate_python(text))
        except ValidationError:
            pass
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            return None

    if isinstance(value, Mapping):
        if seen is None:
            seen = set()
        if id(value) in seen:
            return None
        seen.add(id(value))
        if value.get("$date"):
            return parse_date(value["$date"], seen)
        if value.get("date"):
            return parse_date(value["date"], seen)

    return None


def to_price(value: Any) -> float:
    """Coerce a raw price to a finite, non-negative float (0 when invalid)."""
    if isinstance(value, Decimal128):
        value = value.to_decimal()
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        try:
            price = float(value)
        except ValueError:
            return 0.0
    elif isinstance(value, str):
        try:
            price = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if not math.isfinite(price) or price < 0:
        return 0.0
    return price
