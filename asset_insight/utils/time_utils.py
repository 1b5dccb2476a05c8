"""
Date arithmetic shared by all analysis engines.

Key concepts:
  - Reference date (``as_of``): every age / elapsed-days computation is made
    relative to an explicit date so repeated calls over the same snapshot
    produce identical output.  Callers that omit it get ``today()``.
  - Calendar constants: a year is 365 days and a month is 30 days, matching
    the inventory UI's own age and expiry displays.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

DAYS_PER_YEAR = 365
DAYS_PER_MONTH = 30


def today() -> date:
    """Return the current UTC calendar date."""
    return utcnow().date()


def resolve_as_of(as_of: Optional[date]) -> date:
    """Return ``as_of`` if given, otherwise today's UTC date."""
    return as_of if as_of is not None else today()


def days_between(start: date, end: date) -> int:
    """Return signed whole days from ``start`` to ``end``.

    Positive when ``end`` is after ``start``.
    """
    return (end - start).days


def years_between(start: date, end: date) -> float:
    """Return fractional years from ``start`` to ``end`` (365-day years)."""
    return days_between(start, end) / DAYS_PER_YEAR


def months_between(start: date, end: date) -> float:
    """Return fractional months from ``start`` to ``end`` (30-day months)."""
    return days_between(start, end) / DAYS_PER_MONTH


def to_date(value: object) -> Optional[date]:
    """Coerce an ISO string / datetime / date into a ``date``.

    Returns ``None`` for ``None``, empty strings, and unparseable values.
    Datetimes are reduced to their calendar date.

    Args:
        value: Raw value from a snapshot payload.

    Returns:
        ``date`` or ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)
