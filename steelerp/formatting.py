"""Number, percentage and timestamp helpers shared by the aggregators.

Money leaves the data store as ``Decimal`` and leaves the aggregators as plain
floats. Percentages go out as strings with a trailing ``%``.
"""

from datetime import date, datetime, timezone
from typing import Any, Optional


def to_number(value: Any) -> float:
    if value is None:
        return 0.0
    return float(value)


def percent(value: float, digits: int = 2) -> str:
    return f"{value:.{digits}f}%"


def fixed(value: float, digits: int = 2) -> str:
    return f"{value:.{digits}f}"


def as_utc(value: date | datetime) -> datetime:
    """Normalise a date or (possibly naive) datetime to an aware UTC datetime."""
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: Optional[date | datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()
