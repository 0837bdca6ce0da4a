"""
UTC time helpers.

SQLite hands back naive datetimes for timezone-aware columns, PostgreSQL hands
back aware ones. Everything compared in Python goes through ``ensure_aware``.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive datetime, leave aware ones untouched."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_iso_datetime(value: str) -> datetime:
    """
    Parse an ISO-8601 date or datetime string into an aware UTC datetime.

    Raises:
        ValueError: if the string is not a valid ISO date
    """
    if not value or not isinstance(value, str):
        raise ValueError("Invalid date")
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    return ensure_aware(parsed).astimezone(timezone.utc)


def period_of(moment: datetime) -> str:
    """Accounting period key (YYYY-MM) for a moment."""
    return f"{moment.year:04d}-{moment.month:02d}"
