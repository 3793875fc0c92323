"""Canonical timestamps for every backend.

Repositories read the current time through ``now()`` and normalize whatever
their backend hands back with ``to_utc()``, so TTL arithmetic always compares
timezone-aware UTC datetimes.
"""

from __future__ import annotations

from datetime import UTC, datetime


def now() -> datetime:
    return datetime.now(UTC)


def to_utc(value: object) -> datetime | None:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    if isinstance(value, bytes | bytearray):
        value = bytes(value).decode("utf-8", errors="ignore")
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
        return to_utc(parsed)
    return None


def to_iso(value: datetime) -> str:
    return value.astimezone(UTC).isoformat()


def to_naive_utc(value: datetime) -> datetime:
    """BSON dates carry no zone; pymongo expects naive UTC."""
    return value.astimezone(UTC).replace(tzinfo=None)
