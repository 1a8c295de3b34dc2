"""Date/time helpers."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return utc_now().isoformat(timespec="microseconds")


def utc_iso_minutes_ago(minutes: float) -> str:
    """ISO string for `minutes` before now. Comparable with utc_now_iso() output."""
    return (utc_now() - timedelta(minutes=minutes)).isoformat(timespec="microseconds")


def elapsed_ms(started: datetime) -> int:
    return int((utc_now() - started).total_seconds() * 1000)
