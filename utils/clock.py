# utils/clock.py
from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time, naive; DateTime columns store naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_iso(dt: datetime | None = None) -> str:
    """ISO-8601 with a trailing Z, e.g. 2026-03-02T07:40:00.123456Z."""
    dt = dt or datetime.now(timezone.utc)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat() + "Z"
