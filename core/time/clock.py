"""
Promotion Engine Core Time - Injectable Clock
===============================================
Engine logic never reads the wall clock on its own. The service asks
its Clock for "now" once per evaluation and passes it down explicitly,
so every catalog filter and status projection sees the same instant.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Injectable time source."""

    def now_utc(self) -> datetime:
        ...  # pragma: no cover


class SystemClock:
    """Production clock - real UTC time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Test clock pinned to one instant.

    The instant may be moved forward with advance() to walk a promotion
    through its validity window.
    """

    def __init__(self, fixed_dt: datetime) -> None:
        self._fixed_dt = ensure_aware(fixed_dt, field_name="fixed_dt")

    def now_utc(self) -> datetime:
        return self._fixed_dt

    def advance(self, **delta) -> None:
        self._fixed_dt = self._fixed_dt + timedelta(**delta)


def ensure_aware(dt: datetime, *, field_name: str) -> datetime:
    if not isinstance(dt, datetime):
        raise ValueError(f"{field_name} must be a datetime.")
    if dt.tzinfo is None:
        raise ValueError(f"{field_name} must be timezone-aware.")
    return dt
