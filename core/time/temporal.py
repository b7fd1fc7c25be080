"""
Promotion Engine Core Time - Validity Windows
===============================================
Pure interval logic. All functions take explicit datetimes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.time.clock import ensure_aware


# ══════════════════════════════════════════════════════════════
# VALIDITY WINDOW - Closed interval, either end may be open
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ValidityWindow:
    """
    A closed interval [start, end] where a missing bound means
    "since forever" / "until further notice".

    Invariant: start <= end when both are present.
    """

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.start is not None:
            ensure_aware(self.start, field_name="start")
        if self.end is not None:
            ensure_aware(self.end, field_name="end")
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError(
                f"ValidityWindow start ({self.start}) must be <= end ({self.end})."
            )

    def has_started(self, now: datetime) -> bool:
        return self.start is None or self.start <= now

    def has_ended(self, now: datetime) -> bool:
        return self.end is not None and now > self.end

    def contains(self, now: datetime) -> bool:
        """Inclusive on both ends."""
        return self.has_started(now) and not self.has_ended(now)
