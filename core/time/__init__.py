"""
Promotion Engine Core Time - Public API
=========================================
Explicit clock protocol and validity windows.
Doctrine: NO datetime.now() in engine logic.
"""

from core.time.clock import Clock, FixedClock, SystemClock, ensure_aware
from core.time.temporal import ValidityWindow

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "ensure_aware",
    "ValidityWindow",
]
