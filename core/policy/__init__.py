"""
Promotion Engine Core Policy - Public API
===========================================
Rejection reasons shared by eligibility policies and the usage ledger.
"""

from core.policy.rejection import ReasonCode, RejectionReason

__all__ = [
    "ReasonCode",
    "RejectionReason",
]
