"""
Promotion Engine Core Policy - Rejection Model
================================================
Structured reasons explaining why a promotion was left out of an
evaluation or why a redemption was refused.

This is NOT an exception. A promotion that silently does not apply is
normal behaviour; the reason exists for logs and for callers that want
to explain the outcome.

Every reason is:
- Deterministic (same input → same reason)
- Machine-readable (code)
- Human-readable (message)
- Attributable (policy_name)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RejectionReason:
    """
    Fields:
        code:        Machine-readable code (e.g. 'MIN_ORDER_NOT_MET').
        message:     Human-readable explanation.
        policy_name: Name of the policy that produced the reason.
    """

    code: str
    message: str
    policy_name: str

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
        }


class ReasonCode:
    """
    Known codes. Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Structural eligibility ────────────────────────────────
    PROMOTION_PAUSED = "PROMOTION_PAUSED"
    PROMOTION_NOT_STARTED = "PROMOTION_NOT_STARTED"
    PROMOTION_EXPIRED = "PROMOTION_EXPIRED"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"

    # ── Cart-dependent eligibility ────────────────────────────
    MIN_ORDER_NOT_MET = "MIN_ORDER_NOT_MET"
    CUSTOMER_LIMIT_REACHED = "CUSTOMER_LIMIT_REACHED"

    # ── Redemption ────────────────────────────────────────────
    PROMOTION_NOT_FOUND = "PROMOTION_NOT_FOUND"
