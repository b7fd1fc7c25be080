"""
Promotion Engine - Eligibility Policies
=========================================
Each policy returns None when the promotion may proceed, or a
RejectionReason explaining why it is left out. Policies never raise
for an ineligible promotion.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from core.policy import ReasonCode, RejectionReason
from engines.promotion.models import Promotion


def structural_eligibility_policy(
    promotion: Promotion, now: datetime,
) -> Optional[RejectionReason]:
    """Active flag, validity window and global usage limit."""
    if not promotion.is_active:
        return RejectionReason(
            code=ReasonCode.PROMOTION_PAUSED,
            message=f"Promotion '{promotion.promotion_id}' is paused.",
            policy_name="structural_eligibility_policy")
    window = promotion.validity
    if not window.has_started(now):
        return RejectionReason(
            code=ReasonCode.PROMOTION_NOT_STARTED,
            message=f"Promotion '{promotion.promotion_id}' starts at {promotion.starts_at}.",
            policy_name="structural_eligibility_policy")
    if window.has_ended(now):
        return RejectionReason(
            code=ReasonCode.PROMOTION_EXPIRED,
            message=f"Promotion '{promotion.promotion_id}' ended at {promotion.ends_at}.",
            policy_name="structural_eligibility_policy")
    if promotion.usage_limit is not None and promotion.usage_count >= promotion.usage_limit:
        return RejectionReason(
            code=ReasonCode.USAGE_LIMIT_REACHED,
            message=(
                f"Promotion '{promotion.promotion_id}' used "
                f"{promotion.usage_count}/{promotion.usage_limit} times."
            ),
            policy_name="structural_eligibility_policy")
    return None


def minimum_order_policy(
    promotion: Promotion, subtotal: Decimal,
) -> Optional[RejectionReason]:
    if subtotal < promotion.min_order_amount:
        return RejectionReason(
            code=ReasonCode.MIN_ORDER_NOT_MET,
            message=(
                f"Subtotal {subtotal} is below the minimum order "
                f"{promotion.min_order_amount} for '{promotion.promotion_id}'."
            ),
            policy_name="minimum_order_policy")
    return None


def customer_limit_policy(
    promotion: Promotion, customer_id: Optional[str], redemption_count: int,
) -> Optional[RejectionReason]:
    if customer_id is None or promotion.per_customer_limit is None:
        return None
    if redemption_count >= promotion.per_customer_limit:
        return RejectionReason(
            code=ReasonCode.CUSTOMER_LIMIT_REACHED,
            message=(
                f"Customer '{customer_id}' already redeemed "
                f"'{promotion.promotion_id}' {redemption_count} times."
            ),
            policy_name="customer_limit_policy")
    return None
