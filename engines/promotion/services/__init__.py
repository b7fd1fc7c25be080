"""
Promotion Engine - Application Service
========================================
The entry point a checkout or invoice flow talks to.

    evaluate()          - quote/preview: catalog read + stacking, no writes
    record_sale()       - after a sale is committed: redeem applied promotions
    redeem_on_commit()  - schedule record_sale() on the sale's transaction
    promotion_statuses()- derived status of every promotion of a business

Availability of checkout outranks availability of a discount: a
catalog outage yields a zero discount, never a failed sale, and a lost
redemption race yields a price-changed report, never a rollback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from core.time import Clock, SystemClock
from engines.promotion.catalog import PromotionCatalog
from engines.promotion.errors import (
    CatalogUnavailable,
    LedgerUnavailable,
    RedemptionRaceLost,
    ValidationError,
)
from engines.promotion.ledger import RedemptionOutcome, UsageLedger
from engines.promotion.models import (
    SUBTOTAL_EPSILON,
    ZERO,
    AppliedPromotion,
    DiscountResult,
    EMPTY_RESULT,
    Promotion,
    cart_subtotal,
    coerce_cart,
    derive_status,
    to_decimal,
)
from engines.promotion.policies import customer_limit_policy
from engines.promotion.stacking import apply_promotions

logger = logging.getLogger("promotion.service")


@dataclass(frozen=True)
class RedemptionReport:
    """
    What happened when a committed sale's promotions were redeemed.

    revoked lists the applied promotions whose redemption was refused;
    adjusted_discount_amount is the discount with those re-subtracted.
    """

    outcomes: Tuple[RedemptionOutcome, ...]
    revoked: Tuple[AppliedPromotion, ...]
    adjusted_discount_amount: Decimal

    @property
    def price_changed(self) -> bool:
        return bool(self.revoked)

    def raise_for_race_lost(self) -> None:
        if self.revoked:
            raise RedemptionRaceLost(self.revoked)


class PromotionService:
    def __init__(self, *, catalog: PromotionCatalog, ledger: UsageLedger,
                 clock: Clock | None = None):
        self._catalog = catalog
        self._ledger = ledger
        self._clock = clock or SystemClock()

    # ── Evaluation (reads only, never writes) ─────────────────

    def _fetch_catalog(self, business_id: str, now: datetime) -> List[Promotion]:
        try:
            return list(self._catalog.fetch_eligible(business_id, now))
        except CatalogUnavailable as exc:
            logger.warning(
                f"Promotion catalog unavailable for business {business_id}, "
                f"evaluating without promotions: {exc}"
            )
            return []

    def _verified_subtotal(self, cart, subtotal: Any) -> Decimal:
        computed = cart_subtotal(cart)
        if subtotal is None:
            return computed
        supplied = to_decimal(subtotal, field_name="subtotal")
        if abs(supplied - computed) > SUBTOTAL_EPSILON:
            raise ValidationError(
                f"Supplied subtotal {supplied} disagrees with cart subtotal {computed}."
            )
        return computed

    def _without_exhausted(
        self, promotions: Iterable[Promotion], customer_id: Optional[str],
    ) -> List[Promotion]:
        if customer_id is None:
            return list(promotions)
        kept = []
        for promotion in promotions:
            if promotion.per_customer_limit is not None:
                try:
                    count = self._ledger.customer_redemption_count(promotion.promotion_id, customer_id)
                except LedgerUnavailable as exc:
                    # The commit-time redemption still enforces the limit.
                    logger.warning(
                        f"Could not read redemptions of {promotion.promotion_id} "
                        f"for customer {customer_id}, keeping it in the quote: {exc}"
                    )
                    kept.append(promotion)
                    continue
                reason = customer_limit_policy(promotion, customer_id, count)
                if reason is not None:
                    logger.debug(f"Excluded {promotion.promotion_id}: {reason.message}")
                    continue
            kept.append(promotion)
        return kept

    def evaluate(self, business_id: str, cart: Iterable[Any], *,
                 subtotal: Any = None, customer_id: Optional[str] = None,
                 now: Optional[datetime] = None) -> DiscountResult:
        items = coerce_cart(cart)
        verified = self._verified_subtotal(items, subtotal)
        if not items:
            return EMPTY_RESULT
        now = now or self._clock.now_utc()
        promotions = self._without_exhausted(self._fetch_catalog(business_id, now), customer_id)
        return apply_promotions(promotions, items, verified)

    # ── Redemption (completed sales only) ─────────────────────

    def record_sale(self, result: DiscountResult,
                    customer_id: Optional[str] = None) -> RedemptionReport:
        outcomes = self._ledger.record_batch(result.promotion_ids, customer_id)
        refused = {outcome.promotion_id for outcome in outcomes if not outcome.success}
        revoked = tuple(e for e in result.applied_promotions if e.promotion_id in refused)
        adjusted = result.discount_amount - sum((e.amount for e in revoked), ZERO)
        if revoked:
            logger.warning(
                f"Redemption race lost for {', '.join(e.promotion_id for e in revoked)}; "
                f"discount adjusted {result.discount_amount} -> {adjusted}"
            )
        return RedemptionReport(outcomes=outcomes, revoked=revoked,
                                adjusted_discount_amount=adjusted)

    def redeem_on_commit(self, result: DiscountResult, customer_id: Optional[str] = None,
                         on_report: Optional[Callable[[RedemptionReport], None]] = None,
                         using: Optional[str] = None) -> None:
        """
        Defer record_sale() until the current transaction commits.
        Nothing is recorded if the sale's transaction rolls back.
        Outside a transaction the redemption runs immediately.
        """
        from django.db import transaction

        if not result.applied_promotions:
            return

        def _redeem():
            report = self.record_sale(result, customer_id)
            if on_report is not None:
                on_report(report)

        transaction.on_commit(_redeem, using=using)

    # ── Status projection ─────────────────────────────────────

    def promotion_statuses(self, business_id: str,
                           now: Optional[datetime] = None) -> Dict[str, str]:
        now = now or self._clock.now_utc()
        return {
            promotion.promotion_id: derive_status(promotion, now)
            for promotion in self._catalog.list_promotions(business_id)
        }
