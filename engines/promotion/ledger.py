"""
Promotion Engine - Usage Ledger
=================================
Write side: records redemptions once a sale has been committed.

Doctrine (NON-NEGOTIABLE):
- Only called for completed sales, never for a quote or preview.
- Each increment is a single atomic compare-and-increment at the
  storage layer: "usage_count + 1 only while usage_count < usage_limit".
  Never read-then-write from application memory.
- The global and per-customer counters move together or not at all.
- One attempt per promotion per sale. No retries; a refused attempt is
  reported in the outcome.

Protocol + InMemory + DB implementations.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Protocol, Tuple

from core.policy import ReasonCode, RejectionReason
from engines.promotion.errors import LedgerUnavailable

logger = logging.getLogger("promotion.ledger")


@dataclass(frozen=True)
class RedemptionOutcome:
    promotion_id: str
    success: bool
    reason: Optional[RejectionReason] = None

    @classmethod
    def accepted(cls, promotion_id: str) -> "RedemptionOutcome":
        return cls(promotion_id=promotion_id, success=True)

    @classmethod
    def refused(cls, promotion_id: str, code: str, message: str) -> "RedemptionOutcome":
        return cls(
            promotion_id=promotion_id,
            success=False,
            reason=RejectionReason(code=code, message=message, policy_name="usage_ledger"),
        )


class UsageLedger(Protocol):
    def try_record_redemption(
        self, promotion_id: str, customer_id: Optional[str] = None,
    ) -> RedemptionOutcome:
        ...

    def record_batch(
        self, promotion_ids: Iterable[str], customer_id: Optional[str] = None,
    ) -> Tuple[RedemptionOutcome, ...]:
        ...

    def customer_redemption_count(self, promotion_id: str, customer_id: str) -> int:
        ...


def _refused_limit(promotion_id: str) -> RedemptionOutcome:
    return RedemptionOutcome.refused(
        promotion_id, ReasonCode.USAGE_LIMIT_REACHED,
        f"Usage limit of promotion '{promotion_id}' already reached.")


def _refused_customer(promotion_id: str, customer_id: str) -> RedemptionOutcome:
    return RedemptionOutcome.refused(
        promotion_id, ReasonCode.CUSTOMER_LIMIT_REACHED,
        f"Customer '{customer_id}' reached the limit for promotion '{promotion_id}'.")


def _refused_missing(promotion_id: str) -> RedemptionOutcome:
    return RedemptionOutcome.refused(
        promotion_id, ReasonCode.PROMOTION_NOT_FOUND,
        f"Promotion '{promotion_id}' not found.")


class _BatchMixin:
    def record_batch(
        self, promotion_ids: Iterable[str], customer_id: Optional[str] = None,
    ) -> Tuple[RedemptionOutcome, ...]:
        outcomes = []
        for promotion_id in dict.fromkeys(promotion_ids):
            outcome = self.try_record_redemption(promotion_id, customer_id)
            if outcome.success:
                logger.info(f"Redeemed promotion {promotion_id} (customer={customer_id})")
            else:
                logger.warning(
                    f"Redemption refused for promotion {promotion_id}: {outcome.reason.code}"
                )
            outcomes.append(outcome)
        return tuple(outcomes)


# ---------------------------------------------------------------------------
# InMemory Ledger (colocated counter behind one lock)
# ---------------------------------------------------------------------------

class InMemoryUsageLedger(_BatchMixin):
    """
    Counts redemptions against an InMemoryPromotionCatalog.

    The lock makes check + increment one step; usage_count is written
    back into the catalog so later fetches see the exhausted limit.
    """

    def __init__(self, catalog):
        self._catalog = catalog
        self._lock = threading.Lock()
        self._customer_counts: Dict[Tuple[str, str], int] = {}

    def try_record_redemption(
        self, promotion_id: str, customer_id: Optional[str] = None,
    ) -> RedemptionOutcome:
        with self._lock:
            promotion = self._catalog.get(promotion_id)
            if promotion is None:
                return _refused_missing(promotion_id)
            if promotion.usage_limit is not None and promotion.usage_count >= promotion.usage_limit:
                return _refused_limit(promotion_id)

            key = (promotion_id, customer_id)
            if customer_id is not None:
                count = self._customer_counts.get(key, 0)
                limit = promotion.per_customer_limit
                if limit is not None and count >= limit:
                    return _refused_customer(promotion_id, customer_id)
                self._customer_counts[key] = count + 1

            self._catalog.replace(
                dataclasses.replace(promotion, usage_count=promotion.usage_count + 1)
            )
            return RedemptionOutcome.accepted(promotion_id)

    def customer_redemption_count(self, promotion_id: str, customer_id: str) -> int:
        with self._lock:
            return self._customer_counts.get((promotion_id, customer_id), 0)


# ---------------------------------------------------------------------------
# DB Ledger (Django ORM conditional UPDATE)
# ---------------------------------------------------------------------------

class _IncrementRefused(Exception):
    """Rolls back the surrounding atomic block."""

    def __init__(self, outcome: RedemptionOutcome):
        super().__init__(outcome.promotion_id)
        self.outcome = outcome


class DbUsageLedger(_BatchMixin):
    """
    Both counters are bumped with UPDATE ... WHERE count < limit inside
    one transaction. Zero rows updated means the limit was reached,
    possibly by a concurrent checkout, and the transaction is rolled back.
    """

    def try_record_redemption(
        self, promotion_id: str, customer_id: Optional[str] = None,
    ) -> RedemptionOutcome:
        from django.db import transaction

        try:
            with transaction.atomic():
                return self._increment(promotion_id, customer_id)
        except _IncrementRefused as refused:
            return refused.outcome

    def _increment(self, promotion_id: str, customer_id: Optional[str]) -> RedemptionOutcome:
        from django.db.models import F, Q

        from engines.promotion.store.models import PromotionRecord

        limits = (
            PromotionRecord.objects.filter(promotion_id=promotion_id)
            .values("per_customer_limit")
            .first()
        )
        if limits is None:
            return _refused_missing(promotion_id)

        updated = (
            PromotionRecord.objects.filter(promotion_id=promotion_id)
            .filter(Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit")))
            .update(usage_count=F("usage_count") + 1)
        )
        if updated == 0:
            raise _IncrementRefused(_refused_limit(promotion_id))

        if customer_id is not None:
            self._increment_customer(promotion_id, customer_id, limits["per_customer_limit"])
        return RedemptionOutcome.accepted(promotion_id)

    def _increment_customer(
        self, promotion_id: str, customer_id: str, limit: Optional[int],
    ) -> None:
        from django.db import IntegrityError, transaction
        from django.db.models import F

        from engines.promotion.store.models import CustomerRedemption

        try:
            with transaction.atomic():
                CustomerRedemption.objects.get_or_create(
                    promotion_id=promotion_id, customer_id=customer_id,
                )
        except IntegrityError:
            pass  # row created by a concurrent checkout

        counters = CustomerRedemption.objects.filter(
            promotion_id=promotion_id, customer_id=customer_id,
        )
        if limit is not None:
            counters = counters.filter(redemption_count__lt=limit)
        if counters.update(redemption_count=F("redemption_count") + 1) == 0:
            raise _IncrementRefused(_refused_customer(promotion_id, customer_id))

    def customer_redemption_count(self, promotion_id: str, customer_id: str) -> int:
        from django.db import DatabaseError

        from engines.promotion.store.models import CustomerRedemption

        try:
            count = (
                CustomerRedemption.objects.filter(promotion_id=promotion_id, customer_id=customer_id)
                .values_list("redemption_count", flat=True)
                .first()
            )
        except DatabaseError as exc:
            raise LedgerUnavailable(f"Redemption count query failed: {exc}") from exc
        return count or 0
