"""
Promotion Engine - Promotion Catalog
======================================
Read side: which promotions of a business are structurally eligible
right now (active, inside their validity window, usage left).

Protocol + InMemory + DB implementations.

Doctrine:
- Filtering happens here, at the data boundary, so evaluation cost
  follows the number of candidates rather than the whole table.
- "No promotions" is an empty list, never an error.
- Backend failure is CatalogUnavailable; the caller decides to degrade.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from engines.promotion.errors import CatalogUnavailable, PromotionConfigurationError
from engines.promotion.models import Promotion
from engines.promotion.policies import structural_eligibility_policy

logger = logging.getLogger("promotion.catalog")


class PromotionCatalog(Protocol):
    def fetch_eligible(self, business_id: str, now: datetime) -> List[Promotion]:
        """Return structurally eligible promotions, or raise CatalogUnavailable."""
        ...

    def list_promotions(self, business_id: str) -> List[Promotion]:
        """Return every promotion of the business regardless of status."""
        ...


# ---------------------------------------------------------------------------
# InMemory Catalog (deterministic, thread-safe for tests)
# ---------------------------------------------------------------------------

class InMemoryPromotionCatalog:
    """
    Thread-safe in-memory catalog, keyed by promotion_id.

    InMemoryUsageLedger writes usage counts back through replace().
    fail_with() makes every read raise CatalogUnavailable until cleared.
    """

    def __init__(self, promotions: tuple[Promotion, ...] = ()):
        self._lock = threading.Lock()
        self._promotions: Dict[str, Promotion] = {}
        self._failure: Optional[str] = None
        for promotion in promotions:
            self.add(promotion)

    def add(self, promotion: Promotion) -> None:
        with self._lock:
            if promotion.promotion_id in self._promotions:
                raise ValueError(f"Promotion '{promotion.promotion_id}' already exists.")
            self._promotions[promotion.promotion_id] = promotion

    def replace(self, promotion: Promotion) -> None:
        with self._lock:
            if promotion.promotion_id not in self._promotions:
                raise KeyError(promotion.promotion_id)
            self._promotions[promotion.promotion_id] = promotion

    def get(self, promotion_id: str) -> Optional[Promotion]:
        with self._lock:
            return self._promotions.get(promotion_id)

    def fail_with(self, reason: Optional[str]) -> None:
        self._failure = reason

    def _snapshot(self, business_id: str) -> List[Promotion]:
        if self._failure is not None:
            raise CatalogUnavailable(self._failure)
        with self._lock:
            rows = [p for p in self._promotions.values() if p.business_id == str(business_id)]
        return sorted(rows, key=lambda p: p.promotion_id)

    def fetch_eligible(self, business_id: str, now: datetime) -> List[Promotion]:
        eligible = []
        for promotion in self._snapshot(business_id):
            reason = structural_eligibility_policy(promotion, now)
            if reason is not None:
                logger.debug(f"Catalog skipped {promotion.promotion_id}: {reason.code}")
                continue
            eligible.append(promotion)
        return eligible

    def list_promotions(self, business_id: str) -> List[Promotion]:
        return self._snapshot(business_id)


# ---------------------------------------------------------------------------
# DB Catalog (Django ORM)
# ---------------------------------------------------------------------------

class DbPromotionCatalog:
    """
    Reads promotion_store rows. Filters run in SQL; rows that cannot be
    mapped to a Promotion are skipped with a warning.
    """

    def fetch_eligible(self, business_id: str, now: datetime) -> List[Promotion]:
        from django.db.models import F, Q

        from engines.promotion.store.models import PromotionRecord

        query = (
            PromotionRecord.objects.filter(business_id=str(business_id), is_active=True)
            .filter(Q(starts_at__isnull=True) | Q(starts_at__lte=now))
            .filter(Q(ends_at__isnull=True) | Q(ends_at__gte=now))
            .filter(Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit")))
        )
        return self._load(query)

    def list_promotions(self, business_id: str) -> List[Promotion]:
        from engines.promotion.store.models import PromotionRecord

        return self._load(PromotionRecord.objects.filter(business_id=str(business_id)))

    def _load(self, query) -> List[Promotion]:
        from django.db import DatabaseError

        from engines.promotion.store.repository import to_promotion

        try:
            rows = list(query.order_by("promotion_id"))
        except DatabaseError as exc:
            raise CatalogUnavailable(f"Promotion catalog query failed: {exc}") from exc

        promotions = []
        for row in rows:
            try:
                promotions.append(to_promotion(row))
            except PromotionConfigurationError as exc:
                logger.warning(f"Skipping misconfigured promotion {row.promotion_id}: {exc}")
        return promotions
