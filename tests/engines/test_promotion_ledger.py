"""
Promotion Engine - in-memory usage ledger tests, including concurrent
redemption against a usage limit.
"""

import threading
from datetime import datetime, timezone

from core.policy import ReasonCode
from engines.promotion.catalog import InMemoryPromotionCatalog
from engines.promotion.ledger import InMemoryUsageLedger
from engines.promotion.models import FixedTerms, Promotion

NOW = datetime(2026, 2, 19, 16, 0, 0, tzinfo=timezone.utc)


def promo(pid, **overrides):
    values = dict(promotion_id=pid, business_id="biz-1", name=pid, terms=FixedTerms(amount=5))
    values.update(overrides)
    return Promotion(**values)


def ledger_for(*promotions):
    catalog = InMemoryPromotionCatalog(promotions)
    return catalog, InMemoryUsageLedger(catalog)


class TestTryRecordRedemption:
    def test_increments_usage_count(self):
        catalog, ledger = ledger_for(promo("a", usage_limit=2))
        assert ledger.try_record_redemption("a").success
        assert catalog.get("a").usage_count == 1

    def test_unlimited_still_counts(self):
        catalog, ledger = ledger_for(promo("a"))
        for _ in range(5):
            assert ledger.try_record_redemption("a").success
        assert catalog.get("a").usage_count == 5

    def test_limit_reached(self):
        catalog, ledger = ledger_for(promo("a", usage_limit=1))
        assert ledger.try_record_redemption("a").success
        outcome = ledger.try_record_redemption("a")
        assert not outcome.success
        assert outcome.reason.code == ReasonCode.USAGE_LIMIT_REACHED
        assert catalog.get("a").usage_count == 1

    def test_exhausted_promotion_leaves_catalog(self):
        catalog, ledger = ledger_for(promo("a", usage_limit=1))
        ledger.try_record_redemption("a")
        assert catalog.fetch_eligible("biz-1", NOW) == []

    def test_missing_promotion(self):
        _, ledger = ledger_for()
        outcome = ledger.try_record_redemption("ghost")
        assert outcome.reason.code == ReasonCode.PROMOTION_NOT_FOUND

    def test_per_customer_limit(self):
        catalog, ledger = ledger_for(promo("a", per_customer_limit=1))
        assert ledger.try_record_redemption("a", "cust-1").success
        refused = ledger.try_record_redemption("a", "cust-1")
        assert refused.reason.code == ReasonCode.CUSTOMER_LIMIT_REACHED
        assert ledger.try_record_redemption("a", "cust-2").success
        # refused attempt did not touch the global counter
        assert catalog.get("a").usage_count == 2
        assert ledger.customer_redemption_count("a", "cust-1") == 1

    def test_anonymous_sale_skips_customer_limit(self):
        _, ledger = ledger_for(promo("a", per_customer_limit=1))
        assert ledger.try_record_redemption("a").success
        assert ledger.try_record_redemption("a").success


class TestRecordBatch:
    def test_one_outcome_per_distinct_promotion(self):
        catalog, ledger = ledger_for(promo("a"), promo("b", usage_limit=0))
        outcomes = ledger.record_batch(["a", "b", "a"], "cust-1")
        assert [(o.promotion_id, o.success) for o in outcomes] == [("a", True), ("b", False)]
        assert catalog.get("a").usage_count == 1


class TestConcurrentRedemption:
    def test_exactly_limit_successes(self):
        limit, attempts = 7, 40
        catalog, ledger = ledger_for(promo("flash", usage_limit=limit))
        barrier = threading.Barrier(attempts)
        results = []
        results_lock = threading.Lock()

        def redeem(n):
            barrier.wait()
            outcome = ledger.try_record_redemption("flash", f"cust-{n}")
            with results_lock:
                results.append(outcome.success)

        threads = [threading.Thread(target=redeem, args=(n,)) for n in range(attempts)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == limit
        assert catalog.get("flash").usage_count == limit
