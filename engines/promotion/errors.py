"""
Promotion Engine - Errors
===========================
Only ValidationError ever reaches a checkout caller unhandled.
CatalogUnavailable, LedgerUnavailable and PromotionConfigurationError
are recovered inside the engine; RedemptionRaceLost is raised on
request by a redemption report.
"""

from __future__ import annotations


class PromotionError(Exception):
    """Base class for promotion engine errors."""


class ValidationError(PromotionError, ValueError):
    """Malformed cart, promotion or subtotal. The caller must fix the input."""


class CatalogUnavailable(PromotionError):
    """The promotion data source failed to respond."""


class LedgerUnavailable(PromotionError):
    """The usage ledger could not be read."""


class PromotionConfigurationError(PromotionError):
    """A stored promotion cannot be evaluated as configured."""

    def __init__(self, message: str, *, promotion_id: str | None = None):
        super().__init__(message)
        self.promotion_id = promotion_id


class ScopeConfigurationError(PromotionConfigurationError):
    """A promotion references an unrecognized scope kind."""


class RedemptionRaceLost(PromotionError):
    """
    A promotion shown to the customer could not be redeemed at commit
    time because its usage limit was exhausted concurrently.

    `revoked` holds the AppliedPromotion entries the checkout must
    re-subtract from the discount.
    """

    def __init__(self, revoked):
        self.revoked = tuple(revoked)
        names = ", ".join(entry.name for entry in self.revoked)
        super().__init__(f"Discount no longer valid, recompute total: {names}.")
