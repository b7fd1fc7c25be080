"""
Promotion Store - Relational Models
=====================================
PromotionRecord is the catalog row; CustomerRedemption is the
per-customer counter.

RULES:
- usage_count and redemption_count are only ever changed with
  F() expressions by the usage ledger.
- Status (paused/scheduled/expired/active) is never stored; it is
  derived from is_active and the validity window on read.

This file contains NO business logic.
"""

from __future__ import annotations

from django.db import models
from django.db.models import F, Q


class PromotionType(models.TextChoices):
    PERCENTAGE = "PERCENTAGE", "Percentage"
    FIXED = "FIXED", "Fixed amount"
    BUY_X_GET_Y = "BUY_X_GET_Y", "Buy X get Y"
    BUNDLE = "BUNDLE", "Bundle price"
    THRESHOLD = "THRESHOLD", "Spend threshold"


class ScopeKind(models.TextChoices):
    ALL = "ALL", "All items"
    CATEGORY = "CATEGORY", "Category"
    PRODUCTS = "PRODUCTS", "Product list"


class PromotionRecord(models.Model):
    # ── Identity & Tenant ─────────────────────────────────────
    promotion_id = models.CharField(max_length=64, primary_key=True)
    business_id = models.CharField(max_length=64)
    name = models.CharField(max_length=255)

    # ── Terms ─────────────────────────────────────────────────
    promotion_type = models.CharField(max_length=20, choices=PromotionType.choices)
    value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=0,
        help_text="Percent points, flat amount, get-discount percent or bundle price.",
    )
    buy_qty = models.PositiveIntegerField(null=True, blank=True)
    get_qty = models.PositiveIntegerField(null=True, blank=True)
    get_discount_percent = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True,
    )
    bundle_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    # ── Limits ────────────────────────────────────────────────
    min_order_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    max_discount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    per_customer_limit = models.PositiveIntegerField(null=True, blank=True)

    # ── Validity ──────────────────────────────────────────────
    starts_at = models.DateTimeField(null=True, blank=True)
    ends_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    # ── Scope ─────────────────────────────────────────────────
    scope_kind = models.CharField(max_length=20, choices=ScopeKind.choices, default=ScopeKind.ALL)
    scope_category = models.CharField(max_length=255, blank=True, default="")
    scope_product_ids = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "promotion_promotions"
        ordering = ["promotion_id"]
        indexes = [
            models.Index(fields=["business_id", "is_active"], name="idx_promo_biz_active"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(usage_limit__isnull=True) | Q(usage_count__lte=F("usage_limit")),
                name="ck_promo_usage_within_limit",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.promotion_id}:{self.name}"


class CustomerRedemption(models.Model):
    promotion = models.ForeignKey(
        PromotionRecord,
        on_delete=models.CASCADE,
        related_name="customer_redemptions",
        db_column="promotion_id",
    )
    customer_id = models.CharField(max_length=64)
    redemption_count = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "promotion_customer_redemptions"
        ordering = ["promotion_id", "customer_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["promotion", "customer_id"],
                name="uq_promo_customer",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.promotion_id}:{self.customer_id}={self.redemption_count}"
