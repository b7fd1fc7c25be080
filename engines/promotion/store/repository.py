"""
Promotion Store - Row Mapping
===============================
Converts between PromotionRecord rows and engine Promotion objects.

to_promotion() raises PromotionConfigurationError (or its scope
subclass) for rows the engine cannot evaluate; the DB catalog skips
those rows.
"""

from __future__ import annotations

from engines.promotion.errors import (
    PromotionConfigurationError,
    ScopeConfigurationError,
    ValidationError,
)
from engines.promotion.models import (
    AllItems,
    BundleTerms,
    BuyXGetYTerms,
    CategoryScope,
    FixedTerms,
    PercentageTerms,
    ProductScope,
    Promotion,
    ThresholdTerms,
)
from engines.promotion.store.models import PromotionRecord, PromotionType, ScopeKind


def _terms_from_row(row: PromotionRecord):
    if row.promotion_type == PromotionType.PERCENTAGE:
        return PercentageTerms(percent=row.value)
    if row.promotion_type == PromotionType.FIXED:
        return FixedTerms(amount=row.value)
    if row.promotion_type == PromotionType.BUY_X_GET_Y:
        return BuyXGetYTerms(
            buy_qty=row.buy_qty,
            get_qty=row.get_qty,
            get_discount_percent=(
                row.get_discount_percent if row.get_discount_percent is not None else row.value
            ),
        )
    if row.promotion_type == PromotionType.BUNDLE:
        return BundleTerms(
            bundle_price=row.bundle_price if row.bundle_price is not None else row.value,
        )
    if row.promotion_type == PromotionType.THRESHOLD:
        return ThresholdTerms(amount=row.value)
    raise PromotionConfigurationError(
        f"Unrecognized promotion type '{row.promotion_type}'.",
        promotion_id=row.promotion_id,
    )


def _scope_from_row(row: PromotionRecord):
    if row.scope_kind == ScopeKind.ALL:
        return AllItems()
    if row.scope_kind == ScopeKind.CATEGORY:
        return CategoryScope(category=row.scope_category)
    if row.scope_kind == ScopeKind.PRODUCTS:
        return ProductScope(product_ids=row.scope_product_ids or ())
    raise ScopeConfigurationError(
        f"Unrecognized scope kind '{row.scope_kind}'.",
        promotion_id=row.promotion_id,
    )


def to_promotion(row: PromotionRecord) -> Promotion:
    try:
        return Promotion(
            promotion_id=row.promotion_id,
            business_id=row.business_id,
            name=row.name,
            terms=_terms_from_row(row),
            scope=_scope_from_row(row),
            min_order_amount=row.min_order_amount,
            max_discount=row.max_discount,
            usage_limit=row.usage_limit,
            usage_count=row.usage_count,
            per_customer_limit=row.per_customer_limit,
            starts_at=row.starts_at,
            ends_at=row.ends_at,
            is_active=row.is_active,
        )
    except ValidationError as exc:
        raise PromotionConfigurationError(str(exc), promotion_id=row.promotion_id) from exc


def _terms_columns(terms) -> dict:
    columns = {
        "promotion_type": terms.promotion_type,
        "value": terms.value,
        "buy_qty": None,
        "get_qty": None,
        "get_discount_percent": None,
        "bundle_price": None,
    }
    if isinstance(terms, BuyXGetYTerms):
        columns.update(
            buy_qty=terms.buy_qty,
            get_qty=terms.get_qty,
            get_discount_percent=terms.get_discount_percent,
        )
    elif isinstance(terms, BundleTerms):
        columns["bundle_price"] = terms.bundle_price
    return columns


def _scope_columns(scope) -> dict:
    if isinstance(scope, CategoryScope):
        return {"scope_kind": ScopeKind.CATEGORY, "scope_category": scope.category,
                "scope_product_ids": []}
    if isinstance(scope, ProductScope):
        return {"scope_kind": ScopeKind.PRODUCTS, "scope_category": "",
                "scope_product_ids": sorted(scope.product_ids)}
    return {"scope_kind": ScopeKind.ALL, "scope_category": "", "scope_product_ids": []}


def save_promotion(promotion: Promotion) -> PromotionRecord:
    """
    Upsert a promotion definition. usage_count is only set on insert;
    an existing counter is left to the usage ledger.
    """
    defaults = {
        "business_id": promotion.business_id,
        "name": promotion.name,
        "min_order_amount": promotion.min_order_amount,
        "max_discount": promotion.max_discount,
        "usage_limit": promotion.usage_limit,
        "per_customer_limit": promotion.per_customer_limit,
        "starts_at": promotion.starts_at,
        "ends_at": promotion.ends_at,
        "is_active": promotion.is_active,
        **_terms_columns(promotion.terms),
        **_scope_columns(promotion.scope),
    }
    record, _ = PromotionRecord.objects.update_or_create(
        promotion_id=promotion.promotion_id,
        defaults=defaults,
        create_defaults={**defaults, "usage_count": promotion.usage_count},
    )
    return record
