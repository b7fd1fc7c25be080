"""
Promotion Engine - Data Model
===============================
Promotion definitions, cart lines and evaluation results.

Promotion terms are a tagged variant: every promotion carries exactly
one terms object holding only the fields its type needs. Scope works
the same way. The engine dispatches on the variant class, never on a
type string.

All money is Decimal, quantized to cents with ROUND_HALF_UP.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from core.time import ValidityWindow
from engines.promotion.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Largest caller/engine subtotal disagreement tolerated as rounding noise.
SUBTOTAL_EPSILON = CENT


def to_decimal(value: Any, *, field_name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number, not bool.")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation:
            raise ValidationError(f"{field_name} '{value}' is not a number.") from None
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise ValidationError(f"{field_name} must be a number.")
    if not result.is_finite():
        raise ValidationError(f"{field_name} must be finite.")
    return result


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _non_negative(value: Any, *, field_name: str) -> Decimal:
    result = to_decimal(value, field_name=field_name)
    if result < ZERO:
        raise ValidationError(f"{field_name} must be >= 0.")
    return result


def _percent(value: Any, *, field_name: str) -> Decimal:
    result = _non_negative(value, field_name=field_name)
    if result > HUNDRED:
        raise ValidationError(f"{field_name} must be <= 100.")
    return result


def _optional_count(value: Any, *, field_name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative integer.")
    return value


# ══════════════════════════════════════════════════════════════
# PROMOTION TYPES (terms variants)
# ══════════════════════════════════════════════════════════════

PROMOTION_PERCENTAGE = "PERCENTAGE"
PROMOTION_FIXED = "FIXED"
PROMOTION_BUY_X_GET_Y = "BUY_X_GET_Y"
PROMOTION_BUNDLE = "BUNDLE"
PROMOTION_THRESHOLD = "THRESHOLD"

@dataclass(frozen=True)
class PercentageTerms:
    percent: Decimal

    promotion_type = PROMOTION_PERCENTAGE

    def __post_init__(self):
        object.__setattr__(self, "percent", _percent(self.percent, field_name="percent"))

    @property
    def value(self) -> Decimal:
        return self.percent


@dataclass(frozen=True)
class FixedTerms:
    amount: Decimal

    promotion_type = PROMOTION_FIXED

    def __post_init__(self):
        object.__setattr__(self, "amount", _non_negative(self.amount, field_name="amount"))

    @property
    def value(self) -> Decimal:
        return self.amount


@dataclass(frozen=True)
class BuyXGetYTerms:
    buy_qty: int
    get_qty: int
    get_discount_percent: Decimal = HUNDRED

    promotion_type = PROMOTION_BUY_X_GET_Y

    def __post_init__(self):
        for name in ("buy_qty", "get_qty"):
            qty = getattr(self, name)
            if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
                raise ValidationError(f"{name} must be an integer >= 1.")
        object.__setattr__(
            self, "get_discount_percent",
            _percent(self.get_discount_percent, field_name="get_discount_percent"),
        )

    @property
    def group_size(self) -> int:
        return self.buy_qty + self.get_qty

    @property
    def value(self) -> Decimal:
        return self.get_discount_percent


@dataclass(frozen=True)
class BundleTerms:
    bundle_price: Decimal

    promotion_type = PROMOTION_BUNDLE

    def __post_init__(self):
        object.__setattr__(
            self, "bundle_price", _non_negative(self.bundle_price, field_name="bundle_price"),
        )

    @property
    def value(self) -> Decimal:
        return self.bundle_price


@dataclass(frozen=True)
class ThresholdTerms:
    amount: Decimal

    promotion_type = PROMOTION_THRESHOLD

    def __post_init__(self):
        object.__setattr__(self, "amount", _non_negative(self.amount, field_name="amount"))

    @property
    def value(self) -> Decimal:
        return self.amount


PromotionTerms = Union[PercentageTerms, FixedTerms, BuyXGetYTerms, BundleTerms, ThresholdTerms]
TERMS_CLASSES = (PercentageTerms, FixedTerms, BuyXGetYTerms, BundleTerms, ThresholdTerms)


# ══════════════════════════════════════════════════════════════
# SCOPE VARIANTS
# ══════════════════════════════════════════════════════════════

SCOPE_ALL = "ALL"
SCOPE_CATEGORY = "CATEGORY"
SCOPE_PRODUCTS = "PRODUCTS"


@dataclass(frozen=True)
class AllItems:
    kind = SCOPE_ALL


@dataclass(frozen=True)
class CategoryScope:
    category: str

    kind = SCOPE_CATEGORY

    def __post_init__(self):
        if not isinstance(self.category, str) or not self.category.strip():
            raise ValidationError("category must be a non-empty string.")


@dataclass(frozen=True)
class ProductScope:
    product_ids: frozenset

    kind = SCOPE_PRODUCTS

    def __post_init__(self):
        if isinstance(self.product_ids, str):
            raise ValidationError("product_ids must be a collection of ids, not a string.")
        object.__setattr__(self, "product_ids", frozenset(str(pid) for pid in self.product_ids))


PromotionScope = Union[AllItems, CategoryScope, ProductScope]


# ══════════════════════════════════════════════════════════════
# PROMOTION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Promotion:
    """
    A promotion definition as read from the catalog.

    The engine never mutates a Promotion; the usage ledger owns
    usage_count at the storage layer.
    """

    promotion_id: str
    business_id: str
    name: str
    terms: PromotionTerms
    scope: PromotionScope = field(default_factory=AllItems)
    min_order_amount: Decimal = ZERO
    max_discount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    per_customer_limit: Optional[int] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    is_active: bool = True

    def __post_init__(self):
        if not self.promotion_id:
            raise ValidationError("promotion_id must be non-empty.")
        if not self.business_id:
            raise ValidationError("business_id must be non-empty.")
        if not self.name:
            raise ValidationError("name must be non-empty.")
        if not isinstance(self.terms, TERMS_CLASSES):
            raise ValidationError(
                f"terms must be a promotion terms object, got {type(self.terms).__name__}."
            )
        object.__setattr__(self, "promotion_id", str(self.promotion_id))
        object.__setattr__(self, "business_id", str(self.business_id))
        object.__setattr__(
            self, "min_order_amount",
            _non_negative(self.min_order_amount, field_name="min_order_amount"),
        )
        if self.max_discount is not None:
            object.__setattr__(
                self, "max_discount",
                _non_negative(self.max_discount, field_name="max_discount"),
            )
        _optional_count(self.usage_limit, field_name="usage_limit")
        _optional_count(self.per_customer_limit, field_name="per_customer_limit")
        if _optional_count(self.usage_count, field_name="usage_count") is None:
            raise ValidationError("usage_count must be a non-negative integer.")
        try:
            ValidityWindow(self.starts_at, self.ends_at)
        except ValueError as exc:
            raise ValidationError(str(exc)) from None

    @property
    def promotion_type(self) -> str:
        return self.terms.promotion_type

    @property
    def value(self) -> Decimal:
        return self.terms.value

    @property
    def validity(self) -> ValidityWindow:
        return ValidityWindow(self.starts_at, self.ends_at)

    @property
    def usage_remaining(self) -> Optional[int]:
        if self.usage_limit is None:
            return None
        return max(0, self.usage_limit - self.usage_count)


# ══════════════════════════════════════════════════════════════
# DERIVED STATUS (computed on read, never stored)
# ══════════════════════════════════════════════════════════════

STATUS_PAUSED = "PAUSED"
STATUS_SCHEDULED = "SCHEDULED"
STATUS_EXPIRED = "EXPIRED"
STATUS_ACTIVE = "ACTIVE"


def derive_status(promotion: Promotion, now: datetime) -> str:
    if not promotion.is_active:
        return STATUS_PAUSED
    window = promotion.validity
    if not window.has_started(now):
        return STATUS_SCHEDULED
    if window.has_ended(now):
        return STATUS_EXPIRED
    return STATUS_ACTIVE


# ══════════════════════════════════════════════════════════════
# CART
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CartItem:
    product_id: str
    unit_price: Decimal
    quantity: Decimal = Decimal("1")
    category_id: Optional[str] = None

    def __post_init__(self):
        if self.product_id is None or str(self.product_id) == "":
            raise ValidationError("product_id must be non-empty.")
        object.__setattr__(self, "product_id", str(self.product_id))
        quantity = to_decimal(self.quantity, field_name="quantity")
        if quantity <= ZERO:
            raise ValidationError(f"quantity must be > 0 (product '{self.product_id}').")
        unit_price = to_decimal(self.unit_price, field_name="unit_price")
        if unit_price < ZERO:
            raise ValidationError(f"unit_price must be >= 0 (product '{self.product_id}').")
        object.__setattr__(self, "quantity", quantity)
        object.__setattr__(self, "unit_price", unit_price)

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CartItem":
        try:
            return cls(
                product_id=data["product_id"],
                unit_price=data["unit_price"],
                quantity=data.get("quantity", 1),
                category_id=data.get("category_id"),
            )
        except KeyError as exc:
            raise ValidationError(f"cart item missing field {exc}.") from None


def coerce_cart(items: Iterable[Union[CartItem, Mapping[str, Any]]]) -> Tuple[CartItem, ...]:
    cart = []
    for item in items:
        if isinstance(item, CartItem):
            cart.append(item)
        elif isinstance(item, Mapping):
            cart.append(CartItem.from_mapping(item))
        else:
            raise ValidationError(f"Unsupported cart item: {item!r}.")
    return tuple(cart)


def cart_subtotal(cart: Iterable[CartItem]) -> Decimal:
    return quantize_money(sum((item.line_total for item in cart), ZERO))


# ══════════════════════════════════════════════════════════════
# RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AppliedPromotion:
    promotion_id: str
    name: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {"promotion_id": self.promotion_id, "name": self.name, "amount": str(self.amount)}


@dataclass(frozen=True)
class DiscountResult:
    """
    Invariants: discount_amount == sum of applied amounts,
    and discount_amount <= the evaluated subtotal.
    """

    discount_amount: Decimal = ZERO
    applied_promotions: Tuple[AppliedPromotion, ...] = ()

    def __post_init__(self):
        total = sum((entry.amount for entry in self.applied_promotions), ZERO)
        if total != self.discount_amount:
            raise ValueError(
                f"discount_amount {self.discount_amount} does not match "
                f"applied total {total}."
            )

    @property
    def promotion_ids(self) -> Tuple[str, ...]:
        return tuple(entry.promotion_id for entry in self.applied_promotions)

    def to_dict(self) -> dict:
        return {
            "discount_amount": str(self.discount_amount),
            "applied_promotions": [entry.to_dict() for entry in self.applied_promotions],
        }


EMPTY_RESULT = DiscountResult()
