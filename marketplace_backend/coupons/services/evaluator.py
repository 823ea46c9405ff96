# coupons/services/evaluator.py

"""
COUPON EVALUATOR

Purpose:
- Decide whether a coupon applies to a cart and how much it takes off.

Order of checks (first failure wins):
1. NOT_FOUND            unknown code, inactive, or outside [valid_from, valid_until]
2. USAGE_LIMIT_EXCEEDED usage_limit set and used_count >= usage_limit
3. NOT_APPLICABLE       cart's single kind (or ALL for a mixed cart) does not match
4. BELOW_MINIMUM        subtotal < min_amount

Discount:
- PERCENTAGE: subtotal * value / 100, capped by max_discount
- FIXED: value
- always clamped to [0, subtotal], 2dp

This module NEVER writes. Consumption lives on Coupon.objects.consume().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.utils import timezone

from catalog.models import parse_kind
from catalog.services.pricing import ZERO, money
from coupons.models import APPLICABLE_ALL, Coupon

logger = logging.getLogger(__name__)

REASON_NOT_FOUND = "NOT_FOUND"
REASON_USAGE_LIMIT_EXCEEDED = "USAGE_LIMIT_EXCEEDED"
REASON_NOT_APPLICABLE = "NOT_APPLICABLE"
REASON_BELOW_MINIMUM = "BELOW_MINIMUM"

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CouponEvaluation:
    valid: bool
    subtotal: Decimal
    discount_amount: Decimal = ZERO
    coupon: Coupon | None = None
    reason: str | None = None
    message: str = ""

    @property
    def final_amount(self) -> Decimal:
        return max(self.subtotal - self.discount_amount, ZERO)

    @classmethod
    def rejected(cls, subtotal, reason: str, message: str, coupon=None) -> "CouponEvaluation":
        return cls(valid=False, subtotal=subtotal, coupon=coupon, reason=reason, message=message)


def applicable_kind(kinds) -> str | None:
    """
    Cart composition -> the kind a coupon must target.

    - empty set    -> None (composition unknown; caller skips the check)
    - one kind     -> that kind
    - several      -> "ALL"
    """
    normalized = set()
    for raw in kinds or ():
        value = str(raw or "").strip().upper()
        if value == APPLICABLE_ALL:
            normalized.add(APPLICABLE_ALL)
            continue
        kind = parse_kind(value)
        if kind:
            normalized.add(kind)

    if not normalized:
        return None
    if len(normalized) == 1:
        return next(iter(normalized))
    return APPLICABLE_ALL


def compute_discount(coupon: Coupon, subtotal) -> Decimal:
    subtotal = max(money(subtotal), ZERO)
    value = money(coupon.discount_value)

    if coupon.discount_type == Coupon.TYPE_PERCENTAGE:
        raw = money(subtotal * value / HUNDRED)
        if coupon.max_discount is not None:
            raw = min(raw, money(coupon.max_discount))
    else:
        raw = value

    return min(max(raw, ZERO), subtotal)


def evaluate_coupon(code, kinds, subtotal, *, now=None, enforce_usage_limit=True) -> CouponEvaluation:
    now = now or timezone.now()
    subtotal = max(money(subtotal), ZERO)

    coupon = None
    if str(code or "").strip():
        coupon = (
            Coupon.objects.by_code(code)
            .filter(is_active=True, valid_from__lte=now, valid_until__gte=now)
            .first()
        )

    if coupon is None:
        return CouponEvaluation.rejected(subtotal, REASON_NOT_FOUND, "Invalid or expired coupon code")

    if enforce_usage_limit and coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        return CouponEvaluation.rejected(
            subtotal, REASON_USAGE_LIMIT_EXCEEDED, "Coupon usage limit exceeded", coupon=coupon
        )

    candidate = applicable_kind(kinds)
    if candidate is not None and coupon.applicable_to not in (APPLICABLE_ALL, candidate):
        return CouponEvaluation.rejected(
            subtotal,
            REASON_NOT_APPLICABLE,
            f"This coupon is only applicable to {coupon.get_applicable_to_display()}",
            coupon=coupon,
        )

    if coupon.min_amount is not None and subtotal < money(coupon.min_amount):
        return CouponEvaluation.rejected(
            subtotal,
            REASON_BELOW_MINIMUM,
            f"Minimum cart amount of {money(coupon.min_amount)} required",
            coupon=coupon,
        )

    discount = compute_discount(coupon, subtotal)

    logger.debug(
        "Coupon evaluated",
        extra={"coupon_code": coupon.code, "subtotal": str(subtotal), "discount": str(discount)},
    )

    return CouponEvaluation(valid=True, subtotal=subtotal, discount_amount=discount, coupon=coupon)
