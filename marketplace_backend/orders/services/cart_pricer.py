# orders/services/cart_pricer.py

"""
CART PRICER

Purpose:
- Turn client cart lines into a server-side quote.

Rules:
- Every line is resolved through its product-kind handler.
- Lines whose item is missing or unavailable are dropped (reported in quote.dropped).
- Free items stay in the cart at 0.00 (they still produce orders/enrollments).
- total_amount = sum(effective_price of surviving lines)
- A coupon is evaluated only when a code is given and total_amount > 0.
  A rejected coupon never fails pricing; it is surfaced as quote.coupon_error.
- final_amount = max(0, total_amount - discount_amount)
- The discount is allocated across lines in proportion to their price,
  so per-line final amounts sum exactly to final_amount.

No writes. The same function prices Phase 1 (init) and Phase 2 (complete).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from django.utils import timezone

from catalog.models import ProductKind
from catalog.services.pricing import ZERO, PriceBreakdown, money
from coupons.models import Coupon
from coupons.services.evaluator import evaluate_coupon
from orders.services.allocation import distribute_amount
from orders.services.exceptions import CheckoutValidationError
from orders.services.product_kinds import get_handler

logger = logging.getLogger(__name__)

__all__ = [
    "CART_ITEM_KEYS",
    "CartLine",
    "PricedLine",
    "CheckoutQuote",
    "distribute_amount",
    "parse_cart_items",
    "price_cart",
]

# wire key -> product kind
CART_ITEM_KEYS = {
    "ebookIds": ProductKind.EBOOK.value,
    "webinarIds": ProductKind.WEBINAR.value,
    "guidanceSlotIds": ProductKind.GUIDANCE_SLOT.value,
    "mentorshipIds": ProductKind.MENTORSHIP.value,
    "courseIds": ProductKind.COURSE.value,
    "offlineBatchIds": ProductKind.OFFLINE_BATCH.value,
    "bundleIds": ProductKind.BUNDLE.value,
}


@dataclass(frozen=True)
class CartLine:
    kind: str
    reference_id: str
    quantity: int = 1

    def key(self) -> tuple[str, str]:
        return (self.kind, self.reference_id)

    def as_dict(self) -> dict:
        return {"kind": self.kind, "referenceId": self.reference_id}


@dataclass
class PricedLine:
    line: CartLine
    item: Any
    title: str
    unit_price: Decimal
    effective_price: Decimal
    pricing: PriceBreakdown
    is_free: bool = False
    discount_amount: Decimal = ZERO

    @property
    def kind(self) -> str:
        return self.line.kind

    @property
    def reference_id(self) -> str:
        return self.line.reference_id

    @property
    def final_amount(self) -> Decimal:
        return money(self.effective_price - self.discount_amount)

    def item_detail(self) -> dict:
        return {
            "type": self.kind,
            "id": self.reference_id,
            "title": self.title,
            "isFree": self.is_free,
            **self.pricing.as_dict(),
            "discountAmount": str(self.discount_amount),
            "finalAmount": str(self.final_amount),
        }


@dataclass
class CheckoutQuote:
    lines: list[PricedLine]
    total_amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    final_amount: Decimal = ZERO
    coupon: Coupon | None = None
    coupon_error: dict | None = None
    dropped: list[CartLine] = field(default_factory=list)

    @property
    def is_free(self) -> bool:
        return self.final_amount == ZERO

    @property
    def coupon_code(self) -> str | None:
        return self.coupon.code if self.coupon is not None else None

    @property
    def kinds(self) -> set[str]:
        return {pl.kind for pl in self.lines}

    def item_details(self) -> list[dict]:
        return [pl.item_detail() for pl in self.lines]


def parse_cart_items(items) -> list[CartLine]:
    """
    Wire cart -> CartLines.

    {
      "ebookIds": ["..."], "webinarIds": [...], "guidanceSlotIds": [...],
      "mentorshipIds": [...], "courseIds": [...], "offlineBatchIds": [...],
      "bundleIds": [...]
    }

    Ids are de-duplicated per kind, order preserved.
    """
    if not isinstance(items, dict):
        raise CheckoutValidationError("items must be an object of id lists")

    lines: list[CartLine] = []
    for key, kind in CART_ITEM_KEYS.items():
        raw = items.get(key)
        if raw in (None, ""):
            continue
        if not isinstance(raw, (list, tuple)):
            raise CheckoutValidationError(f"items.{key} must be a list")

        seen = set()
        for value in raw:
            ref = str(value or "").strip()
            if not ref or ref in seen:
                continue
            seen.add(ref)
            lines.append(CartLine(kind=kind, reference_id=ref))

    if not lines:
        raise CheckoutValidationError("Cart is empty", code="EMPTY_CART")
    return lines


def price_cart(
    lines,
    coupon_code=None,
    *,
    enforce_coupon_usage_limit=True,
    include_reserved=False,
    now=None,
) -> CheckoutQuote:
    """
    include_reserved:
    - Phase 2 keeps guidance slots that were booked since the quote,
      so the slot compare-and-swap can report SLOT_UNAVAILABLE for them.
    """
    now = now or timezone.now()

    priced: list[PricedLine] = []
    dropped: list[CartLine] = []

    for line in lines:
        handler = get_handler(line.kind)
        kind = str(handler.kind)
        line = CartLine(kind=kind, reference_id=str(line.reference_id), quantity=line.quantity)

        item = handler.load(line.reference_id, include_reserved=include_reserved)
        if item is None:
            logger.info("Cart line dropped (unavailable)", extra={"kind": kind, "reference_id": line.reference_id})
            dropped.append(line)
            continue

        breakdown = handler.price(item, now=now)
        priced.append(
            PricedLine(
                line=line,
                item=item,
                title=handler.title(item),
                unit_price=breakdown.list_price,
                effective_price=breakdown.effective_price,
                pricing=breakdown,
                is_free=handler.is_free(item),
            )
        )

    if not priced:
        raise CheckoutValidationError(
            "None of the items in the cart are available anymore",
            code="NO_AVAILABLE_ITEMS",
        )

    total = money(sum((pl.effective_price for pl in priced), ZERO))
    quote = CheckoutQuote(lines=priced, total_amount=total, final_amount=total, dropped=dropped)

    code = str(coupon_code or "").strip()
    if code and total > ZERO:
        evaluation = evaluate_coupon(
            code,
            quote.kinds,
            total,
            now=now,
            enforce_usage_limit=enforce_coupon_usage_limit,
        )
        if evaluation.valid:
            quote.coupon = evaluation.coupon
            quote.discount_amount = evaluation.discount_amount
        else:
            quote.coupon_error = {"reason": evaluation.reason, "message": evaluation.message}

    quote.final_amount = max(money(total - quote.discount_amount), ZERO)

    if quote.discount_amount > ZERO:
        shares = distribute_amount(quote.discount_amount, [pl.effective_price for pl in priced])
        for pl, share in zip(priced, shares):
            pl.discount_amount = share

    return quote
