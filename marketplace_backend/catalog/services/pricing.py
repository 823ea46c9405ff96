# catalog/services/pricing.py

"""
PRICING RESOLVER

Purpose:
- Resolve the effective (payable) price of one catalog item.

Rules:
- Free items resolve to 0.00 and never consult flash sales.
- Base price = sale_price when set, positive and lower than price; else price.
- An active flash sale applies its percentage to the base price,
  rounded to a whole currency unit.
- Result is never negative and never above the base price.

No side effects: lookups + arithmetic only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.utils import timezone

from catalog.models import FlashSale

TWOPLACES = Decimal("0.01")
WHOLE_UNIT = Decimal("1")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def money_text(v) -> str | None:
    return None if v is None else str(money(v))


def money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        return ZERO


@dataclass(frozen=True)
class PriceBreakdown:
    list_price: Decimal
    sale_price: Decimal | None
    effective_price: Decimal
    display_original_price: Decimal
    discount_percent: int = 0
    has_flash_sale: bool = False
    flash_sale_title: str | None = None
    flash_sale_ends_at: datetime | None = None

    def as_dict(self) -> dict:
        return {
            "price": money_text(self.list_price),
            "salePrice": money_text(self.sale_price),
            "effectivePrice": money_text(self.effective_price),
            "displayOriginalPrice": money_text(self.display_original_price),
            "discountPercent": self.discount_percent,
            "hasFlashSale": self.has_flash_sale,
            "flashSaleTitle": self.flash_sale_title,
            "flashSaleEndDate": self.flash_sale_ends_at,
        }


def get_active_flash_sale(kind: str, item_id, *, now=None) -> FlashSale | None:
    now = now or timezone.now()
    return (
        FlashSale.objects.filter(
            kind=kind,
            is_active=True,
            start_date__lte=now,
            end_date__gte=now,
            discount_percent__gt=0,
            items__reference_id=str(item_id),
        )
        .order_by("-start_date")
        .first()
    )


def _base_price(list_price: Decimal, sale_price: Decimal | None) -> Decimal:
    if sale_price is not None and ZERO < sale_price < list_price:
        return sale_price
    return list_price


def calculate_effective_price(list_price, sale_price, flash_sale=None, *, is_free=False) -> PriceBreakdown:
    lp = max(money(list_price), ZERO)
    sp = money(sale_price) if sale_price not in (None, "") else None

    if is_free:
        return PriceBreakdown(
            list_price=lp,
            sale_price=sp,
            effective_price=ZERO,
            display_original_price=lp,
        )

    base = _base_price(lp, sp)

    pct = money(getattr(flash_sale, "discount_percent", None)) if flash_sale else ZERO
    if flash_sale is not None and pct > ZERO:
        pct = min(pct, HUNDRED)
        flash_price = (base * (HUNDRED - pct) / HUNDRED).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)
        flash_price = money(min(max(flash_price, ZERO), base))
        return PriceBreakdown(
            list_price=lp,
            sale_price=sp,
            effective_price=flash_price,
            display_original_price=base,
            discount_percent=int(pct.to_integral_value(rounding=ROUND_HALF_UP)),
            has_flash_sale=True,
            flash_sale_title=flash_sale.title,
            flash_sale_ends_at=flash_sale.end_date,
        )

    if base < lp and lp > ZERO:
        pct_off = ((lp - base) / lp * HUNDRED).to_integral_value(rounding=ROUND_HALF_UP)
        return PriceBreakdown(
            list_price=lp,
            sale_price=sp,
            effective_price=base,
            display_original_price=lp,
            discount_percent=int(pct_off),
        )

    return PriceBreakdown(
        list_price=lp,
        sale_price=sp,
        effective_price=lp,
        display_original_price=lp,
    )


def get_item_pricing(kind: str, item_id, list_price, sale_price, *, is_free=False, now=None) -> PriceBreakdown:
    flash_sale = None
    if not is_free:
        flash_sale = get_active_flash_sale(kind, item_id, now=now)
    return calculate_effective_price(list_price, sale_price, flash_sale, is_free=is_free)


def resolve_price(kind: str, item_id, list_price, sale_price, *, is_free=False, now=None) -> Decimal:
    return get_item_pricing(
        kind, item_id, list_price, sale_price, is_free=is_free, now=now
    ).effective_price
