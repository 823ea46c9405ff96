# catalog/tests/test_pricing.py

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from catalog.models import Ebook, FlashSale, FlashSaleItem, GuidanceSlot, Guidance, ProductKind, parse_kind
from catalog.services.pricing import (
    calculate_effective_price,
    get_item_pricing,
    money,
    resolve_price,
)


class EffectivePriceTests(TestCase):
    """
    Pure price arithmetic (no flash sale lookup).

    GUARANTEES:
    - sale_price wins only when positive and lower than price
    - free items resolve to 0.00
    - result is never negative
    """

    def test_list_price_when_no_sale_price(self):
        breakdown = calculate_effective_price("499", None)
        self.assertEqual(breakdown.effective_price, Decimal("499.00"))
        self.assertEqual(breakdown.discount_percent, 0)
        self.assertFalse(breakdown.has_flash_sale)

    def test_sale_price_lower_than_list_price_wins(self):
        breakdown = calculate_effective_price("1000", "750")
        self.assertEqual(breakdown.effective_price, Decimal("750.00"))
        self.assertEqual(breakdown.display_original_price, Decimal("1000.00"))
        self.assertEqual(breakdown.discount_percent, 25)

    def test_sale_price_higher_than_list_price_is_ignored(self):
        breakdown = calculate_effective_price("500", "800")
        self.assertEqual(breakdown.effective_price, Decimal("500.00"))

    def test_zero_sale_price_is_ignored(self):
        breakdown = calculate_effective_price("500", "0")
        self.assertEqual(breakdown.effective_price, Decimal("500.00"))

    def test_free_item_resolves_to_zero(self):
        breakdown = calculate_effective_price("999", "499", is_free=True)
        self.assertEqual(breakdown.effective_price, Decimal("0.00"))

    def test_negative_list_price_is_clamped(self):
        breakdown = calculate_effective_price("-10", None)
        self.assertEqual(breakdown.effective_price, Decimal("0.00"))

    def test_money_tolerates_garbage(self):
        self.assertEqual(money("abc"), Decimal("0.00"))
        self.assertEqual(money(None), Decimal("0.00"))
        self.assertEqual(money("10.005"), Decimal("10.01"))


class FlashSalePricingTests(TestCase):
    """
    Flash sale lookup + override.

    GUARANTEES:
    - only active, running sales naming the item apply
    - the flash price is computed from the base (sale) price
    - free items never consult flash sales
    """

    def setUp(self):
        self.now = timezone.now()
        self.ebook = Ebook.objects.create(
            title="Clean Python",
            slug="clean-python",
            price=Decimal("1000.00"),
            sale_price=Decimal("800.00"),
            is_published=True,
        )

    def _flash_sale(self, *, percent="25", kind=ProductKind.EBOOK, active=True, starts=None, ends=None, item=None):
        sale = FlashSale.objects.create(
            title="Diwali Sale",
            kind=kind,
            discount_percent=Decimal(percent),
            is_active=active,
            start_date=starts or self.now - timedelta(hours=1),
            end_date=ends or self.now + timedelta(hours=1),
        )
        FlashSaleItem.objects.create(flash_sale=sale, reference_id=str((item or self.ebook).id))
        return sale

    # =====================================================
    # OVERRIDE RULES
    # =====================================================

    def test_running_flash_sale_discounts_base_price(self):
        self._flash_sale(percent="25")

        breakdown = get_item_pricing(
            ProductKind.EBOOK, self.ebook.id, self.ebook.price, self.ebook.sale_price, now=self.now
        )

        self.assertTrue(breakdown.has_flash_sale)
        self.assertEqual(breakdown.effective_price, Decimal("600.00"))
        self.assertEqual(breakdown.display_original_price, Decimal("800.00"))
        self.assertEqual(breakdown.flash_sale_title, "Diwali Sale")

    def test_flash_price_rounds_to_whole_unit(self):
        self._flash_sale(percent="33")

        price = resolve_price(ProductKind.EBOOK, self.ebook.id, "1000", "799", now=self.now)

        # 799 * 0.67 = 535.33
        self.assertEqual(price, Decimal("535.00"))

    def test_expired_flash_sale_is_ignored(self):
        self._flash_sale(starts=self.now - timedelta(days=2), ends=self.now - timedelta(days=1))

        price = resolve_price(ProductKind.EBOOK, self.ebook.id, "1000", "800", now=self.now)
        self.assertEqual(price, Decimal("800.00"))

    def test_inactive_flash_sale_is_ignored(self):
        self._flash_sale(active=False)

        price = resolve_price(ProductKind.EBOOK, self.ebook.id, "1000", "800", now=self.now)
        self.assertEqual(price, Decimal("800.00"))

    def test_flash_sale_of_other_kind_is_ignored(self):
        self._flash_sale(kind=ProductKind.COURSE)

        price = resolve_price(ProductKind.EBOOK, self.ebook.id, "1000", "800", now=self.now)
        self.assertEqual(price, Decimal("800.00"))

    def test_free_item_never_consults_flash_sale(self):
        self._flash_sale(percent="50")

        price = resolve_price(ProductKind.EBOOK, self.ebook.id, "1000", "800", is_free=True, now=self.now)
        self.assertEqual(price, Decimal("0.00"))

    def test_hundred_percent_flash_sale_is_zero_not_negative(self):
        self._flash_sale(percent="100")

        price = resolve_price(ProductKind.EBOOK, self.ebook.id, "1000", "800", now=self.now)
        self.assertEqual(price, Decimal("0.00"))


class GuidanceSlotTests(TestCase):
    """
    Slot compare-and-swap.

    GUARANTEES:
    - AVAILABLE -> BOOKED succeeds exactly once
    """

    def setUp(self):
        guidance = Guidance.objects.create(title="Career chat", slug="career-chat", price=Decimal("1500.00"))
        self.slot = GuidanceSlot.objects.create(
            guidance=guidance,
            date=timezone.localdate(),
            start_time="10:00",
            end_time="10:30",
        )

    def test_compare_and_swap_wins_once(self):
        first = GuidanceSlot.objects.compare_and_swap_status(
            self.slot.id, GuidanceSlot.STATUS_AVAILABLE, GuidanceSlot.STATUS_BOOKED
        )
        second = GuidanceSlot.objects.compare_and_swap_status(
            self.slot.id, GuidanceSlot.STATUS_AVAILABLE, GuidanceSlot.STATUS_BOOKED
        )

        self.assertTrue(first)
        self.assertFalse(second)
        self.slot.refresh_from_db()
        self.assertTrue(self.slot.is_booked)


class ProductKindParsingTests(TestCase):
    def test_canonical_and_alias_kinds(self):
        self.assertEqual(parse_kind("ebook"), ProductKind.EBOOK)
        self.assertEqual(parse_kind("GUIDANCE"), ProductKind.GUIDANCE_SLOT)
        self.assertEqual(parse_kind(" guidance_slot "), ProductKind.GUIDANCE_SLOT)

    def test_unknown_kind(self):
        self.assertIsNone(parse_kind("PODCAST"))
        self.assertIsNone(parse_kind(""))
