# coupons/tests/test_evaluator.py

from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone

from catalog.models import ProductKind
from coupons.models import Coupon
from coupons.services.evaluator import (
    REASON_BELOW_MINIMUM,
    REASON_NOT_APPLICABLE,
    REASON_NOT_FOUND,
    REASON_USAGE_LIMIT_EXCEEDED,
    applicable_kind,
    evaluate_coupon,
)


def make_coupon(**overrides):
    now = timezone.now()
    fields = dict(
        code="welcome10",
        discount_type=Coupon.TYPE_PERCENTAGE,
        discount_value=Decimal("10.00"),
        applicable_to="ALL",
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=1),
    )
    fields.update(overrides)
    return Coupon.objects.create(**fields)


class ApplicableKindTests(TestCase):
    """
    Cart composition -> target kind.
    """

    def test_empty_composition_is_unknown(self):
        self.assertIsNone(applicable_kind(set()))
        self.assertIsNone(applicable_kind(None))

    def test_single_kind(self):
        self.assertEqual(applicable_kind({"EBOOK"}), ProductKind.EBOOK)
        self.assertEqual(applicable_kind(["ebook", "EBOOK"]), ProductKind.EBOOK)

    def test_legacy_alias_counts_as_same_kind(self):
        self.assertEqual(applicable_kind({"GUIDANCE", "GUIDANCE_SLOT"}), ProductKind.GUIDANCE_SLOT)

    def test_mixed_cart_is_all(self):
        self.assertEqual(applicable_kind({"EBOOK", "COURSE"}), "ALL")
        self.assertEqual(applicable_kind({"ALL"}), "ALL")


class CouponEvaluatorTests(TestCase):
    """
    Coupon evaluation rules.

    GUARANTEES:
    - checks run in order: found -> usage -> applicability -> minimum
    - discount is clamped to [0, subtotal] and to max_discount
    - evaluation never mutates used_count
    """

    # =====================================================
    # REJECTIONS
    # =====================================================

    def test_unknown_code_is_not_found(self):
        result = evaluate_coupon("NOPE", {"EBOOK"}, "500")
        self.assertFalse(result.valid)
        self.assertEqual(result.reason, REASON_NOT_FOUND)
        self.assertEqual(result.discount_amount, Decimal("0.00"))

    def test_code_lookup_is_case_insensitive(self):
        make_coupon(code="Welcome10")
        result = evaluate_coupon("wElCoMe10", {"EBOOK"}, "500")
        self.assertTrue(result.valid)
        self.assertEqual(result.coupon.code, "WELCOME10")

    def test_inactive_and_expired_coupons_are_not_found(self):
        now = timezone.now()
        make_coupon(code="OFF", is_active=False)
        make_coupon(code="OLD", valid_from=now - timedelta(days=10), valid_until=now - timedelta(days=5))
        make_coupon(code="SOON", valid_from=now + timedelta(days=1), valid_until=now + timedelta(days=5))

        for code in ("OFF", "OLD", "SOON"):
            self.assertEqual(evaluate_coupon(code, set(), "500").reason, REASON_NOT_FOUND)

    def test_usage_limit_exceeded(self):
        make_coupon(usage_limit=2, used_count=2)
        result = evaluate_coupon("WELCOME10", {"EBOOK"}, "500")
        self.assertEqual(result.reason, REASON_USAGE_LIMIT_EXCEEDED)

    def test_usage_limit_can_be_skipped_at_completion(self):
        make_coupon(usage_limit=1, used_count=1)
        result = evaluate_coupon("WELCOME10", {"EBOOK"}, "500", enforce_usage_limit=False)
        self.assertTrue(result.valid)

    def test_wrong_kind_is_not_applicable_and_total_unchanged(self):
        make_coupon(applicable_to=ProductKind.EBOOK)
        result = evaluate_coupon("WELCOME10", {ProductKind.WEBINAR}, "1000")

        self.assertFalse(result.valid)
        self.assertEqual(result.reason, REASON_NOT_APPLICABLE)
        self.assertEqual(result.final_amount, Decimal("1000.00"))

    def test_kind_coupon_rejected_for_mixed_cart(self):
        make_coupon(applicable_to=ProductKind.EBOOK)
        result = evaluate_coupon("WELCOME10", {"EBOOK", "COURSE"}, "1000")
        self.assertEqual(result.reason, REASON_NOT_APPLICABLE)

    def test_all_coupon_accepted_for_mixed_cart(self):
        make_coupon()
        result = evaluate_coupon("WELCOME10", {"EBOOK", "COURSE"}, "1000")
        self.assertTrue(result.valid)
        self.assertEqual(result.discount_amount, Decimal("100.00"))

    def test_below_minimum(self):
        make_coupon(min_amount=Decimal("999.00"))
        result = evaluate_coupon("WELCOME10", {"EBOOK"}, "500")
        self.assertEqual(result.reason, REASON_BELOW_MINIMUM)

    # =====================================================
    # DISCOUNT ARITHMETIC
    # =====================================================

    def test_percentage_capped_by_max_discount(self):
        make_coupon(discount_value=Decimal("50.00"), max_discount=Decimal("200.00"))
        result = evaluate_coupon("WELCOME10", {"COURSE"}, "1000")
        self.assertEqual(result.discount_amount, Decimal("200.00"))
        self.assertEqual(result.final_amount, Decimal("800.00"))

    def test_fixed_discount_clamped_to_subtotal(self):
        make_coupon(discount_type=Coupon.TYPE_FIXED, discount_value=Decimal("750.00"))
        result = evaluate_coupon("WELCOME10", {"EBOOK"}, "499")
        self.assertEqual(result.discount_amount, Decimal("499.00"))
        self.assertEqual(result.final_amount, Decimal("0.00"))

    def test_percentage_clamping_holds_over_many_subtotals(self):
        coupon = make_coupon(discount_value=Decimal("35.00"), max_discount=Decimal("120.00"))

        for subtotal in ("0", "0.01", "10", "99.99", "342.86", "343", "1000", "123456.78"):
            result = evaluate_coupon(coupon.code, set(), subtotal)
            cap = min(Decimal(subtotal), Decimal("120.00"))
            self.assertGreaterEqual(result.discount_amount, Decimal("0.00"), subtotal)
            self.assertLessEqual(result.discount_amount, cap, subtotal)

    def test_evaluation_does_not_consume(self):
        coupon = make_coupon(usage_limit=5)
        for _ in range(3):
            evaluate_coupon("WELCOME10", {"EBOOK"}, "500")
        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 0)


class CouponModelTests(TestCase):
    """
    Coupon storage rules.

    GUARANTEES:
    - code / applicable_to normalized on save
    - percentage above 100 and non-positive values fail validation
    - consume() stops at usage_limit
    """

    def test_save_normalizes_code_and_kind(self):
        coupon = make_coupon(code="  summer ", applicable_to="guidance")
        coupon.refresh_from_db()
        self.assertEqual(coupon.code, "SUMMER")
        self.assertEqual(coupon.applicable_to, ProductKind.GUIDANCE_SLOT)

    def test_percentage_over_hundred_is_invalid(self):
        coupon = Coupon(
            code="TOO-MUCH",
            discount_type=Coupon.TYPE_PERCENTAGE,
            discount_value=Decimal("150"),
            valid_from=timezone.now(),
            valid_until=timezone.now() + timedelta(days=1),
        )
        with self.assertRaises(ValidationError):
            coupon.full_clean()

    def test_non_positive_value_is_invalid(self):
        coupon = Coupon(
            code="ZERO",
            discount_type=Coupon.TYPE_FIXED,
            discount_value=Decimal("0"),
            valid_from=timezone.now(),
            valid_until=timezone.now() + timedelta(days=1),
        )
        with self.assertRaises(ValidationError):
            coupon.full_clean()

    def test_consume_respects_usage_limit(self):
        coupon = make_coupon(usage_limit=2)

        self.assertTrue(Coupon.objects.consume(coupon.id))
        self.assertTrue(Coupon.objects.consume(coupon.id))
        self.assertFalse(Coupon.objects.consume(coupon.id))

        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 2)

    def test_consume_without_limit(self):
        coupon = make_coupon()
        for _ in range(4):
            self.assertTrue(Coupon.objects.consume(coupon.id))
        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 4)
