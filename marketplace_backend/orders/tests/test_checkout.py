# orders/tests/test_checkout.py

from decimal import Decimal
from unittest.mock import patch

from django.core import mail
from django.db import DatabaseError
from django.test import TestCase

from catalog.models import Ebook, GuidanceSlot, OfflineBatch, ProductKind
from coupons.models import Coupon
from orders.models import (
    BundleEnrollment,
    BundleOrder,
    CourseEnrollment,
    CourseOrder,
    EbookEnrollment,
    EbookOrder,
    GuidanceEnrollment,
    Order,
    PaymentAttempt,
)
from orders.services.cart_pricer import CartLine, price_cart
from orders.services.checkout_orchestrator import (
    LINE_FAILED,
    LINE_REJECTED,
    complete_payment,
    init_payment,
)
from orders.services.exceptions import CheckoutValidationError, ConflictError, PaymentVerificationError
from orders.services.product_kinds import CourseHandler

from .fixtures import (
    OPEN_GATEWAY_ORDER,
    GatewayTestMixin,
    gateway_order,
    make_batch,
    make_bundle,
    make_coupon,
    make_course,
    make_ebook,
    make_slot,
    make_user,
    sign,
)


def _line(kind, item):
    return CartLine(kind.value, str(item.id))


class CheckoutTestCase(GatewayTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.user = make_user()

    def _complete_paid(self, lines, *, coupon_code=None, order_id="order_TEST1", payment_id="pay_TEST1", user=None):
        if order_id not in self.gateway.orders:
            quoted = price_cart(lines, coupon_code, enforce_coupon_usage_limit=False, include_reserved=True)
            self.gateway.charge(order_id, quoted.final_amount)
        return complete_payment(
            user=user or self.user,
            lines=lines,
            coupon_code=coupon_code,
            gateway_order_id=order_id,
            payment_id=payment_id,
            signature=sign(order_id, payment_id),
        )


# ==========================================================
# PHASE 1
# ==========================================================


class InitPaymentTests(CheckoutTestCase):
    """
    GUARANTEES:
    - init writes nothing to the database
    - the gateway order is opened for the discounted amount
    - free carts never reach the gateway
    """

    @patch(OPEN_GATEWAY_ORDER)
    def test_paid_cart_opens_gateway_order_for_final_amount(self, open_order):
        open_order.return_value = gateway_order(amount=39920)
        ebook = make_ebook("499.00")
        make_coupon("EBOOK20", "20.00", applicable_to="EBOOK")

        result = init_payment(user=self.user, lines=[_line(ProductKind.EBOOK, ebook)], coupon_code="EBOOK20")

        open_order.assert_called_once()
        self.assertEqual(open_order.call_args.args[0], Decimal("399.20"))
        self.assertFalse(result.is_free)

        data = result.as_dict()
        self.assertEqual(data["finalAmount"], "399.20")
        self.assertEqual(data["discountAmount"], "99.80")
        self.assertEqual(data["gatewayOrder"]["id"], "order_TEST1")
        self.assertTrue(data["paymentRef"].startswith("PAY-"))

        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(PaymentAttempt.objects.count(), 0)
        self.assertEqual(Coupon.objects.get(code="EBOOK20").used_count, 0)

    @patch(OPEN_GATEWAY_ORDER)
    def test_free_cart_skips_gateway(self, open_order):
        ebook = make_ebook("499.00", is_free=True)

        result = init_payment(user=self.user, lines=[_line(ProductKind.EBOOK, ebook)])

        open_order.assert_not_called()
        self.assertTrue(result.is_free)
        self.assertNotIn("gatewayOrder", result.as_dict())

    @patch(OPEN_GATEWAY_ORDER)
    def test_coupon_error_is_surfaced(self, open_order):
        open_order.return_value = gateway_order(amount=100000)
        ebook = make_ebook("1000.00")
        make_coupon("COURSE10", "10.00", applicable_to="COURSE")

        data = init_payment(user=self.user, lines=[_line(ProductKind.EBOOK, ebook)], coupon_code="COURSE10").as_dict()

        self.assertEqual(data["finalAmount"], "1000.00")
        self.assertEqual(data["couponError"]["reason"], "NOT_APPLICABLE")
        self.assertIsNone(data["couponCode"])


# ==========================================================
# PHASE 2: paid + free completion
# ==========================================================


class CompletePaymentTests(CheckoutTestCase):
    """
    GUARANTEES:
    - one Order + child order + enrollment per line
    - the signature is checked before anything is written
    - a replay returns the same orders and writes nothing
    - coupon usage counts once per checkout
    - the gateway must report the order paid for exactly the cart total
    - a coupon that makes the cart free must still have a use left
    """

    def test_paid_single_ebook(self):
        ebook = make_ebook("499.00")
        make_coupon("EBOOK20", "20.00", applicable_to="EBOOK")

        result = self._complete_paid([_line(ProductKind.EBOOK, ebook)], coupon_code="EBOOK20")

        self.assertFalse(result.replayed)
        self.assertEqual(len(result.orders), 1)
        order = result.orders[0]
        self.assertEqual(order.status, Order.STATUS_COMPLETED)
        self.assertEqual(order.payment_status, Order.PAYMENT_PAID)
        self.assertEqual(order.final_amount, Decimal("399.20"))
        self.assertEqual(order.discount_amount, Decimal("99.80"))
        self.assertTrue(order.order_number.startswith("EBK"))
        self.assertEqual(order.payment_link.gateway_payment_id, "pay_TEST1")

        self.assertEqual(EbookOrder.objects.get(order=order).amount_paid, Decimal("399.20"))
        self.assertTrue(EbookEnrollment.objects.filter(user=self.user, ebook=ebook).exists())

        ebook.refresh_from_db()
        self.assertEqual(ebook.purchase_count, 1)
        self.assertEqual(Coupon.objects.get(code="EBOOK20").used_count, 1)

    def test_invalid_signature_writes_nothing(self):
        ebook = make_ebook("499.00")

        with self.assertRaises(PaymentVerificationError):
            complete_payment(
                user=self.user,
                lines=[_line(ProductKind.EBOOK, ebook)],
                gateway_order_id="order_TEST1",
                payment_id="pay_TEST1",
                signature="deadbeef",
            )

        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(PaymentAttempt.objects.count(), 0)

    def test_paid_cart_requires_gateway_fields(self):
        ebook = make_ebook("499.00")
        with self.assertRaises(CheckoutValidationError):
            complete_payment(user=self.user, lines=[_line(ProductKind.EBOOK, ebook)], payment_ref="PAY-1")

    def test_replay_returns_same_orders(self):
        ebook = make_ebook("499.00")
        course = make_course("1000.00")
        make_coupon("SAVE20", "20.00")
        lines = [_line(ProductKind.EBOOK, ebook), _line(ProductKind.COURSE, course)]

        first = self._complete_paid(lines, coupon_code="SAVE20")
        second = self._complete_paid(lines, coupon_code="SAVE20")

        self.assertTrue(second.replayed)
        self.assertEqual({o.id for o in first.orders}, {o.id for o in second.orders})
        self.assertEqual(Order.objects.count(), 2)
        self.assertEqual(EbookEnrollment.objects.count(), 1)
        self.assertEqual(CourseEnrollment.objects.count(), 1)
        self.assertEqual(PaymentAttempt.objects.count(), 1)
        self.assertEqual(Coupon.objects.get(code="SAVE20").used_count, 1)

    def test_coupon_over_usage_limit_still_completes_once(self):
        ebook = make_ebook("499.00")
        coupon = make_coupon("LAST1", "10.00", usage_limit=1, used_count=1)

        result = self._complete_paid([_line(ProductKind.EBOOK, ebook)], coupon_code="LAST1")

        self.assertEqual(len(result.orders), 1)
        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 1)
        self.assertFalse(result.settlement.coupon_consumed)

    def test_free_cart_coupon_over_usage_limit_is_refused(self):
        ebook = make_ebook("499.00")
        coupon = make_coupon("ALLFREE", "100.00", usage_limit=1, used_count=1)

        with self.assertRaises(ConflictError) as ctx:
            complete_payment(
                user=self.user,
                lines=[_line(ProductKind.EBOOK, ebook)],
                coupon_code="ALLFREE",
                payment_ref="PAY-ANY-1",
            )

        self.assertEqual(ctx.exception.code, "USAGE_LIMIT_EXCEEDED")
        self.assertFalse(Order.objects.exists())
        self.assertFalse(EbookEnrollment.objects.exists())
        self.assertFalse(PaymentAttempt.objects.exists())
        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 1)

    def test_free_cart_rolls_back_when_last_use_is_taken_meanwhile(self):
        ebook = make_ebook("499.00")
        make_coupon("ALLFREE", "100.00", usage_limit=1)

        with patch.object(Coupon.objects, "consume", return_value=False):
            with self.assertRaises(ConflictError) as ctx:
                complete_payment(
                    user=self.user,
                    lines=[_line(ProductKind.EBOOK, ebook)],
                    coupon_code="ALLFREE",
                    payment_ref="PAY-ANY-2",
                )

        self.assertEqual(ctx.exception.code, "USAGE_LIMIT_EXCEEDED")
        self.assertFalse(Order.objects.exists())
        self.assertFalse(PaymentAttempt.objects.exists())
        self.assertEqual(Ebook.objects.get(pk=ebook.pk).purchase_count, 0)

    def test_cheap_gateway_order_cannot_pay_for_expensive_cart(self):
        course = make_course("50000.00")
        self.gateway.charge("order_CHEAP", Decimal("1.00"))

        with self.assertRaises(PaymentVerificationError) as ctx:
            self._complete_paid([_line(ProductKind.COURSE, course)], order_id="order_CHEAP", payment_id="pay_CHEAP")

        self.assertEqual(ctx.exception.code, "AMOUNT_MISMATCH")
        self.assertFalse(Order.objects.exists())
        self.assertFalse(CourseEnrollment.objects.exists())
        self.assertFalse(PaymentAttempt.objects.exists())

    def test_unpaid_gateway_order_is_rejected(self):
        ebook = make_ebook("499.00")
        self.gateway.charge("order_TEST1", Decimal("499.00"), status="created")

        with self.assertRaises(PaymentVerificationError) as ctx:
            self._complete_paid([_line(ProductKind.EBOOK, ebook)])

        self.assertEqual(ctx.exception.code, "PAYMENT_NOT_CAPTURED")
        self.assertFalse(Order.objects.exists())

    def test_gateway_payload_is_kept_on_settlement(self):
        ebook = make_ebook("499.00")

        result = self._complete_paid([_line(ProductKind.EBOOK, ebook)])

        payload = PaymentAttempt.objects.get(pk=result.settlement.pk).provider_payload
        self.assertEqual(payload["id"], "order_TEST1")
        self.assertEqual(payload["amount"], 49900)
        self.assertEqual(payload["status"], "paid")

    @patch("orders.services.checkout_orchestrator.verify_signature")
    def test_free_cart_short_circuit(self, verify):
        ebook = make_ebook("499.00", is_free=True)
        course = make_course("800.00", is_free=True)

        result = complete_payment(
            user=self.user,
            lines=[_line(ProductKind.EBOOK, ebook), _line(ProductKind.COURSE, course)],
            payment_ref="PAY-FREE-1",
        )

        verify.assert_not_called()
        self.assertEqual(len(result.orders), 2)
        for order in result.orders:
            self.assertEqual(order.status, Order.STATUS_COMPLETED)
            self.assertEqual(order.payment_status, Order.PAYMENT_FREE)
            self.assertEqual(order.final_amount, Decimal("0.00"))
            self.assertEqual(order.payment_ref, "PAY-FREE-1")
        self.assertEqual(result.settlement.provider, PaymentAttempt.PROVIDER_FREE)

        again = complete_payment(
            user=self.user,
            lines=[_line(ProductKind.EBOOK, ebook), _line(ProductKind.COURSE, course)],
            payment_ref="PAY-FREE-1",
        )
        self.assertTrue(again.replayed)
        self.assertEqual(Order.objects.count(), 2)

    def test_free_cart_requires_payment_ref(self):
        ebook = make_ebook("499.00", is_free=True)
        with self.assertRaises(CheckoutValidationError):
            complete_payment(user=self.user, lines=[_line(ProductKind.EBOOK, ebook)])

    def test_full_coupon_makes_cart_free(self):
        ebook = make_ebook("499.00")
        make_coupon("ALLFREE", "100.00")

        result = complete_payment(
            user=self.user,
            lines=[_line(ProductKind.EBOOK, ebook)],
            coupon_code="ALLFREE",
            payment_ref="PAY-FREE-2",
        )

        order = result.orders[0]
        self.assertEqual(order.payment_status, Order.PAYMENT_FREE)
        self.assertEqual(order.discount_amount, Decimal("499.00"))
        self.assertEqual(EbookOrder.objects.get(order=order).payment_mode, "FREE")
        self.assertEqual(Coupon.objects.get(code="ALLFREE").used_count, 1)


# ==========================================================
# BUNDLES
# ==========================================================


class BundleCheckoutTests(CheckoutTestCase):
    """
    GUARANTEES:
    - a bundle purchase enrolls the user in every course
    - the bundle amount is split across courses by course price
    """

    def test_bundle_amount_split_by_course_price(self):
        bundle, courses = make_bundle("4000.00", ["2000.00", "3000.00"])

        result = self._complete_paid([_line(ProductKind.BUNDLE, bundle)])

        order = result.orders[0]
        self.assertEqual(order.final_amount, Decimal("4000.00"))
        self.assertTrue(BundleOrder.objects.filter(order=order, bundle=bundle).exists())
        self.assertTrue(BundleEnrollment.objects.filter(user=self.user, bundle=bundle).exists())

        amounts = [CourseOrder.objects.get(order=order, course=c).amount_paid for c in courses]
        self.assertEqual(amounts, [Decimal("1600.00"), Decimal("2400.00")])

        for course in courses:
            enrollment = CourseEnrollment.objects.get(user=self.user, course=course)
            self.assertEqual(enrollment.bundle_id, bundle.id)
            self.assertEqual(enrollment.payment_mode, "BUNDLE")

    def test_bundle_shares_sum_exactly(self):
        bundle, _ = make_bundle("2999.00", ["499", "599", "699", "799", "899", "999", "1099"])

        result = self._complete_paid([_line(ProductKind.BUNDLE, bundle)])

        rows = CourseOrder.objects.filter(order=result.orders[0])
        self.assertEqual(rows.count(), 7)
        self.assertEqual(sum(r.amount_paid for r in rows), Decimal("2999.00"))


# ==========================================================
# GUIDANCE SLOTS
# ==========================================================


class GuidanceSlotCheckoutTests(CheckoutTestCase):
    """
    GUARANTEES:
    - a slot is booked at most once
    - the loser gets SLOT_UNAVAILABLE and no order
    """

    def test_two_buyers_one_slot(self):
        slot = make_slot()
        other = make_user("second", "second@example.com")
        line = _line(ProductKind.GUIDANCE_SLOT, slot)

        winner = self._complete_paid([line], order_id="order_A", payment_id="pay_A")
        loser = self._complete_paid([line], order_id="order_B", payment_id="pay_B", user=other)

        self.assertEqual(len(winner.orders), 1)
        self.assertEqual(loser.orders, [])
        self.assertEqual([r.status for r in loser.failures], [LINE_REJECTED])
        self.assertEqual(loser.failures[0].code, "SLOT_UNAVAILABLE")

        slot.refresh_from_db()
        self.assertEqual(slot.status, GuidanceSlot.STATUS_BOOKED)
        self.assertEqual(GuidanceEnrollment.objects.filter(slot=slot).count(), 1)
        self.assertEqual(Order.objects.filter(order_type=ProductKind.GUIDANCE_SLOT).count(), 1)

    def test_rejected_line_does_not_block_other_lines(self):
        slot = make_slot()
        slot.status = GuidanceSlot.STATUS_BOOKED
        slot.save()
        ebook = make_ebook("499.00")

        result = self._complete_paid([_line(ProductKind.GUIDANCE_SLOT, slot), _line(ProductKind.EBOOK, ebook)])

        self.assertEqual([o.order_type for o in result.orders], [ProductKind.EBOOK.value])
        self.assertEqual(result.settlement.status, PaymentAttempt.STATUS_COMPLETED)
        self.assertEqual(result.settlement.rejected_lines[0]["code"], "SLOT_UNAVAILABLE")


# ==========================================================
# OFFLINE BATCH SEATS
# ==========================================================


class OfflineBatchSeatTests(CheckoutTestCase):
    """
    GUARANTEES:
    - a seat is claimed once per purchase
    - the last seat goes to one buyer; the next gets BATCH_FULL
    - seats_total == 0 never fills up
    """

    def test_last_seat_goes_to_one_buyer(self):
        batch = make_batch(seats_total=1)
        other = make_user("second", "second@example.com")
        line = _line(ProductKind.OFFLINE_BATCH, batch)

        winner = self._complete_paid([line], order_id="order_A", payment_id="pay_A")
        loser = self._complete_paid([line], order_id="order_B", payment_id="pay_B", user=other)

        self.assertEqual(len(winner.orders), 1)
        self.assertEqual(loser.orders, [])
        self.assertEqual([r.status for r in loser.failures], [LINE_REJECTED])
        self.assertEqual(loser.failures[0].code, "BATCH_FULL")

        batch.refresh_from_db()
        self.assertEqual(batch.seats_filled, 1)
        self.assertEqual(Order.objects.filter(order_type=ProductKind.OFFLINE_BATCH).count(), 1)

    def test_full_batch_is_not_sold(self):
        batch = make_batch(seats_total=2, seats_filled=2)

        with self.assertRaises(CheckoutValidationError) as ctx:
            price_cart([_line(ProductKind.OFFLINE_BATCH, batch)])
        self.assertEqual(ctx.exception.code, "NO_AVAILABLE_ITEMS")

    def test_unlimited_batch(self):
        batch = make_batch(seats_total=0, seats_filled=40)

        result = self._complete_paid([_line(ProductKind.OFFLINE_BATCH, batch)])

        self.assertEqual(len(result.orders), 1)
        self.assertEqual(OfflineBatch.objects.get(pk=batch.pk).seats_filled, 41)


# ==========================================================
# PARTIAL FAILURE
# ==========================================================


class PartialCompletionTests(CheckoutTestCase):
    """
    GUARANTEES:
    - a failing line does not roll back the lines that succeeded
    - the settlement stays PARTIALLY_COMPLETED and lists the failed line
    - completing again retries only the failed line
    """

    def test_failed_line_is_healed_on_retry(self):
        ebook = make_ebook("499.00")
        course = make_course("1000.00")
        make_coupon("SAVE20", "20.00")
        lines = [_line(ProductKind.EBOOK, ebook), _line(ProductKind.COURSE, course)]

        with patch.object(CourseHandler, "create_enrollment_row", side_effect=DatabaseError("disk full")):
            first = self._complete_paid(lines, coupon_code="SAVE20")

        self.assertEqual([o.order_type for o in first.orders], [ProductKind.EBOOK.value])
        self.assertEqual([r.status for r in first.failures], [LINE_FAILED])
        self.assertEqual(first.settlement.status, PaymentAttempt.STATUS_PARTIALLY_COMPLETED)
        self.assertEqual(first.settlement.failed_lines[0]["kind"], ProductKind.COURSE.value)
        self.assertFalse(CourseOrder.objects.exists())

        second = self._complete_paid(lines, coupon_code="SAVE20")

        self.assertEqual(second.failures, [])
        self.assertEqual(second.settlement.status, PaymentAttempt.STATUS_COMPLETED)
        self.assertEqual(Order.objects.count(), 2)
        self.assertEqual(EbookOrder.objects.count(), 1)
        self.assertEqual(CourseOrder.objects.count(), 1)
        self.assertTrue(CourseEnrollment.objects.filter(user=self.user, course=course).exists())
        self.assertEqual(Ebook.objects.get(pk=ebook.pk).purchase_count, 1)
        self.assertEqual(Coupon.objects.get(code="SAVE20").used_count, 1)

        third = self._complete_paid(lines, coupon_code="SAVE20")
        self.assertTrue(third.replayed)
        self.assertEqual(Order.objects.count(), 2)


# ==========================================================
# NOTIFICATIONS
# ==========================================================


class CheckoutEmailTests(CheckoutTestCase):
    """
    GUARANTEES:
    - customer + admin emails go out after commit
    - a broken mail backend never fails the checkout
    """

    def test_emails_sent_after_commit(self):
        ebook = make_ebook("499.00")

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            result = self._complete_paid([_line(ProductKind.EBOOK, ebook)])

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual(mail.outbox[0].to, ["buyer@example.com"])
        self.assertIn(result.orders[0].order_number, mail.outbox[0].subject)
        self.assertEqual(mail.outbox[1].to, ["ops@example.com"])

    def test_replay_sends_nothing(self):
        ebook = make_ebook("499.00")
        self._complete_paid([_line(ProductKind.EBOOK, ebook)])

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            self._complete_paid([_line(ProductKind.EBOOK, ebook)])

        self.assertEqual(callbacks, [])

    @patch("orders.services.notifications.EmailMultiAlternatives.send", side_effect=OSError("smtp down"))
    def test_mail_failure_is_swallowed(self, _send):
        ebook = make_ebook("499.00")

        with self.captureOnCommitCallbacks(execute=True):
            result = self._complete_paid([_line(ProductKind.EBOOK, ebook)])

        self.assertEqual(len(result.orders), 1)
        self.assertEqual(Order.objects.get().status, Order.STATUS_COMPLETED)
