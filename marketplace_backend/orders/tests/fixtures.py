# orders/tests/fixtures.py

import hashlib
import hmac
import uuid
from datetime import time, timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.utils import timezone

from catalog.models import Bundle, BundleCourse, Course, Ebook, Guidance, GuidanceSlot, OfflineBatch
from coupons.models import Coupon
from payments.services.razorpay import GatewayError, GatewayOrder, to_minor_units

User = get_user_model()

TEST_SECRET = "rzp_test_secret"

OPEN_GATEWAY_ORDER = "orders.services.checkout_orchestrator.open_gateway_order"
OPEN_DIRECT_GATEWAY_ORDER = "orders.services.direct_order.open_gateway_order"
FETCH_GATEWAY_ORDER = "orders.services.checkout_orchestrator.fetch_gateway_order"


def sign(gateway_order_id, payment_id, secret=TEST_SECRET):
    return hmac.new(secret.encode(), f"{gateway_order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def gateway_order(order_id="order_TEST1", amount=49900):
    return GatewayOrder(id=order_id, amount=amount, currency="INR", key_id="rzp_test_key")


class FakeGateway:
    """
    In-memory stand-in for the provider's order read-back.

    charge() records what the provider would report for an order;
    fetch() is patched over fetch_gateway_order.
    """

    def __init__(self):
        self.orders = {}

    def charge(self, order_id, amount, status="paid"):
        minor = to_minor_units(amount)
        self.orders[order_id] = {
            "id": order_id,
            "amount": minor,
            "amount_paid": minor if status == "paid" else 0,
            "currency": "INR",
            "status": status,
        }

    def fetch(self, order_id):
        if order_id not in self.orders:
            raise GatewayError(f"Unknown gateway order {order_id}")
        return dict(self.orders[order_id])


class GatewayTestMixin:
    """Patches the provider read-back for the whole test; use self.gateway.charge()."""

    def setUp(self):
        super().setUp()
        self.gateway = FakeGateway()
        patcher = patch(FETCH_GATEWAY_ORDER, side_effect=self.gateway.fetch)
        patcher.start()
        self.addCleanup(patcher.stop)


def make_user(username="buyer", email="buyer@example.com"):
    return User.objects.create_user(username=username, email=email, password="pass1234")


def _slug(prefix):
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def make_ebook(price="499.00", **kwargs):
    fields = dict(title="Python Notes", slug=_slug("ebook"), price=Decimal(price), is_published=True)
    fields.update(kwargs)
    return Ebook.objects.create(**fields)


def make_course(price="1000.00", **kwargs):
    fields = dict(title="Django Deep Dive", slug=_slug("course"), price=Decimal(price), is_published=True)
    fields.update(kwargs)
    return Course.objects.create(**fields)


def make_bundle(price, course_prices, **kwargs):
    fields = dict(title="Backend Bundle", slug=_slug("bundle"), price=Decimal(price), is_published=True)
    fields.update(kwargs)
    bundle = Bundle.objects.create(**fields)
    courses = []
    for position, course_price in enumerate(course_prices):
        course = make_course(course_price, title=f"Course {position + 1}")
        BundleCourse.objects.create(bundle=bundle, course=course, position=position)
        courses.append(course)
    return bundle, courses


def make_slot(price="1500.00", days_ahead=2, **kwargs):
    guidance = Guidance.objects.create(
        title="Career Guidance",
        slug=_slug("guidance"),
        price=Decimal(price),
        is_published=True,
        expert_name="A. Mentor",
        google_meet_link="https://meet.google.com/abc-defg-hij",
    )
    fields = dict(
        guidance=guidance,
        date=(timezone.localtime() + timedelta(days=days_ahead)).date(),
        start_time=time(10, 0),
        end_time=time(11, 0),
    )
    fields.update(kwargs)
    return GuidanceSlot.objects.create(**fields)


def make_coupon(code="SAVE20", value="20.00", **kwargs):
    now = timezone.now()
    fields = dict(
        code=code,
        discount_type=Coupon.TYPE_PERCENTAGE,
        discount_value=Decimal(value),
        applicable_to="ALL",
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=1),
    )
    fields.update(kwargs)
    return Coupon.objects.create(**fields)


def make_batch(price="3000.00", seats_total=0, seats_filled=0, **kwargs):
    fields = dict(
        title="Weekend Classroom",
        slug=_slug("batch"),
        price=Decimal(price),
        seats_total=seats_total,
        seats_filled=seats_filled,
    )
    fields.update(kwargs)
    return OfflineBatch.objects.create(**fields)
