# orders/services/product_kinds.py

"""
PRODUCT KIND HANDLERS

One handler per purchasable kind. The checkout code only talks to this
interface; nothing downstream branches on the kind.

Capabilities:
- load(reference_id)          -> catalog item or None (missing / unavailable)
- is_free(item)
- price(item, now)            -> PriceBreakdown
- reserve(item)               -> contended state (guidance slot CAS, batch seats)
- create_order_row(...)       -> <Kind>Order row
- create_enrollment_row(...)  -> <Kind>Enrollment upsert
- after_purchase(...)         -> counters, bundle fan-out
"""

from __future__ import annotations

import logging
import uuid

from django.db.models import F, Q

from catalog.models import (
    Bundle,
    Course,
    Ebook,
    GuidanceSlot,
    MentorshipProgram,
    OfflineBatch,
    ProductKind,
    Webinar,
    parse_kind,
)
from catalog.services.pricing import calculate_effective_price, get_item_pricing
from orders.models import (
    BundleEnrollment,
    BundleOrder,
    CourseEnrollment,
    CourseOrder,
    EbookEnrollment,
    EbookOrder,
    GuidanceEnrollment,
    GuidanceOrder,
    MentorshipEnrollment,
    MentorshipOrder,
    OfflineBatchEnrollment,
    OfflineBatchOrder,
    WebinarEnrollment,
    WebinarOrder,
)
from orders.models.purchases import MODE_BUNDLE
from orders.services.allocation import distribute_amount
from orders.services.exceptions import CheckoutValidationError, ConflictError

logger = logging.getLogger(__name__)


def _as_uuid(value):
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        return None


class ProductHandler:
    kind: str = ""
    catalog_model = None
    order_model = None
    enrollment_model = None
    item_field = ""

    # ---------------- catalog side ----------------

    def available(self, qs):
        return qs.filter(is_published=True)

    def load(self, reference_id, *, include_reserved=False):
        pk = _as_uuid(reference_id)
        if pk is None:
            return None
        return self.available(self.catalog_model.objects.filter(pk=pk)).first()

    def is_free(self, item) -> bool:
        return bool(item.is_free)

    def pricing_source(self, item):
        return item

    def title(self, item) -> str:
        return self.pricing_source(item).title

    def price(self, item, *, now=None):
        src = self.pricing_source(item)
        return get_item_pricing(
            self.kind,
            src.id,
            src.price,
            src.sale_price,
            is_free=self.is_free(item),
            now=now,
        )

    def reserve(self, item):
        """Claim contended state before any row is written. No-op by default."""

    # ---------------- orders side ----------------

    def item_fields(self, item) -> dict:
        return {self.item_field: item}

    def item_from_row(self, row):
        return getattr(row, self.item_field)

    def create_order_row(self, *, order, item, user, amount, payment_status, payment_mode):
        return self.order_model.objects.create(
            order=order,
            user=user,
            amount_paid=amount,
            payment_status=payment_status,
            payment_mode=payment_mode,
            **self.item_fields(item),
        )

    def enrollment_lookup(self, item) -> dict:
        return {self.item_field: item}

    def enrollment_defaults(self, item) -> dict:
        return {}

    def create_enrollment_row(self, *, order, item, user, payment_mode):
        enrollment, _ = self.enrollment_model.objects.update_or_create(
            user=user,
            **self.enrollment_lookup(item),
            defaults={"order": order, "payment_mode": payment_mode, **self.enrollment_defaults(item)},
        )
        return enrollment

    def is_enrolled(self, user, item) -> bool:
        return self.enrollment_model.objects.filter(user=user, **self.enrollment_lookup(item)).exists()

    def after_purchase(self, *, order, item, user, amount, payment_mode):
        """Side effects beyond the enrollment. No-op by default."""

    def grant(self, *, order, item, user, amount, payment_mode):
        enrollment = self.create_enrollment_row(order=order, item=item, user=user, payment_mode=payment_mode)
        self.after_purchase(order=order, item=item, user=user, amount=amount, payment_mode=payment_mode)
        return enrollment


class EbookHandler(ProductHandler):
    kind = ProductKind.EBOOK
    catalog_model = Ebook
    order_model = EbookOrder
    enrollment_model = EbookEnrollment
    item_field = "ebook"

    def after_purchase(self, *, order, item, user, amount, payment_mode):
        Ebook.objects.filter(pk=item.pk).update(purchase_count=F("purchase_count") + 1)


class WebinarHandler(ProductHandler):
    kind = ProductKind.WEBINAR
    catalog_model = Webinar
    order_model = WebinarOrder
    enrollment_model = WebinarEnrollment
    item_field = "webinar"


class GuidanceSlotHandler(ProductHandler):
    """
    The cart references a slot; price, title and the meet link come from
    the parent Guidance.
    """

    kind = ProductKind.GUIDANCE_SLOT
    catalog_model = GuidanceSlot
    order_model = GuidanceOrder
    enrollment_model = GuidanceEnrollment
    item_field = "slot"

    def load(self, reference_id, *, include_reserved=False):
        pk = _as_uuid(reference_id)
        if pk is None:
            return None
        qs = GuidanceSlot.objects.select_related("guidance").filter(pk=pk, guidance__is_published=True)
        if not include_reserved:
            qs = qs.filter(status=GuidanceSlot.STATUS_AVAILABLE)
        return qs.first()

    def is_free(self, item) -> bool:
        return bool(item.guidance.is_free)

    def pricing_source(self, item):
        return item.guidance

    def reserve(self, item):
        won = GuidanceSlot.objects.compare_and_swap_status(
            item.pk, GuidanceSlot.STATUS_AVAILABLE, GuidanceSlot.STATUS_BOOKED
        )
        if not won:
            logger.warning("Guidance slot race lost", extra={"slot_id": str(item.pk)})
            raise ConflictError("This slot has already been booked", code="SLOT_UNAVAILABLE")
        item.status = GuidanceSlot.STATUS_BOOKED

    def item_fields(self, item) -> dict:
        return {"slot": item, "guidance": item.guidance}

    def enrollment_defaults(self, item) -> dict:
        return {"guidance": item.guidance}


class MentorshipHandler(ProductHandler):
    kind = ProductKind.MENTORSHIP
    catalog_model = MentorshipProgram
    order_model = MentorshipOrder
    enrollment_model = MentorshipEnrollment
    item_field = "mentorship"

    def available(self, qs):
        return qs.filter(status=MentorshipProgram.STATUS_PUBLISHED)


class CourseHandler(ProductHandler):
    kind = ProductKind.COURSE
    catalog_model = Course
    order_model = CourseOrder
    enrollment_model = CourseEnrollment
    item_field = "course"


class OfflineBatchHandler(ProductHandler):
    """
    seats_total == 0 means an unlimited batch. Otherwise a seat is claimed
    with a conditional F() increment; zero rows updated means the batch is full.
    """

    kind = ProductKind.OFFLINE_BATCH
    catalog_model = OfflineBatch
    order_model = OfflineBatchOrder
    enrollment_model = OfflineBatchEnrollment
    item_field = "batch"

    def available(self, qs):
        return qs.filter(status=OfflineBatch.STATUS_OPEN)

    def with_free_seats(self, qs):
        return qs.filter(Q(seats_total=0) | Q(seats_filled__lt=F("seats_total")))

    def load(self, reference_id, *, include_reserved=False):
        pk = _as_uuid(reference_id)
        if pk is None:
            return None
        qs = self.available(OfflineBatch.objects.filter(pk=pk))
        if not include_reserved:
            qs = self.with_free_seats(qs)
        return qs.first()

    def is_free(self, item) -> bool:
        return bool(item.is_free) or item.pricing_type == OfflineBatch.PRICING_FREE

    def reserve(self, item):
        claimed = self.with_free_seats(OfflineBatch.objects.filter(pk=item.pk)).update(
            seats_filled=F("seats_filled") + 1
        )
        if not claimed:
            logger.warning("Offline batch is full", extra={"batch_id": str(item.pk)})
            raise ConflictError("This batch is full", code="BATCH_FULL")


class BundleHandler(ProductHandler):
    """
    A bundle purchase also enrolls the user in every course of the bundle.
    The bundle's paid amount is split across courses by their own prices.
    """

    kind = ProductKind.BUNDLE
    catalog_model = Bundle
    order_model = BundleOrder
    enrollment_model = BundleEnrollment
    item_field = "bundle"

    def is_free(self, item) -> bool:
        return False

    def course_shares(self, item, amount):
        courses = item.ordered_courses()
        weights = [
            calculate_effective_price(c.price, c.sale_price, is_free=c.is_free).effective_price
            for c in courses
        ]
        return list(zip(courses, distribute_amount(amount, weights)))

    def after_purchase(self, *, order, item, user, amount, payment_mode):
        for course, share in self.course_shares(item, amount):
            CourseOrder.objects.create(
                order=order,
                user=user,
                course=course,
                bundle=item,
                amount_paid=share,
                payment_status=order.payment_status,
                payment_mode=MODE_BUNDLE,
            )
            CourseEnrollment.objects.update_or_create(
                user=user,
                course=course,
                defaults={"order": order, "bundle": item, "payment_mode": MODE_BUNDLE},
            )


HANDLERS = {
    str(handler.kind): handler
    for handler in (
        EbookHandler(),
        WebinarHandler(),
        GuidanceSlotHandler(),
        MentorshipHandler(),
        CourseHandler(),
        OfflineBatchHandler(),
        BundleHandler(),
    )
}


def get_handler(kind) -> ProductHandler:
    canonical = parse_kind(kind)
    handler = HANDLERS.get(canonical)
    if handler is None:
        raise CheckoutValidationError(f"Unknown product kind: {kind}", code="UNKNOWN_KIND")
    return handler
