# orders/models/purchases.py

"""
PER-KIND ORDER + ENROLLMENT ROWS

Every product kind gets the same pair:
- <Kind>Order: what was paid for this item, linked to the parent Order
- <Kind>Enrollment: the access grant, unique per (item, user)

Enrollments are written with update_or_create, so a replayed or
repeated purchase never produces a second grant.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

User = settings.AUTH_USER_MODEL

PAYMENT_PENDING = "PENDING"
PAYMENT_PAID = "PAID"
PAYMENT_FREE = "FREE"

PAYMENT_STATUS_CHOICES = [
    (PAYMENT_PENDING, "Pending"),
    (PAYMENT_PAID, "Paid"),
    (PAYMENT_FREE, "Free"),
]

MODE_RAZORPAY = "RAZORPAY"
MODE_FREE = "FREE"
MODE_BUNDLE = "BUNDLE"

PAYMENT_MODE_CHOICES = [
    (MODE_RAZORPAY, "Razorpay"),
    (MODE_FREE, "Free"),
    (MODE_BUNDLE, "Bundle"),
]


class ChildOrder(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey("orders.Order", on_delete=models.CASCADE)
    user = models.ForeignKey(User, on_delete=models.CASCADE)

    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    payment_status = models.CharField(max_length=16, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    payment_mode = models.CharField(max_length=16, choices=PAYMENT_MODE_CHOICES, default=MODE_RAZORPAY)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-created_at"]


class Enrollment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(User, on_delete=models.CASCADE)
    order = models.ForeignKey("orders.Order", on_delete=models.SET_NULL, null=True, blank=True)

    payment_mode = models.CharField(max_length=16, choices=PAYMENT_MODE_CHOICES, default=MODE_RAZORPAY)

    enrolled_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-enrolled_at"]


# ======================================================
# EBOOK
# ======================================================


class EbookOrder(ChildOrder):
    ebook = models.ForeignKey("catalog.Ebook", on_delete=models.PROTECT, related_name="orders")


class EbookEnrollment(Enrollment):
    ebook = models.ForeignKey("catalog.Ebook", on_delete=models.CASCADE, related_name="enrollments")

    class Meta(Enrollment.Meta):
        constraints = [models.UniqueConstraint(fields=["ebook", "user"], name="uniq_ebook_enrollment")]


# ======================================================
# WEBINAR
# ======================================================


class WebinarOrder(ChildOrder):
    webinar = models.ForeignKey("catalog.Webinar", on_delete=models.PROTECT, related_name="orders")


class WebinarEnrollment(Enrollment):
    webinar = models.ForeignKey("catalog.Webinar", on_delete=models.CASCADE, related_name="enrollments")

    class Meta(Enrollment.Meta):
        constraints = [models.UniqueConstraint(fields=["webinar", "user"], name="uniq_webinar_enrollment")]


# ======================================================
# 1:1 GUIDANCE (keyed by slot)
# ======================================================


class GuidanceOrder(ChildOrder):
    guidance = models.ForeignKey("catalog.Guidance", on_delete=models.PROTECT, related_name="orders")
    slot = models.ForeignKey("catalog.GuidanceSlot", on_delete=models.PROTECT, related_name="orders")

    class Meta(ChildOrder.Meta):
        constraints = [
            models.UniqueConstraint(
                fields=["slot"],
                condition=Q(payment_status=PAYMENT_PAID),
                name="uniq_paid_guidance_slot",
            ),
        ]


class GuidanceEnrollment(Enrollment):
    guidance = models.ForeignKey("catalog.Guidance", on_delete=models.CASCADE, related_name="enrollments")
    slot = models.ForeignKey("catalog.GuidanceSlot", on_delete=models.CASCADE, related_name="enrollments")

    class Meta(Enrollment.Meta):
        constraints = [models.UniqueConstraint(fields=["slot", "user"], name="uniq_guidance_enrollment")]


# ======================================================
# LIVE MENTORSHIP
# ======================================================


class MentorshipOrder(ChildOrder):
    mentorship = models.ForeignKey("catalog.MentorshipProgram", on_delete=models.PROTECT, related_name="orders")


class MentorshipEnrollment(Enrollment):
    mentorship = models.ForeignKey(
        "catalog.MentorshipProgram", on_delete=models.CASCADE, related_name="enrollments"
    )

    class Meta(Enrollment.Meta):
        constraints = [models.UniqueConstraint(fields=["mentorship", "user"], name="uniq_mentorship_enrollment")]


# ======================================================
# COURSE (direct purchase or via bundle)
# ======================================================


class CourseOrder(ChildOrder):
    course = models.ForeignKey("catalog.Course", on_delete=models.PROTECT, related_name="orders")
    bundle = models.ForeignKey(
        "catalog.Bundle",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="course_orders",
    )


class CourseEnrollment(Enrollment):
    course = models.ForeignKey("catalog.Course", on_delete=models.CASCADE, related_name="enrollments")
    bundle = models.ForeignKey(
        "catalog.Bundle",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="course_enrollments",
    )

    class Meta(Enrollment.Meta):
        constraints = [models.UniqueConstraint(fields=["course", "user"], name="uniq_course_enrollment")]


# ======================================================
# OFFLINE BATCH
# ======================================================


class OfflineBatchOrder(ChildOrder):
    batch = models.ForeignKey("catalog.OfflineBatch", on_delete=models.PROTECT, related_name="orders")


class OfflineBatchEnrollment(Enrollment):
    batch = models.ForeignKey("catalog.OfflineBatch", on_delete=models.CASCADE, related_name="enrollments")

    class Meta(Enrollment.Meta):
        constraints = [models.UniqueConstraint(fields=["batch", "user"], name="uniq_offline_batch_enrollment")]


# ======================================================
# BUNDLE
# ======================================================


class BundleOrder(ChildOrder):
    bundle = models.ForeignKey("catalog.Bundle", on_delete=models.PROTECT, related_name="orders")


class BundleEnrollment(Enrollment):
    bundle = models.ForeignKey("catalog.Bundle", on_delete=models.CASCADE, related_name="enrollments")

    class Meta(Enrollment.Meta):
        constraints = [models.UniqueConstraint(fields=["bundle", "user"], name="uniq_bundle_enrollment")]
