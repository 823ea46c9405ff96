"""
MIGRATION: ORDERS INITIAL SCHEMA

Creates:
- PaymentAttempt (settlement ledger)
- Order
- per-kind order + enrollment pairs
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

PAYMENT_STATUS_CHOICES = [("PENDING", "Pending"), ("PAID", "Paid"), ("FREE", "Free")]
PAYMENT_MODE_CHOICES = [("RAZORPAY", "Razorpay"), ("FREE", "Free"), ("BUNDLE", "Bundle")]

KIND_CHOICES = [
    ("EBOOK", "Ebook"),
    ("WEBINAR", "Webinar"),
    ("GUIDANCE_SLOT", "1:1 Guidance Slot"),
    ("MENTORSHIP", "Live Mentorship"),
    ("COURSE", "Course"),
    ("OFFLINE_BATCH", "Offline Batch"),
    ("BUNDLE", "Bundle"),
]


def _uuid_pk():
    return (
        "id",
        models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False),
    )


def _child_order_fields(extra):
    return [
        _uuid_pk(),
        ("amount_paid", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
        (
            "payment_status",
            models.CharField(choices=PAYMENT_STATUS_CHOICES, default="PENDING", max_length=16),
        ),
        (
            "payment_mode",
            models.CharField(choices=PAYMENT_MODE_CHOICES, default="RAZORPAY", max_length=16),
        ),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        (
            "order",
            models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="orders.order"),
        ),
        (
            "user",
            models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to=settings.AUTH_USER_MODEL),
        ),
    ] + extra


def _enrollment_fields(extra):
    return [
        _uuid_pk(),
        (
            "payment_mode",
            models.CharField(choices=PAYMENT_MODE_CHOICES, default="RAZORPAY", max_length=16),
        ),
        ("enrolled_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        (
            "order",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                to="orders.order",
            ),
        ),
        (
            "user",
            models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to=settings.AUTH_USER_MODEL),
        ),
    ] + extra


def _fk(to, related_name, on_delete=django.db.models.deletion.PROTECT, **kwargs):
    return models.ForeignKey(on_delete=on_delete, related_name=related_name, to=to, **kwargs)


CASCADE = django.db.models.deletion.CASCADE
SET_NULL = django.db.models.deletion.SET_NULL


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentAttempt",
            fields=[
                _uuid_pk(),
                (
                    "provider",
                    models.CharField(
                        choices=[("razorpay", "Razorpay"), ("free", "Free checkout")],
                        default="razorpay",
                        max_length=32,
                    ),
                ),
                ("reference", models.CharField(max_length=128)),
                ("gateway_payment_id", models.CharField(blank=True, default="", max_length=128)),
                ("amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("coupon_code", models.CharField(blank=True, default="", max_length=64)),
                ("coupon_consumed", models.BooleanField(default=False)),
                (
                    "status",
                    models.CharField(
                        choices=[("COMPLETED", "Completed"), ("PARTIALLY_COMPLETED", "Partially completed")],
                        default="PARTIALLY_COMPLETED",
                        max_length=32,
                    ),
                ),
                ("failed_lines", models.JSONField(blank=True, default=list)),
                ("rejected_lines", models.JSONField(blank=True, default=list)),
                ("provider_payload", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    _fk(settings.AUTH_USER_MODEL, "payment_attempts"),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status"], name="payment_attempt_status_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("reference", "gateway_payment_id", "user"),
                        name="uniq_payment_settlement",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                _uuid_pk(),
                ("order_number", models.CharField(blank=True, max_length=64, unique=True)),
                ("order_type", models.CharField(choices=KIND_CHOICES, max_length=32)),
                (
                    "reference_id",
                    models.CharField(
                        help_text="Catalog id of the purchased item (slot id for guidance).",
                        max_length=64,
                    ),
                ),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("final_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("COMPLETED", "Completed")],
                        default="PENDING",
                        max_length=32,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(choices=PAYMENT_STATUS_CHOICES, default="PENDING", max_length=16),
                ),
                ("gateway_order_id", models.CharField(blank=True, default="", max_length=128)),
                ("gateway_payment_id", models.CharField(blank=True, default="", max_length=128)),
                ("gateway_signature", models.CharField(blank=True, default="", max_length=256)),
                ("coupon_code", models.CharField(blank=True, default="", max_length=64)),
                ("payment_ref", models.CharField(blank=True, default="", max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "payment_attempt",
                    _fk("orders.paymentattempt", "orders", on_delete=SET_NULL, blank=True, null=True),
                ),
                ("user", _fk(settings.AUTH_USER_MODEL, "orders")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "created_at"], name="order_user_created_idx"),
                    models.Index(fields=["gateway_order_id", "user"], name="order_gateway_user_idx"),
                    models.Index(fields=["status"], name="order_status_idx"),
                ],
            },
        ),
        # ---------------- ebook ----------------
        migrations.CreateModel(
            name="EbookOrder",
            fields=_child_order_fields([("ebook", _fk("catalog.ebook", "orders"))]),
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="EbookEnrollment",
            fields=_enrollment_fields([("ebook", _fk("catalog.ebook", "enrollments", on_delete=CASCADE))]),
            options={
                "ordering": ["-enrolled_at"],
                "abstract": False,
                "constraints": [models.UniqueConstraint(fields=("ebook", "user"), name="uniq_ebook_enrollment")],
            },
        ),
        # ---------------- webinar ----------------
        migrations.CreateModel(
            name="WebinarOrder",
            fields=_child_order_fields([("webinar", _fk("catalog.webinar", "orders"))]),
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="WebinarEnrollment",
            fields=_enrollment_fields([("webinar", _fk("catalog.webinar", "enrollments", on_delete=CASCADE))]),
            options={
                "ordering": ["-enrolled_at"],
                "abstract": False,
                "constraints": [
                    models.UniqueConstraint(fields=("webinar", "user"), name="uniq_webinar_enrollment")
                ],
            },
        ),
        # ---------------- guidance ----------------
        migrations.CreateModel(
            name="GuidanceOrder",
            fields=_child_order_fields(
                [
                    ("guidance", _fk("catalog.guidance", "orders")),
                    ("slot", _fk("catalog.guidanceslot", "orders")),
                ]
            ),
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("payment_status", "PAID")),
                        fields=("slot",),
                        name="uniq_paid_guidance_slot",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="GuidanceEnrollment",
            fields=_enrollment_fields(
                [
                    ("guidance", _fk("catalog.guidance", "enrollments", on_delete=CASCADE)),
                    ("slot", _fk("catalog.guidanceslot", "enrollments", on_delete=CASCADE)),
                ]
            ),
            options={
                "ordering": ["-enrolled_at"],
                "abstract": False,
                "constraints": [
                    models.UniqueConstraint(fields=("slot", "user"), name="uniq_guidance_enrollment")
                ],
            },
        ),
        # ---------------- mentorship ----------------
        migrations.CreateModel(
            name="MentorshipOrder",
            fields=_child_order_fields([("mentorship", _fk("catalog.mentorshipprogram", "orders"))]),
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="MentorshipEnrollment",
            fields=_enrollment_fields(
                [("mentorship", _fk("catalog.mentorshipprogram", "enrollments", on_delete=CASCADE))]
            ),
            options={
                "ordering": ["-enrolled_at"],
                "abstract": False,
                "constraints": [
                    models.UniqueConstraint(fields=("mentorship", "user"), name="uniq_mentorship_enrollment")
                ],
            },
        ),
        # ---------------- course ----------------
        migrations.CreateModel(
            name="CourseOrder",
            fields=_child_order_fields(
                [
                    ("course", _fk("catalog.course", "orders")),
                    ("bundle", _fk("catalog.bundle", "course_orders", blank=True, null=True)),
                ]
            ),
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="CourseEnrollment",
            fields=_enrollment_fields(
                [
                    ("course", _fk("catalog.course", "enrollments", on_delete=CASCADE)),
                    ("bundle", _fk("catalog.bundle", "course_enrollments", on_delete=SET_NULL, blank=True, null=True)),
                ]
            ),
            options={
                "ordering": ["-enrolled_at"],
                "abstract": False,
                "constraints": [
                    models.UniqueConstraint(fields=("course", "user"), name="uniq_course_enrollment")
                ],
            },
        ),
        # ---------------- offline batch ----------------
        migrations.CreateModel(
            name="OfflineBatchOrder",
            fields=_child_order_fields([("batch", _fk("catalog.offlinebatch", "orders"))]),
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="OfflineBatchEnrollment",
            fields=_enrollment_fields([("batch", _fk("catalog.offlinebatch", "enrollments", on_delete=CASCADE))]),
            options={
                "ordering": ["-enrolled_at"],
                "abstract": False,
                "constraints": [
                    models.UniqueConstraint(fields=("batch", "user"), name="uniq_offline_batch_enrollment")
                ],
            },
        ),
        # ---------------- bundle ----------------
        migrations.CreateModel(
            name="BundleOrder",
            fields=_child_order_fields([("bundle", _fk("catalog.bundle", "orders"))]),
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="BundleEnrollment",
            fields=_enrollment_fields([("bundle", _fk("catalog.bundle", "enrollments", on_delete=CASCADE))]),
            options={
                "ordering": ["-enrolled_at"],
                "abstract": False,
                "constraints": [
                    models.UniqueConstraint(fields=("bundle", "user"), name="uniq_bundle_enrollment")
                ],
            },
        ),
    ]
