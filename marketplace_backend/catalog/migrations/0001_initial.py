"""
MIGRATION: CATALOG INITIAL SCHEMA

Creates every purchasable item table, guidance slots, bundle
membership and flash sales.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


def _priced_item_fields():
    return [
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4,
                editable=False,
                primary_key=True,
                serialize=False,
            ),
        ),
        ("title", models.CharField(max_length=255)),
        ("slug", models.SlugField(max_length=255, unique=True)),
        (
            "price",
            models.DecimalField(
                decimal_places=2,
                default=Decimal("0.00"),
                max_digits=12,
                validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
            ),
        ),
        (
            "sale_price",
            models.DecimalField(
                blank=True,
                decimal_places=2,
                max_digits=12,
                null=True,
                validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
            ),
        ),
        ("is_free", models.BooleanField(default=False)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Ebook",
            fields=_priced_item_fields()
            + [
                ("is_published", models.BooleanField(default=False)),
                ("purchase_count", models.PositiveIntegerField(default=0)),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [models.Index(fields=["is_published"], name="ebook_published_idx")],
            },
        ),
        migrations.CreateModel(
            name="Webinar",
            fields=_priced_item_fields()
            + [
                ("is_published", models.BooleanField(default=False)),
                ("starts_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [models.Index(fields=["is_published"], name="webinar_published_idx")],
            },
        ),
        migrations.CreateModel(
            name="MentorshipProgram",
            fields=_priced_item_fields()
            + [
                (
                    "status",
                    models.CharField(
                        choices=[("DRAFT", "Draft"), ("PUBLISHED", "Published")],
                        default="DRAFT",
                        max_length=16,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [models.Index(fields=["status"], name="mentorship_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Course",
            fields=_priced_item_fields()
            + [
                ("is_published", models.BooleanField(default=False)),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [models.Index(fields=["is_published"], name="course_published_idx")],
            },
        ),
        migrations.CreateModel(
            name="OfflineBatch",
            fields=_priced_item_fields()
            + [
                (
                    "status",
                    models.CharField(
                        choices=[("OPEN", "Open"), ("CLOSED", "Closed")],
                        default="OPEN",
                        max_length=16,
                    ),
                ),
                (
                    "pricing_type",
                    models.CharField(
                        choices=[("PAID", "Paid"), ("FREE", "Free")],
                        default="PAID",
                        max_length=16,
                    ),
                ),
                ("seats_total", models.PositiveIntegerField(default=0)),
                ("seats_filled", models.PositiveIntegerField(default=0)),
            ],
            options={
                "verbose_name_plural": "offline batches",
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [models.Index(fields=["status"], name="offline_batch_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Guidance",
            fields=_priced_item_fields()
            + [
                ("is_published", models.BooleanField(default=False)),
                ("expert_name", models.CharField(blank=True, default="", max_length=120)),
                ("google_meet_link", models.URLField(blank=True, default="")),
            ],
            options={
                "verbose_name_plural": "guidance",
                "ordering": ["-created_at"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="GuidanceSlot",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("date", models.DateField()),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("AVAILABLE", "Available"), ("BOOKED", "Booked")],
                        default="AVAILABLE",
                        max_length=16,
                    ),
                ),
                (
                    "guidance",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="slots",
                        to="catalog.guidance",
                    ),
                ),
            ],
            options={
                "ordering": ["date", "start_time"],
                "indexes": [
                    models.Index(fields=["status"], name="guidance_slot_status_idx"),
                    models.Index(fields=["guidance", "date"], name="guidance_slot_date_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Bundle",
            fields=_priced_item_fields()
            + [
                ("is_published", models.BooleanField(default=False)),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [models.Index(fields=["is_published"], name="bundle_published_idx")],
            },
        ),
        migrations.CreateModel(
            name="BundleCourse",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("position", models.PositiveIntegerField(default=0)),
                (
                    "bundle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bundle_courses",
                        to="catalog.bundle",
                    ),
                ),
                (
                    "course",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bundle_links",
                        to="catalog.course",
                    ),
                ),
            ],
            options={
                "ordering": ["position"],
                "constraints": [
                    models.UniqueConstraint(fields=("bundle", "course"), name="uniq_bundle_course"),
                ],
            },
        ),
        migrations.AddField(
            model_name="bundle",
            name="courses",
            field=models.ManyToManyField(
                related_name="bundles",
                through="catalog.BundleCourse",
                to="catalog.course",
            ),
        ),
        migrations.CreateModel(
            name="FlashSale",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("title", models.CharField(max_length=255)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("EBOOK", "Ebook"),
                            ("WEBINAR", "Webinar"),
                            ("GUIDANCE_SLOT", "1:1 Guidance Slot"),
                            ("MENTORSHIP", "Live Mentorship"),
                            ("COURSE", "Course"),
                            ("OFFLINE_BATCH", "Offline Batch"),
                            ("BUNDLE", "Bundle"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "discount_percent",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0.00")),
                            django.core.validators.MaxValueValidator(Decimal("100.00")),
                        ],
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("start_date", models.DateTimeField()),
                ("end_date", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-start_date"],
                "indexes": [
                    models.Index(fields=["kind", "is_active"], name="flash_sale_kind_active_idx"),
                    models.Index(fields=["start_date", "end_date"], name="flash_sale_window_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="FlashSaleItem",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("reference_id", models.CharField(db_index=True, max_length=64)),
                (
                    "flash_sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="catalog.flashsale",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("flash_sale", "reference_id"), name="uniq_flash_sale_item"),
                ],
            },
        ),
    ]
