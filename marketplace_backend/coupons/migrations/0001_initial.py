"""
MIGRATION: COUPONS INITIAL SCHEMA
"""

from __future__ import annotations

import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Coupon",
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
                ("code", models.CharField(max_length=64, unique=True)),
                ("title", models.CharField(blank=True, default="", max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "discount_type",
                    models.CharField(
                        choices=[("PERCENTAGE", "Percentage"), ("FIXED", "Fixed amount")],
                        default="PERCENTAGE",
                        max_length=16,
                    ),
                ),
                ("discount_value", models.DecimalField(decimal_places=2, max_digits=12)),
                ("max_discount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("min_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                (
                    "applicable_to",
                    models.CharField(
                        choices=[
                            ("ALL", "All products"),
                            ("EBOOK", "Ebook"),
                            ("WEBINAR", "Webinar"),
                            ("GUIDANCE_SLOT", "1:1 Guidance Slot"),
                            ("MENTORSHIP", "Live Mentorship"),
                            ("COURSE", "Course"),
                            ("OFFLINE_BATCH", "Offline Batch"),
                            ("BUNDLE", "Bundle"),
                        ],
                        default="ALL",
                        max_length=32,
                    ),
                ),
                ("valid_from", models.DateTimeField()),
                ("valid_until", models.DateTimeField()),
                ("usage_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("used_count", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["is_active", "valid_from", "valid_until"], name="coupon_validity_idx"),
                ],
            },
        ),
    ]
