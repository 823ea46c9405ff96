# coupons/models.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from catalog.models import ProductKind, parse_kind

APPLICABLE_ALL = "ALL"

APPLICABLE_TO_CHOICES = [(APPLICABLE_ALL, "All products")] + list(ProductKind.choices)


class CouponQuerySet(models.QuerySet):
    def by_code(self, code):
        return self.filter(code__iexact=str(code or "").strip())

    def consume(self, coupon_id) -> bool:
        """
        Count one use of a coupon.

        Single conditional UPDATE:
            used_count = used_count + 1
            WHERE id = ? AND (usage_limit IS NULL OR used_count < usage_limit)

        Returns False when the limit was already reached.
        """
        updated = (
            self.filter(id=coupon_id)
            .filter(Q(usage_limit__isnull=True) | Q(used_count__lt=F("usage_limit")))
            .update(used_count=F("used_count") + 1)
        )
        return updated == 1


class Coupon(models.Model):
    """
    Discount code.

    Rules:
    - code is unique and stored upper-case (matched case-insensitively)
    - applicable_to is ALL or exactly one product kind
    - used_count only moves through Coupon.objects.consume()
    """

    TYPE_PERCENTAGE = "PERCENTAGE"
    TYPE_FIXED = "FIXED"

    TYPE_CHOICES = [
        (TYPE_PERCENTAGE, "Percentage"),
        (TYPE_FIXED, "Fixed amount"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=64, unique=True)
    title = models.CharField(max_length=255, blank=True, default="")
    description = models.TextField(blank=True, default="")

    discount_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_PERCENTAGE)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    max_discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    min_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    applicable_to = models.CharField(max_length=32, choices=APPLICABLE_TO_CHOICES, default=APPLICABLE_ALL)

    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()

    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CouponQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["is_active", "valid_from", "valid_until"], name="coupon_validity_idx"),
        ]

    def clean(self):
        errors = {}

        value = self.discount_value
        if value is not None and value <= Decimal("0"):
            errors["discount_value"] = "Discount value must be greater than zero."
        elif value is not None and self.discount_type == self.TYPE_PERCENTAGE and value > Decimal("100"):
            errors["discount_value"] = "Percentage discount cannot exceed 100."

        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            errors["valid_until"] = "valid_until must be after valid_from."

        applicable = str(self.applicable_to or "").strip().upper()
        if applicable != APPLICABLE_ALL and parse_kind(applicable) is None:
            errors["applicable_to"] = f"Unknown product kind: {self.applicable_to}"

        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.code = str(self.code or "").strip().upper()

        applicable = str(self.applicable_to or APPLICABLE_ALL).strip().upper()
        self.applicable_to = applicable if applicable == APPLICABLE_ALL else (parse_kind(applicable) or applicable)

        super().save(*args, **kwargs)

    @property
    def remaining_uses(self):
        if self.usage_limit is None:
            return None
        return max(self.usage_limit - self.used_count, 0)

    def __str__(self):
        return f"{self.code} ({self.discount_type} {self.discount_value})"
