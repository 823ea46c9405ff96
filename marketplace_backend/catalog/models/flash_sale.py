# catalog/models/flash_sale.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .kinds import ProductKind


class FlashSale(models.Model):
    """
    Time-boxed percentage markdown for a set of catalog items of ONE kind.

    A flash sale applies when:
    - is_active
    - start_date <= now <= end_date
    - the item's id is listed in FlashSaleItem rows
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    title = models.CharField(max_length=255)
    kind = models.CharField(max_length=32, choices=ProductKind.choices)

    discount_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00")), MaxValueValidator(Decimal("100.00"))],
    )

    is_active = models.BooleanField(default=True)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-start_date"]
        indexes = [
            models.Index(fields=["kind", "is_active"], name="flash_sale_kind_active_idx"),
            models.Index(fields=["start_date", "end_date"], name="flash_sale_window_idx"),
        ]

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "end_date must be after start_date."})

    def __str__(self):
        return f"{self.title} ({self.kind}, -{self.discount_percent}%)"


class FlashSaleItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    flash_sale = models.ForeignKey(FlashSale, on_delete=models.CASCADE, related_name="items")
    reference_id = models.CharField(max_length=64, db_index=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["flash_sale", "reference_id"], name="uniq_flash_sale_item"),
        ]

    def __str__(self):
        return f"{self.flash_sale_id}:{self.reference_id}"
