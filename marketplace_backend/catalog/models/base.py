# catalog/models/base.py

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class PricedItem(models.Model):
    """
    Shared shape of every sellable catalog item.

    PRICING FIELDS:
    - price: catalog (list) price
    - sale_price: optional regular markdown; only honoured when lower than price
    - is_free: free items always resolve to 0.00 (flash sales ignored)

    Effective price is NEVER stored here; it is resolved at checkout time
    by catalog.services.pricing.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    sale_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    is_free = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self):
        return self.title
