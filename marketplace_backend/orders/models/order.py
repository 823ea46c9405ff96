# orders/models/order.py

import uuid
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from catalog.models import ProductKind

User = settings.AUTH_USER_MODEL

ORDER_NUMBER_PREFIX = {
    ProductKind.EBOOK.value: "EBK",
    ProductKind.WEBINAR.value: "WEB",
    ProductKind.GUIDANCE_SLOT.value: "GDN",
    ProductKind.MENTORSHIP.value: "MEN",
    ProductKind.COURSE.value: "CRS",
    ProductKind.OFFLINE_BATCH.value: "OFF",
    ProductKind.BUNDLE.value: "BND",
}


def generate_order_number(kind: str) -> str:
    prefix = ORDER_NUMBER_PREFIX.get(kind, "ORD")
    return f"{prefix}{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


@dataclass(frozen=True)
class PendingLink:
    """Payment not confirmed yet; child rows point at the local order only."""

    local_order_id: uuid.UUID


@dataclass(frozen=True)
class ConfirmedLink:
    """Payment confirmed by the gateway."""

    gateway_payment_id: str


class Order(models.Model):
    """
    One purchased cart line.

    GUARANTEES:
    - Created only after a payment decision (paid, free) or as PENDING
      by the direct single-item flow
    - Immutable financial record once COMPLETED
    - Child order + enrollment rows hang off it by FK
    """

    STATUS_PENDING = "PENDING"
    STATUS_COMPLETED = "COMPLETED"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
    ]

    PAYMENT_PENDING = "PENDING"
    PAYMENT_PAID = "PAID"
    PAYMENT_FREE = "FREE"

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_FREE, "Free"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_number = models.CharField(max_length=64, unique=True, blank=True)

    user = models.ForeignKey(User, on_delete=models.PROTECT, related_name="orders")

    order_type = models.CharField(max_length=32, choices=ProductKind.choices)
    reference_id = models.CharField(
        max_length=64,
        help_text="Catalog id of the purchased item (slot id for guidance).",
    )

    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    final_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=STATUS_PENDING)
    payment_status = models.CharField(max_length=16, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)

    gateway_order_id = models.CharField(max_length=128, blank=True, default="")
    gateway_payment_id = models.CharField(max_length=128, blank=True, default="")
    gateway_signature = models.CharField(max_length=256, blank=True, default="")

    coupon_code = models.CharField(max_length=64, blank=True, default="")
    payment_ref = models.CharField(max_length=64, blank=True, default="")

    payment_attempt = models.ForeignKey(
        "orders.PaymentAttempt",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "created_at"], name="order_user_created_idx"),
            models.Index(fields=["gateway_order_id", "user"], name="order_gateway_user_idx"),
            models.Index(fields=["status"], name="order_status_idx"),
        ]

    _IMMUTABLE_FIELDS_AFTER_COMPLETION = (
        "user_id",
        "order_type",
        "reference_id",
        "total_amount",
        "discount_amount",
        "final_amount",
        "payment_status",
        "gateway_order_id",
        "gateway_payment_id",
        "gateway_signature",
        "coupon_code",
        "completed_at",
    )

    @property
    def is_completed(self) -> bool:
        return self.status == self.STATUS_COMPLETED

    @property
    def payment_link(self):
        if self.gateway_payment_id:
            return ConfirmedLink(gateway_payment_id=self.gateway_payment_id)
        return PendingLink(local_order_id=self.id)

    def _validate_immutable(self, previous: "Order"):
        if previous.status != self.STATUS_COMPLETED:
            return

        if self.status != previous.status:
            raise ValueError(
                f"Order is immutable once {previous.status}. "
                f"Status change {previous.status} -> {self.status} is not allowed."
            )

        for field in self._IMMUTABLE_FIELDS_AFTER_COMPLETION:
            if getattr(self, field) != getattr(previous, field):
                raise ValueError(
                    f"Order is immutable once {previous.status}. "
                    f"Field '{field}' cannot be changed."
                )

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            previous = Order.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_immutable(previous)

        if not self.order_number:
            self.order_number = generate_order_number(self.order_type)

        if self.status == self.STATUS_COMPLETED and not self.completed_at:
            self.completed_at = timezone.now()

        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.order_number} | {self.order_type} | {self.final_amount}"
