# orders/models/payment_attempt.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models

User = settings.AUTH_USER_MODEL


class PaymentAttempt(models.Model):
    """
    Settlement of one checkout (one gateway payment, or one free checkout).

    Idempotency rule:
    - (reference, gateway_payment_id, user) is unique
    - reference = gateway order id, or the quote's payment_ref for free carts
    - a COMPLETED attempt is returned as-is on replay
    - a PARTIALLY_COMPLETED attempt lists the lines to retry in failed_lines
    """

    PROVIDER_RAZORPAY = "razorpay"
    PROVIDER_FREE = "free"

    PROVIDER_CHOICES = [
        (PROVIDER_RAZORPAY, "Razorpay"),
        (PROVIDER_FREE, "Free checkout"),
    ]

    STATUS_COMPLETED = "COMPLETED"
    STATUS_PARTIALLY_COMPLETED = "PARTIALLY_COMPLETED"

    STATUS_CHOICES = [
        (STATUS_COMPLETED, "Completed"),
        (STATUS_PARTIALLY_COMPLETED, "Partially completed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    provider = models.CharField(max_length=32, choices=PROVIDER_CHOICES, default=PROVIDER_RAZORPAY)

    reference = models.CharField(max_length=128)
    gateway_payment_id = models.CharField(max_length=128, blank=True, default="")

    user = models.ForeignKey(User, on_delete=models.PROTECT, related_name="payment_attempts")

    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    coupon_code = models.CharField(max_length=64, blank=True, default="")
    coupon_consumed = models.BooleanField(default=False)

    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=STATUS_PARTIALLY_COMPLETED)

    failed_lines = models.JSONField(default=list, blank=True)
    rejected_lines = models.JSONField(default=list, blank=True)
    provider_payload = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["reference", "gateway_payment_id", "user"],
                name="uniq_payment_settlement",
            ),
        ]
        indexes = [
            models.Index(fields=["status"], name="payment_attempt_status_idx"),
        ]

    @property
    def is_completed(self) -> bool:
        return self.status == self.STATUS_COMPLETED

    def __str__(self):
        return f"{self.provider}:{self.reference} | {self.status}"
