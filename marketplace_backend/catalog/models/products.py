# catalog/models/products.py

from django.db import models

from .base import PricedItem


class Ebook(PricedItem):
    is_published = models.BooleanField(default=False)
    purchase_count = models.PositiveIntegerField(default=0)

    class Meta(PricedItem.Meta):
        indexes = [models.Index(fields=["is_published"], name="ebook_published_idx")]


class Webinar(PricedItem):
    is_published = models.BooleanField(default=False)
    starts_at = models.DateTimeField(null=True, blank=True)

    class Meta(PricedItem.Meta):
        indexes = [models.Index(fields=["is_published"], name="webinar_published_idx")]


class MentorshipProgram(PricedItem):
    STATUS_DRAFT = "DRAFT"
    STATUS_PUBLISHED = "PUBLISHED"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PUBLISHED, "Published"),
    ]

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT)

    class Meta(PricedItem.Meta):
        indexes = [models.Index(fields=["status"], name="mentorship_status_idx")]


class Course(PricedItem):
    is_published = models.BooleanField(default=False)

    class Meta(PricedItem.Meta):
        indexes = [models.Index(fields=["is_published"], name="course_published_idx")]


class OfflineBatch(PricedItem):
    """
    Classroom batch with a seat count.

    seats_filled is claimed with a conditional F() update at checkout;
    seats_total == 0 means unlimited.
    """

    STATUS_OPEN = "OPEN"
    STATUS_CLOSED = "CLOSED"

    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_CLOSED, "Closed"),
    ]

    PRICING_PAID = "PAID"
    PRICING_FREE = "FREE"

    PRICING_CHOICES = [
        (PRICING_PAID, "Paid"),
        (PRICING_FREE, "Free"),
    ]

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_OPEN)
    pricing_type = models.CharField(max_length=16, choices=PRICING_CHOICES, default=PRICING_PAID)

    seats_total = models.PositiveIntegerField(default=0)
    seats_filled = models.PositiveIntegerField(default=0)

    class Meta(PricedItem.Meta):
        verbose_name_plural = "offline batches"
        indexes = [models.Index(fields=["status"], name="offline_batch_status_idx")]
