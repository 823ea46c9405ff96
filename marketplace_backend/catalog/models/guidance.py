# catalog/models/guidance.py

"""
1:1 GUIDANCE (EXPERT SESSIONS)

- Guidance carries the price and the meeting link.
- GuidanceSlot is the purchasable unit (one time window with one expert).

SLOT LOCKING:
- A slot moves AVAILABLE -> BOOKED exactly once.
- The transition is a single conditional UPDATE (compare-and-swap);
  callers must check the boolean result instead of reading status first.
"""

import uuid

from django.db import models

from .base import PricedItem


class Guidance(PricedItem):
    is_published = models.BooleanField(default=False)
    expert_name = models.CharField(max_length=120, blank=True, default="")
    google_meet_link = models.URLField(blank=True, default="")

    class Meta(PricedItem.Meta):
        verbose_name_plural = "guidance"


class GuidanceSlotQuerySet(models.QuerySet):
    def available(self):
        return self.filter(status=GuidanceSlot.STATUS_AVAILABLE)

    def compare_and_swap_status(self, slot_id, expected: str, new: str) -> bool:
        """
        Atomically move a slot from `expected` to `new`.

        Returns True only for the caller whose UPDATE matched the row.
        Concurrent callers racing on the same slot get False.
        """
        updated = self.filter(id=slot_id, status=expected).update(status=new)
        return updated == 1


class GuidanceSlot(models.Model):
    STATUS_AVAILABLE = "AVAILABLE"
    STATUS_BOOKED = "BOOKED"

    STATUS_CHOICES = [
        (STATUS_AVAILABLE, "Available"),
        (STATUS_BOOKED, "Booked"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    guidance = models.ForeignKey(
        Guidance,
        on_delete=models.CASCADE,
        related_name="slots",
    )

    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)

    objects = GuidanceSlotQuerySet.as_manager()

    class Meta:
        ordering = ["date", "start_time"]
        indexes = [
            models.Index(fields=["status"], name="guidance_slot_status_idx"),
            models.Index(fields=["guidance", "date"], name="guidance_slot_date_idx"),
        ]

    @property
    def is_booked(self) -> bool:
        return self.status == self.STATUS_BOOKED

    def __str__(self):
        return f"{self.guidance.title} | {self.date} {self.start_time}-{self.end_time} | {self.status}"
