# catalog/models/bundle.py

import uuid

from django.db import models

from .base import PricedItem
from .products import Course


class Bundle(PricedItem):
    """
    A priced group of courses.

    Buying a bundle enrolls the user in every course of the bundle;
    the bundle's paid amount is split across its courses by their own
    prices (see orders.services.cart_pricer.distribute_amount).
    """

    is_published = models.BooleanField(default=False)

    courses = models.ManyToManyField(
        Course,
        through="BundleCourse",
        related_name="bundles",
    )

    class Meta(PricedItem.Meta):
        indexes = [models.Index(fields=["is_published"], name="bundle_published_idx")]

    def ordered_courses(self):
        return [bc.course for bc in self.bundle_courses.select_related("course").order_by("position", "id")]


class BundleCourse(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    bundle = models.ForeignKey(Bundle, on_delete=models.CASCADE, related_name="bundle_courses")
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="bundle_links")
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position"]
        constraints = [
            models.UniqueConstraint(fields=["bundle", "course"], name="uniq_bundle_course"),
        ]

    def __str__(self):
        return f"{self.bundle} -> {self.course}"
