# catalog/models/kinds.py

from django.db import models


class ProductKind(models.TextChoices):
    """
    The seven purchasable product kinds.

    Used as:
    - CartLine.kind
    - Order.order_type
    - FlashSale.kind
    - Coupon.applicable_to (plus "ALL")
    """

    EBOOK = "EBOOK", "Ebook"
    WEBINAR = "WEBINAR", "Webinar"
    GUIDANCE_SLOT = "GUIDANCE_SLOT", "1:1 Guidance Slot"
    MENTORSHIP = "MENTORSHIP", "Live Mentorship"
    COURSE = "COURSE", "Course"
    OFFLINE_BATCH = "OFFLINE_BATCH", "Offline Batch"
    BUNDLE = "BUNDLE", "Bundle"


# Older storefront builds and coupons created there say "GUIDANCE".
KIND_ALIASES = {
    "GUIDANCE": ProductKind.GUIDANCE_SLOT,
}


def parse_kind(value) -> str | None:
    """
    Normalize a client-supplied kind string.

    Returns the canonical ProductKind value, or None if unknown.
    """
    raw = str(value or "").strip().upper()
    if not raw:
        return None
    if raw in KIND_ALIASES:
        return KIND_ALIASES[raw].value
    if raw in ProductKind.values:
        return raw
    return None
