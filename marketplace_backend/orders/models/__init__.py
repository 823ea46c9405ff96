# orders/models/__init__.py

"""
ORDERS MODELS PACKAGE EXPORTS

Purpose:
- Central export surface for orders, settlements and per-kind
  order/enrollment rows.
"""

from .order import ConfirmedLink, Order, PendingLink, generate_order_number
from .payment_attempt import PaymentAttempt
from .purchases import (
    BundleEnrollment,
    BundleOrder,
    CourseEnrollment,
    CourseOrder,
    EbookEnrollment,
    EbookOrder,
    GuidanceEnrollment,
    GuidanceOrder,
    MentorshipEnrollment,
    MentorshipOrder,
    OfflineBatchEnrollment,
    OfflineBatchOrder,
    WebinarEnrollment,
    WebinarOrder,
)

__all__ = [
    "Order",
    "PendingLink",
    "ConfirmedLink",
    "generate_order_number",
    "PaymentAttempt",
    "EbookOrder",
    "EbookEnrollment",
    "WebinarOrder",
    "WebinarEnrollment",
    "GuidanceOrder",
    "GuidanceEnrollment",
    "MentorshipOrder",
    "MentorshipEnrollment",
    "CourseOrder",
    "CourseEnrollment",
    "OfflineBatchOrder",
    "OfflineBatchEnrollment",
    "BundleOrder",
    "BundleEnrollment",
]
