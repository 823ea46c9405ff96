# catalog/models/__init__.py

"""
CATALOG MODELS PACKAGE EXPORTS

Purpose:
- Central export surface for every purchasable item + flash sales.
"""

from .bundle import Bundle, BundleCourse
from .flash_sale import FlashSale, FlashSaleItem
from .guidance import Guidance, GuidanceSlot
from .kinds import ProductKind, parse_kind
from .products import Course, Ebook, MentorshipProgram, OfflineBatch, Webinar

__all__ = [
    "ProductKind",
    "parse_kind",
    "Ebook",
    "Webinar",
    "Guidance",
    "GuidanceSlot",
    "MentorshipProgram",
    "Course",
    "OfflineBatch",
    "Bundle",
    "BundleCourse",
    "FlashSale",
    "FlashSaleItem",
]
