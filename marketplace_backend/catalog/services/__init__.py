from .pricing import PriceBreakdown, get_active_flash_sale, get_item_pricing, resolve_price

__all__ = [
    "PriceBreakdown",
    "get_active_flash_sale",
    "get_item_pricing",
    "resolve_price",
]
