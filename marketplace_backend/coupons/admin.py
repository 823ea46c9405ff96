# coupons/admin.py

from django.contrib import admin

from coupons.models import Coupon


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "discount_type",
        "discount_value",
        "applicable_to",
        "used_count",
        "usage_limit",
        "is_active",
        "valid_until",
    )
    readonly_fields = ("used_count", "created_at", "updated_at")
    search_fields = ("code", "title")
    list_filter = ("is_active", "discount_type", "applicable_to")
