# catalog/admin.py

from django.contrib import admin

from catalog.models import (
    Bundle,
    BundleCourse,
    Course,
    Ebook,
    FlashSale,
    FlashSaleItem,
    Guidance,
    GuidanceSlot,
    MentorshipProgram,
    OfflineBatch,
    Webinar,
)


# ======================================================
# PRICED ITEMS
# ======================================================


class PricedItemAdmin(admin.ModelAdmin):
    list_display = ("title", "price", "sale_price", "is_free", "created_at")
    search_fields = ("title", "slug")
    prepopulated_fields = {"slug": ("title",)}


@admin.register(Ebook)
class EbookAdmin(PricedItemAdmin):
    list_display = PricedItemAdmin.list_display + ("is_published", "purchase_count")
    readonly_fields = ("purchase_count",)
    list_filter = ("is_published", "is_free")


@admin.register(Webinar)
class WebinarAdmin(PricedItemAdmin):
    list_display = PricedItemAdmin.list_display + ("is_published", "starts_at")
    list_filter = ("is_published", "is_free")


@admin.register(MentorshipProgram)
class MentorshipProgramAdmin(PricedItemAdmin):
    list_display = PricedItemAdmin.list_display + ("status",)
    list_filter = ("status", "is_free")


@admin.register(Course)
class CourseAdmin(PricedItemAdmin):
    list_display = PricedItemAdmin.list_display + ("is_published",)
    list_filter = ("is_published", "is_free")


@admin.register(OfflineBatch)
class OfflineBatchAdmin(PricedItemAdmin):
    list_display = PricedItemAdmin.list_display + ("status", "pricing_type", "seats_filled", "seats_total")
    readonly_fields = ("seats_filled",)
    list_filter = ("status", "pricing_type")


# ======================================================
# GUIDANCE + SLOTS
# ======================================================


class GuidanceSlotInline(admin.TabularInline):
    model = GuidanceSlot
    extra = 0
    fields = ("date", "start_time", "end_time", "status")
    readonly_fields = ("status",)


@admin.register(Guidance)
class GuidanceAdmin(PricedItemAdmin):
    list_display = PricedItemAdmin.list_display + ("expert_name", "is_published")
    inlines = [GuidanceSlotInline]


# ======================================================
# BUNDLES
# ======================================================


class BundleCourseInline(admin.TabularInline):
    model = BundleCourse
    extra = 0
    autocomplete_fields = ("course",)


@admin.register(Bundle)
class BundleAdmin(PricedItemAdmin):
    list_display = PricedItemAdmin.list_display + ("is_published",)
    inlines = [BundleCourseInline]


# ======================================================
# FLASH SALES
# ======================================================


class FlashSaleItemInline(admin.TabularInline):
    model = FlashSaleItem
    extra = 1


@admin.register(FlashSale)
class FlashSaleAdmin(admin.ModelAdmin):
    list_display = ("title", "kind", "discount_percent", "is_active", "start_date", "end_date")
    list_filter = ("kind", "is_active")
    search_fields = ("title",)
    inlines = [FlashSaleItemInline]
