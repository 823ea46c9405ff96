# orders/admin.py

from django.contrib import admin

from orders.models import (
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
    Order,
    PaymentAttempt,
    WebinarEnrollment,
    WebinarOrder,
)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number",
        "user",
        "order_type",
        "final_amount",
        "status",
        "payment_status",
        "created_at",
    )
    list_filter = ("order_type", "status", "payment_status")
    search_fields = ("order_number", "gateway_order_id", "gateway_payment_id", "payment_ref")
    readonly_fields = [f.name for f in Order._meta.fields]


@admin.register(PaymentAttempt)
class PaymentAttemptAdmin(admin.ModelAdmin):
    list_display = ("reference", "gateway_payment_id", "user", "provider", "amount", "status", "created_at")
    list_filter = ("provider", "status")
    search_fields = ("reference", "gateway_payment_id")
    readonly_fields = [f.name for f in PaymentAttempt._meta.fields]


for model in (
    EbookOrder,
    WebinarOrder,
    GuidanceOrder,
    MentorshipOrder,
    CourseOrder,
    OfflineBatchOrder,
    BundleOrder,
):
    admin.site.register(model, list_display=("order", "user", "amount_paid", "payment_status", "payment_mode"))

for model in (
    EbookEnrollment,
    WebinarEnrollment,
    GuidanceEnrollment,
    MentorshipEnrollment,
    CourseEnrollment,
    OfflineBatchEnrollment,
    BundleEnrollment,
):
    admin.site.register(model, list_display=("user", "order", "payment_mode", "enrolled_at"))
