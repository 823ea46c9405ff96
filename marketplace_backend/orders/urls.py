# orders/urls.py

from django.urls import path

from orders.views import (
    CompletePaymentView,
    GuidanceBookingView,
    InitPaymentView,
    OrderDetailView,
    OrderListCreateView,
    VerifyPaymentView,
)

app_name = "orders"

urlpatterns = [
    # explicit routes before <uuid>
    path("init-payment/", InitPaymentView.as_view(), name="init-payment"),
    path("complete-payment/", CompletePaymentView.as_view(), name="complete-payment"),
    path("verify-payment/", VerifyPaymentView.as_view(), name="verify-payment"),
    path("guidance/<uuid:slot_id>/booking/", GuidanceBookingView.as_view(), name="guidance-booking"),
    path("", OrderListCreateView.as_view(), name="order-list"),
    path("<uuid:order_id>/", OrderDetailView.as_view(), name="order-detail"),
]
