# orders/views/__init__.py

from .checkout import CompletePaymentView, InitPaymentView, VerifyPaymentView
from .guidance import GuidanceBookingView
from .orders import OrderDetailView, OrderListCreateView

__all__ = [
    "InitPaymentView",
    "CompletePaymentView",
    "VerifyPaymentView",
    "OrderListCreateView",
    "OrderDetailView",
    "GuidanceBookingView",
]
