from .razorpay import GatewayOrder, fetch_payment, open_gateway_order, to_minor_units, verify_signature

__all__ = [
    "GatewayOrder",
    "fetch_payment",
    "open_gateway_order",
    "to_minor_units",
    "verify_signature",
]
