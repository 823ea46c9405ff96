# orders/views/checkout.py

"""
CHECKOUT ENDPOINTS (AUTHENTICATED)

Cart checkout (two phases):
- POST /api/orders/init-payment/      price cart, open gateway order, write nothing
- POST /api/orders/complete-payment/  verify + fan out (idempotent)

Direct single-item order (created through POST /api/orders/):
- POST /api/orders/verify-payment/    confirm the PENDING order

Service errors are returned as {"detail": ..., "code": ...}.
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.serializers import (
    CompletePaymentInputSerializer,
    InitPaymentInputSerializer,
    OrderDetailSerializer,
    OrderSerializer,
    VerifyPaymentInputSerializer,
)
from orders.services.cart_pricer import parse_cart_items
from orders.services.checkout_orchestrator import LINE_REJECTED, complete_payment, init_payment
from orders.services.direct_order import verify_direct_payment
from orders.services.exceptions import CheckoutError


def error_response(exc: CheckoutError) -> Response:
    return Response({"detail": exc.detail, "code": exc.code}, status=exc.status_code)


ERROR_RESPONSES = {
    400: OpenApiResponse(description="Validation error / invalid signature"),
    404: OpenApiResponse(description="Item or order not found"),
    409: OpenApiResponse(description="Slot already booked / already enrolled"),
    429: OpenApiResponse(description="Rate limited"),
    500: OpenApiResponse(description="Payment provider error / order could not be saved"),
}


class CheckoutAPIView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser]
    throttle_scope = "checkout"


class InitPaymentView(CheckoutAPIView):
    """
    Body:
    {
      "items": {"ebookIds": ["..."], "courseIds": ["..."], ...},
      "couponCode": "WELCOME10"
    }
    """

    @extend_schema(
        tags=["Checkout"],
        request=InitPaymentInputSerializer,
        responses={200: OpenApiTypes.OBJECT, **ERROR_RESPONSES},
    )
    def post(self, request, *args, **kwargs):
        s = InitPaymentInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            lines = parse_cart_items(data["items"])
            result = init_payment(user=request.user, lines=lines, coupon_code=data.get("couponCode"))
        except CheckoutError as exc:
            return error_response(exc)

        return Response(result.as_dict(), status=status.HTTP_200_OK)


class CompletePaymentView(CheckoutAPIView):
    """
    Body:
    {
      "items": {...same cart as init-payment...},
      "couponCode": "WELCOME10",
      "gatewayOrderId": "order_...",
      "paymentId": "pay_...",
      "signature": "...",
      "paymentRef": "PAY-..."      # required for free carts
    }

    Replays with the same payment return the stored orders (replayed=true).
    """

    @extend_schema(
        tags=["Checkout"],
        request=CompletePaymentInputSerializer,
        responses={200: OpenApiTypes.OBJECT, **ERROR_RESPONSES},
    )
    def post(self, request, *args, **kwargs):
        s = CompletePaymentInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            lines = parse_cart_items(data["items"])
            result = complete_payment(
                user=request.user,
                lines=lines,
                coupon_code=data.get("couponCode"),
                gateway_order_id=data.get("gatewayOrderId"),
                payment_id=data.get("paymentId"),
                signature=data.get("signature"),
                payment_ref=data.get("paymentRef"),
            )
        except CheckoutError as exc:
            return error_response(exc)

        http_status = status.HTTP_200_OK
        if not result.orders and result.failures:
            if all(f.status == LINE_REJECTED for f in result.failures):
                http_status = status.HTTP_409_CONFLICT
            else:
                http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

        return Response(
            {
                "orders": [{"type": o.order_type, "order": OrderSerializer(o).data} for o in result.orders],
                "lineResults": [r.as_dict() for r in result.line_results],
                "replayed": result.replayed,
            },
            status=http_status,
        )


class VerifyPaymentView(CheckoutAPIView):
    @extend_schema(
        tags=["Checkout"],
        request=VerifyPaymentInputSerializer,
        responses={200: OrderDetailSerializer, **ERROR_RESPONSES},
    )
    def post(self, request, *args, **kwargs):
        s = VerifyPaymentInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            order = verify_direct_payment(
                user=request.user,
                gateway_order_id=data["gatewayOrderId"],
                payment_id=data["paymentId"],
                signature=data["signature"],
            )
        except CheckoutError as exc:
            return error_response(exc)

        return Response(OrderDetailSerializer(order).data, status=status.HTTP_200_OK)
