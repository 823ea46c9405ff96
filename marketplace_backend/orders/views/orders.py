# orders/views/orders.py

"""
ORDERS (AUTHENTICATED, OWNER-SCOPED)

- GET  /api/orders/          order history (filters: order_type, status, payment_status)
- POST /api/orders/          direct single-item order ("Buy now")
- GET  /api/orders/<uuid>/   one order + its child rows

A user only ever sees their own orders.
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from orders.filters import OrderHistoryFilter
from orders.models import Order
from orders.serializers import DirectOrderInputSerializer, OrderDetailSerializer, OrderSerializer
from orders.services.cart_pricer import CartLine
from orders.services.direct_order import create_direct_order
from orders.services.exceptions import CheckoutError
from orders.views.checkout import ERROR_RESPONSES, error_response


class OrderListCreateView(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    filterset_class = OrderHistoryFilter

    @property
    def throttle_scope(self):
        # listing stays on the default user rate
        if self.request.method == "POST":
            return "checkout"
        return None

    def get_queryset(self):
        return Order.objects.filter(user=self.request.user).order_by("-created_at")

    @extend_schema(
        tags=["Checkout"],
        request=DirectOrderInputSerializer,
        responses={201: OpenApiTypes.OBJECT, **ERROR_RESPONSES},
    )
    def post(self, request, *args, **kwargs):
        """
        Body:
        {"kind": "EBOOK", "referenceId": "...", "couponCode": "WELCOME10"}
        """
        s = DirectOrderInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = create_direct_order(
                user=request.user,
                line=CartLine(kind=data["kind"], reference_id=data["referenceId"]),
                coupon_code=data.get("couponCode"),
            )
        except CheckoutError as exc:
            return error_response(exc)

        payload = {
            "isFree": result.is_free,
            "order": OrderSerializer(result.order).data,
            "couponCode": result.quote.coupon_code,
            "couponError": result.quote.coupon_error,
        }
        if result.gateway_order is not None:
            payload["gatewayOrder"] = result.gateway_order.as_dict()

        return Response(payload, status=status.HTTP_201_CREATED)


class OrderDetailView(generics.RetrieveAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OrderDetailSerializer
    lookup_url_kwarg = "order_id"

    def get_queryset(self):
        return Order.objects.filter(user=self.request.user)
