# coupons/views.py

"""
COUPON PREVIEW

POST /api/coupons/validate/

Body:
{
  "code": "WELCOME10",
  "cartTotal": "1000.00",
  "applicableTo": "EBOOK"      # a product kind, or "ALL" for a mixed cart
}

Never increments used_count.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from coupons.serializers import CouponPublicSerializer, CouponValidateInputSerializer
from coupons.services.evaluator import evaluate_coupon


class CouponValidateView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "coupon_validate"

    @extend_schema(request=CouponValidateInputSerializer)
    def post(self, request):
        s = CouponValidateInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        applicable_to = (data.get("applicableTo") or "").strip()
        kinds = {applicable_to} if applicable_to else set()

        result = evaluate_coupon(data["code"], kinds, data["cartTotal"])

        if not result.valid:
            return Response(
                {"detail": result.message, "reason": result.reason},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "coupon": CouponPublicSerializer(result.coupon).data,
                "discountAmount": str(result.discount_amount),
                "finalAmount": str(result.final_amount),
            },
            status=status.HTTP_200_OK,
        )
