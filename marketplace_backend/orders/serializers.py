# orders/serializers.py

from rest_framework import serializers

from orders.models import (
    BundleOrder,
    CourseOrder,
    EbookOrder,
    GuidanceOrder,
    MentorshipOrder,
    OfflineBatchOrder,
    Order,
    WebinarOrder,
)

CHILD_ORDER_MODELS = (
    EbookOrder,
    WebinarOrder,
    GuidanceOrder,
    MentorshipOrder,
    CourseOrder,
    OfflineBatchOrder,
    BundleOrder,
)


# -----------------------------
# Input serializers
# -----------------------------


def _id_list():
    return serializers.ListField(child=serializers.CharField(allow_blank=True), required=False, default=list)


class CartItemsSerializer(serializers.Serializer):
    ebookIds = _id_list()
    webinarIds = _id_list()
    guidanceSlotIds = _id_list()
    mentorshipIds = _id_list()
    courseIds = _id_list()
    offlineBatchIds = _id_list()
    bundleIds = _id_list()


class InitPaymentInputSerializer(serializers.Serializer):
    items = CartItemsSerializer()
    couponCode = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CompletePaymentInputSerializer(serializers.Serializer):
    items = CartItemsSerializer()
    couponCode = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    gatewayOrderId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    paymentId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    signature = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    paymentRef = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class DirectOrderInputSerializer(serializers.Serializer):
    kind = serializers.CharField()
    referenceId = serializers.CharField()
    couponCode = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class VerifyPaymentInputSerializer(serializers.Serializer):
    gatewayOrderId = serializers.CharField()
    paymentId = serializers.CharField()
    signature = serializers.CharField()


# -----------------------------
# Output serializers
# -----------------------------


class OrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "order_type",
            "reference_id",
            "total_amount",
            "discount_amount",
            "final_amount",
            "status",
            "payment_status",
            "gateway_order_id",
            "gateway_payment_id",
            "coupon_code",
            "payment_ref",
            "created_at",
            "completed_at",
        ]
        read_only_fields = fields


class OrderDetailSerializer(OrderSerializer):
    """Order + its <Kind>Order rows (a bundle also lists its course rows)."""

    items = serializers.SerializerMethodField()

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ["items"]
        read_only_fields = fields

    def get_items(self, obj):
        rows = []
        for model in CHILD_ORDER_MODELS:
            for row in model.objects.filter(order=obj):
                rows.append(
                    {
                        "id": str(row.id),
                        "type": model.__name__,
                        "amount_paid": str(row.amount_paid),
                        "payment_status": row.payment_status,
                        "payment_mode": row.payment_mode,
                    }
                )
        return rows
