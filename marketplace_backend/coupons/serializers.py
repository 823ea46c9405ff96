# coupons/serializers.py

from rest_framework import serializers

from coupons.models import Coupon


class CouponValidateInputSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64, trim_whitespace=True)
    cartTotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    applicableTo = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CouponPublicSerializer(serializers.ModelSerializer):
    """
    What the storefront may see about a coupon.
    Usage counters stay private.
    """

    discountType = serializers.CharField(source="discount_type", read_only=True)
    discountValue = serializers.DecimalField(source="discount_value", max_digits=12, decimal_places=2, read_only=True)
    maxDiscount = serializers.DecimalField(
        source="max_discount", max_digits=12, decimal_places=2, read_only=True, allow_null=True
    )
    minAmount = serializers.DecimalField(
        source="min_amount", max_digits=12, decimal_places=2, read_only=True, allow_null=True
    )
    applicableTo = serializers.CharField(source="applicable_to", read_only=True)
    validUntil = serializers.DateTimeField(source="valid_until", read_only=True)

    class Meta:
        model = Coupon
        fields = [
            "id",
            "code",
            "title",
            "description",
            "discountType",
            "discountValue",
            "maxDiscount",
            "minAmount",
            "applicableTo",
            "validUntil",
        ]
        read_only_fields = fields
