# orders/filters.py

import django_filters

from catalog.models import ProductKind
from orders.models import Order


class OrderHistoryFilter(django_filters.FilterSet):
    order_type = django_filters.ChoiceFilter(choices=ProductKind.choices)
    status = django_filters.ChoiceFilter(choices=Order.STATUS_CHOICES)
    payment_status = django_filters.ChoiceFilter(choices=Order.PAYMENT_STATUS_CHOICES)
    created_after = django_filters.DateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = django_filters.DateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = ["order_type", "status", "payment_status"]
