# orders/apps.py

"""
ORDERS APP CONFIG

Checkout and everything it writes:
- Order (one per purchased line)
- PaymentAttempt (settlement ledger, idempotency key)
- <Kind>Order / <Kind>Enrollment rows
"""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Orders"
