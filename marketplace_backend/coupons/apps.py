# coupons/apps.py

"""
COUPONS APP CONFIG

Discount codes:
- evaluation (preview, never mutates)
- consumption (atomic used_count increment at payment completion)
"""

from django.apps import AppConfig


class CouponsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "coupons"
    verbose_name = "Coupons"
