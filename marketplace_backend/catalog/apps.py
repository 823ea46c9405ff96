# catalog/apps.py

"""
CATALOG APP CONFIG

Purchasable items (ebooks, webinars, guidance slots, mentorships,
courses, offline batches, bundles) and flash sales.
"""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "catalog"
    verbose_name = "Catalog"
