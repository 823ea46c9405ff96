"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory SQLite
- locmem email backend (assert on mail.outbox)
- Fixed Razorpay test credentials (signatures are computed in tests)
- Throttling off so API tests can hammer endpoints
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import REST_FRAMEWORK

DEBUG = False

SECRET_KEY = "test-secret-key"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

ALLOWED_HOSTS = ["testserver"]

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
ADMIN_EMAILS = "ops@example.com"

PAYMENTS = {
    "RAZORPAY": {
        "KEY_ID": "rzp_test_key",
        "KEY_SECRET": "rzp_test_secret",
        "BASE_URL": "https://api.razorpay.test/v1",
        "CURRENCY": "INR",
    }
}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

SIMPLE_JWT = {"SIGNING_KEY": SECRET_KEY}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
