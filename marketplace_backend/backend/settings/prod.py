"""
PATH: backend/settings/prod.py

PRODUCTION SETTINGS

Fail-closed: the process refuses to boot when any of these is missing
- SECRET_KEY (strong, not the dev default)
- ALLOWED_HOSTS
- DATABASE_URL pointing at Postgres
- https storefront origins for CORS / CSRF and CLIENT_URL (links in emails)
- Razorpay key id + secret, https gateway base URL
- a real email backend (console/locmem are dev-only)

Also: WhiteNoise static serving, proxy SSL header, HSTS, hardened cookies.
"""

from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F403
from .base import BASE_DIR, CLIENT_URL, EMAIL_BACKEND, MIDDLEWARE, PAYMENTS, SIMPLE_JWT, env  # explicit for Ruff (F405)

DEBUG = False


def _require(value, message: str):
    if not value:
        raise ImproperlyConfigured(message)
    return value


def _require_https_origins(name: str) -> list[str]:
    origins = _require(env.list(name, default=[]), f"{name} must be set in production.")
    for origin in origins:
        if "localhost" in origin or "127.0.0.1" in origin:
            raise ImproperlyConfigured(f"Remove localhost from {name} in production.")
        if not origin.startswith("https://"):
            raise ImproperlyConfigured(f"{name} must be https:// in production.")
    return origins


# ----------------------------
# Secret key + hosts
# ----------------------------
_secret_key = (env("SECRET_KEY", default="") or "").strip()
if _secret_key == "dev-insecure-change-me":
    _secret_key = ""
SECRET_KEY = _require(_secret_key, "SECRET_KEY must be set to a strong value in production.")
SIMPLE_JWT = {**SIMPLE_JWT, "SIGNING_KEY": SECRET_KEY}

ALLOWED_HOSTS = _require(env.list("ALLOWED_HOSTS", default=[]), "ALLOWED_HOSTS must be set in production.")

# ----------------------------
# Database (Postgres only)
# ----------------------------
_database_url = _require(
    (env("DATABASE_URL", default="") or "").strip(),
    "DATABASE_URL must be set in production (Postgres).",
)
if _database_url.startswith("sqlite"):
    raise ImproperlyConfigured("Refusing to start in production with SQLite DATABASE_URL.")

DATABASES = {"default": env.db("DATABASE_URL")}
DATABASES["default"]["CONN_MAX_AGE"] = env.int("DB_CONN_MAX_AGE", default=60)

# ----------------------------
# Storefront origins
# ----------------------------
CORS_ALLOWED_ORIGINS = _require_https_origins("CORS_ALLOWED_ORIGINS")
CSRF_TRUSTED_ORIGINS = _require_https_origins("CSRF_TRUSTED_ORIGINS")
CORS_ALLOW_CREDENTIALS = False

if not CLIENT_URL.startswith("https://"):
    raise ImproperlyConfigured("CLIENT_URL must be the https:// storefront URL in production.")

# ----------------------------
# Razorpay
# ----------------------------
_razorpay = PAYMENTS["RAZORPAY"]
_require(
    _razorpay["KEY_ID"] and _razorpay["KEY_SECRET"],
    "RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET must be set in production.",
)
if not _razorpay["BASE_URL"].startswith("https://"):
    raise ImproperlyConfigured("RAZORPAY_BASE_URL must be https:// in production.")

# ----------------------------
# Order emails
# ----------------------------
if EMAIL_BACKEND.endswith(("console.EmailBackend", "locmem.EmailBackend")):
    raise ImproperlyConfigured("EMAIL_BACKEND must be a real transport in production (order confirmations).")

EMAIL_HOST = env("EMAIL_HOST", default="")
EMAIL_PORT = env.int("EMAIL_PORT", default=587)
EMAIL_HOST_USER = env("EMAIL_HOST_USER", default="")
EMAIL_HOST_PASSWORD = env("EMAIL_HOST_PASSWORD", default="")
EMAIL_USE_TLS = env.bool("EMAIL_USE_TLS", default=True)

# ----------------------------
# Static files (WhiteNoise)
# ----------------------------
STATIC_ROOT = env("STATIC_ROOT", default=str(BASE_DIR / "staticfiles"))
MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ----------------------------
# Transport security
# ----------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)

SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=3600)
SECURE_HSTS_INCLUDE_SUBDOMAINS = env.bool("SECURE_HSTS_INCLUDE_SUBDOMAINS", default=True)
SECURE_HSTS_PRELOAD = env.bool("SECURE_HSTS_PRELOAD", default=False)

SESSION_COOKIE_SECURE = CSRF_COOKIE_SECURE = True
SESSION_COOKIE_HTTPONLY = CSRF_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = CSRF_COOKIE_SAMESITE = "Lax"

SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = "same-origin"
X_FRAME_OPTIONS = "DENY"
SECURE_CROSS_ORIGIN_OPENER_POLICY = "same-origin"
