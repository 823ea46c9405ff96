# payments/services/razorpay.py

"""
RAZORPAY GATEWAY ADAPTER

Operations:
- open_gateway_order: reserve a remote order for an amount (no local writes)
- verify_signature: HMAC-SHA256(key_secret, "{order_id}|{payment_id}")
- fetch_gateway_order: read an order back (charged amount + paid status)
- fetch_payment: read a payment back (support tooling)

Amounts:
- callers pass major units (Decimal rupees)
- the wire carries integer minor units (paise)
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import os
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from django.conf import settings

from orders.services.exceptions import GatewayError, InvalidAmountError

logger = logging.getLogger(__name__)

RAZORPAY_BASE = "https://api.razorpay.com/v1"
DEFAULT_CURRENCY = "INR"

# Razorpay rejects receipts longer than 40 chars.
RECEIPT_MAX_LEN = 40


@dataclass(frozen=True)
class GatewayOrder:
    id: str
    amount: int
    currency: str
    key_id: str
    receipt: str = ""

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": self.amount,
            "currency": self.currency,
            "keyId": self.key_id,
        }


def _razorpay_cfg() -> dict:
    """
    Priority:
    1) settings.PAYMENTS["RAZORPAY"]
    2) direct env vars (RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET / RAZORPAY_BASE_URL)
    """
    payments = getattr(settings, "PAYMENTS", {}) or {}
    cfg = (payments.get("RAZORPAY") or {}) if isinstance(payments, dict) else {}
    return cfg if isinstance(cfg, dict) else {}


def _cfg_value(key: str, env_key: str, default: str = "") -> str:
    value = (_razorpay_cfg().get(key) or "").strip()
    if not value:
        value = (os.environ.get(env_key) or "").strip()
    return value or default


def _get_credentials() -> tuple[str, str]:
    key_id = _cfg_value("KEY_ID", "RAZORPAY_KEY_ID")
    key_secret = _cfg_value("KEY_SECRET", "RAZORPAY_KEY_SECRET")
    if not key_id or not key_secret:
        raise GatewayError(
            "Razorpay is not configured. "
            "Expected settings.PAYMENTS['RAZORPAY'] KEY_ID/KEY_SECRET or env RAZORPAY_KEY_ID/RAZORPAY_KEY_SECRET."
        )
    return key_id, key_secret


def _base_url() -> str:
    return _cfg_value("BASE_URL", "RAZORPAY_BASE_URL", RAZORPAY_BASE).rstrip("/")


def default_currency() -> str:
    return _cfg_value("CURRENCY", "PAYMENT_CURRENCY", DEFAULT_CURRENCY).upper()


def to_minor_units(amount) -> int:
    """
    Major units -> integer minor units.

    Raises InvalidAmountError unless the result is a positive integer.
    """
    if isinstance(amount, bool):
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    try:
        major = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidAmountError(f"Invalid amount: {amount!r}") from exc

    if not major.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount!r}")

    minor = (major * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if minor <= 0:
        raise InvalidAmountError(f"Amount must be positive, got {amount!r}")
    return int(minor)


def _safe_preview(text: str, limit: int = 800) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _error_message(payload: dict, fallback: str) -> str:
    err = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(err, dict):
        return str(err.get("description") or err.get("code") or fallback)
    return fallback


def _request_json(method: str, path: str, *, body: dict | None = None, timeout: int = 25) -> dict[str, Any]:
    key_id, key_secret = _get_credentials()
    token = base64.b64encode(f"{key_id}:{key_secret}".encode("utf-8")).decode("ascii")

    data = None
    if body is not None:
        data = json.dumps(body, ensure_ascii=False).encode("utf-8")

    req = Request(
        f"{_base_url()}{path}",
        data=data,
        headers={
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        },
        method=method,
    )

    try:
        with urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
    except HTTPError as e:
        raw = ""
        try:
            raw = e.read().decode("utf-8", errors="replace")
        except OSError:
            raw = ""
        try:
            payload = json.loads(raw) if raw else {}
        except ValueError:
            payload = {}
        msg = _error_message(payload, _safe_preview(raw) or "Razorpay rejected request")
        raise GatewayError(f"Razorpay HTTPError: {e.code} {msg}") from e
    except URLError as e:
        raise GatewayError(f"Razorpay URLError: {e}") from e
    except OSError as e:
        raise GatewayError(f"Razorpay request failed: {e}") from e

    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise GatewayError(f"Razorpay returned non-JSON: {_safe_preview(raw)}") from e

    if not isinstance(parsed, dict):
        raise GatewayError(f"Razorpay returned unexpected payload: {_safe_preview(raw)}")
    return parsed


def open_gateway_order(amount, currency: str | None = None, reference: str | None = None, notes: dict | None = None) -> GatewayOrder:
    minor = to_minor_units(amount)
    currency = (currency or default_currency()).strip().upper()
    receipt = str(reference or "").strip()[:RECEIPT_MAX_LEN]

    payload: dict = {"amount": minor, "currency": currency}
    if receipt:
        payload["receipt"] = receipt
    if notes:
        payload["notes"] = {str(k): str(v) for k, v in notes.items()}

    parsed = _request_json("POST", "/orders", body=payload)

    order_id = str(parsed.get("id") or "").strip()
    if not order_id:
        raise GatewayError(_error_message(parsed, "Razorpay did not return an order id"))

    key_id, _ = _get_credentials()

    logger.info(
        "Razorpay order opened",
        extra={"gateway_order_id": order_id, "amount_minor": minor, "currency": currency, "receipt": receipt},
    )

    return GatewayOrder(
        id=order_id,
        amount=int(parsed.get("amount") or minor),
        currency=str(parsed.get("currency") or currency),
        key_id=key_id,
        receipt=receipt,
    )


def expected_signature(gateway_order_id: str, payment_id: str) -> str:
    _, key_secret = _get_credentials()
    message = f"{gateway_order_id}|{payment_id}".encode("utf-8")
    return hmac.new(key_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(gateway_order_id, payment_id, signature) -> bool:
    gateway_order_id = str(gateway_order_id or "").strip()
    payment_id = str(payment_id or "").strip()
    signature = str(signature or "").strip()
    if not gateway_order_id or not payment_id or not signature:
        return False

    computed = expected_signature(gateway_order_id, payment_id)
    return hmac.compare_digest(computed, signature)


def fetch_payment(payment_id) -> dict:
    pid = str(payment_id or "").strip()
    if not pid:
        raise GatewayError("payment_id is required")
    return _request_json("GET", f"/payments/{pid}")


def fetch_gateway_order(gateway_order_id) -> dict:
    """
    Read an order back: {id, amount, amount_paid, currency, status, ...}.

    status is "created" -> "attempted" -> "paid"; amounts are minor units.
    """
    oid = str(gateway_order_id or "").strip()
    if not oid:
        raise GatewayError("gateway_order_id is required")
    return _request_json("GET", f"/orders/{oid}")
