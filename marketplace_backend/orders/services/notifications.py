# orders/services/notifications.py

"""
ORDER CONFIRMATION EMAILS

- one customer email + one admin email per order
- always called after commit
- every send is isolated: failures are logged, never raised
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def _fail_silently() -> bool:
    return getattr(settings, "EMAIL_FAIL_SILENTLY", True)


def _from_email() -> str | None:
    return getattr(settings, "DEFAULT_FROM_EMAIL", None) or getattr(settings, "EMAIL_HOST_USER", None)


def admin_recipients() -> list[str]:
    raw = getattr(settings, "ADMIN_EMAILS", "") or ""
    if isinstance(raw, (list, tuple)):
        raw = ",".join(raw)

    seen = set()
    out: list[str] = []
    for email in (e.strip() for e in raw.split(",")):
        if email and email.lower() not in seen:
            seen.add(email.lower())
            out.append(email)
    return out


def _order_context(*, user, order) -> dict:
    return {
        "order_number": order.order_number,
        "order_type": order.get_order_type_display(),
        "reference_id": order.reference_id,
        "total_amount": order.total_amount,
        "discount_amount": order.discount_amount,
        "final_amount": order.final_amount,
        "payment_status": order.payment_status,
        "coupon_code": order.coupon_code,
        "customer_name": user.get_full_name() or user.get_username(),
        "customer_email": user.email,
        "client_url": getattr(settings, "CLIENT_URL", ""),
    }


def _send(subject: str, template: str, context: dict, recipients: list[str]) -> None:
    body = render_to_string(template, context)
    msg = EmailMultiAlternatives(subject, body, _from_email(), recipients)
    msg.send(fail_silently=_fail_silently())


def send_order_confirmation(*, user, orders) -> None:
    for order in orders:
        try:
            context = _order_context(user=user, order=order)
        except Exception:
            logger.exception("Could not build email context for order=%s", getattr(order, "pk", None))
            continue

        if user.email:
            try:
                _send(
                    f"Order confirmed: {order.order_number}",
                    "emails/order_confirmation.txt",
                    context,
                    [user.email],
                )
            except Exception:
                logger.exception("Failed to send order confirmation to %s", user.email)

        admins = admin_recipients()
        if admins:
            try:
                _send(
                    f"New {context['order_type']} order: {order.order_number} ({order.final_amount})",
                    "emails/admin_order_notification.txt",
                    context,
                    admins,
                )
            except Exception:
                logger.exception("Failed to send admin notification for %s", order.order_number)
