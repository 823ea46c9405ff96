# orders/services/direct_order.py

"""
DIRECT SINGLE-ITEM ORDER

Used by "Buy now" buttons on item pages.

Flow:
1) create_direct_order
   - price one item (flash sale + coupon)
   - free  -> completed immediately (same fan-out as the cart checkout)
   - paid  -> gateway order opened, PENDING Order + PENDING child row saved
2) verify_direct_payment
   - signature check
   - PENDING -> COMPLETED in place (no duplicate order), enrollment granted

A PENDING order never books a guidance slot; the slot is claimed at
confirmation time with the same compare-and-swap as the cart checkout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction

from orders.models import Order
from orders.models.purchases import MODE_RAZORPAY, PAYMENT_PENDING
from orders.services.cart_pricer import CartLine, CheckoutQuote, price_cart
from orders.services.checkout_orchestrator import (
    LINE_REJECTED,
    complete_payment,
    confirm_pending_orders,
    generate_payment_ref,
)
from orders.services.exceptions import (
    CheckoutValidationError,
    ConflictError,
    NotFoundError,
    PaymentVerificationError,
    PersistenceError,
)
from orders.services.product_kinds import get_handler
from payments.services.razorpay import GatewayOrder, open_gateway_order, verify_signature

logger = logging.getLogger(__name__)


@dataclass
class DirectOrderResult:
    order: Order
    quote: CheckoutQuote
    gateway_order: GatewayOrder | None = None

    @property
    def is_free(self) -> bool:
        return self.gateway_order is None


def _raise_for_failed_line(result) -> None:
    failure = next(iter(result.failures), None)
    if failure is None:
        raise PersistenceError()
    if failure.status == LINE_REJECTED:
        raise ConflictError(failure.detail, code=failure.code)
    raise PersistenceError(failure.detail)


def create_direct_order(*, user, line: CartLine, coupon_code=None) -> DirectOrderResult:
    handler = get_handler(line.kind)
    line = CartLine(kind=str(handler.kind), reference_id=str(line.reference_id).strip())

    item = handler.load(line.reference_id)
    if item is None:
        raise NotFoundError(f"{handler.kind.label} not found or no longer available")

    if handler.is_enrolled(user, item):
        raise ConflictError("You already have access to this item", code="ALREADY_ENROLLED")

    quote = price_cart([line], coupon_code)

    if quote.is_free:
        result = complete_payment(
            user=user,
            lines=[line],
            coupon_code=coupon_code,
            payment_ref=generate_payment_ref(),
        )
        if not result.orders:
            _raise_for_failed_line(result)
        return DirectOrderResult(order=result.orders[0], quote=quote)

    priced = quote.lines[0]
    payment_ref = generate_payment_ref()
    gateway_order = open_gateway_order(
        priced.final_amount,
        reference=payment_ref,
        notes={"payment_ref": payment_ref, "user_id": user.pk, "kind": priced.kind},
    )

    with transaction.atomic():
        order = Order.objects.create(
            user=user,
            order_type=priced.kind,
            reference_id=priced.reference_id,
            total_amount=priced.effective_price,
            discount_amount=priced.discount_amount,
            final_amount=priced.final_amount,
            status=Order.STATUS_PENDING,
            payment_status=Order.PAYMENT_PENDING,
            gateway_order_id=gateway_order.id,
            coupon_code=quote.coupon_code or "",
            payment_ref=payment_ref,
        )
        handler.create_order_row(
            order=order,
            item=priced.item,
            user=user,
            amount=priced.final_amount,
            payment_status=PAYMENT_PENDING,
            payment_mode=MODE_RAZORPAY,
        )

    logger.info(
        "Direct order opened",
        extra={"user_id": user.pk, "order_id": str(order.pk), "gateway_order_id": gateway_order.id},
    )

    return DirectOrderResult(order=order, quote=quote, gateway_order=gateway_order)


def verify_direct_payment(*, user, gateway_order_id, payment_id, signature) -> Order:
    gateway_order_id = str(gateway_order_id or "").strip()
    payment_id = str(payment_id or "").strip()
    signature = str(signature or "").strip()

    if not (gateway_order_id and payment_id and signature):
        raise CheckoutValidationError("gatewayOrderId, paymentId and signature are required")

    done = (
        Order.objects.filter(
            gateway_order_id=gateway_order_id,
            gateway_payment_id=payment_id,
            user=user,
            status=Order.STATUS_COMPLETED,
        )
        .order_by("created_at")
        .first()
    )
    if done is not None:
        return done

    if not verify_signature(gateway_order_id, payment_id, signature):
        logger.warning(
            "Payment signature rejected",
            extra={"user_id": user.pk, "gateway_order_id": gateway_order_id, "payment_id": payment_id},
        )
        raise PaymentVerificationError("Invalid payment signature")

    result = confirm_pending_orders(
        user=user,
        gateway_order_id=gateway_order_id,
        payment_id=payment_id,
        signature=signature,
    )
    if not result.orders:
        _raise_for_failed_line(result)
    return result.orders[0]
