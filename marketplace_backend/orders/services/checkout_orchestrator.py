# orders/services/checkout_orchestrator.py

"""
CHECKOUT ORCHESTRATOR (APPLICATION SERVICE)

Two-phase protocol:

Phase 1: init_payment
- Prices the cart server-side (flash sales + coupon).
- Opens a gateway order only when final_amount > 0.
- Writes NOTHING to the database (abandoned checkouts leave no rows).

Phase 2: complete_payment
1. Replay: a COMPLETED settlement for the same key returns the stored orders.
2. Re-price the cart (the client's quote is never trusted).
3. Paid carts: gateway order id, payment id and signature are required, the
   signature is verified, and the gateway order is read back: it must be paid
   and its amount must equal the server-side total. All before any write.
   Free carts: the coupon usage limit binds (no money was captured), and a
   refused coupon consumption rolls the checkout back.
4. PENDING orders from the direct single-item flow are confirmed in place.
5. Otherwise fan out: one Order + child order + enrollment per cart line,
   each line in its own savepoint inside one outer transaction.
6. Coupon used_count is incremented once per settlement, never on replay.
7. Confirmation emails go out after commit and never fail the checkout.

Settlement key:
- paid: (gateway_order_id, payment_id, user)
- free: (payment_ref, "", user)

Partial failure:
- a line whose savepoint fails is recorded in PaymentAttempt.failed_lines
  and the settlement stays PARTIALLY_COMPLETED
- calling complete_payment again with the same key retries only those lines
- a lost slot race (SLOT_UNAVAILABLE) is final and is not retried
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from catalog.services.pricing import ZERO
from coupons.models import Coupon
from coupons.services.evaluator import REASON_USAGE_LIMIT_EXCEEDED
from orders.models import Order, PaymentAttempt
from orders.models.purchases import MODE_FREE, MODE_RAZORPAY
from orders.services.cart_pricer import CheckoutQuote, PricedLine, price_cart
from orders.services.exceptions import (
    CheckoutValidationError,
    ConflictError,
    NotFoundError,
    PaymentVerificationError,
    PersistenceError,
)
from orders.services.notifications import send_order_confirmation
from orders.services.product_kinds import ProductHandler, get_handler
from payments.services.razorpay import (
    GatewayOrder,
    fetch_gateway_order,
    open_gateway_order,
    to_minor_units,
    verify_signature,
)

logger = logging.getLogger(__name__)

LINE_COMPLETED = "COMPLETED"
LINE_REJECTED = "REJECTED"
LINE_FAILED = "FAILED"


@dataclass(frozen=True)
class LineResult:
    kind: str
    reference_id: str
    status: str
    order_id: str | None = None
    code: str | None = None
    detail: str = ""

    def as_dict(self) -> dict:
        return {
            "kind": self.kind,
            "referenceId": self.reference_id,
            "status": self.status,
            "orderId": self.order_id,
            "code": self.code,
            "detail": self.detail,
        }


@dataclass
class InitPaymentResult:
    quote: CheckoutQuote
    payment_ref: str
    gateway_order: GatewayOrder | None = None

    @property
    def is_free(self) -> bool:
        return self.quote.is_free

    def as_dict(self) -> dict:
        data = {
            "isFree": self.quote.is_free,
            "totalAmount": str(self.quote.total_amount),
            "discountAmount": str(self.quote.discount_amount),
            "finalAmount": str(self.quote.final_amount),
            "itemDetails": self.quote.item_details(),
            "couponCode": self.quote.coupon_code,
            "couponError": self.quote.coupon_error,
            "droppedItems": [line.as_dict() for line in self.quote.dropped],
            "paymentRef": self.payment_ref,
        }
        if self.gateway_order is not None:
            data["gatewayOrder"] = self.gateway_order.as_dict()
        return data


@dataclass
class CompletionResult:
    orders: list[Order]
    line_results: list[LineResult] = field(default_factory=list)
    replayed: bool = False
    settlement: PaymentAttempt | None = None

    @property
    def failures(self) -> list[LineResult]:
        return [r for r in self.line_results if r.status != LINE_COMPLETED]


def generate_payment_ref() -> str:
    return f"PAY-{int(timezone.now().timestamp() * 1000)}-{secrets.token_hex(4).upper()}"


def _clean(value) -> str:
    return str(value or "").strip()


# =====================================================
# PHASE 1
# =====================================================


def init_payment(*, user, lines, coupon_code=None) -> InitPaymentResult:
    quote = price_cart(lines, coupon_code)
    payment_ref = generate_payment_ref()

    gateway_order = None
    if not quote.is_free:
        gateway_order = open_gateway_order(
            quote.final_amount,
            reference=payment_ref,
            notes={"payment_ref": payment_ref, "user_id": user.pk},
        )

    logger.info(
        "Checkout quote computed",
        extra={
            "user_id": user.pk,
            "payment_ref": payment_ref,
            "final_amount": str(quote.final_amount),
            "is_free": quote.is_free,
            "gateway_order_id": gateway_order.id if gateway_order else None,
        },
    )

    return InitPaymentResult(quote=quote, payment_ref=payment_ref, gateway_order=gateway_order)


# =====================================================
# SHARED: settlement ledger + result shaping
# =====================================================


def _line_dict(kind, reference_id, code, detail) -> dict:
    return {"kind": kind, "referenceId": reference_id, "code": code, "detail": detail}


def _completed_line(order: Order) -> LineResult:
    return LineResult(
        kind=order.order_type,
        reference_id=order.reference_id,
        status=LINE_COMPLETED,
        order_id=str(order.id),
    )


def _stored_line(entry: dict, status: str) -> LineResult:
    return LineResult(
        kind=entry.get("kind", ""),
        reference_id=entry.get("referenceId", ""),
        status=status,
        code=entry.get("code"),
        detail=entry.get("detail", ""),
    )


def _result_from_settlement(attempt: PaymentAttempt, *, replayed: bool) -> CompletionResult:
    orders = list(attempt.orders.order_by("created_at"))
    line_results = [_completed_line(o) for o in orders]
    line_results += [_stored_line(e, LINE_REJECTED) for e in attempt.rejected_lines or []]
    line_results += [_stored_line(e, LINE_FAILED) for e in attempt.failed_lines or []]
    return CompletionResult(orders=orders, line_results=line_results, replayed=replayed, settlement=attempt)


def _find_completed(*, user, gateway_order_id, payment_id, payment_ref) -> CompletionResult | None:
    keys = []
    if gateway_order_id and payment_id:
        keys.append((gateway_order_id, payment_id))
    if payment_ref:
        keys.append((payment_ref, ""))

    for reference, gateway_payment_id in keys:
        attempt = PaymentAttempt.objects.filter(
            reference=reference,
            gateway_payment_id=gateway_payment_id,
            user=user,
            status=PaymentAttempt.STATUS_COMPLETED,
        ).first()
        if attempt is not None:
            return _result_from_settlement(attempt, replayed=True)

    if not (gateway_order_id and payment_id):
        return None

    # Orders completed without a settlement row (e.g. confirmed by support)
    # still count; a PARTIALLY_COMPLETED settlement must be retried instead.
    if PaymentAttempt.objects.filter(reference=gateway_order_id, gateway_payment_id=payment_id, user=user).exists():
        return None

    orders = list(
        Order.objects.filter(
            gateway_order_id=gateway_order_id,
            gateway_payment_id=payment_id,
            user=user,
            status=Order.STATUS_COMPLETED,
        ).order_by("created_at")
    )
    if orders:
        return CompletionResult(orders=orders, line_results=[_completed_line(o) for o in orders], replayed=True)
    return None


def _verify_capture(gateway_order_id: str, expected_amount) -> dict:
    """
    Read the gateway order back and check it was paid for `expected_amount`.

    The signature binds only "{order_id}|{payment_id}", not the amount.
    Returns the gateway payload (stored on the settlement).
    """
    remote = fetch_gateway_order(gateway_order_id)
    expected = to_minor_units(expected_amount)

    try:
        charged = int(remote.get("amount") or 0)
        amount_paid = int(remote.get("amount_paid") or 0)
    except (TypeError, ValueError):
        charged = amount_paid = 0

    context = {
        "gateway_order_id": gateway_order_id,
        "expected_minor": expected,
        "charged_minor": charged,
        "gateway_status": remote.get("status"),
    }

    if charged != expected:
        logger.warning("Gateway amount does not match the checkout total", extra=context)
        raise PaymentVerificationError("Paid amount does not match the order total", code="AMOUNT_MISMATCH")

    if remote.get("status") != "paid" and amount_paid < charged:
        logger.warning("Gateway order is not paid", extra=context)
        raise PaymentVerificationError("Payment has not been captured", code="PAYMENT_NOT_CAPTURED")

    return remote


def _lock_settlement(*, user, reference, gateway_payment_id, provider, amount, coupon_code, provider_payload=None):
    """
    Fetch-or-create the settlement row under a row lock.

    Returns (attempt, created). Two concurrent completions for the same key
    collide on the unique constraint; the loser reads the winner's row.
    """
    lookup = {"reference": reference, "gateway_payment_id": gateway_payment_id, "user": user}

    attempt = PaymentAttempt.objects.select_for_update().filter(**lookup).first()
    if attempt is not None:
        return attempt, False

    try:
        with transaction.atomic():
            attempt = PaymentAttempt.objects.create(
                provider=provider,
                amount=amount,
                coupon_code=coupon_code or "",
                provider_payload=provider_payload or {},
                **lookup,
            )
        return attempt, True
    except IntegrityError:
        return PaymentAttempt.objects.select_for_update().get(**lookup), False


def _consume_coupon(attempt: PaymentAttempt, coupon_id) -> None:
    attempt.coupon_consumed = Coupon.objects.consume(coupon_id)
    if not attempt.coupon_consumed:
        logger.warning(
            "Coupon consumption refused (usage limit reached)",
            extra={"coupon_code": attempt.coupon_code, "settlement_reference": attempt.reference},
        )


def _finish_settlement(attempt: PaymentAttempt, *, failed: list, rejected: list) -> None:
    attempt.failed_lines = failed
    attempt.rejected_lines = rejected
    if failed:
        attempt.status = PaymentAttempt.STATUS_PARTIALLY_COMPLETED
    else:
        attempt.status = PaymentAttempt.STATUS_COMPLETED
        attempt.completed_at = attempt.completed_at or timezone.now()
    attempt.save()


def _notify_after_commit(user, orders) -> None:
    if not orders:
        return
    orders = list(orders)
    transaction.on_commit(lambda: send_order_confirmation(user=user, orders=orders))


# =====================================================
# FAN-OUT
# =====================================================


def create_purchase(
    handler: ProductHandler,
    priced_line: PricedLine,
    *,
    user,
    settlement=None,
    gateway_order_id="",
    gateway_payment_id="",
    gateway_signature="",
    payment_ref="",
    coupon_code="",
) -> Order:
    """
    One cart line -> Order + <Kind>Order + <Kind>Enrollment (+ kind side effects).

    Must run inside a transaction; the caller owns the savepoint.
    """
    item = priced_line.item
    handler.reserve(item)

    amount = priced_line.final_amount
    is_free = amount == ZERO

    order = Order.objects.create(
        user=user,
        order_type=priced_line.kind,
        reference_id=priced_line.reference_id,
        total_amount=priced_line.effective_price,
        discount_amount=priced_line.discount_amount,
        final_amount=amount,
        status=Order.STATUS_COMPLETED,
        payment_status=Order.PAYMENT_FREE if is_free else Order.PAYMENT_PAID,
        gateway_order_id=gateway_order_id,
        gateway_payment_id=gateway_payment_id,
        gateway_signature=gateway_signature,
        coupon_code=coupon_code or "",
        payment_ref=payment_ref,
        payment_attempt=settlement,
    )

    payment_mode = MODE_FREE if is_free else MODE_RAZORPAY
    handler.create_order_row(
        order=order,
        item=item,
        user=user,
        amount=amount,
        payment_status=order.payment_status,
        payment_mode=payment_mode,
    )
    handler.grant(order=order, item=item, user=user, amount=amount, payment_mode=payment_mode)
    return order


def _settle_quote(
    *,
    user,
    quote: CheckoutQuote,
    reference,
    gateway_payment_id="",
    gateway_order_id="",
    gateway_signature="",
    payment_ref="",
    provider_payload=None,
) -> CompletionResult:
    provider = PaymentAttempt.PROVIDER_FREE if quote.is_free else PaymentAttempt.PROVIDER_RAZORPAY

    with transaction.atomic():
        attempt, created = _lock_settlement(
            user=user,
            reference=reference,
            gateway_payment_id=gateway_payment_id,
            provider=provider,
            amount=quote.final_amount,
            coupon_code=quote.coupon_code,
            provider_payload=provider_payload,
        )

        if attempt.is_completed:
            return _result_from_settlement(attempt, replayed=True)

        if created:
            pending_lines = quote.lines
        else:
            retry = {(e.get("kind"), e.get("referenceId")) for e in attempt.failed_lines or []}
            pending_lines = [pl for pl in quote.lines if pl.line.key() in retry]
            logger.info(
                "Retrying partially completed settlement",
                extra={"settlement_reference": reference, "user_id": user.pk, "lines": len(pending_lines)},
            )

        failed: list[dict] = []
        rejected: list[dict] = list(attempt.rejected_lines or [])
        new_orders: list[Order] = []

        for pl in pending_lines:
            handler = get_handler(pl.kind)
            try:
                with transaction.atomic():
                    order = create_purchase(
                        handler,
                        pl,
                        user=user,
                        settlement=attempt,
                        gateway_order_id=gateway_order_id,
                        gateway_payment_id=gateway_payment_id,
                        gateway_signature=gateway_signature,
                        payment_ref=payment_ref,
                        coupon_code=quote.coupon_code,
                    )
            except ConflictError as exc:
                rejected.append(_line_dict(pl.kind, pl.reference_id, exc.code, exc.detail))
            except DatabaseError:
                logger.exception(
                    "Checkout line persistence failed",
                    extra={"kind": pl.kind, "reference_id": pl.reference_id, "settlement_reference": reference},
                )
                failed.append(
                    _line_dict(pl.kind, pl.reference_id, PersistenceError.code, PersistenceError.__doc__)
                )
            else:
                new_orders.append(order)

        if not attempt.coupon_consumed and quote.coupon is not None and new_orders:
            _consume_coupon(attempt, quote.coupon.pk)
            if not attempt.coupon_consumed and quote.is_free:
                raise ConflictError("This coupon has reached its usage limit", code=REASON_USAGE_LIMIT_EXCEEDED)

        _finish_settlement(attempt, failed=failed, rejected=rejected)
        _notify_after_commit(user, new_orders)

    logger.info(
        "Checkout completion finished",
        extra={
            "user_id": user.pk,
            "settlement_reference": reference,
            "status": attempt.status,
            "orders_created": len(new_orders),
            "lines_failed": len(failed),
        },
    )

    return _result_from_settlement(attempt, replayed=not created)


# =====================================================
# PENDING ORDER CONFIRMATION (direct single-item flow)
# =====================================================


def _confirm_order(handler: ProductHandler, order: Order, *, settlement, payment_id, signature) -> Order:
    rows = list(handler.order_model.objects.filter(order=order))
    items = [handler.item_from_row(row) for row in rows]

    for item in items:
        handler.reserve(item)

    order.status = Order.STATUS_COMPLETED
    order.payment_status = Order.PAYMENT_PAID if order.final_amount > ZERO else Order.PAYMENT_FREE
    order.gateway_payment_id = payment_id
    order.gateway_signature = signature
    order.payment_attempt = settlement
    order.save()

    for row, item in zip(rows, items):
        row.payment_status = order.payment_status
        row.save(update_fields=["payment_status", "updated_at"])
        handler.grant(order=order, item=item, user=order.user, amount=order.final_amount, payment_mode=row.payment_mode)

    return order


def confirm_pending_orders(*, user, gateway_order_id, payment_id, signature) -> CompletionResult:
    """
    PENDING -> COMPLETED for every pending order opened under one gateway order.

    Caller has already verified the signature.
    """
    pending = list(
        Order.objects.filter(
            gateway_order_id=gateway_order_id,
            user=user,
            status=Order.STATUS_PENDING,
        ).order_by("created_at")
    )
    if not pending:
        raise NotFoundError("Order not found")

    # every order opened under this gateway order, confirmed earlier or not
    gateway_total = sum(
        (o.final_amount for o in Order.objects.filter(gateway_order_id=gateway_order_id, user=user)),
        ZERO,
    )
    remote = _verify_capture(gateway_order_id, gateway_total)

    coupon_codes = {o.coupon_code for o in pending if o.coupon_code}

    with transaction.atomic():
        attempt, created = _lock_settlement(
            user=user,
            reference=gateway_order_id,
            gateway_payment_id=payment_id,
            provider=PaymentAttempt.PROVIDER_RAZORPAY,
            amount=gateway_total,
            coupon_code=next(iter(coupon_codes), ""),
            provider_payload=remote,
        )

        if attempt.is_completed:
            return _result_from_settlement(attempt, replayed=True)

        failed: list[dict] = []
        rejected: list[dict] = list(attempt.rejected_lines or [])
        confirmed: list[Order] = []
        settled_keys = {(e.get("kind"), e.get("referenceId")) for e in rejected}

        for order in Order.objects.select_for_update().filter(pk__in=[o.pk for o in pending]).order_by("created_at"):
            if order.status != Order.STATUS_PENDING or (order.order_type, order.reference_id) in settled_keys:
                continue
            handler = get_handler(order.order_type)
            try:
                with transaction.atomic():
                    confirmed.append(
                        _confirm_order(handler, order, settlement=attempt, payment_id=payment_id, signature=signature)
                    )
            except ConflictError as exc:
                order.refresh_from_db()
                rejected.append(_line_dict(order.order_type, order.reference_id, exc.code, exc.detail))
            except DatabaseError:
                order.refresh_from_db()
                logger.exception(
                    "Pending order confirmation failed",
                    extra={"order_id": str(order.pk), "gateway_order_id": gateway_order_id},
                )
                failed.append(
                    _line_dict(order.order_type, order.reference_id, PersistenceError.code, PersistenceError.__doc__)
                )

        if not attempt.coupon_consumed and confirmed:
            for code in coupon_codes:
                coupon = Coupon.objects.by_code(code).first()
                if coupon is not None:
                    _consume_coupon(attempt, coupon.pk)

        _finish_settlement(attempt, failed=failed, rejected=rejected)
        _notify_after_commit(user, confirmed)

    logger.info(
        "Pending orders confirmed",
        extra={"user_id": user.pk, "gateway_order_id": gateway_order_id, "orders_confirmed": len(confirmed)},
    )

    return _result_from_settlement(attempt, replayed=not created)


# =====================================================
# PHASE 2
# =====================================================


def _enforce_free_coupon(*, user, lines, coupon_code, payment_ref) -> CheckoutQuote:
    """
    A coupon that makes the cart free must still have a use left.

    A settlement that already counted the coupon (retry of a partial one)
    keeps the relaxed quote.
    """
    already_counted = PaymentAttempt.objects.filter(
        reference=payment_ref,
        gateway_payment_id="",
        user=user,
        coupon_consumed=True,
    ).exists()

    quote = price_cart(lines, coupon_code, enforce_coupon_usage_limit=not already_counted, include_reserved=True)
    if not quote.is_free:
        error = quote.coupon_error or {}
        logger.warning(
            "Free checkout refused: coupon no longer applies",
            extra={"user_id": user.pk, "payment_ref": payment_ref, "coupon_code": coupon_code, "reason": error.get("reason")},
        )
        raise ConflictError(
            error.get("message") or "This coupon can no longer be applied",
            code=error.get("reason") or REASON_USAGE_LIMIT_EXCEEDED,
        )
    return quote


def complete_payment(
    *,
    user,
    lines,
    coupon_code=None,
    gateway_order_id=None,
    payment_id=None,
    signature=None,
    payment_ref=None,
) -> CompletionResult:
    gateway_order_id = _clean(gateway_order_id)
    payment_id = _clean(payment_id)
    signature = _clean(signature)
    payment_ref = _clean(payment_ref)

    replay = _find_completed(
        user=user,
        gateway_order_id=gateway_order_id,
        payment_id=payment_id,
        payment_ref=payment_ref,
    )
    if replay is not None:
        logger.info(
            "Checkout completion replayed",
            extra={"user_id": user.pk, "gateway_order_id": gateway_order_id, "payment_ref": payment_ref},
        )
        return replay

    quote = price_cart(lines, coupon_code, enforce_coupon_usage_limit=False, include_reserved=True)

    if quote.is_free:
        if not payment_ref:
            raise CheckoutValidationError("paymentRef is required to complete a free checkout")
        if quote.coupon is not None:
            quote = _enforce_free_coupon(user=user, lines=lines, coupon_code=coupon_code, payment_ref=payment_ref)
        return _settle_quote(user=user, quote=quote, reference=payment_ref, payment_ref=payment_ref)

    if not (gateway_order_id and payment_id and signature):
        raise CheckoutValidationError("gatewayOrderId, paymentId and signature are required")

    if not verify_signature(gateway_order_id, payment_id, signature):
        logger.warning(
            "Payment signature rejected",
            extra={"user_id": user.pk, "gateway_order_id": gateway_order_id, "payment_id": payment_id},
        )
        raise PaymentVerificationError("Invalid payment signature")

    if Order.objects.filter(gateway_order_id=gateway_order_id, user=user, status=Order.STATUS_PENDING).exists():
        return confirm_pending_orders(
            user=user,
            gateway_order_id=gateway_order_id,
            payment_id=payment_id,
            signature=signature,
        )

    remote = _verify_capture(gateway_order_id, quote.final_amount)

    return _settle_quote(
        user=user,
        quote=quote,
        reference=gateway_order_id,
        gateway_payment_id=payment_id,
        gateway_order_id=gateway_order_id,
        gateway_signature=signature,
        payment_ref=payment_ref,
        provider_payload=remote,
    )
