# Overview: Service-layer operations for the order money ledger; payments and reconciliation.

"""
Money Ledger

WHY: Staff at one shop take partial payments on the same order from several
tills at once. amount_paid_cents must never overshoot total_amount_cents and
must always equal the sum of the order's payments.

LEDGER INVARIANTS (authoritative):
- 0 <= amount_paid_cents <= total_amount_cents, also enforced by a CHECK
- balance_cents = total_amount_cents - amount_paid_cents, rewritten in the
  same UPDATE that moves amount_paid_cents
- One conditional UPDATE per payment. Its WHERE clause (tenant, status,
  balance bound) is the only admission control; no row locks
- The Payment row is inserted in the same transaction as that UPDATE, so a
  failed insert rolls the ledger back with it
- A rejected UPDATE is re-read once and classified; never blindly replayed
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConcurrencyConflict, ExceedsBalance, IdempotencyKeyConflict, OrderCollected
from ..models import Order, Payment
from ..models.orders import (
    ORDER_STATUS_COLLECTED,
    ORDER_STATUS_CREATED,
    ORDER_STATUS_PROCESSING,
    PAYMENT_METHOD_CASH,
)
from ..validation import coerce_amount, coerce_int, parse_client_timestamp, validate_payment_method
from .audit_service import ACTION_RECORD_PAYMENT, emit_audit_event
from .concurrency import commit_write, conditional_update, run_with_retry
from .idempotency_service import find_payment_by_key, is_idempotency_violation, normalize_idempotency_key
from .subscription_service import require_mutations_allowed
from .tenant_service import Principal, get_order_for_tenant, scoped_query


@dataclass
class PaymentResult:
    payment: Payment
    order: Order
    replayed: bool = False


# =============================================================================
# PAYMENT RECORDING
# =============================================================================

def record_payment(
    principal: Principal,
    order_id: int,
    amount_cents: int,
    method: str = PAYMENT_METHOD_CASH,
    idempotency_key: str | None = None,
    client_created_at=None,
) -> PaymentResult:
    """
    Record money received against an order.

    Args:
        principal: Caller; the order must belong to principal.shop_id
        order_id: Order being paid
        amount_cents: Amount received, > 0 and <= the current balance
        method: CASH or ELECTRONIC
        idempotency_key: Client token; a resend returns the original payment
        client_created_at: When an offline client actually took the money

    Returns:
        PaymentResult with the payment, the updated order and replayed=True
        when the key had already been applied

    Raises:
        ValidationError, TenantSuspended, TenantInGrace, OrderNotFound,
        OrderCollected, ExceedsBalance, IdempotencyKeyConflict,
        ConcurrencyConflict
    """
    order_id = coerce_int(order_id, "order_id", minimum=1)
    amount_cents = coerce_amount(amount_cents, "amount_cents")
    method = validate_payment_method(method)
    key = normalize_idempotency_key(idempotency_key)
    client_created_at = parse_client_timestamp(client_created_at)
    shop_id = principal.shop_id

    require_mutations_allowed(shop_id)

    def _op():
        existing = find_payment_by_key(shop_id, key)
        if existing is not None:
            return _replay_payment(existing, order_id, amount_cents)

        # Fast path: precise errors without attempting the write
        order = get_order_for_tenant(order_id, shop_id, refresh=True)
        check_payment_allowed(order, amount_cents)

        matched = apply_payment_to_order(order_id, shop_id, amount_cents)
        if matched != 1:
            db.session.rollback()
            _raise_for_rejected_payment(order_id, shop_id, amount_cents)

        payment = Payment(
            order_id=order_id,
            shop_id=shop_id,
            amount_cents=amount_cents,
            method=method,
            received_by=principal.actor_id,
            idempotency_key=key,
            client_created_at=client_created_at,
        )
        db.session.add(payment)

        try:
            commit_write(f"payment on order {order_id}")
        except IntegrityError as exc:
            db.session.rollback()
            if key and is_idempotency_violation(exc):
                winner = find_payment_by_key(shop_id, key)
                if winner is not None:
                    return _replay_payment(winner, order_id, amount_cents)
            raise

        order = get_order_for_tenant(order_id, shop_id, refresh=True)
        return PaymentResult(payment=payment, order=order)

    result = run_with_retry(_op)

    if not result.replayed:
        emit_audit_event(
            principal,
            ACTION_RECORD_PAYMENT,
            "Payment",
            result.payment.id,
            {
                "order_id": order_id,
                "amount_cents": amount_cents,
                "method": method,
                "idempotency_key": key,
            },
        )
    return result


def apply_payment_to_order(order_id: int, shop_id: int, amount_cents: int) -> int:
    """
    Conditionally add amount_cents to an order's paid total.

    The UPDATE only matches while the order is not collected and the new
    paid total stays within total_amount_cents. A CREATED order advances to
    PROCESSING in the same statement. Returns the matched row count (0 or 1).
    Does not commit.
    """
    new_paid = Order.amount_paid_cents + amount_cents
    return conditional_update(
        Order,
        where=[
            Order.id == order_id,
            Order.shop_id == shop_id,
            Order.status != ORDER_STATUS_COLLECTED,
            new_paid <= Order.total_amount_cents,
        ],
        values={
            "amount_paid_cents": new_paid,
            "balance_cents": Order.total_amount_cents - new_paid,
            "status": case(
                (Order.status == ORDER_STATUS_CREATED, ORDER_STATUS_PROCESSING),
                else_=Order.status,
            ),
            "version_id": Order.version_id + 1,
        },
    )


def check_payment_allowed(order: Order, amount_cents: int) -> None:
    """Raise the precondition error that forbids this payment, if any."""
    if order.status == ORDER_STATUS_COLLECTED:
        raise OrderCollected("Cannot pay for a collected order")

    if amount_cents > order.balance_cents:
        raise ExceedsBalance(
            f"Payment of {amount_cents} exceeds remaining balance of {order.balance_cents}",
            details={
                "amount_cents": amount_cents,
                "balance_cents": order.balance_cents,
            },
        )


def _raise_for_rejected_payment(order_id: int, shop_id: int, amount_cents: int) -> None:
    """
    Classify a conditional UPDATE that matched no row.

    Re-reads the order once. Raises OrderNotFound, OrderCollected or
    ExceedsBalance when the current state explains the rejection, otherwise
    ConcurrencyConflict.
    """
    current = get_order_for_tenant(order_id, shop_id, refresh=True)
    check_payment_allowed(current, amount_cents)
    raise ConcurrencyConflict(
        "Order changed while recording the payment. Resubmit with the same idempotency key."
    )


def _replay_payment(existing: Payment, order_id: int, amount_cents: int) -> PaymentResult:
    if existing.order_id != order_id or existing.amount_cents != amount_cents:
        raise IdempotencyKeyConflict(
            "idempotency_key was already used for a different payment",
            details={"payment_id": existing.id},
        )
    order = get_order_for_tenant(existing.order_id, existing.shop_id, refresh=True)
    return PaymentResult(payment=existing, order=order, replayed=True)


# =============================================================================
# QUERIES
# =============================================================================

def list_payments(principal: Principal, order_id: int | None = None) -> list[Payment]:
    """
    Payments of the caller's shop, oldest first.

    With order_id, the order must belong to the caller's shop (else OrderNotFound).
    """
    query = scoped_query(Payment, principal.shop_id)
    if order_id is not None:
        order_id = coerce_int(order_id, "order_id", minimum=1)
        get_order_for_tenant(order_id, principal.shop_id)
        query = query.filter(Payment.order_id == order_id)
    return query.order_by(Payment.created_at, Payment.id).all()


# =============================================================================
# RECONCILIATION
# =============================================================================

def find_ledger_discrepancies(shop_id: int | None = None) -> list[dict]:
    """
    Orders whose stored ledger columns disagree with their payments.

    Checks amount_paid_cents == sum(payments) and
    balance_cents == total_amount_cents - amount_paid_cents.
    An empty list means the ledger is consistent.
    """
    payment_totals = (
        db.session.query(
            Payment.order_id.label("order_id"),
            func.sum(Payment.amount_cents).label("total"),
        )
        .group_by(Payment.order_id)
        .subquery()
    )

    query = (
        db.session.query(Order, func.coalesce(payment_totals.c.total, 0))
        .outerjoin(payment_totals, payment_totals.c.order_id == Order.id)
    )
    if shop_id is not None:
        query = query.filter(Order.shop_id == shop_id)

    discrepancies = []
    for order, payments_total in query.order_by(Order.id).all():
        expected_balance = order.total_amount_cents - order.amount_paid_cents
        if order.amount_paid_cents != payments_total or order.balance_cents != expected_balance:
            discrepancies.append({
                "order_id": order.id,
                "shop_id": order.shop_id,
                "total_amount_cents": order.total_amount_cents,
                "amount_paid_cents": order.amount_paid_cents,
                "payments_total_cents": int(payments_total),
                "balance_cents": order.balance_cents,
                "expected_balance_cents": expected_balance,
            })
    return discrepancies
