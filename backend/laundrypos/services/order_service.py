# Overview: Service-layer operations for the order lifecycle; encapsulates business logic and database work.

"""
Order Lifecycle

WHY: A laundry order is a financial record with a strict forward-only
lifecycle. Goods leave the shop only when the order is fully paid and the
customer proves possession of the pickup PIN.

STATES:
    CREATED -> PROCESSING -> READY -> COLLECTED

- CREATED: order recorded, nothing paid
- PROCESSING: money received (initial or later payment)
- READY: washed and waiting; a pickup PIN hash is stored
- COLLECTED: handed over; terminal, PIN hash cleared

DESIGN PRINCIPLES:
- Every transition is one conditional UPDATE guarded by the states it may
  start from; a lost race is re-read and reported precisely
- Another shop's order is reported exactly like a missing one
- The subscription gate runs before any lookup or write
- Audit events are emitted after commit and never fail the operation
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import (
    ConcurrencyConflict,
    ExceedsBalance,
    IdempotencyKeyConflict,
    InvalidSecret,
    InvalidTransition,
    NotReady,
    OutstandingBalance,
    ValidationError,
)
from ..models import Order, OrderItem, Payment
from ..models.orders import (
    ORDER_STATUS_COLLECTED,
    ORDER_STATUS_CREATED,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUS_READY,
    ORDER_STATUSES,
    PAYMENT_METHOD_CASH,
)
from ..validation import (
    coerce_amount,
    coerce_int,
    parse_client_timestamp,
    validate_order_items,
    validate_payment_method,
    validate_pickup_pin_input,
)
from laundrypos.time_utils import utcnow
from .audit_service import (
    ACTION_COLLECT_ORDER,
    ACTION_CREATE_ORDER,
    ACTION_FAILED_COLLECTION_ATTEMPT,
    ACTION_MARK_READY,
    ACTION_RECORD_PAYMENT,
    emit_audit_event,
)
from .concurrency import commit_write, conditional_update, run_with_retry
from .idempotency_service import find_order_by_key, is_idempotency_violation, normalize_idempotency_key
from .pickup_pin_service import generate_pickup_pin, hash_pickup_pin, verify_pickup_pin
from .subscription_service import require_mutations_allowed
from .tenant_service import Principal, get_customer_for_tenant, get_order_for_tenant, scoped_query


MARK_READY_FROM = (ORDER_STATUS_CREATED, ORDER_STATUS_PROCESSING)

MAX_PAGE_SIZE = 100


@dataclass
class OrderResult:
    order: Order
    payment: Payment | None = None
    replayed: bool = False


@dataclass
class ReadyResult:
    order: Order
    # Plaintext, returned exactly once
    pickup_pin: str


# =============================================================================
# CREATE
# =============================================================================

def create_order(
    principal: Principal,
    customer_id: int,
    items: list[dict],
    total_amount_cents: int,
    initial_payment_cents: int | None = 0,
    initial_payment_method: str = PAYMENT_METHOD_CASH,
    idempotency_key: str | None = None,
    client_created_at=None,
) -> OrderResult:
    """
    Create an order, optionally with an initial payment.

    The order, its item snapshots and the initial Payment are one
    transaction: no reader ever sees the order without its initial payment.

    Returns:
        OrderResult(order, payment, replayed). payment is the initial payment
        (None when nothing was paid). A replay returns the original order and
        its original initial payment.

    Raises:
        ValidationError, ExceedsBalance (initial payment above total),
        TenantSuspended, TenantInGrace, CustomerNotFound,
        IdempotencyKeyConflict (key already used for a different order)
    """
    customer_id = coerce_int(customer_id, "customer_id", minimum=1)
    lines = validate_order_items(items)
    total_amount_cents = coerce_amount(total_amount_cents, "total_amount_cents", allow_zero=True)
    initial = coerce_amount(
        initial_payment_cents if initial_payment_cents is not None else 0,
        "initial_payment_cents",
        allow_zero=True,
    )
    method = validate_payment_method(initial_payment_method)
    key = normalize_idempotency_key(idempotency_key)
    client_created_at = parse_client_timestamp(client_created_at)
    shop_id = principal.shop_id

    if initial > total_amount_cents:
        raise ExceedsBalance(
            f"Initial payment of {initial} exceeds order total of {total_amount_cents}",
            details={"amount_cents": initial, "balance_cents": total_amount_cents},
        )

    require_mutations_allowed(shop_id)

    def _op():
        existing = find_order_by_key(shop_id, key)
        if existing is not None:
            return _replay_order(existing, customer_id, total_amount_cents, initial)

        get_customer_for_tenant(customer_id, shop_id)

        order = Order(
            shop_id=shop_id,
            customer_id=customer_id,
            status=ORDER_STATUS_PROCESSING if initial > 0 else ORDER_STATUS_CREATED,
            total_amount_cents=total_amount_cents,
            amount_paid_cents=initial,
            balance_cents=total_amount_cents - initial,
            created_by=principal.actor_id,
            idempotency_key=key,
            client_created_at=client_created_at,
        )
        for line in lines:
            order.items.append(OrderItem(**line))
        db.session.add(order)

        payment = None
        if initial > 0:
            payment = Payment(
                order=order,
                shop_id=shop_id,
                amount_cents=initial,
                method=method,
                received_by=principal.actor_id,
                is_initial=True,
                client_created_at=client_created_at,
            )
            db.session.add(payment)

        try:
            commit_write("order creation")
        except IntegrityError as exc:
            db.session.rollback()
            if key and is_idempotency_violation(exc):
                winner = find_order_by_key(shop_id, key)
                if winner is not None:
                    return _replay_order(winner, customer_id, total_amount_cents, initial)
            raise

        return OrderResult(order=order, payment=payment)

    result = run_with_retry(_op)

    if not result.replayed:
        order = result.order
        emit_audit_event(
            principal,
            ACTION_CREATE_ORDER,
            "Order",
            order.id,
            {
                "idempotency_key": key,
                "total_amount_cents": total_amount_cents,
                "initial_payment_cents": initial,
            },
        )
        if result.payment is not None:
            emit_audit_event(
                principal,
                ACTION_RECORD_PAYMENT,
                "Payment",
                result.payment.id,
                {"order_id": order.id, "amount_cents": initial, "method": method},
            )
    return result


def _replay_order(existing: Order, customer_id: int, total_amount_cents: int, initial: int) -> OrderResult:
    payment = (
        scoped_query(Payment, existing.shop_id)
        .filter(Payment.order_id == existing.id, Payment.is_initial.is_(True))
        .first()
    )
    original_initial = payment.amount_cents if payment is not None else 0
    if (
        existing.customer_id != customer_id
        or existing.total_amount_cents != total_amount_cents
        or original_initial != initial
    ):
        raise IdempotencyKeyConflict(
            "idempotency_key was already used for a different order",
            details={"order_id": existing.id},
        )
    return OrderResult(order=existing, payment=payment, replayed=True)


# =============================================================================
# MARK READY
# =============================================================================

def mark_ready(principal: Principal, order_id: int) -> ReadyResult:
    """
    Move a CREATED or PROCESSING order to READY and issue its pickup PIN.

    Payment is not required here; it is required at collection.

    Raises:
        TenantSuspended, TenantInGrace, OrderNotFound, InvalidTransition
    """
    order_id = coerce_int(order_id, "order_id", minimum=1)
    shop_id = principal.shop_id

    require_mutations_allowed(shop_id)

    def _op():
        order = get_order_for_tenant(order_id, shop_id, refresh=True)
        _check_can_mark_ready(order)

        pin = generate_pickup_pin()
        matched = conditional_update(
            Order,
            where=[
                Order.id == order_id,
                Order.shop_id == shop_id,
                Order.status.in_(MARK_READY_FROM),
            ],
            values={
                "status": ORDER_STATUS_READY,
                "pickup_pin_hash": hash_pickup_pin(pin),
                "ready_at": utcnow(),
                "version_id": Order.version_id + 1,
            },
        )
        if matched != 1:
            db.session.rollback()
            current = get_order_for_tenant(order_id, shop_id, refresh=True)
            _check_can_mark_ready(current)
            raise ConcurrencyConflict("Order changed while marking it ready. Try again.")

        commit_write(f"mark ready on order {order_id}")
        order = get_order_for_tenant(order_id, shop_id, refresh=True)
        return ReadyResult(order=order, pickup_pin=pin)

    result = run_with_retry(_op)
    emit_audit_event(principal, ACTION_MARK_READY, "Order", order_id)
    return result


def _check_can_mark_ready(order: Order) -> None:
    if order.status not in MARK_READY_FROM:
        raise InvalidTransition(
            f"Order must be CREATED or PROCESSING to mark ready (status: {order.status})",
            details={"status": order.status},
        )


# =============================================================================
# COLLECT
# =============================================================================

def collect_order(principal: Principal, order_id: int, pin: str) -> Order:
    """
    Release a READY, fully paid order to whoever presents its pickup PIN.

    Check order: status, then balance, then PIN. A wrong PIN is audited as
    FAILED_COLLECTION_ATTEMPT. Success clears the PIN hash in the same
    UPDATE that sets COLLECTED, so a PIN works at most once.

    Raises:
        ValidationError, TenantSuspended, TenantInGrace, OrderNotFound,
        NotReady, OutstandingBalance, InvalidSecret
    """
    order_id = coerce_int(order_id, "order_id", minimum=1)
    pin = validate_pickup_pin_input(pin)
    shop_id = principal.shop_id

    require_mutations_allowed(shop_id)

    def _op():
        order = get_order_for_tenant(order_id, shop_id, refresh=True)
        _check_collectable(order)

        verified_hash = order.pickup_pin_hash
        if not verify_pickup_pin(pin, verified_hash):
            raise InvalidSecret("Invalid pickup PIN")

        matched = conditional_update(
            Order,
            where=[
                Order.id == order_id,
                Order.shop_id == shop_id,
                Order.status == ORDER_STATUS_READY,
                Order.pickup_pin_hash == verified_hash,
                Order.amount_paid_cents == Order.total_amount_cents,
            ],
            values={
                "status": ORDER_STATUS_COLLECTED,
                "collected_by": principal.actor_id,
                "collected_at": utcnow(),
                "pickup_pin_hash": None,
                "version_id": Order.version_id + 1,
            },
        )
        if matched != 1:
            db.session.rollback()
            current = get_order_for_tenant(order_id, shop_id, refresh=True)
            _check_collectable(current)
            raise ConcurrencyConflict("Order changed while collecting it. Try again.")

        commit_write(f"collection of order {order_id}")
        return get_order_for_tenant(order_id, shop_id, refresh=True)

    try:
        order = run_with_retry(_op)
    except InvalidSecret:
        emit_audit_event(
            principal,
            ACTION_FAILED_COLLECTION_ATTEMPT,
            "Order",
            order_id,
            {"reason": "Invalid PIN"},
        )
        raise

    emit_audit_event(principal, ACTION_COLLECT_ORDER, "Order", order_id)
    return order


def _check_collectable(order: Order) -> None:
    if order.status == ORDER_STATUS_COLLECTED:
        raise NotReady("Order has already been collected", details={"status": order.status})

    if order.status != ORDER_STATUS_READY:
        raise NotReady("Order is not ready for pickup", details={"status": order.status})

    if order.balance_cents > 0:
        raise OutstandingBalance(
            f"Cannot collect. Outstanding balance: {order.balance_cents}",
            details={"balance_cents": order.balance_cents},
        )


# =============================================================================
# QUERIES (not gated by subscription status)
# =============================================================================

def get_order(principal: Principal, order_id: int) -> Order:
    order_id = coerce_int(order_id, "order_id", minimum=1)
    return get_order_for_tenant(order_id, principal.shop_id)


def list_orders(
    principal: Principal,
    status: str | None = None,
    customer_id: int | None = None,
    page: int = 1,
    per_page: int = 20,
) -> dict:
    """
    Orders of the caller's shop, newest first, paginated.

    Returns:
        {"orders": [...], "page": n, "per_page": n, "total": n}
    """
    page = coerce_int(page, "page", minimum=1)
    per_page = coerce_int(per_page, "per_page", minimum=1, maximum=MAX_PAGE_SIZE)

    query = scoped_query(Order, principal.shop_id)
    if status:
        status = status.strip().upper()
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid status: {status}. Must be one of {ORDER_STATUSES}")
        query = query.filter(Order.status == status)
    if customer_id is not None:
        query = query.filter(Order.customer_id == coerce_int(customer_id, "customer_id", minimum=1))

    total = query.count()
    orders = (
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return {
        "orders": orders,
        "page": page,
        "per_page": per_page,
        "total": total,
    }
