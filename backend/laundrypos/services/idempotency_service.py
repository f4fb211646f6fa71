# Overview: Tenant-scoped idempotency key handling for offline resubmission.

"""
Idempotent Intake

WHY: Offline clients queue CreateOrder and RecordPayment requests and resend
them after connectivity gaps. A resend must return the original result with
a "replayed" signal instead of creating a duplicate.

DESIGN:
- Keys live on the entity they created (orders.idempotency_key,
  payments.idempotency_key); one namespace per operation type
- Uniqueness is (shop_id, idempotency_key), enforced by the database
- Lookups always filter on the caller's shop; a key used by another shop
  never resolves to that shop's row
- Two racing submissions both miss the lookup; the unique constraint
  rejects the loser, which then re-reads and replays the winner
"""

from __future__ import annotations

from ..errors import ValidationError
from ..models import Order, Payment
from .tenant_service import scoped_query


MAX_IDEMPOTENCY_KEY_LENGTH = 128


def normalize_idempotency_key(raw) -> str | None:
    """Strip a client key; None or blank means no deduplication."""
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError("idempotency_key must be a string")
    key = raw.strip()
    if not key:
        return None
    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(
            f"idempotency_key exceeds max length {MAX_IDEMPOTENCY_KEY_LENGTH}"
        )
    return key


def find_order_by_key(shop_id: int, key: str | None) -> Order | None:
    if key is None:
        return None
    return scoped_query(Order, shop_id).filter(Order.idempotency_key == key).first()


def find_payment_by_key(shop_id: int, key: str | None) -> Payment | None:
    if key is None:
        return None
    return scoped_query(Payment, shop_id).filter(Payment.idempotency_key == key).first()


def is_idempotency_violation(exc) -> bool:
    """True when an IntegrityError came from one of the idempotency constraints."""
    message = str(getattr(exc, "orig", exc))
    return "idempotency_key" in message
