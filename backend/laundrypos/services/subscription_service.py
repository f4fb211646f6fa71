# Overview: Subscription gate consumed by the order core before any mutation.

"""
Subscription Gate

The billing side of the product owns subscription state; the order core only
asks one question: may this shop mutate orders right now?

- ACTIVE: everything proceeds
- GRACE: reads proceed, the four mutating commands are refused
- SUSPENDED: the four mutating commands are refused

The gate fails closed. If it cannot answer, the mutation is refused with a
retryable error rather than let through.
"""

from __future__ import annotations

from typing import Protocol

from flask import current_app

from ..extensions import db
from ..errors import SubscriptionUnavailable, TenantInGrace, TenantSuspended
from ..models import Shop
from ..models.tenancy import (
    SUBSCRIPTION_GRACE,
    SUBSCRIPTION_STATUSES,
    SUBSCRIPTION_SUSPENDED,
)


class SubscriptionGate(Protocol):
    def status(self, shop_id: int) -> str:
        ...


class ShopSubscriptionGate:
    """Reads the subscription status stored on the shop row."""

    def status(self, shop_id: int) -> str:
        row = db.session.query(Shop.subscription_status).filter(Shop.id == shop_id).first()
        if row is None:
            # Unknown tenant: nothing may be written on its behalf
            return SUBSCRIPTION_SUSPENDED
        return row.subscription_status


def get_subscription_gate() -> SubscriptionGate:
    return current_app.config.get("SUBSCRIPTION_GATE") or ShopSubscriptionGate()


def require_mutations_allowed(shop_id: int) -> None:
    """
    Refuse a mutating command unless the shop is ACTIVE.

    Raises:
        TenantSuspended, TenantInGrace: the shop may not mutate orders
        SubscriptionUnavailable: the gate failed or answered nonsense
    """
    try:
        status = get_subscription_gate().status(shop_id)
    except Exception as exc:
        current_app.logger.exception("Subscription gate unavailable for shop %s", shop_id)
        raise SubscriptionUnavailable("Subscription status unavailable, try again later") from exc

    if status not in SUBSCRIPTION_STATUSES:
        current_app.logger.error("Subscription gate returned unknown status %r for shop %s", status, shop_id)
        raise SubscriptionUnavailable("Subscription status unavailable, try again later")

    if status == SUBSCRIPTION_SUSPENDED:
        raise TenantSuspended("Shop is suspended. Cannot perform this operation. Please contact support.")

    if status == SUBSCRIPTION_GRACE:
        raise TenantInGrace(
            "Shop subscription is in grace period. Please renew your subscription to continue."
        )

