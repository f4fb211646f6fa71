"""
Multi-Tenant Service: Principal and Tenant Ownership Helpers

WHY: Centralize tenant validation so every load of an order or customer is
filtered by the caller's shop in SQL, instead of trusting shop ids sent by
the client.

SECURITY INVARIANTS:
1. Core operations take a Principal; the shop id comes from it, never from
   the request body
2. Loads filter on shop_id, so another shop's row is indistinguishable from
   a missing row (both are "not found")
3. belongs_to_tenant is the one ownership predicate used everywhere else

USAGE:
    from laundrypos.services.tenant_service import get_order_for_tenant

    order = get_order_for_tenant(order_id, principal.shop_id)
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..errors import CustomerNotFound, OrderNotFound, ValidationError
from ..models import Customer, Order


ROLE_OWNER = "OWNER"
ROLE_EMPLOYEE = "EMPLOYEE"
ROLE_ADMIN = "ADMIN"

VALID_ROLES = [ROLE_OWNER, ROLE_EMPLOYEE, ROLE_ADMIN]


@dataclass(frozen=True)
class Principal:
    """The authenticated caller: who they are, their role, and their shop."""
    actor_id: str
    role: str
    shop_id: int

    def __post_init__(self):
        if not self.actor_id:
            raise ValidationError("Principal requires an actor id")
        if self.role not in VALID_ROLES:
            raise ValidationError(f"Unknown role: {self.role}")
        if not isinstance(self.shop_id, int) or isinstance(self.shop_id, bool):
            raise ValidationError("Principal requires an integer shop id")


def belongs_to_tenant(entity, shop_id: int) -> bool:
    """True when a shop-owned entity belongs to the given shop."""
    return entity is not None and getattr(entity, "shop_id", None) == shop_id


def scoped_query(model, shop_id: int):
    """
    Base query restricted to one shop.

    Usage:
        orders = scoped_query(Order, principal.shop_id).filter_by(status="READY").all()
    """
    return db.session.query(model).filter(model.shop_id == shop_id)


def get_order_for_tenant(order_id: int, shop_id: int, *, refresh: bool = False) -> Order:
    """
    Load an order owned by shop_id.

    Raises OrderNotFound whether the order is missing or owned by another shop.
    refresh=True bypasses the identity map so the row reflects the database
    after a Core UPDATE.
    """
    query = scoped_query(Order, shop_id).filter(Order.id == order_id)
    if refresh:
        query = query.populate_existing()
    order = query.first()
    if not belongs_to_tenant(order, shop_id):
        raise OrderNotFound(f"Order {order_id} not found")
    return order


def get_customer_for_tenant(customer_id: int, shop_id: int) -> Customer:
    """Load a customer owned by shop_id or raise CustomerNotFound."""
    customer = scoped_query(Customer, shop_id).filter(Customer.id == customer_id).first()
    if not belongs_to_tenant(customer, shop_id):
        raise CustomerNotFound(f"Customer {customer_id} not found")
    return customer
