from __future__ import annotations

from ..extensions import db
from laundrypos.time_utils import to_utc_z


# =============================================================================
# ORDER STATUS (CONSTANTS)
# =============================================================================

ORDER_STATUS_CREATED = "CREATED"
ORDER_STATUS_PROCESSING = "PROCESSING"
ORDER_STATUS_READY = "READY"
ORDER_STATUS_COLLECTED = "COLLECTED"

ORDER_STATUSES = [
    ORDER_STATUS_CREATED,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUS_READY,
    ORDER_STATUS_COLLECTED,
]


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

PAYMENT_METHOD_CASH = "CASH"
PAYMENT_METHOD_ELECTRONIC = "ELECTRONIC"

PAYMENT_METHODS = [
    PAYMENT_METHOD_CASH,
    PAYMENT_METHOD_ELECTRONIC,
]


class Order(db.Model):
    """
    Laundry order: one per customer transaction, owned by one shop.

    WHY: The order is the only mutable financial record. It moves forward
    through CREATED -> PROCESSING -> READY -> COLLECTED and is never deleted.

    LEDGER COLUMNS:
    - total_amount_cents is fixed at creation
    - amount_paid_cents only grows, via one conditional UPDATE per payment
    - balance_cents is rewritten from the two columns above in the same UPDATE

    PICKUP PIN: only the bcrypt hash is stored, and only while READY.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "idempotency_key", name="uq_orders_shop_idempotency_key"),
        db.CheckConstraint("total_amount_cents >= 0", name="ck_orders_total_non_negative"),
        db.CheckConstraint(
            "amount_paid_cents >= 0 AND amount_paid_cents <= total_amount_cents",
            name="ck_orders_paid_within_total",
        ),
        db.Index("ix_orders_shop_status_created", "shop_id", "status", "created_at"),
        db.Index("ix_orders_shop_customer", "shop_id", "customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)

    # Lifecycle status
    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_CREATED, index=True)

    # Money (minor currency units)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_cents = db.Column(db.Integer, nullable=False)

    # Pickup authorization
    pickup_pin_hash = db.Column(db.String(128), nullable=True)
    ready_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Actor attribution
    created_by = db.Column(db.String(64), nullable=False)
    collected_by = db.Column(db.String(64), nullable=True)
    collected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Offline sync
    idempotency_key = db.Column(db.String(128), nullable=True)
    client_created_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    shop = db.relationship("Shop", backref=db.backref("orders", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        order_by="OrderItem.position",
        lazy="selectin",
        backref=db.backref("order", lazy=True),
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} shop_id={self.shop_id} status={self.status}>"

    def to_dict(self) -> dict:
        # pickup_pin_hash is deliberately absent
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "customer_id": self.customer_id,
            "status": self.status,
            "items": [item.to_dict() for item in self.items],
            "total_amount_cents": self.total_amount_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "balance_cents": self.balance_cents,
            "has_pickup_pin": self.pickup_pin_hash is not None,
            "ready_at": to_utc_z(self.ready_at),
            "created_by": self.created_by,
            "collected_by": self.collected_by,
            "collected_at": to_utc_z(self.collected_at),
            "idempotency_key": self.idempotency_key,
            "client_created_at": to_utc_z(self.client_created_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class OrderItem(db.Model):
    """
    Line item snapshot on an order.

    Prices are frozen at order time and never recomputed from a catalog.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "position", name="uq_order_items_order_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    name = db.Column(db.String(128), nullable=False)
    size = db.Column(db.String(32), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    line_total_cents = db.Column(db.Integer, nullable=False)

    note = db.Column(db.String(255), nullable=True)
    photo_url = db.Column(db.String(512), nullable=True)

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "name": self.name,
            "size": self.size,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
            "note": self.note,
            "photo_url": self.photo_url,
        }


class Payment(db.Model):
    """
    Money received against an order.

    IMMUTABLE: Append-only. Inserted in the same transaction as the ledger
    UPDATE on the order, so the sum of an order's payments always equals
    its amount_paid_cents.

    shop_id is copied from the order so idempotency keys and queries can be
    scoped to the tenant without a join.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "idempotency_key", name="uq_payments_shop_idempotency_key"),
        db.CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
        db.Index("ix_payments_shop_created", "shop_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)
    received_by = db.Column(db.String(64), nullable=False)
    # Taken together with the order at creation
    is_initial = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())

    idempotency_key = db.Column(db.String(128), nullable=True)
    client_created_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("payments", lazy=True, order_by="Payment.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "shop_id": self.shop_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "received_by": self.received_by,
            "is_initial": self.is_initial,
            "idempotency_key": self.idempotency_key,
            "client_created_at": to_utc_z(self.client_created_at),
            "created_at": to_utc_z(self.created_at),
        }
