from __future__ import annotations

from ..extensions import db
from laundrypos.time_utils import to_utc_z


SUBSCRIPTION_ACTIVE = "ACTIVE"
SUBSCRIPTION_GRACE = "GRACE"
SUBSCRIPTION_SUSPENDED = "SUSPENDED"

SUBSCRIPTION_STATUSES = [
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_GRACE,
    SUBSCRIPTION_SUSPENDED,
]


class Shop(db.Model):
    """
    Multi-tenant root: every tenant is a Shop.

    WHY: Orders, payments, customers and audit events all belong to exactly
    one shop. No data may cross shop boundaries.

    The subscription columns are owned by the billing/admin side of the
    product; the order core only reads them through the subscription gate.
    """
    __tablename__ = "shops"
    __table_args__ = (
        db.Index("ix_shops_subscription_status", "subscription_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    location = db.Column(db.String(255), nullable=True)

    subscription_status = db.Column(db.String(16), nullable=False, default=SUBSCRIPTION_ACTIVE)
    suspension_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r} status={self.subscription_status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "location": self.location,
            "subscription_status": self.subscription_status,
            "suspension_reason": self.suspension_reason,
            "created_at": to_utc_z(self.created_at),
        }
