from __future__ import annotations

from ..extensions import db
from laundrypos.time_utils import to_utc_z


class Customer(db.Model):
    """
    Shop customer.

    MULTI-TENANT: Customers are scoped to shops via shop_id. An order may only
    reference a customer of its own shop.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_shop_phone", "shop_id", "phone_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(128), nullable=False)
    phone_number = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    shop = db.relationship("Shop", backref=db.backref("customers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "phone_number": self.phone_number,
            "created_at": to_utc_z(self.created_at),
        }
