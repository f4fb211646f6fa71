from __future__ import annotations

from ..extensions import db
from laundrypos.time_utils import to_utc_z


class AuditEvent(db.Model):
    """
    Append-only audit trail of state-changing operations.

    IMMUTABLE: Never update or delete. Business logic never reads these rows
    to make decisions.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_entity", "entity_type", "entity_id", "occurred_at"),
        db.Index("ix_audit_events_shop_occurred", "shop_id", "occurred_at"),
        db.Index("ix_audit_events_action", "action", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)

    actor_id = db.Column(db.String(64), nullable=False, index=True)
    actor_role = db.Column(db.String(32), nullable=False)

    action = db.Column(db.String(64), nullable=False)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)

    # "metadata" is reserved on declarative classes
    event_metadata = db.Column("metadata", db.JSON, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "metadata": self.event_metadata or {},
            "occurred_at": to_utc_z(self.occurred_at),
        }
