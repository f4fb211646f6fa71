# Overview: Best-effort audit emission for state-changing operations.

"""
Audit Emitter

Invariants:
- Called after the primary operation has committed
- One event per state-changing operation, plus one per failed collection
- A failing sink is logged and swallowed; it never fails the caller
- Never carries the plaintext pickup PIN
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import AuditEvent
from laundrypos.time_utils import utcnow


ACTION_CREATE_ORDER = "CREATE_ORDER"
ACTION_RECORD_PAYMENT = "RECORD_PAYMENT"
ACTION_MARK_READY = "MARK_READY"
ACTION_COLLECT_ORDER = "COLLECT_ORDER"
ACTION_FAILED_COLLECTION_ATTEMPT = "FAILED_COLLECTION_ATTEMPT"


@dataclass(frozen=True)
class AuditRecord:
    shop_id: int
    actor_id: str
    actor_role: str
    action: str
    entity_type: str
    entity_id: int
    metadata: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)


def write_audit_event(record: AuditRecord) -> None:
    """Default sink: one append-only AuditEvent row in its own commit."""
    event = AuditEvent(
        shop_id=record.shop_id,
        actor_id=record.actor_id,
        actor_role=record.actor_role,
        action=record.action,
        entity_type=record.entity_type,
        entity_id=record.entity_id,
        event_metadata=record.metadata,
        occurred_at=record.occurred_at,
    )
    db.session.add(event)
    db.session.commit()


def emit_audit_event(
    principal,
    action: str,
    entity_type: str,
    entity_id: int,
    metadata: dict | None = None,
) -> bool:
    """
    Hand one event to the configured sink.

    Returns True when the sink accepted it, False when it failed.
    """
    record = AuditRecord(
        shop_id=principal.shop_id,
        actor_id=principal.actor_id,
        actor_role=principal.role,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=dict(metadata or {}),
    )
    sink = current_app.config.get("AUDIT_SINK") or write_audit_event
    try:
        sink(record)
        return True
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to emit audit event %s for %s %s", action, entity_type, entity_id
        )
        return False
