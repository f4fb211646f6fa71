# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

# backend/laundrypos/routes/payments.py
"""
Payment API Routes

DESIGN:
- Record a payment against an order (partial payments allowed, never above
  the remaining balance)
- Offline clients resend with the same idempotency_key and get the original
  payment back
- List payments of the caller's shop, optionally for one order
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import OrderCoreError
from ..services import ledger_service
from ..services.tenant_service import ROLE_EMPLOYEE, ROLE_OWNER
from ..decorators import require_principal, require_role


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/")
@require_principal
@require_role(ROLE_OWNER, ROLE_EMPLOYEE)
def record_payment_route():
    """
    Record a payment.

    Request body:
    {
        "order_id": 123,
        "amount_cents": 10000,
        "method": "CASH",                (optional, CASH or ELECTRONIC)
        "idempotency_key": "tab-3:1718", (optional)
        "client_created_at": "2024-06-01T09:31:00Z"  (optional)
    }

    Returns:
        201: Payment recorded, with the updated order
        200: Same idempotency_key already applied; original payment returned
        400/403/404/409: See error code
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    try:
        result = ledger_service.record_payment(
            g.principal,
            order_id=data.get("order_id"),
            amount_cents=data.get("amount_cents"),
            method=data.get("method") or "CASH",
            idempotency_key=data.get("idempotency_key"),
            client_created_at=data.get("client_created_at"),
        )

        return jsonify({
            "payment": result.payment.to_dict(),
            "order": result.order.to_dict(),
            "replayed": result.replayed,
        }), 200 if result.replayed else 201

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/")
@require_principal
@require_role(ROLE_OWNER, ROLE_EMPLOYEE)
def list_payments_route():
    """
    List payments.

    Query params:
    - order_id: only payments of this order
    """
    try:
        payments = ledger_service.list_payments(g.principal, order_id=request.args.get("order_id"))
        return jsonify({"payments": [p.to_dict() for p in payments]}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list payments")
        return jsonify({"error": "Internal server error"}), 500
