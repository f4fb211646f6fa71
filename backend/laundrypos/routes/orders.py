# Overview: Flask API routes for order operations; parses input and returns JSON responses.

# backend/laundrypos/routes/orders.py
"""
Order API Routes

DESIGN:
- Create orders (optionally with an initial payment), offline-safe via
  idempotency_key
- Mark orders ready (returns the one-time pickup PIN)
- Collect orders with the pickup PIN
- List and read orders (not gated by subscription status)

SECURITY:
- OWNER or EMPLOYEE role required
- Shop comes from the principal; another shop's order is a 404
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import OrderCoreError
from ..services import order_service
from ..services.tenant_service import ROLE_EMPLOYEE, ROLE_OWNER
from ..decorators import require_principal, require_role


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@orders_bp.post("/")
@require_principal
@require_role(ROLE_OWNER, ROLE_EMPLOYEE)
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "customer_id": 12,
        "items": [{"name": "Shirt", "size": "M", "unit_price_cents": 5000, "quantity": 3}],
        "total_amount_cents": 15000,
        "initial_payment_cents": 5000,        (optional)
        "initial_payment_method": "CASH",     (optional)
        "idempotency_key": "tab-3:1717",      (optional, offline clients)
        "client_created_at": "2024-06-01T09:30:00Z"  (optional)
    }

    Returns:
        201: Order created
        200: Same idempotency_key already applied; original order returned
        400/403/404/409: See error code
    """
    data = _json_body()
    try:
        result = order_service.create_order(
            g.principal,
            customer_id=data.get("customer_id"),
            items=data.get("items"),
            total_amount_cents=data.get("total_amount_cents"),
            initial_payment_cents=data.get("initial_payment_cents"),
            initial_payment_method=data.get("initial_payment_method") or "CASH",
            idempotency_key=data.get("idempotency_key"),
            client_created_at=data.get("client_created_at"),
        )

        body = {
            "order": result.order.to_dict(),
            "payment": result.payment.to_dict() if result.payment else None,
            "replayed": result.replayed,
        }
        return jsonify(body), 200 if result.replayed else 201

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/")
@require_principal
@require_role(ROLE_OWNER, ROLE_EMPLOYEE)
def list_orders_route():
    """
    List orders of the caller's shop.

    Query params:
    - status: CREATED, PROCESSING, READY or COLLECTED
    - customer_id
    - page (default 1), per_page (default 20, max 100)
    """
    try:
        listing = order_service.list_orders(
            g.principal,
            status=request.args.get("status"),
            customer_id=request.args.get("customer_id"),
            page=request.args.get("page", 1),
            per_page=request.args.get("per_page", 20),
        )
        listing["orders"] = [o.to_dict() for o in listing["orders"]]
        return jsonify(listing), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_principal
@require_role(ROLE_OWNER, ROLE_EMPLOYEE)
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(g.principal, order_id)
        return jsonify({"order": order.to_dict()}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/ready")
@require_principal
@require_role(ROLE_OWNER, ROLE_EMPLOYEE)
def mark_ready_route(order_id: int):
    """
    Mark an order READY.

    The response carries the plaintext pickup_pin. It is returned only here,
    to be relayed to the customer, and can never be read back.
    """
    try:
        result = order_service.mark_ready(g.principal, order_id)
        return jsonify({
            "order": result.order.to_dict(),
            "pickup_pin": result.pickup_pin,
        }), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark order ready")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/collect")
@require_principal
@require_role(ROLE_OWNER, ROLE_EMPLOYEE)
def collect_order_route(order_id: int):
    """
    Collect an order.

    Request body:
    {
        "pin": "482913"
    }
    """
    data = _json_body()
    try:
        order = order_service.collect_order(g.principal, order_id, data.get("pin"))
        return jsonify({"order": order.to_dict()}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to collect order")
        return jsonify({"error": "Internal server error"}), 500
