# Overview: Flask API route for deployment health checks.

# backend/laundrypos/routes/system.py
"""
Health endpoint for load balancers and deployment checks.

Reports store reachability and whether the order core tables exist.
Exposes no tenant data.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import inspect, text

from ..extensions import db
from laundrypos.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")

REQUIRED_TABLES = ("shops", "customers", "orders", "order_items", "payments", "audit_events")


def _timed(check) -> dict:
    started = time.perf_counter()
    try:
        result = check()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Health check %s failed", check.__name__)
        result = {"status": "unhealthy", "error": "Database error"}
    result["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return result


def check_database() -> dict:
    db.session.execute(text("SELECT 1"))
    return {"status": "healthy"}


def check_schema() -> dict:
    existing = set(inspect(db.engine).get_table_names())
    missing = [name for name in REQUIRED_TABLES if name not in existing]
    if missing:
        return {"status": "unhealthy", "missing_tables": missing}
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: store reachable and schema present
    - 503: otherwise (run `flask system init-db` or `flask db upgrade`)
    """
    checks = {
        "database": _timed(check_database),
        "schema": _timed(check_schema),
    }
    healthy = all(c["status"] == "healthy" for c in checks.values())

    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": checks,
    }, 200 if healthy else 503
