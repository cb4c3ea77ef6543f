# backend/zenibo/routes/system.py
"""
Service descriptor and health endpoints.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")

API_VERSION = "2.0.0"

FEATURES = {
    "authentication": "active",
    "books": "active",
    "transactions": "active",
    "accounts": "active",
    "recipients": "active",
    "recipient_book_assignments": "active",
    "receipts": "active",
    "closing": "active",
    "coupons": "active",
    "emails": "not_implemented",
    "stripe": "not_implemented",
}


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("")
def service_descriptor():
    """Root of the API: name, version and per-feature availability."""
    return jsonify({
        "message": f"ZENIBO API v{API_VERSION.rsplit('.', 1)[0]}",
        "status": "operational",
        "version": API_VERSION,
        "features": FEATURES,
    })


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503
