# backend/agency/routes/system.py
"""
System health endpoint.

Reports database reachability and whether the list cache answers. The cache
being down is reported but never makes the service unhealthy.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_cache_health() -> dict:
    cache = current_app.extensions["list_cache"]
    if not cache.enabled:
        return {"status": "disabled"}
    return {"status": "healthy" if cache.ping() else "unavailable"}


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    cache = check_cache_health()
    healthy = database["status"] == "healthy"
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "checked_at": to_utc_z(utcnow()),
        "checks": {"database": database, "cache": cache},
    }
    return jsonify(body), 200 if healthy else 503
