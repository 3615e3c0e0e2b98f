"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready    — simple 200 for load balancers
    GET /api/v1/health/live     — database round-trip and app info
    GET /api/v1/health/db-diag  — row counts for the workflow tables
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from audit_workflow.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")

DIAGNOSTIC_TABLES = (
    "audit_companies",
    "audit_tasks",
    "audit_locks",
    "audit_task_discussions",
    "audit_notifications",
    "audit_users",
    "audit_presence",
    "audit_activity_events",
    "scheduled_jobs",
)


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness check with database status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── App info ─────────────────────────────────────────────────────
    checks["app"] = {
        "name": "Audit Workflow Tracker",
        "debug": current_app.debug,
        "testing": current_app.testing,
        "lock_ttl_seconds": current_app.config.get("LOCK_TTL_SECONDS"),
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code


@health_bp.route("/db-diag", methods=["GET"])
def db_diagnostic():
    """
    Quick DB diagnostic — check that every workflow table exists and is queryable.
    Useful for debugging 500 errors after a deployment or migration.
    """
    results = {}
    for tbl in DIAGNOSTIC_TABLES:
        try:
            row = db.session.execute(db.text(f"SELECT COUNT(*) FROM {tbl}")).scalar()
            results[tbl] = {"status": "ok", "count": row}
        except Exception as exc:
            db.session.rollback()
            results[tbl] = {"status": "error", "detail": str(exc)}
    return jsonify(results), 200
