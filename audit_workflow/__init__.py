"""
Audit Workflow Tracker
Flask Application Factory.

Usage:
    from audit_workflow import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from audit_workflow.config import config
from audit_workflow.models import db
from audit_workflow.middleware.logging_config import configure_logging
from audit_workflow.middleware.timing import init_request_timing
from audit_workflow.middleware.security_headers import init_security_headers
from audit_workflow.middleware.rate_limiter import init_rate_limits

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, per-blueprint only
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])
    if config_name == "development":
        os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Security headers (CSP, HSTS, X-Frame-Options, etc.) ─────────────
    init_security_headers(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    @app.before_request
    def _guard_request():
        from flask import abort
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from audit_workflow.models import company as _company_models          # noqa: F401
    from audit_workflow.models import lock as _lock_models                # noqa: F401
    from audit_workflow.models import activity as _activity_models        # noqa: F401
    from audit_workflow.models import discussion as _discussion_models    # noqa: F401
    from audit_workflow.models import notification as _notification_models  # noqa: F401
    from audit_workflow.models import presence as _presence_models        # noqa: F401
    from audit_workflow.models import scheduling as _scheduling_models    # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

        if app.config.get("AUTO_SEED_DEMO_DATA"):
            from audit_workflow.services.seed_service import seed_if_empty
            try:
                created = seed_if_empty()
                if created:
                    app.logger.info("Auto-seeded %d demo companies", created)
            except Exception as e:
                db.session.rollback()
                app.logger.warning("Demo data seeding failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from audit_workflow.blueprints.audit_bp import audit_bp
    from audit_workflow.blueprints.collaboration_bp import collaboration_bp
    from audit_workflow.blueprints.jobs_bp import jobs_bp
    from audit_workflow.blueprints.health_bp import health_bp

    app.register_blueprint(audit_bp)
    app.register_blueprint(collaboration_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo-data")
    def seed_demo_data_cmd():
        """Seed the 50 demo companies and their tasks when the store is empty."""
        from audit_workflow.services.seed_service import seed_if_empty
        count = seed_if_empty()
        if count:
            logger.info("Seeded %s demo companies.", count)
        else:
            logger.info("Companies already present — nothing seeded.")

    @app.cli.command("run-job")
    def run_job_cmd():
        """Run every registered housekeeping job once (for cron)."""
        from audit_workflow.services.scheduler_service import SchedulerService, get_registered_jobs
        for name in get_registered_jobs():
            result = SchedulerService.run_job(name)
            if result.get("status") == "skipped":
                logger.info("Job %s skipped (disabled)", name)
                continue
            logger.info("Job %s finished: %s", name, result.get("status"))

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed", "code": "ERR_VALIDATION_INVALID"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    # ── Scheduler initialization (import jobs to register them) ──────────
    import importlib
    importlib.import_module("audit_workflow.services.scheduled_jobs")  # registers @register_job handlers
    from audit_workflow.services.scheduler_service import SchedulerService as _SchedulerSvc
    _SchedulerSvc.init_app(app)
    _SchedulerSvc.ensure_jobs_registered()

    return app
