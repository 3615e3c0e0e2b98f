"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in audit_workflow/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from audit_workflow.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_METHODS = ["POST", "PUT", "PATCH", "DELETE"]

WRITE_LIMIT = "60/minute"
READ_LIMIT = "300/minute"
# Presence heartbeats fire on a timer from every open tab
COLLABORATION_WRITE_LIMIT = "240/minute"
JOBS_LIMIT = "10/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Audit mutations:          60/minute  (POST/PUT/PATCH/DELETE)
        - Collaboration mutations:  240/minute (heartbeats, comments)
        - Reads:                    300/minute (GET — generous for polling SPA)
        - Jobs:                     10/minute
        - Health check:             exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("audit")
    if bp:
        limiter.limit(WRITE_LIMIT, methods=WRITE_METHODS)(bp)
        limiter.limit(READ_LIMIT, methods=["GET"])(bp)

    bp = app.blueprints.get("collaboration")
    if bp:
        limiter.limit(COLLABORATION_WRITE_LIMIT, methods=WRITE_METHODS)(bp)
        limiter.limit(READ_LIMIT, methods=["GET"])(bp)

    bp = app.blueprints.get("jobs")
    if bp:
        limiter.limit(JOBS_LIMIT)(bp)

    # Health check: exempt from rate limiting
    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — write: %s, collaboration: %s, read: %s, jobs: %s",
        WRITE_LIMIT, COLLABORATION_WRITE_LIMIT, READ_LIMIT, JOBS_LIMIT,
    )
