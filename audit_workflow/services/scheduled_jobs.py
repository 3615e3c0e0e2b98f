"""
Audit Workflow Tracker
Scheduled Jobs.

Concrete job implementations that run on a schedule.

Jobs:
    - expired_lock_sweep:   Deletes company locks whose TTL has passed
    - stale_presence_sweep: Deletes presence heartbeats older than the staleness window
"""

from __future__ import annotations

import logging
from typing import Any

from audit_workflow.models import db
from audit_workflow.services.scheduler_service import register_job

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Job 1: Expired Lock Sweep
# ═══════════════════════════════════════════════════════════════════════════

@register_job("expired_lock_sweep")
def sweep_expired_locks(app) -> dict[str, Any]:
    """Delete lock rows that are no longer live."""
    from audit_workflow.services.lock_service import prune_expired_locks

    removed = prune_expired_locks()
    db.session.commit()
    logger.info("Expired lock sweep: removed=%d", removed)
    return {"locks_removed": removed}


# ═══════════════════════════════════════════════════════════════════════════
#  Job 2: Stale Presence Sweep
# ═══════════════════════════════════════════════════════════════════════════

@register_job("stale_presence_sweep")
def sweep_stale_presence(app) -> dict[str, Any]:
    """Delete presence heartbeats outside the freshness window."""
    from audit_workflow.services.presence_service import prune_stale_presence

    removed = prune_stale_presence()
    logger.info("Stale presence sweep: removed=%d", removed)
    return {"presence_removed": removed}
