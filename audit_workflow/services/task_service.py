"""
Audit task ledger — Service Layer.

Task rows are edited only by the holder of the company lock. Each accepted
patch stamps ``last_updated`` with the server date and journals one activity
event per user-visible field that actually changed (status, comment).
Evidence changes are persisted but not journaled.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select

from audit_workflow.core.exceptions import NotFoundError
from audit_workflow.models import db
from audit_workflow.models.company import AuditTask, task_number_key
from audit_workflow.services.activity_service import record_activity
from audit_workflow.services.identity import summarize_text
from audit_workflow.services.lock_service import lock_dict, require_lock_holder

logger = logging.getLogger(__name__)

TASK_PATCH_FIELDS = ("status", "comment", "evidence")

COMMENT_SUMMARY_LIMIT = 180


def list_tasks(company_id: str) -> list[dict]:
    """Tasks of one company ordered by dotted task number."""
    rows = db.session.execute(
        select(AuditTask).where(AuditTask.company_id == company_id)
    ).scalars().all()
    rows = sorted(rows, key=lambda t: (task_number_key(t.task_number), t.task_number))
    return [row.to_dict() for row in rows]


def update_task(company_id: str, task_id: str, patch: dict, actor_id: str) -> dict:
    """Apply a partial update to one task.

    Only keys present in *patch* among status / comment / evidence are
    applied. Value shapes are validated at the HTTP boundary.

    Returns:
        {"task": {...}, "lock": {...}}

    Raises:
        LockRequiredError: actor does not hold the live company lock.
        NotFoundError:     task does not exist under this company.
    """
    lock = require_lock_holder(company_id, actor_id)

    task = db.session.get(AuditTask, task_id)
    if task is None or task.company_id != company_id:
        db.session.rollback()
        raise NotFoundError(resource="Task", resource_id=task_id)

    old_status = task.status
    old_comment = task.comment or ""

    for field in TASK_PATCH_FIELDS:
        if field in patch:
            setattr(task, field, patch[field])
    task.last_updated = date.today()

    task_number = task.task_number
    new_status = task.status
    new_comment = task.comment or ""
    actor_name = lock.actor_name
    db.session.commit()
    logger.info("Task updated company_id=%s task_id=%s by %s", company_id, task_id, actor_id)

    if "status" in patch and new_status != old_status:
        record_activity(
            company_id, actor_id, actor_name, "task_status",
            f'Task {task_number}: status changed from "{old_status}" to "{new_status}".',
        )
    if "comment" in patch and new_comment != old_comment:
        summary = summarize_text(new_comment, COMMENT_SUMMARY_LIMIT)
        record_activity(
            company_id, actor_id, actor_name, "task_comment",
            f'Task {task_number}: comment updated to "{summary}".',
        )

    return {"task": task.to_dict(), "lock": lock_dict(lock)}
