"""
Company aggregate — Service Layer.

Read models:
    company_overview()        — list view with task counts and live locks
    company_workspace(...)    — everything one company screen needs
    dashboard_summary()       — cross-company KPIs and 30-day stage timeline

Mutations:
    update_due_date(...)        — manager / partner, not lock-gated
    save_signing_document(...)  — partner, lock-gated
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, timedelta

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from audit_workflow.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from audit_workflow.models import db
from audit_workflow.models.activity import ActivityEvent
from audit_workflow.models.company import (
    AUDIT_STAGES,
    PARTNER_REVIEW_STAGE,
    SIGNING_STAGE,
    AuditTask,
    Company,
)
from audit_workflow.models.lock import as_utc, utcnow
from audit_workflow.services.activity_service import recent_activity, record_activity
from audit_workflow.services.directory_service import mention_directory
from audit_workflow.services.discussion_service import list_discussions
from audit_workflow.services.identity import is_elevated_role, normalize_actor_role
from audit_workflow.services.lock_service import (
    active_locks_by_company,
    get_active_lock,
    lock_dict,
    prune_expired_locks,
    require_lock_holder,
)
from audit_workflow.services.notification import NotificationService
from audit_workflow.services.presence_service import list_presence, prune_stale_presence
from audit_workflow.services.task_service import list_tasks

logger = logging.getLogger(__name__)

DASHBOARD_TIMELINE_DAYS = 30


def _get_company_or_404(company_id: str) -> Company:
    company = db.session.get(Company, company_id)
    if company is None:
        raise NotFoundError(resource="Company", resource_id=company_id)
    return company


# ═════════════════════════════════════════════════════════════════════════════
# Read models
# ═════════════════════════════════════════════════════════════════════════════


def company_overview() -> list[dict]:
    """All companies ordered by name, with task count and live lock."""
    counts = dict(
        db.session.execute(
            select(AuditTask.company_id, func.count(AuditTask.id)).group_by(AuditTask.company_id)
        ).all()
    )
    locks = active_locks_by_company()
    companies = Company.query.order_by(Company.name.asc()).all()

    result = []
    for company in companies:
        data = company.to_dict()
        data["task_count"] = counts.get(company.id, 0)
        data["lock"] = locks.get(company.id)
        result.append(data)
    return result


def _sweep_before_read() -> None:
    try:
        removed = prune_expired_locks()
        db.session.commit()
        if removed:
            logger.debug("Pruned %d expired lock(s)", removed)
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Expired lock prune failed", exc_info=True)
    prune_stale_presence()


def company_workspace(company_id: str | None, viewer_name: str | None = None) -> dict:
    """Aggregate for one company screen.

    An unknown or missing *company_id* selects the first company by name.
    Returns ``{"companies": [...], "company": None, ...}`` on an empty store.
    """
    _sweep_before_read()

    companies = company_overview()
    selected = None
    if company_id:
        selected = db.session.get(Company, company_id)
    if selected is None and companies:
        selected = db.session.get(Company, companies[0]["id"])

    if selected is None:
        return {
            "companies": companies,
            "company": None,
            "tasks": [],
            "lock": None,
            "activity": [],
            "discussions": [],
            "presence": [],
            "notifications": [],
            "mention_directory": mention_directory(),
        }

    feed_limit = int(current_app.config.get("ACTIVITY_FEED_LIMIT", 120))
    return {
        "companies": companies,
        "company": selected.to_dict(),
        "tasks": list_tasks(selected.id),
        "lock": lock_dict(get_active_lock(selected.id)),
        "activity": recent_activity(selected.id, limit=feed_limit),
        "discussions": list_discussions(selected.id),
        "presence": list_presence(selected.id),
        "notifications": NotificationService.list_for_company_viewer(selected.id, viewer_name),
        "mention_directory": mention_directory(),
    }


def dashboard_summary(today: date | None = None) -> dict:
    """Cross-company KPIs.

    Overdue open tasks: company due date before *today*, company not in
    Signing, task not Completed. Signing ready: Partner review with the
    partner-review checklist item answered Yes.
    """
    today = today or date.today()
    companies = Company.query.all()
    locks = active_locks_by_company()

    stage_distribution = {stage: 0 for stage in AUDIT_STAGES}
    overdue_company_ids = []
    signing_ready = 0
    for company in companies:
        stage = company.audit_stage if company.audit_stage in stage_distribution else AUDIT_STAGES[0]
        stage_distribution[stage] += 1
        if company.task_due_date and company.task_due_date < today and stage != SIGNING_STAGE:
            overdue_company_ids.append(company.id)
        if stage == PARTNER_REVIEW_STAGE and company.partner_review_ready is True:
            signing_ready += 1

    overdue_open_tasks = 0
    if overdue_company_ids:
        overdue_open_tasks = AuditTask.query.filter(
            AuditTask.company_id.in_(overdue_company_ids),
            AuditTask.status != "Completed",
        ).count()

    return {
        "company_count": len(companies),
        "locked_companies": len(locks),
        "overdue_open_tasks": overdue_open_tasks,
        "signing_ready": signing_ready,
        "stage_distribution": stage_distribution,
        "timeline": _stage_timeline(today),
    }


def _stage_timeline(today: date) -> list[dict]:
    """Per-day counts of stage moves over the last 30 days, oldest first."""
    start = today - timedelta(days=DASHBOARD_TIMELINE_DAYS - 1)
    buckets = {}
    for offset in range(DASHBOARD_TIMELINE_DAYS):
        day = start + timedelta(days=offset)
        buckets[day] = Counter()

    since = utcnow() - timedelta(days=DASHBOARD_TIMELINE_DAYS + 1)
    events = db.session.execute(
        select(ActivityEvent.event_type, ActivityEvent.created_at).where(
            ActivityEvent.event_type.in_(("stage_change", "stage_signing")),
            ActivityEvent.created_at >= since,
        )
    ).all()
    for event_type, created_at in events:
        day = as_utc(created_at).date()
        if day in buckets:
            buckets[day][event_type] += 1

    timeline = []
    for day, counter in buckets.items():
        timeline.append({
            "date": day.isoformat(),
            "stage_moves": counter["stage_change"],
            "sent_to_signing": counter["stage_signing"],
            "processed_total": counter["stage_change"] + counter["stage_signing"],
        })
    return timeline


# ═════════════════════════════════════════════════════════════════════════════
# Mutations
# ═════════════════════════════════════════════════════════════════════════════


def _parse_due_date(value) -> date | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Invalid due date format.", details={"due_date": "YYYY-MM-DD"})
    text = value.strip()
    if not text:
        return None
    try:
        if len(text) != 10:
            raise ValueError(text)
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError("Invalid due date format.", details={"due_date": "YYYY-MM-DD"})


def update_due_date(company_id, due_date, actor_role, actor_id, actor_name=None) -> dict:
    """Set or clear the company task due date.

    Raises:
        ForbiddenError:  role is not manager or partner.
        ValidationError: not an ISO ``YYYY-MM-DD`` date (empty clears).
        NotFoundError:   unknown company.
    """
    if not is_elevated_role(actor_role):
        raise ForbiddenError("Only managers or partners can set due dates.")
    parsed = _parse_due_date(due_date)
    company = _get_company_or_404(company_id)

    previous = company.task_due_date
    company.task_due_date = parsed
    db.session.commit()

    if previous != parsed:
        message = f"Set company due date to {parsed.isoformat()}." if parsed else "Cleared company due date."
        record_activity(company_id, actor_id, actor_name, "company_due_date", message)
        logger.info("Due date company_id=%s %s → %s", company_id, previous, parsed)

    return {"company": company.to_dict()}


def save_signing_document(company_id, actor_id, actor_role, document) -> dict:
    """Store the signing document text for a company.

    Returns:
        {"company": {...}, "lock": {...}}

    Raises:
        ForbiddenError, LockRequiredError, ValidationError, NotFoundError
    """
    if normalize_actor_role(actor_role) != "partner":
        raise ForbiddenError("Only partners can edit the signing document.")

    lock = require_lock_holder(company_id, actor_id)
    if not isinstance(document, str):
        db.session.rollback()
        raise ValidationError("document must be a string", details={"document": "string"})

    company = db.session.get(Company, company_id)
    if company is None:
        db.session.rollback()
        raise NotFoundError(resource="Company", resource_id=company_id)

    previous = company.signing_document or ""
    company.signing_document = document
    actor_name = lock.actor_name
    db.session.commit()

    if previous != document:
        record_activity(company_id, actor_id, actor_name, "signing_document", "Updated signing document.")

    return {"company": company.to_dict(), "lock": lock_dict(lock)}
