"""
Activity journal service.

Activity rows are written AFTER the primary mutation has been committed, in
their own commit. A failing journal write is rolled back and logged; it never
fails or undoes the change it describes.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from audit_workflow.models import db
from audit_workflow.models.activity import ActivityEvent, write_activity

logger = logging.getLogger(__name__)


def record_activity(
    company_id: str,
    actor_id: str,
    actor_name: str | None,
    event_type: str,
    message: str,
) -> ActivityEvent | None:
    """Append and commit one activity event (best-effort)."""
    try:
        event = write_activity(
            company_id=company_id,
            actor_id=actor_id,
            actor_name=actor_name,
            event_type=event_type,
            message=message,
        )
        db.session.commit()
        return event
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning(
            "Activity write failed company_id=%s event_type=%s",
            company_id, event_type, exc_info=True,
        )
        return None


def recent_activity(company_id: str, limit: int = 120) -> list[dict]:
    """Newest-first activity feed for one company."""
    rows = db.session.execute(
        select(ActivityEvent)
        .where(ActivityEvent.company_id == company_id)
        .order_by(ActivityEvent.created_at.desc(), ActivityEvent.id.desc())
        .limit(limit)
    ).scalars().all()
    return [row.to_dict() for row in rows]
