"""
Presence tracker — Service Layer.

Heartbeat rows saying who is looking at which tab of a company. Presence is
advisory only: it never gates edits, and every write here is best-effort.
A record is fresh while ``last_seen_at >= now - PRESENCE_STALE_SECONDS``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from audit_workflow.core.exceptions import NotFoundError
from audit_workflow.models import db
from audit_workflow.models.company import Company
from audit_workflow.models.lock import utcnow
from audit_workflow.models.presence import PresenceRecord
from audit_workflow.services.directory_service import upsert_directory_user
from audit_workflow.services.identity import normalize_actor_role

logger = logging.getLogger(__name__)

DEFAULT_PRESENCE_STALE_SECONDS = 75
DEFAULT_ACTOR_NAME = "Unknown user"
DEFAULT_ACTOR_ROLE = "auditor"
DEFAULT_ACTIVE_TAB = "audit_tasks"


def presence_cutoff(now: datetime | None = None) -> datetime:
    seconds = current_app.config.get("PRESENCE_STALE_SECONDS", DEFAULT_PRESENCE_STALE_SECONDS)
    return (now or utcnow()) - timedelta(seconds=int(seconds))


def list_presence(company_id: str) -> list[dict]:
    """Fresh presence records for a company, most recent first."""
    rows = db.session.execute(
        select(PresenceRecord)
        .where(
            PresenceRecord.company_id == company_id,
            PresenceRecord.fresh_filter(presence_cutoff()),
        )
        .order_by(PresenceRecord.last_seen_at.desc())
    ).scalars().all()
    return [row.to_dict() for row in rows]


def prune_stale_presence() -> int:
    """Delete stale presence rows across all companies (best-effort)."""
    try:
        result = db.session.execute(
            delete(PresenceRecord)
            .where(~PresenceRecord.fresh_filter(presence_cutoff()))
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount or 0
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Stale presence prune failed", exc_info=True)
        return 0


def upsert_presence(company_id, actor_id, actor_name=None, actor_role=None, active_tab=None):
    """Record a heartbeat for (company, actor). Last write wins.

    Returns the stored record as a dict, or None when the write failed.
    """
    if db.session.get(Company, company_id) is None:
        raise NotFoundError(resource="Company", resource_id=company_id)

    name = str(actor_name or "").strip() or DEFAULT_ACTOR_NAME
    role = normalize_actor_role(actor_role) or DEFAULT_ACTOR_ROLE
    tab = str(active_tab or "").strip() or DEFAULT_ACTIVE_TAB

    upsert_directory_user(actor_id, name, role)

    try:
        record = db.session.get(PresenceRecord, (company_id, actor_id))
        if record is None:
            record = PresenceRecord(company_id=company_id, actor_id=actor_id)
            db.session.add(record)
        record.actor_name = name
        record.actor_role = role
        record.active_tab = tab
        record.last_seen_at = utcnow()
        db.session.commit()
        data = record.to_dict()
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Presence upsert failed company_id=%s actor_id=%s", company_id, actor_id, exc_info=True)
        return None

    prune_stale_presence()
    return data


def remove_presence(company_id, actor_id) -> None:
    """Drop the heartbeat for (company, actor). Always succeeds."""
    try:
        db.session.execute(
            delete(PresenceRecord)
            .where(PresenceRecord.company_id == company_id, PresenceRecord.actor_id == actor_id)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Presence removal failed company_id=%s actor_id=%s", company_id, actor_id, exc_info=True)
