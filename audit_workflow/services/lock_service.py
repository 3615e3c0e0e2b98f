"""
Company edit-lock service.

One exclusive, TTL-bound lock per company authorizes every gated mutation
(task edits, risk checklist, stage transitions, signing document).

Rules:
  - The lock row is the only mutual-exclusion primitive; nothing is cached
    in process memory, so several app instances may share one database.
  - Liveness is decided solely by ``CompanyLock.live_filter``. Reads filter
    with it and ``prune_expired_locks`` deletes rows failing it.
  - Claims are atomic at the storage layer: a conditional UPDATE takes over
    an own or expired row; otherwise an INSERT relies on the company_id
    primary key, so of two racing claimants exactly one succeeds.
  - Gated services call ``require_lock_holder`` immediately before writing,
    inside the same transaction as the write.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from flask import current_app
from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.exc import IntegrityError

from audit_workflow.core.exceptions import (
    ForbiddenError,
    LockConflictError,
    LockRequiredError,
    NotFoundError,
    NotHolderError,
)
from audit_workflow.models import db
from audit_workflow.models.company import Company
from audit_workflow.models.lock import CompanyLock, utcnow
from audit_workflow.services.directory_service import upsert_directory_user
from audit_workflow.services.identity import is_elevated_role

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TTL_SECONDS = 600


def _lock_ttl() -> timedelta:
    seconds = current_app.config.get("LOCK_TTL_SECONDS", DEFAULT_LOCK_TTL_SECONDS)
    return timedelta(seconds=int(seconds))


def lock_dict(lock: CompanyLock | None) -> dict | None:
    return lock.to_dict() if lock else None


# ── Reads ────────────────────────────────────────────────────────────────────


def get_active_lock(company_id: str, *, for_update: bool = False) -> CompanyLock | None:
    """Return the live lock for *company_id*, or None when absent or expired."""
    stmt = select(CompanyLock).where(
        CompanyLock.company_id == company_id,
        CompanyLock.live_filter(utcnow()),
    )
    if for_update:
        stmt = stmt.with_for_update()
    return db.session.execute(stmt).scalar_one_or_none()


def active_locks_by_company() -> dict[str, dict]:
    """Live locks for every company, keyed by company id."""
    rows = db.session.execute(
        select(CompanyLock).where(CompanyLock.live_filter(utcnow()))
    ).scalars().all()
    return {row.company_id: row.to_dict() for row in rows}


def prune_expired_locks() -> int:
    """Delete every lock row that is no longer live. Caller commits."""
    result = db.session.execute(
        delete(CompanyLock)
        .where(~CompanyLock.live_filter(utcnow()))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def require_lock_holder(company_id: str, actor_id: str) -> CompanyLock:
    """Authorize a gated write: *actor_id* must hold the live lock right now.

    Reads the lock row fresh (``FOR UPDATE`` where the dialect supports it)
    so a lock that expired or changed hands since the request started is
    rejected.

    Raises:
        LockRequiredError: no live lock, or another actor holds it.
    """
    lock = get_active_lock(company_id, for_update=True)
    if lock is None or lock.actor_id != actor_id:
        raise LockRequiredError(lock=lock_dict(lock))
    return lock


# ── Lock actions ─────────────────────────────────────────────────────────────


def claim_lock(company_id: str, actor_id: str, actor_name: str) -> dict:
    """Claim (or re-claim) the company lock for *actor_id*.

    Re-claiming an own lock behaves as renew. Taking over an expired lock
    is allowed.

    Raises:
        NotFoundError:     unknown company.
        LockConflictError: another actor holds a live lock.
    """
    if db.session.get(Company, company_id) is None:
        raise NotFoundError(resource="Company", resource_id=company_id)

    upsert_directory_user(actor_id, actor_name)

    now = utcnow()
    expires_at = now + _lock_ttl()
    try:
        result = db.session.execute(
            update(CompanyLock)
            .where(
                CompanyLock.company_id == company_id,
                or_(CompanyLock.actor_id == actor_id, ~CompanyLock.live_filter(now)),
            )
            .values(actor_id=actor_id, actor_name=actor_name, expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            db.session.execute(
                insert(CompanyLock).values(
                    company_id=company_id,
                    actor_id=actor_id,
                    actor_name=actor_name,
                    expires_at=expires_at,
                )
            )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        holder = get_active_lock(company_id)
        logger.info(
            "Lock claim rejected company_id=%s actor_id=%s holder=%s",
            company_id, actor_id, holder.actor_id if holder else None,
        )
        raise LockConflictError(lock=lock_dict(holder))

    lock = get_active_lock(company_id)
    logger.info("Lock claimed company_id=%s actor_id=%s", company_id, actor_id)
    return lock_dict(lock)


def renew_lock(company_id: str, actor_id: str) -> dict:
    """Extend the holder's lock by one TTL, keeping its actor name.

    Raises:
        NotHolderError: no live lock, or another actor holds it.
    """
    lock = get_active_lock(company_id, for_update=True)
    if lock is None or lock.actor_id != actor_id:
        db.session.rollback()
        raise NotHolderError(lock=lock_dict(lock))

    lock.expires_at = utcnow() + _lock_ttl()
    db.session.commit()
    logger.debug("Lock renewed company_id=%s actor_id=%s", company_id, actor_id)
    return lock_dict(get_active_lock(company_id))


def release_lock(company_id: str, actor_id: str) -> None:
    """Release the holder's lock. Releasing an absent lock is a no-op.

    Raises:
        NotHolderError: another actor holds the live lock.
    """
    lock = get_active_lock(company_id)
    if lock is None:
        return None
    if lock.actor_id != actor_id:
        raise NotHolderError("Only lock holder can release lock.", lock=lock_dict(lock))

    db.session.execute(
        delete(CompanyLock)
        .where(CompanyLock.company_id == company_id, CompanyLock.actor_id == actor_id)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    logger.info("Lock released company_id=%s actor_id=%s", company_id, actor_id)
    return None


def force_release_lock(company_id: str, actor_role) -> None:
    """Delete any lock on the company regardless of holder.

    Raises:
        ForbiddenError: role is not manager or partner.
    """
    if not is_elevated_role(actor_role):
        raise ForbiddenError("Only managers or partners can release other users' locks.")

    result = db.session.execute(
        delete(CompanyLock)
        .where(CompanyLock.company_id == company_id)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    if result.rowcount:
        logger.warning("Lock force-released company_id=%s role=%s", company_id, actor_role)
    return None
