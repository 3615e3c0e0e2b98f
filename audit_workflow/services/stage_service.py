"""
Audit stage machine — Service Layer.

Stages move strictly forward, one step at a time:

    First time auditing → First time review → Second time review → Partner review
                                                                      │
                                                   send_to_signing ───┘──→ Signing

Business rules:
    - Both transitions require the caller to hold the company lock.
    - advance_stage never leaves Partner review; only a partner may send a
      company to Signing.
    - Auditors (and unrecognised roles) may only advance out of
      First time auditing.
    - Signing is terminal.
"""

import logging

from audit_workflow.core.exceptions import (
    AlreadyTerminalError,
    ForbiddenError,
    InvalidStageError,
    NotFoundError,
    RoleNotAllowedError,
    UseSendToSigningError,
)
from audit_workflow.models import db
from audit_workflow.models.company import (
    FIRST_STAGE,
    PARTNER_REVIEW_STAGE,
    SIGNING_STAGE,
    Company,
    next_review_stage,
)
from audit_workflow.services.activity_service import record_activity
from audit_workflow.services.identity import normalize_actor_role
from audit_workflow.services.lock_service import lock_dict, require_lock_holder

logger = logging.getLogger(__name__)


def _load_company(company_id: str) -> Company:
    company = db.session.get(Company, company_id)
    if company is None:
        db.session.rollback()
        raise NotFoundError(resource="Company", resource_id=company_id)
    return company


def _reject(exc_cls, message: str, company: Company, lock):
    """Roll back the read transaction and raise with reconciliation state."""
    state = company.to_dict()
    db.session.rollback()
    raise exc_cls(message, lock=lock_dict(lock), company=state)


def advance_stage(company_id: str, actor_id: str, actor_role) -> dict:
    """Move the company one review stage forward.

    Returns:
        {"company": {...}, "lock": {...}}

    Raises:
        LockRequiredError, NotFoundError, AlreadyTerminalError,
        UseSendToSigningError, RoleNotAllowedError, InvalidStageError
    """
    role = normalize_actor_role(actor_role) or "auditor"

    lock = require_lock_holder(company_id, actor_id)
    company = _load_company(company_id)
    current = company.audit_stage or FIRST_STAGE

    if current == SIGNING_STAGE:
        _reject(AlreadyTerminalError, "Company is already in signing.", company, lock)
    if current == PARTNER_REVIEW_STAGE:
        _reject(
            UseSendToSigningError,
            "Partner review is the final review stage. Use send to signing.",
            company, lock,
        )
    if role == "auditor" and current != FIRST_STAGE:
        _reject(
            RoleNotAllowedError,
            "Auditors can only move from First time auditing to First time review.",
            company, lock,
        )

    next_stage = next_review_stage(current)
    if next_stage is None:
        _reject(InvalidStageError, f"Cannot advance from unknown stage {current!r}.", company, lock)

    company.audit_stage = next_stage
    actor_name = lock.actor_name
    db.session.commit()
    logger.info("Stage advanced company_id=%s %s → %s by %s", company_id, current, next_stage, actor_id)

    record_activity(
        company_id, actor_id, actor_name, "stage_change",
        f'Moved stage from "{current}" to "{next_stage}".',
    )
    return {"company": company.to_dict(), "lock": lock_dict(lock)}


def send_to_signing(company_id: str, actor_id: str, actor_role) -> dict:
    """Accept a company in Partner review and move it to Signing.

    Returns:
        {"company": {...}, "lock": {...}}

    Raises:
        ForbiddenError (not a partner), LockRequiredError, NotFoundError,
        AlreadyTerminalError, InvalidStageError
    """
    if normalize_actor_role(actor_role) != "partner":
        raise ForbiddenError("Only partners can send a company to signing.")

    lock = require_lock_holder(company_id, actor_id)
    company = _load_company(company_id)
    current = company.audit_stage or FIRST_STAGE

    if current == SIGNING_STAGE:
        _reject(AlreadyTerminalError, "Company is already in signing.", company, lock)
    if current != PARTNER_REVIEW_STAGE:
        _reject(
            InvalidStageError,
            "Only companies in Partner review can be sent to signing.",
            company, lock,
        )

    company.audit_stage = SIGNING_STAGE
    actor_name = lock.actor_name
    db.session.commit()
    logger.info("Company sent to signing company_id=%s by %s", company_id, actor_id)

    record_activity(
        company_id, actor_id, actor_name, "stage_signing",
        f'Accepted company and sent to "{SIGNING_STAGE}" from "{current}".',
    )
    return {"company": company.to_dict(), "lock": lock_dict(lock)}
