"""
Risk checklist — Service Layer.

Four nullable booleans on the company row (NULL = unanswered). Lock-gated;
one ``risk_checklist`` activity per effective change.
"""

import logging

from audit_workflow.core.exceptions import InvalidFieldError, InvalidValueError, NotFoundError
from audit_workflow.models import db
from audit_workflow.models.company import RISK_CHECKLIST_FIELDS, Company
from audit_workflow.services.activity_service import record_activity
from audit_workflow.services.lock_service import lock_dict, require_lock_holder

logger = logging.getLogger(__name__)


def update_risk_checklist(company_id, actor_id, field, value):
    """Set one checklist answer.

    Returns:
        {"company": {...}, "lock": {...}}

    Raises:
        LockRequiredError, InvalidFieldError, InvalidValueError, NotFoundError
    """
    lock = require_lock_holder(company_id, actor_id)

    if field not in RISK_CHECKLIST_FIELDS:
        db.session.rollback()
        raise InvalidFieldError(
            f"Unknown risk checklist field: {field}",
            details={"field": field, "allowed": sorted(RISK_CHECKLIST_FIELDS)},
        )
    # bool only: 0/1 and "true" are rejected
    if not isinstance(value, bool):
        db.session.rollback()
        raise InvalidValueError("Risk checklist value must be true or false.")

    company = db.session.get(Company, company_id)
    if company is None:
        db.session.rollback()
        raise NotFoundError(resource="Company", resource_id=company_id)

    previous = getattr(company, field)
    setattr(company, field, value)
    actor_name = lock.actor_name
    db.session.commit()

    if previous is not value:
        label = RISK_CHECKLIST_FIELDS[field]
        record_activity(
            company_id, actor_id, actor_name, "risk_checklist",
            f'{label}: set to "{"Yes" if value else "No"}".',
        )
        logger.info("Risk checklist %s=%s company_id=%s", field, value, company_id)

    return {"company": company.to_dict(), "lock": lock_dict(lock)}
