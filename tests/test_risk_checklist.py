"""Tests for the lock-gated company risk checklist."""

import pytest
from sqlalchemy import select

from audit_workflow.core.exceptions import InvalidFieldError, InvalidValueError, LockRequiredError
from audit_workflow.models import db
from audit_workflow.models.activity import ActivityEvent
from audit_workflow.models.company import Company
from audit_workflow.services import lock_service
from audit_workflow.services.risk_checklist_service import update_risk_checklist


def _messages():
    return db.session.execute(
        select(ActivityEvent.message)
        .where(ActivityEvent.event_type == "risk_checklist")
        .order_by(ActivityEvent.id)
    ).scalars().all()


@pytest.fixture()
def holder(company):
    lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
    return "actor-a"


def test_new_company_checklist_is_unanswered(company):
    data = db.session.get(Company, "acme-corp").to_dict()
    assert data["overall_risk_assessed"] is None
    assert data["partner_review_ready"] is None


def test_set_answer_and_journal(holder):
    result = update_risk_checklist("acme-corp", holder, "controls_tested", True)

    assert result["company"]["controls_tested"] is True
    assert _messages() == ['Key controls tested: set to "Yes".']


def test_false_is_a_real_answer(holder):
    result = update_risk_checklist("acme-corp", holder, "fraud_risk_documented", False)

    assert result["company"]["fraud_risk_documented"] is False
    assert _messages() == ['Fraud risk documented: set to "No".']


def test_repeated_value_is_not_journaled(holder):
    update_risk_checklist("acme-corp", holder, "overall_risk_assessed", True)
    update_risk_checklist("acme-corp", holder, "overall_risk_assessed", True)
    update_risk_checklist("acme-corp", holder, "overall_risk_assessed", False)

    assert _messages() == [
        'Overall risk assessed: set to "Yes".',
        'Overall risk assessed: set to "No".',
    ]


def test_unknown_field(holder):
    with pytest.raises(InvalidFieldError) as exc_info:
        update_risk_checklist("acme-corp", holder, "audit_stage", True)
    assert exc_info.value.code == "ERR_INVALID_FIELD"
    assert "partner_review_ready" in exc_info.value.details["allowed"]


@pytest.mark.parametrize("value", [1, 0, "true", None])
def test_non_boolean_value(holder, value):
    with pytest.raises(InvalidValueError):
        update_risk_checklist("acme-corp", holder, "controls_tested", value)
    assert db.session.get(Company, "acme-corp").controls_tested is None


def test_requires_lock(company):
    with pytest.raises(LockRequiredError):
        update_risk_checklist("acme-corp", "actor-a", "controls_tested", True)
    assert _messages() == []
