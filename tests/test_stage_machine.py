"""
Exhaustive transition tests for the audit stage machine.

    First time auditing → First time review → Second time review → Partner review
                                                                      │
                                                   send_to_signing ───┘──→ Signing

For each transition:
    - Valid moves advance exactly one step and journal one activity event.
    - Terminal, skip and role violations raise the documented error.
    - send_to_signing is checked against the full (stage, role, lock) truth table.
"""

import pytest
from sqlalchemy import select

from audit_workflow.core.exceptions import (
    AlreadyTerminalError,
    ForbiddenError,
    InvalidStageError,
    LockRequiredError,
    RoleNotAllowedError,
    UseSendToSigningError,
)
from audit_workflow.models import db
from audit_workflow.models.activity import ActivityEvent
from audit_workflow.models.company import (
    AUDIT_STAGES,
    REVIEW_STAGES,
    Company,
    next_review_stage,
    stage_index,
)
from audit_workflow.services import lock_service, stage_service


def _set_stage(stage):
    company = db.session.get(Company, "acme-corp")
    company.audit_stage = stage
    db.session.commit()


def _claim(actor_id="actor-a", name="Alex Johnson"):
    lock_service.claim_lock("acme-corp", actor_id, name)


def _events(event_type):
    return db.session.execute(
        select(ActivityEvent).where(ActivityEvent.event_type == event_type)
    ).scalars().all()


# ═════════════════════════════════════════════════════════════════════════════
# Stage helpers
# ═════════════════════════════════════════════════════════════════════════════


class TestStageOrder:
    def test_stage_index_by_identity(self):
        assert [stage_index(s) for s in REVIEW_STAGES] == [0, 1, 2, 3]
        assert stage_index("Signing") == -1
        assert stage_index("first time auditing") == -1

    def test_next_review_stage(self):
        assert next_review_stage("First time auditing") == "First time review"
        assert next_review_stage("Second time review") == "Partner review"
        assert next_review_stage("Partner review") is None
        assert next_review_stage("Signing") is None
        assert next_review_stage("Bogus") is None

    def test_audit_stages_end_in_signing(self):
        assert AUDIT_STAGES[-1] == "Signing"
        assert len(AUDIT_STAGES) == 5


# ═════════════════════════════════════════════════════════════════════════════
# advance_stage
# ═════════════════════════════════════════════════════════════════════════════


class TestAdvanceStage:
    @pytest.mark.parametrize("role", ["auditor", "manager", "partner"])
    def test_first_stage_advances_for_every_role(self, company, role):
        _claim()
        result = stage_service.advance_stage("acme-corp", "actor-a", role)

        assert result["company"]["audit_stage"] == "First time review"
        assert result["lock"]["actor_id"] == "actor-a"
        events = _events("stage_change")
        assert len(events) == 1
        assert events[0].message == 'Moved stage from "First time auditing" to "First time review".'
        assert events[0].actor_name == "Alex Johnson"

    @pytest.mark.parametrize("role", ["manager", "partner"])
    def test_elevated_roles_walk_to_partner_review(self, company, role):
        _claim()
        for expected in REVIEW_STAGES[1:]:
            result = stage_service.advance_stage("acme-corp", "actor-a", role)
            assert result["company"]["audit_stage"] == expected
        assert len(_events("stage_change")) == 3

    @pytest.mark.parametrize("stage", ["First time review", "Second time review"])
    def test_auditor_outside_first_stage_not_allowed(self, company, stage):
        _set_stage(stage)
        _claim()
        with pytest.raises(RoleNotAllowedError) as exc_info:
            stage_service.advance_stage("acme-corp", "actor-a", "auditor")
        assert exc_info.value.status == 403
        assert exc_info.value.company["audit_stage"] == stage
        assert db.session.get(Company, "acme-corp").audit_stage == stage

    def test_unknown_role_treated_as_auditor(self, company):
        _set_stage("First time review")
        _claim()
        with pytest.raises(RoleNotAllowedError):
            stage_service.advance_stage("acme-corp", "actor-a", "intern")

    @pytest.mark.parametrize("role", ["auditor", "manager", "partner", None])
    def test_signing_is_terminal(self, company, role):
        _set_stage("Signing")
        _claim()
        with pytest.raises(AlreadyTerminalError) as exc_info:
            stage_service.advance_stage("acme-corp", "actor-a", role)
        assert exc_info.value.status == 409

    def test_partner_review_requires_send_to_signing(self, company):
        _set_stage("Partner review")
        _claim()
        with pytest.raises(UseSendToSigningError) as exc_info:
            stage_service.advance_stage("acme-corp", "actor-a", "partner")
        assert isinstance(exc_info.value, InvalidStageError)
        assert "Use send to signing" in str(exc_info.value)

    def test_unrecognised_stage_value(self, company):
        _set_stage("Archived")
        _claim()
        with pytest.raises(InvalidStageError):
            stage_service.advance_stage("acme-corp", "actor-a", "manager")

    def test_requires_lock(self, company):
        with pytest.raises(LockRequiredError) as exc_info:
            stage_service.advance_stage("acme-corp", "actor-a", "manager")
        assert exc_info.value.lock is None
        assert _events("stage_change") == []

    def test_lock_held_by_other_actor(self, company):
        _claim("actor-b", "Bob Berg")
        with pytest.raises(LockRequiredError) as exc_info:
            stage_service.advance_stage("acme-corp", "actor-a", "manager")
        assert exc_info.value.lock["actor_id"] == "actor-b"

    def test_expired_lock_rejected(self, company, expire_lock):
        _claim()
        expire_lock("acme-corp")
        with pytest.raises(LockRequiredError):
            stage_service.advance_stage("acme-corp", "actor-a", "manager")

    def test_unknown_company(self):
        with pytest.raises(LockRequiredError):
            stage_service.advance_stage("nope", "actor-a", "manager")

    @pytest.mark.parametrize(
        "stage, role",
        [("Signing", "partner"), ("Partner review", "partner"), ("Second time review", "auditor")],
    )
    def test_lock_is_checked_before_stage_rules(self, company, stage, role):
        _set_stage(stage)
        with pytest.raises(LockRequiredError):
            stage_service.advance_stage("acme-corp", "actor-a", role)

    def test_send_to_signing_hint_precedes_role_check(self, company):
        _set_stage("Partner review")
        _claim()
        with pytest.raises(UseSendToSigningError):
            stage_service.advance_stage("acme-corp", "actor-a", "auditor")


# ═════════════════════════════════════════════════════════════════════════════
# send_to_signing: (stage, role, lock) truth table
# ═════════════════════════════════════════════════════════════════════════════


class TestSendToSigning:
    def test_partner_with_lock_in_partner_review_succeeds(self, company):
        _set_stage("Partner review")
        _claim()
        result = stage_service.send_to_signing("acme-corp", "actor-a", "partner")

        assert result["company"]["audit_stage"] == "Signing"
        events = _events("stage_signing")
        assert len(events) == 1
        assert events[0].message == 'Accepted company and sent to "Signing" from "Partner review".'

    @pytest.mark.parametrize(
        "stage, role, hold_lock, expected",
        [
            ("Partner review", "partner", False, LockRequiredError),
            ("Partner review", "manager", True, ForbiddenError),
            ("Partner review", "manager", False, ForbiddenError),
            ("Second time review", "partner", True, InvalidStageError),
            ("Second time review", "partner", False, LockRequiredError),
            ("Second time review", "manager", True, ForbiddenError),
            ("Second time review", "manager", False, ForbiddenError),
        ],
    )
    def test_other_combinations_fail(self, company, stage, role, hold_lock, expected):
        _set_stage(stage)
        if hold_lock:
            _claim()

        with pytest.raises(expected):
            stage_service.send_to_signing("acme-corp", "actor-a", role)

        assert db.session.get(Company, "acme-corp").audit_stage == stage
        assert _events("stage_signing") == []

    def test_already_signing(self, company):
        _set_stage("Signing")
        _claim()
        with pytest.raises(AlreadyTerminalError):
            stage_service.send_to_signing("acme-corp", "actor-a", "partner")

    def test_wrong_stage_message(self, company):
        _claim()
        with pytest.raises(InvalidStageError) as exc_info:
            stage_service.send_to_signing("acme-corp", "actor-a", "Equity Partner")
        assert str(exc_info.value) == "Only companies in Partner review can be sent to signing."

    def test_unknown_company_with_lock_row_missing(self):
        with pytest.raises(LockRequiredError):
            stage_service.send_to_signing("nope", "actor-a", "partner")

