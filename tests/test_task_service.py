"""Tests for the audit task ledger: ordering, lock-gated edits and journaling."""

from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from audit_workflow.core.exceptions import LockRequiredError, NotFoundError
from audit_workflow.models import db
from audit_workflow.models.activity import ActivityEvent
from audit_workflow.models.company import AuditTask, task_number_key
from audit_workflow.services import activity_service, lock_service, task_service


def _events(event_type=None):
    stmt = select(ActivityEvent).order_by(ActivityEvent.id)
    if event_type:
        stmt = stmt.where(ActivityEvent.event_type == event_type)
    return db.session.execute(stmt).scalars().all()


class TestTaskOrdering:
    def test_dotted_numbers_sort_numerically(self, company_factory):
        company_factory(task_numbers=("2", "10", "1.1", "8.2", "8.1", "1"))

        numbers = [t["task_number"] for t in task_service.list_tasks("acme-corp")]

        assert numbers == ["1", "1.1", "2", "8.1", "8.2", "10"]

    @pytest.mark.parametrize(
        "lower, higher",
        [("2", "10"), ("8", "8.1"), ("8.1", "8.2"), ("8.9", "8.10"), ("1.1", "2")],
    )
    def test_task_number_key(self, lower, higher):
        assert task_number_key(lower) < task_number_key(higher)

    def test_non_numeric_segments_count_as_zero(self):
        assert task_number_key("8.x") == task_number_key("8")
        assert task_number_key("") == task_number_key("0")

    def test_list_is_scoped_to_company(self, company, company_factory):
        company_factory("globex-inc", "Globex Inc", task_numbers=("1",))
        assert len(task_service.list_tasks("acme-corp")) == 6
        assert len(task_service.list_tasks("globex-inc")) == 1


class TestUpdateTask:
    def test_status_update_journals_one_event(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")

        result = task_service.update_task(
            "acme-corp", "acme-corp-task-1", {"status": "Completed"}, "actor-a",
        )

        assert result["task"]["status"] == "Completed"
        assert result["task"]["last_updated"] == date.today().isoformat()
        assert result["lock"]["actor_id"] == "actor-a"
        events = _events()
        assert len(events) == 1
        assert events[0].event_type == "task_status"
        assert events[0].message == 'Task 1: status changed from "In progress" to "Completed".'

    def test_status_and_comment_journal_two_events(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")

        task_service.update_task(
            "acme-corp", "acme-corp-task-8-1",
            {"status": "Blocked", "comment": "Waiting   for\nbank letter"},
            "actor-a",
        )

        events = _events()
        assert [e.event_type for e in events] == ["task_status", "task_comment"]
        assert events[1].message == 'Task 8.1: comment updated to "Waiting for bank letter".'

    def test_unchanged_values_are_not_journaled(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")

        task_service.update_task(
            "acme-corp", "acme-corp-task-2", {"status": "In progress", "comment": ""}, "actor-a",
        )

        assert _events() == []
        task = db.session.get(AuditTask, "acme-corp-task-2")
        assert task.last_updated == date.today()

    def test_evidence_is_saved_silently(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")

        result = task_service.update_task(
            "acme-corp", "acme-corp-task-2", {"evidence": "bank.pdf"}, "actor-a",
        )

        assert result["task"]["evidence"] == "bank.pdf"
        assert result["task"]["status"] == "In progress"
        assert _events() == []

    def test_long_comment_is_summarized(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")

        task_service.update_task("acme-corp", "acme-corp-task-2", {"comment": "x" * 400}, "actor-a")

        message = _events("task_comment")[0].message
        summary = message.split('"')[1]
        assert len(summary) == task_service.COMMENT_SUMMARY_LIMIT + 2
        assert summary.endswith("...")

    def test_without_lock_fails(self, company):
        with pytest.raises(LockRequiredError):
            task_service.update_task("acme-corp", "acme-corp-task-1", {"status": "Completed"}, "actor-a")
        assert db.session.get(AuditTask, "acme-corp-task-1").status == "In progress"

    def test_other_holder_fails(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        with pytest.raises(LockRequiredError) as exc_info:
            task_service.update_task("acme-corp", "acme-corp-task-1", {"status": "Completed"}, "actor-b")
        assert exc_info.value.lock["actor_name"] == "Alex Johnson"

    def test_expired_holder_fails(self, company, expire_lock):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        expire_lock("acme-corp")

        with pytest.raises(LockRequiredError) as exc_info:
            task_service.update_task("acme-corp", "acme-corp-task-1", {"status": "Completed"}, "actor-a")

        assert exc_info.value.lock is None
        db.session.expire_all()
        assert db.session.get(AuditTask, "acme-corp-task-1").status == "In progress"

    def test_task_of_other_company_not_found(self, company, company_factory):
        company_factory("globex-inc", "Globex Inc", task_numbers=("1",))
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")

        with pytest.raises(NotFoundError):
            task_service.update_task("acme-corp", "globex-inc-task-1", {"status": "Completed"}, "actor-a")

        assert db.session.get(AuditTask, "globex-inc-task-1").status == "In progress"

    def test_unknown_task_not_found(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        with pytest.raises(NotFoundError):
            task_service.update_task("acme-corp", "missing", {"status": "Completed"}, "actor-a")

    def test_update_survives_journal_failure(self, company, monkeypatch):
        def _fail(**kwargs):
            raise SQLAlchemyError("activity table unavailable")

        monkeypatch.setattr(activity_service, "write_activity", _fail)
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")

        result = task_service.update_task(
            "acme-corp", "acme-corp-task-1", {"status": "Completed"}, "actor-a",
        )

        assert result["task"]["status"] == "Completed"
        db.session.expire_all()
        assert db.session.get(AuditTask, "acme-corp-task-1").status == "Completed"
        assert _events() == []
