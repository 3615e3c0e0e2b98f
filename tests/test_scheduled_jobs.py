"""
Tests for the housekeeping scheduler: registry, job records, manual runs
and the expired-lock / stale-presence sweeps.
"""

from datetime import timedelta

import pytest

from audit_workflow.models import db
from audit_workflow.models.lock import CompanyLock, utcnow
from audit_workflow.models.presence import PresenceRecord
from audit_workflow.models.scheduling import ScheduledJob
from audit_workflow.services import lock_service, presence_service
from audit_workflow.services.scheduler_service import SchedulerService, get_registered_jobs


@pytest.fixture()
def job_records():
    SchedulerService.ensure_jobs_registered()
    db.session.expire_all()


def test_registry_contains_sweeps():
    assert {"expired_lock_sweep", "stale_presence_sweep"} <= set(get_registered_jobs())


def test_ensure_jobs_registered_is_idempotent(job_records):
    assert SchedulerService.ensure_jobs_registered() == []
    record = ScheduledJob.query.filter_by(job_name="expired_lock_sweep").one()
    assert record.schedule_config["minutes"] == 5
    assert record.is_enabled is True


def test_expired_lock_sweep(company, company_factory, expire_lock, job_records):
    company_factory("globex-inc", "Globex Inc", task_numbers=("1",))
    lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
    lock_service.claim_lock("globex-inc", "actor-b", "Bob Berg")
    expire_lock("acme-corp")

    result = SchedulerService.run_job("expired_lock_sweep")

    assert result["status"] == "success"
    assert result["result"] == {"locks_removed": 1}
    db.session.expire_all()
    assert db.session.get(CompanyLock, "acme-corp") is None
    assert db.session.get(CompanyLock, "globex-inc") is not None
    record = ScheduledJob.query.filter_by(job_name="expired_lock_sweep").one()
    assert record.run_count == 1
    assert record.last_run_status == "success"


def test_stale_presence_sweep(company, app, job_records):
    presence_service.upsert_presence("acme-corp", "actor-a", "Alex Johnson")
    record = db.session.get(PresenceRecord, ("acme-corp", "actor-a"))
    record.last_seen_at = utcnow() - timedelta(seconds=app.config["PRESENCE_STALE_SECONDS"] + 5)
    db.session.commit()

    result = SchedulerService.run_job("stale_presence_sweep")

    assert result["result"] == {"presence_removed": 1}
    db.session.expire_all()
    assert db.session.query(PresenceRecord).count() == 0


def test_unknown_job():
    result = SchedulerService.run_job("nope")
    assert result["status"] == "error"
    assert result["error"] == "Unknown job: nope"


def test_toggle_job(job_records):
    data = SchedulerService.toggle_job("stale_presence_sweep", False)
    assert data["is_enabled"] is False
    assert data["status"] == "paused"
    assert SchedulerService.toggle_job("nope", True) is None


def test_list_jobs(job_records):
    jobs = {j["job_name"]: j for j in SchedulerService.list_jobs()}
    assert jobs["expired_lock_sweep"]["registered"] is True
    assert jobs["expired_lock_sweep"]["db_record"]["job_name"] == "expired_lock_sweep"


def test_disabled_job_is_skipped(company, expire_lock, job_records):
    SchedulerService.toggle_job("expired_lock_sweep", False)
    lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
    expire_lock("acme-corp")

    result = SchedulerService.run_job("expired_lock_sweep")

    assert result["status"] == "skipped"
    db.session.expire_all()
    assert db.session.get(CompanyLock, "acme-corp") is not None
    record = ScheduledJob.query.filter_by(job_name="expired_lock_sweep").one()
    assert record.run_count == 0


def test_reenabled_job_runs_again(company, expire_lock, job_records):
    SchedulerService.toggle_job("expired_lock_sweep", False)
    SchedulerService.toggle_job("expired_lock_sweep", True)
    lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
    expire_lock("acme-corp")

    result = SchedulerService.run_job("expired_lock_sweep")

    assert result["status"] == "success"
    assert result["result"] == {"locks_removed": 1}
