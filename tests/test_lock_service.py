"""
Tests for the company edit-lock service.

Covers claim / renew / release / force release, TTL expiry, and the
single-live-lock guarantee under competing claims.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from audit_workflow.core.exceptions import (
    ForbiddenError,
    LockConflictError,
    NotFoundError,
    NotHolderError,
)
from audit_workflow.models import db
from audit_workflow.models.discussion import DirectoryUser
from audit_workflow.models.lock import CompanyLock, as_utc, utcnow
from audit_workflow.services import lock_service


def _live_lock_rows(company_id):
    return db.session.execute(
        select(CompanyLock).where(
            CompanyLock.company_id == company_id,
            CompanyLock.live_filter(utcnow()),
        )
    ).scalars().all()


class TestClaim:
    def test_claim_creates_lock_with_ttl(self, company, app):
        before = utcnow()
        lock = lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")

        assert lock["company_id"] == "acme-corp"
        assert lock["actor_id"] == "actor-a"
        assert lock["actor_name"] == "Alex Johnson"
        row = db.session.get(CompanyLock, "acme-corp")
        ttl = app.config["LOCK_TTL_SECONDS"]
        assert as_utc(row.expires_at) >= before + timedelta(seconds=ttl - 5)

    def test_claim_upserts_directory_user(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        user = db.session.get(DirectoryUser, "actor-a")
        assert user is not None
        assert user.name_key == "alex.johnson"

    def test_competing_claim_conflicts(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")

        with pytest.raises(LockConflictError) as exc_info:
            lock_service.claim_lock("acme-corp", "actor-b", "Bob Berg")

        assert exc_info.value.status == 423
        assert exc_info.value.lock["actor_id"] == "actor-a"
        rows = _live_lock_rows("acme-corp")
        assert len(rows) == 1
        assert rows[0].actor_id == "actor-a"

    def test_reclaim_by_holder_renews(self, company):
        first = lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        lock = db.session.get(CompanyLock, "acme-corp")
        lock.expires_at = utcnow() + timedelta(seconds=30)
        db.session.commit()

        second = lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")

        assert second["actor_id"] == "actor-a"
        assert second["expires_at"] >= first["expires_at"]
        assert len(_live_lock_rows("acme-corp")) == 1

    def test_claim_takes_over_expired_lock(self, company, expire_lock):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        expire_lock("acme-corp")

        lock = lock_service.claim_lock("acme-corp", "actor-b", "Bob Berg")

        assert lock["actor_id"] == "actor-b"
        assert len(_live_lock_rows("acme-corp")) == 1

    def test_claim_unknown_company(self):
        with pytest.raises(NotFoundError):
            lock_service.claim_lock("nope", "actor-a", "Alex Johnson")


class TestRenew:
    def test_renew_extends_and_keeps_name(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        lock = db.session.get(CompanyLock, "acme-corp")
        lock.expires_at = utcnow() + timedelta(seconds=10)
        db.session.commit()

        renewed = lock_service.renew_lock("acme-corp", "actor-a")

        assert renewed["actor_name"] == "Alex Johnson"
        row = db.session.get(CompanyLock, "acme-corp")
        db.session.refresh(row)
        assert as_utc(row.expires_at) > utcnow() + timedelta(seconds=60)

    def test_renew_by_other_actor_fails(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        with pytest.raises(NotHolderError):
            lock_service.renew_lock("acme-corp", "actor-b")

    def test_renew_without_lock_fails(self, company):
        with pytest.raises(NotHolderError) as exc_info:
            lock_service.renew_lock("acme-corp", "actor-a")
        assert exc_info.value.lock is None


class TestRelease:
    def test_release_deletes_lock(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        lock_service.release_lock("acme-corp", "actor-a")
        assert lock_service.get_active_lock("acme-corp") is None

    def test_double_release_is_idempotent(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        assert lock_service.release_lock("acme-corp", "actor-a") is None
        assert lock_service.release_lock("acme-corp", "actor-a") is None

    def test_release_by_other_actor_fails(self, company):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        with pytest.raises(NotHolderError) as exc_info:
            lock_service.release_lock("acme-corp", "actor-b")
        assert "Only lock holder" in str(exc_info.value)
        assert lock_service.get_active_lock("acme-corp") is not None


class TestForceRelease:
    @pytest.mark.parametrize("role", ["manager", "Partner", "Senior Manager"])
    def test_elevated_roles_can_force_release(self, company, role):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        lock_service.force_release_lock("acme-corp", role)
        assert lock_service.get_active_lock("acme-corp") is None

    @pytest.mark.parametrize("role", ["auditor", "intern", "", None])
    def test_other_roles_are_forbidden(self, company, role):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        with pytest.raises(ForbiddenError):
            lock_service.force_release_lock("acme-corp", role)
        assert lock_service.get_active_lock("acme-corp") is not None

    def test_force_release_without_lock_is_noop(self, company):
        lock_service.force_release_lock("acme-corp", "manager")
        assert lock_service.get_active_lock("acme-corp") is None


class TestExpiry:
    def test_expired_lock_reads_as_absent(self, company, expire_lock):
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        expire_lock("acme-corp")

        assert lock_service.get_active_lock("acme-corp") is None
        assert lock_service.active_locks_by_company() == {}

    def test_prune_removes_only_expired_rows(self, company, company_factory, expire_lock):
        company_factory("globex-inc", "Globex Inc", task_numbers=("1",))
        lock_service.claim_lock("acme-corp", "actor-a", "Alex Johnson")
        lock_service.claim_lock("globex-inc", "actor-b", "Bob Berg")
        expire_lock("acme-corp")

        removed = lock_service.prune_expired_locks()
        db.session.commit()

        assert removed == 1
        assert db.session.get(CompanyLock, "acme-corp") is None
        assert lock_service.get_active_lock("globex-inc") is not None
