"""
Shared pytest fixtures for the Audit Workflow Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - company: Pre-created "acme-corp" company with a handful of tasks
    - expire_lock: Helper that pushes a company lock into the past
"""

from datetime import date, timedelta

import pytest

from audit_workflow import create_app
from audit_workflow.models import db as _db
from audit_workflow.models.company import AuditTask, Company
from audit_workflow.models.lock import CompanyLock, utcnow


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


def make_company(company_id="acme-corp", name="Acme Corp", stage="First time auditing",
                 task_numbers=("1", "1.1", "2", "8", "8.1", "10")):
    """Create and commit a company with tasks ``<company_id>-task-<n>``."""
    company = Company(
        id=company_id,
        name=name,
        company_group="Group A",
        organization_number="900000001",
        organization_type="Limited Company",
        responsible_partner="Alex Johnson",
        audit_stage=stage,
    )
    _db.session.add(company)
    for number in task_numbers:
        _db.session.add(AuditTask(
            id=f"{company_id}-task-{number.replace('.', '-')}",
            company_id=company_id,
            task_number=number,
            task=f"Procedure {number}",
            description="",
            robot_processed=False,
            status="In progress",
            comment="",
            evidence="",
            last_updated=date(2026, 2, 28),
        ))
    _db.session.commit()
    return company


@pytest.fixture()
def company():
    """Return the pre-created "acme-corp" company."""
    return make_company()


@pytest.fixture()
def company_factory():
    """Return the company factory for tests that need more than one company."""
    return make_company


@pytest.fixture()
def expire_lock():
    """Return a helper that moves a company's lock expiry into the past."""

    def _expire(company_id):
        lock = _db.session.get(CompanyLock, company_id)
        assert lock is not None, "expected a lock row to expire"
        lock.expires_at = utcnow() - timedelta(seconds=5)
        _db.session.commit()

    return _expire
