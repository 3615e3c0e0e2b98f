"""
Audit Workflow Tracker
Edit-lock domain model.

Models:
    - CompanyLock: exclusive, TTL-bound edit lock for one company

company_id is the primary key, so the database itself guarantees at most one
lock row per company. A row whose ``expires_at`` has passed is treated as
absent everywhere; ``live_filter`` is the only place that decides liveness.
"""

from datetime import datetime, timezone

from audit_workflow.models import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CompanyLock(db.Model):
    """Single-writer lock for a company's mutable state."""

    __tablename__ = "audit_locks"

    company_id = db.Column(
        db.String(64),
        db.ForeignKey("audit_companies.id", ondelete="CASCADE"),
        primary_key=True,
    )
    actor_id = db.Column(db.String(100), nullable=False, index=True)
    actor_name = db.Column(db.String(150), nullable=False, default="Unknown user")
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    @classmethod
    def live_filter(cls, now: datetime):
        """SQL predicate: lock has not expired at *now*.

        Reads filter with it; the sweep deletes rows matching its negation.
        """
        return cls.expires_at > now

    def to_dict(self):
        expires_at = as_utc(self.expires_at)
        return {
            "company_id": self.company_id,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "expires_at": expires_at.isoformat() if expires_at else None,
        }

    def __repr__(self):
        return f"<CompanyLock {self.company_id} by {self.actor_id}>"
