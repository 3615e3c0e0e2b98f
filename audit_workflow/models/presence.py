"""
Audit Workflow Tracker
Presence domain model.

Models:
    - PresenceRecord: ephemeral "who is viewing which tab" heartbeat per company/actor
"""

from datetime import datetime, timezone

from audit_workflow.models import db
from audit_workflow.models.lock import as_utc


class PresenceRecord(db.Model):
    """Heartbeat row. Never gates edits; several actors may be present at once."""

    __tablename__ = "audit_presence"

    company_id = db.Column(
        db.String(64),
        db.ForeignKey("audit_companies.id", ondelete="CASCADE"),
        primary_key=True,
    )
    actor_id = db.Column(db.String(100), primary_key=True)
    actor_name = db.Column(db.String(150), nullable=False, default="Unknown user")
    actor_role = db.Column(db.String(20), nullable=False, default="auditor")
    active_tab = db.Column(db.String(50), nullable=False, default="audit_tasks")
    last_seen_at = db.Column(
        db.DateTime(timezone=True), nullable=False, index=True,
        default=lambda: datetime.now(timezone.utc),
    )

    @classmethod
    def fresh_filter(cls, cutoff: datetime):
        """SQL predicate: heartbeat seen at or after *cutoff*."""
        return cls.last_seen_at >= cutoff

    def to_dict(self):
        return {
            "company_id": self.company_id,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "actor_role": self.actor_role,
            "active_tab": self.active_tab,
            "last_seen_at": as_utc(self.last_seen_at).isoformat() if self.last_seen_at else None,
        }

    def __repr__(self):
        return f"<PresenceRecord {self.company_id}/{self.actor_id} on {self.active_tab}>"
