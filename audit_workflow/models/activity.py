"""
Audit Workflow Tracker
Activity domain model.

Models:
    - ActivityEvent: immutable, append-only trail of company state changes.
"""

from datetime import datetime, timezone

from audit_workflow.models import db

# ── Constants ────────────────────────────────────────────────────────────────

ACTIVITY_EVENT_TYPES = {
    "stage_change",
    "stage_signing",
    "task_status",
    "task_comment",
    "risk_checklist",
    "task_discussion",
    "company_due_date",
    "signing_document",
}


class ActivityEvent(db.Model):
    """
    One row per accepted change.  ``message`` is a human-readable delta,
    already truncated by the writer for free-text fields.
    """

    __tablename__ = "audit_activity_events"
    __table_args__ = (
        db.Index("idx_activity_company_ts", "company_id", "created_at"),
        db.Index("idx_activity_type", "event_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.String(64),
        db.ForeignKey("audit_companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    actor_id = db.Column(db.String(100), nullable=False)
    actor_name = db.Column(db.String(150), nullable=False, default="Unknown user")
    event_type = db.Column(
        db.String(30), nullable=False,
        comment="stage_change | stage_signing | task_status | task_comment | …",
    )
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "company_id": self.company_id,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "event_type": self.event_type,
            "message": self.message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ActivityEvent {self.id}: {self.event_type} on {self.company_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_activity(
    *,
    company_id: str,
    actor_id: str,
    event_type: str,
    message: str,
    actor_name: str | None = None,
) -> ActivityEvent | None:
    """
    Append a single activity row.  Uses ``flush`` so callers keep
    transaction control.

    Returns None without writing when any required part is missing.
    """
    if not company_id or not actor_id or not event_type or not message:
        return None
    if event_type not in ACTIVITY_EVENT_TYPES:
        raise ValueError(f"Unknown activity event type: {event_type}")

    event = ActivityEvent(
        company_id=company_id,
        actor_id=actor_id,
        actor_name=actor_name or "Unknown user",
        event_type=event_type,
        message=message,
    )
    db.session.add(event)
    db.session.flush()
    return event
