"""
Audit Workflow Tracker
Notification domain model.

Models:
    - Notification: in-app notification record with read tracking
"""

from datetime import datetime, timezone

from audit_workflow.models import db


# ── Constants ────────────────────────────────────────────────────────────────

NOTIFICATION_TYPES = {"mention"}


class Notification(db.Model):
    """
    In-app notification entity.

    One record per recipient per event. Recipients are addressed by
    normalized name key, not by actor id, because mentions are typed names.
    """

    __tablename__ = "audit_notifications"
    __table_args__ = (
        db.Index("idx_notification_recipient_read", "recipient_name_key", "is_read"),
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.String(64), db.ForeignKey("audit_companies.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    task_id = db.Column(
        db.String(100), db.ForeignKey("audit_tasks.id", ondelete="CASCADE"),
        nullable=True,
    )
    recipient_name_key = db.Column(db.String(150), nullable=False)
    recipient_name = db.Column(db.String(150), nullable=False)
    sender_name = db.Column(db.String(150), nullable=False)
    notification_type = db.Column(db.String(30), nullable=False, default="mention")
    message = db.Column(db.Text, default="")

    # Read tracking
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def mark_read(self):
        self.is_read = True
        self.read_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": str(self.id),
            "company_id": self.company_id,
            "task_id": self.task_id,
            "recipient_name": self.recipient_name,
            "recipient_name_key": self.recipient_name_key,
            "sender_name": self.sender_name,
            "type": self.notification_type,
            "message": self.message,
            "is_read": bool(self.is_read),
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Notification {self.id}: {self.notification_type} → {self.recipient_name_key}>"
