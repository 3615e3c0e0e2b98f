"""
Audit Workflow Tracker
Discussion domain model.

Models:
    - TaskDiscussion: append-only comment thread entry on a task
    - DirectoryUser:  last known display name / role per actor, powers @mentions
"""

from datetime import datetime, timezone

from audit_workflow.models import db


class TaskDiscussion(db.Model):
    """Discussion comment. Never edited or deleted by normal flow."""

    __tablename__ = "audit_task_discussions"
    __table_args__ = (
        db.Index("idx_discussion_company_ts", "company_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.String(64),
        db.ForeignKey("audit_companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    task_id = db.Column(
        db.String(100),
        db.ForeignKey("audit_tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_actor_id = db.Column(db.String(100), nullable=False)
    author_name = db.Column(db.String(150), nullable=False)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "company_id": self.company_id,
            "task_id": self.task_id,
            "author_actor_id": self.author_actor_id,
            "author_name": self.author_name,
            "message": self.message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<TaskDiscussion {self.id} on {self.task_id}>"


class DirectoryUser(db.Model):
    """
    Mention directory entry keyed by the client-generated actor id.

    Last write wins: a later claim / comment / presence ping with a new
    display name overwrites the previous one.
    """

    __tablename__ = "audit_users"

    actor_id = db.Column(db.String(100), primary_key=True)
    display_name = db.Column(db.String(150), nullable=False)
    name_key = db.Column(db.String(150), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default="auditor")
    last_seen_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "actor_id": self.actor_id,
            "label": (self.display_name or "").strip(),
            "handle": (self.name_key or "").strip(),
            "role": self.role or "auditor",
            "last_seen_at": self.last_seen_at.isoformat() if self.last_seen_at else None,
        }

    def __repr__(self):
        return f"<DirectoryUser {self.actor_id}: {self.name_key}>"
