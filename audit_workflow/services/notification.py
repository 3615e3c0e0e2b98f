"""
Audit Workflow Tracker
Notification Service.

Central service for creating and querying mention notifications.
Recipients are addressed by normalized name key; a viewer sees every
notification whose key is one of ``viewer_name_keys(viewer_name)``.
"""

from sqlalchemy import select

from audit_workflow.core.exceptions import ForbiddenError, NotFoundError
from audit_workflow.models import db
from audit_workflow.models.company import Company
from audit_workflow.models.notification import Notification
from audit_workflow.services.identity import normalize_name_key, viewer_name_keys

VIEWER_NOTIFICATION_LIMIT = 200


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def create_mentions(*, company_id, task_id, sender_name, message, recipients):
        """
        Queue one unread mention notification per recipient.

        Args:
            recipients: list of (name_key, display_name) pairs.

        Returns:
            List of created Notification instances (flushed, not committed).
        """
        notifications = []
        for name_key, display_name in recipients:
            notif = Notification(
                company_id=company_id,
                task_id=task_id,
                recipient_name_key=name_key,
                recipient_name=display_name or name_key,
                sender_name=sender_name,
                notification_type="mention",
                message=message,
                is_read=False,
            )
            db.session.add(notif)
            notifications.append(notif)
        db.session.flush()
        return notifications

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_viewer(viewer_name, limit=VIEWER_NOTIFICATION_LIMIT):
        """
        Unread notifications for any key of *viewer_name*, newest first,
        each enriched with the company name.
        """
        keys = viewer_name_keys(viewer_name)
        if not keys:
            return []
        rows = db.session.execute(
            select(Notification, Company.name)
            .join(Company, Company.id == Notification.company_id)
            .where(Notification.recipient_name_key.in_(keys), Notification.is_read.is_(False))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        ).all()
        items = []
        for notif, company_name in rows:
            data = notif.to_dict()
            data["company_name"] = company_name or notif.company_id
            items.append(data)
        return items

    @staticmethod
    def list_for_company_viewer(company_id, viewer_name, limit=VIEWER_NOTIFICATION_LIMIT):
        """Read and unread notifications for the viewer within one company."""
        keys = viewer_name_keys(viewer_name)
        if not keys:
            return []
        rows = db.session.execute(
            select(Notification)
            .where(
                Notification.company_id == company_id,
                Notification.recipient_name_key.in_(keys),
            )
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        ).scalars().all()
        return [row.to_dict() for row in rows]

    @staticmethod
    def unread_count(viewer_name):
        """Return count of unread notifications for the viewer."""
        keys = viewer_name_keys(viewer_name)
        if not keys:
            return 0
        return Notification.query.filter(
            Notification.recipient_name_key.in_(keys),
            Notification.is_read.is_(False),
        ).count()

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read_by_viewer(notification_id, viewer_name):
        """
        Mark one notification as read on behalf of *viewer_name*.

        Raises:
            NotFoundError:  no such notification.
            ForbiddenError: the notification is addressed to someone else.
        """
        notif = db.session.get(Notification, notification_id)
        if notif is None:
            raise NotFoundError(resource="Notification", resource_id=notification_id)
        if normalize_name_key(notif.recipient_name_key) not in viewer_name_keys(viewer_name):
            raise ForbiddenError("Notification belongs to another user.")
        if not notif.is_read:
            notif.mark_read()
            db.session.commit()
        return notif.to_dict()
