"""
Task discussion & mention fan-out — Service Layer.

Discussions are append-only and not lock-gated: anyone viewing a company may
comment. After the comment is committed, two best-effort side effects run:

    1. one ``task_discussion`` activity event
    2. one unread "mention" notification per distinct @handle in the
       message, excluding the author's own key

A failure in either is rolled back and logged; the comment stays.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from audit_workflow.core.exceptions import EmptyMessageError, NotFoundError, ValidationError
from audit_workflow.models import db
from audit_workflow.models.company import AuditTask
from audit_workflow.models.discussion import TaskDiscussion
from audit_workflow.services.activity_service import record_activity
from audit_workflow.services.directory_service import resolve_display_names, upsert_directory_user
from audit_workflow.services.identity import extract_mention_keys, summarize_text
from audit_workflow.services.notification import NotificationService

logger = logging.getLogger(__name__)

DISCUSSION_LIMIT = 1000
DISCUSSION_SUMMARY_LIMIT = 140


def list_discussions(company_id: str, limit: int = DISCUSSION_LIMIT) -> list[dict]:
    """Oldest-first discussion comments for every task of a company."""
    rows = db.session.execute(
        select(TaskDiscussion)
        .where(TaskDiscussion.company_id == company_id)
        .order_by(TaskDiscussion.created_at.asc(), TaskDiscussion.id.asc())
        .limit(limit)
    ).scalars().all()
    return [row.to_dict() for row in rows]


def add_task_discussion(company_id, task_id, actor_id, actor_name, message) -> dict:
    """Append a discussion comment and notify mentioned users.

    Returns:
        {"discussion": {...}, "mentions": [name_key, ...]}

    Raises:
        EmptyMessageError: message blank after trimming.
        ValidationError:   actor_id missing.
        NotFoundError:     task not found under the company.
    """
    text = str(message or "").strip()
    if not text:
        raise EmptyMessageError("Comment cannot be empty.")
    actor_id = str(actor_id or "").strip()
    if not actor_id:
        raise ValidationError("actor_id is required", details={"actor_id": "required"})
    author_name = str(actor_name or "").strip() or "Unknown user"

    task = db.session.get(AuditTask, task_id)
    if task is None or task.company_id != company_id:
        raise NotFoundError(resource="Task", resource_id=task_id)
    task_number = task.task_number

    upsert_directory_user(actor_id, author_name)

    comment = TaskDiscussion(
        company_id=company_id,
        task_id=task_id,
        author_actor_id=actor_id,
        author_name=author_name,
        message=text,
    )
    db.session.add(comment)
    db.session.commit()
    logger.info("Discussion added company_id=%s task_id=%s by %s", company_id, task_id, actor_id)

    summary = summarize_text(text, DISCUSSION_SUMMARY_LIMIT)
    record_activity(
        company_id, actor_id, author_name, "task_discussion",
        f'Task {task_number}: discussion comment added: "{summary}".',
    )

    mention_keys = extract_mention_keys(text, exclude=author_name)
    if mention_keys:
        _notify_mentions(company_id, task_id, task_number, author_name, summary, mention_keys)

    return {"discussion": comment.to_dict(), "mentions": mention_keys}


def _notify_mentions(company_id, task_id, task_number, sender_name, summary, mention_keys):
    """Batch-insert mention notifications (best-effort)."""
    try:
        names = resolve_display_names(mention_keys)
        NotificationService.create_mentions(
            company_id=company_id,
            task_id=task_id,
            sender_name=sender_name,
            message=f'You were mentioned on task {task_number}: "{summary}"',
            recipients=[(key, names.get(key) or key) for key in mention_keys],
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning(
            "Mention notifications failed company_id=%s task_id=%s keys=%s",
            company_id, task_id, mention_keys, exc_info=True,
        )
