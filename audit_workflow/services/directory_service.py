"""
Mention directory service.

Keeps one DirectoryUser row per actor id (last write wins) so that typed
@handles can be resolved to display names and offered as autocomplete
candidates. Directory maintenance is a side effect of other operations and
is best-effort: failures are logged and rolled back.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from audit_workflow.models import db
from audit_workflow.models.discussion import DirectoryUser
from audit_workflow.models.lock import utcnow
from audit_workflow.services.identity import normalize_actor_role, normalize_name_key

logger = logging.getLogger(__name__)

DIRECTORY_LIMIT = 500


def upsert_directory_user(actor_id, actor_name, actor_role=None) -> DirectoryUser | None:
    """Create or overwrite the directory entry for *actor_id* and commit.

    Skipped for blank ids, names shorter than two characters, and names with
    no usable key characters.
    """
    actor_id = str(actor_id or "").strip()
    name = str(actor_name or "").strip()
    if not actor_id or len(name) < 2:
        return None
    name_key = normalize_name_key(name)
    if not name_key:
        return None

    try:
        user = db.session.get(DirectoryUser, actor_id)
        if user is None:
            user = DirectoryUser(actor_id=actor_id)
            db.session.add(user)
        user.display_name = name
        user.name_key = name_key
        user.role = normalize_actor_role(actor_role) or "auditor"
        user.last_seen_at = utcnow()
        db.session.commit()
        return user
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Directory upsert failed actor_id=%s", actor_id, exc_info=True)
        return None


def mention_directory() -> list[dict]:
    """Autocomplete candidates ordered by display name."""
    rows = db.session.execute(
        select(DirectoryUser).order_by(DirectoryUser.display_name.asc()).limit(DIRECTORY_LIMIT)
    ).scalars().all()
    users = [row.to_dict() for row in rows]
    return [u for u in users if u["label"] and u["handle"]]


def resolve_display_names(name_keys: list[str]) -> dict[str, str]:
    """Map name keys to the directory's display names; unknown keys are omitted."""
    if not name_keys:
        return {}
    rows = db.session.execute(
        select(DirectoryUser.name_key, DirectoryUser.display_name)
        .where(DirectoryUser.name_key.in_(name_keys))
        .order_by(DirectoryUser.last_seen_at.asc())
    ).all()
    # Most recently seen actor wins a shared key.
    return {normalize_name_key(key): (display or "").strip() for key, display in rows}
