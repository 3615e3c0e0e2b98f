"""
Audit Workflow Tracker
Collaboration blueprint — discussions, presence and notifications.

None of these endpoints require the company lock.

Endpoints (prefix /api/v1/audit):
    POST   /companies/<cid>/tasks/<task_id>/discussions  — add discussion comment (+ mentions)
    POST   /companies/<cid>/presence                     — presence heartbeat
    DELETE /companies/<cid>/presence/<actor_id>          — leave company
    GET    /notifications?viewer_name=                   — unread notifications for viewer
    POST   /notifications/<nid>/read                     — mark notification read
    GET    /mention-directory                            — @mention autocomplete candidates
"""

import logging

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import HTTPException

from audit_workflow.core.exceptions import AuditWorkflowError
from audit_workflow.services import discussion_service, presence_service
from audit_workflow.services.directory_service import mention_directory
from audit_workflow.services.notification import NotificationService
from audit_workflow.utils.errors import E, api_error, error_from_exception

logger = logging.getLogger(__name__)

collaboration_bp = Blueprint("collaboration", __name__, url_prefix="/api/v1/audit")


# ── Error handlers ────────────────────────────────────────────────────────────


@collaboration_bp.errorhandler(AuditWorkflowError)
def _handle_domain_error(error: AuditWorkflowError):
    return error_from_exception(error)


@collaboration_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return api_error(E.VALIDATION_INVALID, error.description or error.name, status=error.code)
    logger.exception("Unexpected error in collaboration_bp endpoint=%s", request.endpoint)
    return api_error(E.INTERNAL, "Internal server error", status=500)


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ═════════════════════════════════════════════════════════════════════════════
# Discussions
# ═════════════════════════════════════════════════════════════════════════════


@collaboration_bp.route("/companies/<company_id>/tasks/<task_id>/discussions", methods=["POST"])
def add_discussion(company_id, task_id):
    """
    Body: { "actor_id": "...", "actor_name": "...", "message": "..." }
    Returns: 201 with the stored comment and the notified mention keys.
    """
    data = _body()
    message = data.get("message")
    if not isinstance(message, str):
        return api_error(
            E.VALIDATION_REQUIRED, "message is required",
            details={"message": "string"}, extra={"lock": None},
        )
    result = discussion_service.add_task_discussion(
        company_id, task_id, data.get("actor_id"), data.get("actor_name"), message,
    )
    return jsonify(result), 201


# ═════════════════════════════════════════════════════════════════════════════
# Presence
# ═════════════════════════════════════════════════════════════════════════════


@collaboration_bp.route("/companies/<company_id>/presence", methods=["POST"])
def presence_heartbeat(company_id):
    """
    Body: { "actor_id": "...", "actor_name"?: "...", "actor_role"?: "...", "active_tab"?: "..." }
    Returns the fresh presence list for the company.
    """
    data = _body()
    actor_id = data.get("actor_id")
    if not isinstance(actor_id, str) or not actor_id.strip():
        return api_error(
            E.VALIDATION_REQUIRED, "actor_id is required",
            details={"actor_id": "required"}, extra={"lock": None},
        )
    presence_service.upsert_presence(
        company_id, actor_id.strip(),
        data.get("actor_name"), data.get("actor_role"), data.get("active_tab"),
    )
    return jsonify({"presence": presence_service.list_presence(company_id)})


@collaboration_bp.route("/companies/<company_id>/presence/<actor_id>", methods=["DELETE"])
def leave_presence(company_id, actor_id):
    presence_service.remove_presence(company_id, actor_id)
    return jsonify({"ok": True})


# ═════════════════════════════════════════════════════════════════════════════
# Notifications & directory
# ═════════════════════════════════════════════════════════════════════════════


@collaboration_bp.route("/notifications", methods=["GET"])
def list_notifications():
    """
    Query params:
        viewer_name — display name; matched by full key, first token or compact form
    """
    viewer_name = request.args.get("viewer_name", "")
    items = NotificationService.list_for_viewer(viewer_name)
    return jsonify({"notifications": items, "unread_count": len(items)})


@collaboration_bp.route("/notifications/<int:notification_id>/read", methods=["POST"])
def mark_notification_read(notification_id):
    """Body: { "viewer_name": "..." }"""
    data = _body()
    viewer_name = data.get("viewer_name") or request.args.get("viewer_name", "")
    notification = NotificationService.mark_read_by_viewer(notification_id, viewer_name)
    return jsonify({"notification": notification})


@collaboration_bp.route("/mention-directory", methods=["GET"])
def get_mention_directory():
    return jsonify({"users": mention_directory()})
