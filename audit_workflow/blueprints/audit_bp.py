"""
Audit Workflow Tracker
Audit workspace blueprint.

Endpoints (prefix /api/v1/audit):
    GET    /companies                                   — overview with task counts and live locks
    GET    /workspace                                   — workspace of the first company
    GET    /companies/<cid>/workspace                   — workspace aggregate (?viewer_name=)
    PATCH  /companies/<cid>/due-date                    — set / clear due date (manager, partner)
    POST   /companies/<cid>/lock                        — claim | renew | release | force_release
    PATCH  /companies/<cid>/tasks/<task_id>             — partial task update (lock holder)
    POST   /companies/<cid>/advance-stage               — one review stage forward (lock holder)
    POST   /companies/<cid>/send-to-signing             — Partner review → Signing (partner, lock holder)
    POST   /companies/<cid>/risk-checklist              — set one checklist answer (lock holder)
    PUT    /companies/<cid>/signing-document            — save signing document (partner, lock holder)
    GET    /dashboard                                   — cross-company KPIs

Layer contract:
    - Blueprint: parse + validate request shape, call one service, return JSON.
    - NO db.session calls here — all writes owned by the services.
    - Domain errors arrive as AuditWorkflowError and are rendered by
      ``error_from_exception`` with the live lock for reconciliation.
"""

import logging

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import HTTPException

from audit_workflow.core.exceptions import AuditWorkflowError
from audit_workflow.models.company import TASK_STATUSES
from audit_workflow.services import (
    company_service,
    lock_service,
    risk_checklist_service,
    stage_service,
    task_service,
)
from audit_workflow.utils.errors import E, api_error, error_from_exception

logger = logging.getLogger(__name__)

audit_bp = Blueprint("audit", __name__, url_prefix="/api/v1/audit")

LOCK_ACTIONS = ("claim", "renew", "release", "force_release")


# ── Error handlers ────────────────────────────────────────────────────────────


@audit_bp.errorhandler(AuditWorkflowError)
def _handle_domain_error(error: AuditWorkflowError):
    return error_from_exception(error)


@audit_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return api_error(E.VALIDATION_INVALID, error.description or error.name, status=error.code)
    logger.exception("Unexpected error in audit_bp endpoint=%s", request.endpoint)
    return api_error(E.INTERNAL, "Internal server error", status=500)


# ── Request helpers ───────────────────────────────────────────────────────────


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _required_str(data: dict, field: str):
    """Return (value, None) or (None, error_response) for a required string field."""
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        return None, api_error(
            E.VALIDATION_REQUIRED, f"{field} is required",
            details={field: "required"}, extra={"lock": None},
        )
    return value.strip(), None


# ═════════════════════════════════════════════════════════════════════════════
# Read models
# ═════════════════════════════════════════════════════════════════════════════


@audit_bp.route("/companies", methods=["GET"])
def list_companies():
    """Company overview ordered by name."""
    return jsonify({"companies": company_service.company_overview()})


@audit_bp.route("/workspace", methods=["GET"])
@audit_bp.route("/companies/<company_id>/workspace", methods=["GET"])
def get_workspace(company_id=None):
    """
    Workspace aggregate for one company.

    Query params:
        viewer_name — display name used to match mention notifications
    """
    viewer_name = request.args.get("viewer_name", "")
    return jsonify(company_service.company_workspace(company_id, viewer_name))


@audit_bp.route("/dashboard", methods=["GET"])
def get_dashboard():
    return jsonify(company_service.dashboard_summary())


# ═════════════════════════════════════════════════════════════════════════════
# Lock
# ═════════════════════════════════════════════════════════════════════════════


@audit_bp.route("/companies/<company_id>/lock", methods=["POST"])
def lock_action(company_id):
    """
    Body: { "action": "claim|renew|release|force_release",
            "actor_id": "...", "actor_name": "...", "actor_role": "..." }
    """
    data = _body()
    action = data.get("action")
    if action not in LOCK_ACTIONS:
        return api_error(
            E.VALIDATION_INVALID, "Invalid lock action.",
            details={"action": f"one of {', '.join(LOCK_ACTIONS)}"}, extra={"lock": None},
        )

    if action == "force_release":
        lock_service.force_release_lock(company_id, data.get("actor_role"))
        return jsonify({"lock": None})

    actor_id, err = _required_str(data, "actor_id")
    if err:
        return err

    if action == "claim":
        actor_name = data.get("actor_name")
        if not isinstance(actor_name, str) or len(actor_name.strip()) < 2:
            return api_error(
                E.VALIDATION_REQUIRED, "Name must be at least 2 characters.",
                details={"actor_name": "min length 2"}, extra={"lock": None},
            )
        lock = lock_service.claim_lock(company_id, actor_id, actor_name.strip())
        return jsonify({"lock": lock})

    if action == "renew":
        return jsonify({"lock": lock_service.renew_lock(company_id, actor_id)})

    lock_service.release_lock(company_id, actor_id)
    return jsonify({"lock": None})


# ═════════════════════════════════════════════════════════════════════════════
# Gated mutations
# ═════════════════════════════════════════════════════════════════════════════


@audit_bp.route("/companies/<company_id>/tasks/<task_id>", methods=["PATCH"])
def update_task(company_id, task_id):
    """
    Body: { "actor_id": "...", "status"?: "...", "comment"?: "...", "evidence"?: "..." }
    At least one of status / comment / evidence is required.
    """
    data = _body()
    actor_id, err = _required_str(data, "actor_id")
    if err:
        return err

    patch = {}
    if "status" in data:
        if not isinstance(data["status"], str) or data["status"] not in TASK_STATUSES:
            return api_error(
                E.VALIDATION_INVALID, "Invalid status.",
                details={"status": sorted(TASK_STATUSES)}, extra={"lock": None},
            )
        patch["status"] = data["status"]
    for field in ("comment", "evidence"):
        if field in data:
            if not isinstance(data[field], str):
                return api_error(
                    E.VALIDATION_INVALID, f"{field} must be a string",
                    details={field: "string"}, extra={"lock": None},
                )
            patch[field] = data[field]
    if not patch:
        return api_error(
            E.VALIDATION_REQUIRED, "No task fields to update.",
            details={"fields": ["status", "comment", "evidence"]}, extra={"lock": None},
        )

    return jsonify(task_service.update_task(company_id, task_id, patch, actor_id))


@audit_bp.route("/companies/<company_id>/advance-stage", methods=["POST"])
def advance_stage(company_id):
    """Body: { "actor_id": "...", "actor_role": "..." }"""
    data = _body()
    actor_id, err = _required_str(data, "actor_id")
    if err:
        return err
    return jsonify(stage_service.advance_stage(company_id, actor_id, data.get("actor_role")))


@audit_bp.route("/companies/<company_id>/send-to-signing", methods=["POST"])
def send_to_signing(company_id):
    """Body: { "actor_id": "...", "actor_role": "partner" }"""
    data = _body()
    actor_id, err = _required_str(data, "actor_id")
    if err:
        return err
    return jsonify(stage_service.send_to_signing(company_id, actor_id, data.get("actor_role")))


@audit_bp.route("/companies/<company_id>/risk-checklist", methods=["POST"])
def update_risk_checklist(company_id):
    """Body: { "actor_id": "...", "field": "...", "value": true|false }"""
    data = _body()
    actor_id, err = _required_str(data, "actor_id")
    if err:
        return err
    field, err = _required_str(data, "field")
    if err:
        return err
    return jsonify(
        risk_checklist_service.update_risk_checklist(company_id, actor_id, field, data.get("value"))
    )


@audit_bp.route("/companies/<company_id>/signing-document", methods=["PUT"])
def save_signing_document(company_id):
    """Body: { "actor_id": "...", "actor_role": "partner", "document": "..." }"""
    data = _body()
    actor_id, err = _required_str(data, "actor_id")
    if err:
        return err
    return jsonify(
        company_service.save_signing_document(
            company_id, actor_id, data.get("actor_role"), data.get("document"),
        )
    )


@audit_bp.route("/companies/<company_id>/due-date", methods=["PATCH"])
def update_due_date(company_id):
    """Body: { "actor_id": "...", "actor_name": "...", "actor_role": "...", "due_date": "YYYY-MM-DD"|"" }"""
    data = _body()
    actor_id, err = _required_str(data, "actor_id")
    if err:
        return err
    return jsonify(
        company_service.update_due_date(
            company_id, data.get("due_date"), data.get("actor_role"),
            actor_id, data.get("actor_name"),
        )
    )
