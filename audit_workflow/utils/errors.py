"""Standardised API error responses.

Usage
-----
    from audit_workflow.utils.errors import api_error, error_from_exception, E

    return api_error(E.VALIDATION_REQUIRED, "company_id is required")
    return error_from_exception(exc)   # AuditWorkflowError → JSON + status
"""

from __future__ import annotations

from flask import jsonify

from audit_workflow.core.exceptions import AuditWorkflowError, ValidationError


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants.

    Convention:
     • ERR_  prefix for every application error
     • ERR_LOCK_* / ERR_NOT_HOLDER for edit-lock failures
    """

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    INVALID_FIELD = "ERR_INVALID_FIELD"
    INVALID_VALUE = "ERR_INVALID_VALUE"
    EMPTY_MESSAGE = "ERR_EMPTY_MESSAGE"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Permissions – HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"
    ROLE_NOT_ALLOWED = "ERR_ROLE_NOT_ALLOWED"

    # Stage machine – HTTP 409
    INVALID_STAGE = "ERR_INVALID_STAGE"
    USE_SEND_TO_SIGNING = "ERR_USE_SEND_TO_SIGNING"
    ALREADY_TERMINAL = "ERR_ALREADY_TERMINAL"

    # Edit lock – HTTP 423
    LOCK_CONFLICT = "ERR_LOCK_CONFLICT"
    NOT_HOLDER = "ERR_NOT_HOLDER"
    LOCK_REQUIRED = "ERR_LOCK_REQUIRED"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.INVALID_FIELD: 400,
    E.INVALID_VALUE: 400,
    E.EMPTY_MESSAGE: 400,
    E.NOT_FOUND: 404,
    E.FORBIDDEN: 403,
    E.ROLE_NOT_ALLOWED: 403,
    E.INVALID_STAGE: 409,
    E.USE_SEND_TO_SIGNING: 409,
    E.ALREADY_TERMINAL: 409,
    E.LOCK_CONFLICT: 423,
    E.NOT_HOLDER: 423,
    E.LOCK_REQUIRED: 423,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
    extra: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Field-level validation breakdown.
    extra : dict, optional
        Reconciliation state merged into the body (``lock``, ``company``).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details
    if extra:
        body.update(extra)

    return jsonify(body), http_status


def error_from_exception(error: AuditWorkflowError):
    """Translate a domain exception into the standard error body.

    Lock-related failures always carry a ``lock`` key (possibly null) so the
    client can reconcile its optimistic state against the live holder.
    """
    extra: dict = {"lock": error.lock}
    if error.company is not None:
        extra["company"] = error.company
    details = error.details if isinstance(error, ValidationError) else None
    return api_error(error.code, str(error), status=error.status, details=details, extra=extra)
