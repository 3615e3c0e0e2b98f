"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register a single handler against
``AuditWorkflowError`` and get consistent HTTP status codes and error bodies
everywhere. Lock and stage errors carry the state the caller should
reconcile against (the current live lock and, where loaded, the company).

Usage:
    from audit_workflow.core.exceptions import NotFoundError, LockRequiredError

    raise NotFoundError(resource="Task", resource_id=task_id)
    raise LockRequiredError(lock=active_lock)
"""


class AuditWorkflowError(Exception):
    """Base class for every domain rule violation.

    Attributes:
        code:    Machine-readable ``ERR_*`` constant (see audit_workflow.utils.errors.E).
        status:  HTTP status the blueprint boundary responds with.
        lock:    Serialized live lock (or None) when relevant to the failure.
        company: Serialized company when it was loaded before the failure.
    """

    code = "ERR_INTERNAL"
    status = 400

    def __init__(self, message: str, *, lock: dict | None = None, company: dict | None = None) -> None:
        self.lock = lock
        self.company = company
        super().__init__(message)


class NotFoundError(AuditWorkflowError):
    """Raised when a company, task or notification does not exist in the given scope.

    Args:
        resource: Human-readable entity name (e.g. "Company", "Task").
        resource_id: The key that was looked up. Included in logs and message.
    """

    code = "ERR_NOT_FOUND"
    status = 404

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(AuditWorkflowError):
    """Raised when input is well-formed JSON but violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    code = "ERR_VALIDATION_INVALID"
    status = 400

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidFieldError(ValidationError):
    """Unknown risk checklist field."""

    code = "ERR_INVALID_FIELD"


class InvalidValueError(ValidationError):
    """Value of the wrong type, e.g. a non-boolean checklist answer."""

    code = "ERR_INVALID_VALUE"


class EmptyMessageError(ValidationError):
    """Discussion message is blank after trimming."""

    code = "ERR_EMPTY_MESSAGE"


class LockConflictError(AuditWorkflowError):
    """Another actor holds (or just won) the company lock. Maps to HTTP 423."""

    code = "ERR_LOCK_CONFLICT"
    status = 423

    def __init__(self, message: str = "Company is already locked.", *, lock: dict | None = None) -> None:
        super().__init__(message, lock=lock)


class NotHolderError(AuditWorkflowError):
    """Caller does not hold the live lock required for the operation."""

    code = "ERR_NOT_HOLDER"
    status = 423

    def __init__(self, message: str = "You do not hold this company lock.", *,
                 lock: dict | None = None, company: dict | None = None) -> None:
        super().__init__(message, lock=lock, company=company)


class LockRequiredError(NotHolderError):
    """A gated mutation was attempted without holding the company lock."""

    code = "ERR_LOCK_REQUIRED"

    def __init__(self, message: str = "Company is locked by another user or not locked.", *,
                 lock: dict | None = None, company: dict | None = None) -> None:
        super().__init__(message, lock=lock, company=company)


class ForbiddenError(AuditWorkflowError):
    """The actor's role lacks permission for the operation."""

    code = "ERR_FORBIDDEN"
    status = 403


class RoleNotAllowedError(ForbiddenError):
    """Stage-specific role gate (auditors may only leave the first stage)."""

    code = "ERR_ROLE_NOT_ALLOWED"


class InvalidStageError(AuditWorkflowError):
    """Stage-machine precondition violated. Maps to HTTP 409."""

    code = "ERR_INVALID_STAGE"
    status = 409


class UseSendToSigningError(InvalidStageError):
    """Generic advance attempted from Partner review."""

    code = "ERR_USE_SEND_TO_SIGNING"


class AlreadyTerminalError(AuditWorkflowError):
    """Company is already in Signing."""

    code = "ERR_ALREADY_TERMINAL"
    status = 409
