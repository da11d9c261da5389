"""Custom exceptions for the application."""

from typing import Any, Dict, Optional


class ApplicationError(Exception):
    """Base exception for all application errors."""

    error_code: str = "applicationError"
    retryable: bool = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    error_code = "validationError"

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.field = field
        if field:
            self.details["field"] = field


class NotFoundError(ApplicationError):
    """Raised when a requested resource is not found."""

    error_code = "notFound"


class AuthenticationError(ApplicationError):
    """Raised when authentication fails."""

    error_code = "authenticationError"


class AuthorizationError(ApplicationError):
    """Raised when the actor is not allowed to perform an action."""

    error_code = "authorizationError"


class BusinessLogicError(ApplicationError):
    """Raised when business logic constraints are violated."""

    error_code = "invariantViolation"


class IllegalTransitionError(ValidationError):
    """The (current, target) pair is not in the transition table."""

    error_code = "illegalTransition"

    def __init__(self, entity_kind: str, from_status: str, to_status: str, allowed: list):
        allowed_text = ", ".join(allowed) if allowed else "none"
        super().__init__(
            f"Cannot transition {entity_kind} from '{from_status}' to '{to_status}'. "
            f"Allowed: {allowed_text}",
            field="status",
            details={
                "entity_kind": entity_kind,
                "from_status": from_status,
                "to_status": to_status,
                "allowed": list(allowed),
            },
        )
        self.from_status = from_status
        self.to_status = to_status


class BusinessRuleViolationError(BusinessLogicError):
    """A table-legal transition blocked by a cross-entity rule."""


class ForbiddenTransitionError(AuthorizationError):
    """The actor may not request this transition on this entity."""


class ConflictError(ApplicationError):
    """Raised when there's a conflict with existing data."""

    error_code = "conflict"


class ConcurrencyConflictError(ConflictError):
    """Another transaction changed the row between read and write."""

    error_code = "concurrencyConflict"
    retryable = True


class TransientStoreError(ApplicationError):
    """The store could not complete the transaction; safe to retry."""

    error_code = "transientStoreFailure"
    retryable = True


class AuditLogImmutableError(ApplicationError):
    """Raised on any attempt to update or delete a workflow log entry."""

    error_code = "auditLogImmutable"
