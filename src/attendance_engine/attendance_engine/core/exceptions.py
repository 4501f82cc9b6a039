from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    PRECONDITION = "precondition"
    NOT_ALLOWED = "not_allowed"
    CONCURRENCY = "concurrency"
    NOT_FOUND = "not_found"
    AUTHORIZATION = "authorization"


class DomainError(Exception):
    """Base exception for business rule violations.

    ``code`` is a stable machine-readable tag (e.g. ``AlreadyClockedIn``);
    callers map ``kind`` to a transport status in one place (see common.http).
    """

    kind: ErrorKind = ErrorKind.VALIDATION
    default_code = "DomainError"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "code": self.code, "message": self.message}


class ValidationError(DomainError):
    """Raised when input data is invalid (missing employee, bad timestamps, ...)."""

    kind = ErrorKind.VALIDATION
    default_code = "ValidationError"


class PreconditionError(DomainError):
    """Raised when a state-machine transition is not allowed from the current state."""

    kind = ErrorKind.PRECONDITION
    default_code = "PreconditionFailed"


class NotAllowedError(DomainError):
    """Raised when policy forbids the action (holiday, weekend, approved leave)."""

    kind = ErrorKind.NOT_ALLOWED
    default_code = "NotAllowed"


class ConcurrencyError(DomainError):
    """Raised on lock timeouts and optimistic version conflicts."""

    kind = ErrorKind.CONCURRENCY
    default_code = "ConcurrentModification"


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND
    default_code = "NotFound"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = ErrorKind.AUTHORIZATION
    default_code = "Forbidden"
