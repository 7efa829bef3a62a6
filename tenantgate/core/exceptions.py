"""
Custom exception hierarchy for the application.

Every authorization or redemption failure is one ``TenantGateException``
subclass carrying exactly one ``ErrorKind``. Handlers map the kind to an
HTTP status; callers map it to a user action (``STEP_UP_REQUIRED`` ->
MFA challenge, ``ALREADY_EXISTS`` -> sign in instead of sign up).
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorKind(str, Enum):
    """Closed set of failure kinds surfaced to callers."""
    UNAUTHENTICATED = "UNAUTHENTICATED"
    ACCESS_EXPIRED = "ACCESS_EXPIRED"
    STEP_UP_REQUIRED = "STEP_UP_REQUIRED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    EXPIRED = "EXPIRED"
    EXHAUSTED = "EXHAUSTED"
    DOMAIN_FORBIDDEN = "DOMAIN_FORBIDDEN"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    ALREADY_REDEEMED = "ALREADY_REDEEMED"
    PLAN_REQUIRED = "PLAN_REQUIRED"
    FEATURE_DISABLED = "FEATURE_DISABLED"
    INTERNAL = "INTERNAL"


ERROR_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.ACCESS_EXPIRED: status.HTTP_403_FORBIDDEN,
    ErrorKind.STEP_UP_REQUIRED: status.HTTP_412_PRECONDITION_FAILED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.EXPIRED: status.HTTP_410_GONE,
    ErrorKind.EXHAUSTED: status.HTTP_410_GONE,
    ErrorKind.DOMAIN_FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_REDEEMED: status.HTTP_409_CONFLICT,
    ErrorKind.PLAN_REQUIRED: status.HTTP_412_PRECONDITION_FAILED,
    ErrorKind.FEATURE_DISABLED: status.HTTP_403_FORBIDDEN,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class TenantGateException(Exception):
    """Base exception for all application exceptions."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES[self.kind]


class AuthenticationError(TenantGateException):
    """Raised when no valid principal is attached to the request."""
    kind = ErrorKind.UNAUTHENTICATED


class AccessExpiredError(TenantGateException):
    """Raised when a principal's or membership's access window has closed."""
    kind = ErrorKind.ACCESS_EXPIRED


class StepUpRequiredError(TenantGateException):
    """Raised when the tenant demands MFA and the session is base assurance."""
    kind = ErrorKind.STEP_UP_REQUIRED


class AuthorizationError(TenantGateException):
    """Raised on missing membership, insufficient role or seat-limit."""
    kind = ErrorKind.FORBIDDEN


class ResourceNotFoundError(TenantGateException):
    """Raised when a requested resource doesn't exist."""
    kind = ErrorKind.NOT_FOUND


class InvalidStateError(TenantGateException):
    """Raised when a token is no longer active or the request cannot apply."""
    kind = ErrorKind.INVALID_STATE


class TokenExpiredError(TenantGateException):
    kind = ErrorKind.EXPIRED


class TokenExhaustedError(TenantGateException):
    kind = ErrorKind.EXHAUSTED


class DomainForbiddenError(TenantGateException):
    kind = ErrorKind.DOMAIN_FORBIDDEN


class AlreadyExistsError(TenantGateException):
    """Raised when signup targets an email that already has an account."""
    kind = ErrorKind.ALREADY_EXISTS


class AlreadyRedeemedError(TenantGateException):
    kind = ErrorKind.ALREADY_REDEEMED


class PlanRequiredError(TenantGateException):
    kind = ErrorKind.PLAN_REQUIRED


class FeatureDisabledError(TenantGateException):
    kind = ErrorKind.FEATURE_DISABLED


class InternalError(TenantGateException):
    """Store-level failure. The message returned to callers stays opaque."""
    kind = ErrorKind.INTERNAL
