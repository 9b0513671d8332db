"""
Custom Exception Classes for the Application
Provides a unified error handling system with proper HTTP status codes and messages.

Services raise these directly; `archetypeos.core.error_handlers` renders them into
the standard error envelope.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class AppException(HTTPException):
    """
    Base exception class for all application exceptions.
    Provides consistent error response format.
    """

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "error_code": error_code,
                "message": message,
                "details": self.details,
            },
            headers=headers,
        )


# ==================== Authentication Exceptions ====================


class AuthenticationException(AppException):
    """Raised when no authenticated caller can be resolved."""

    def __init__(
        self,
        error_code: str = "authentication_failed",
        message: str = "Authentication required",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code,
            message=message,
            details=details,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidTokenException(AuthenticationException):
    """Raised when authentication token is invalid or expired."""

    def __init__(self):
        super().__init__(
            error_code="invalid_token",
            message="Invalid authentication token",
        )


# ==================== Authorization Exceptions ====================


class PermissionDeniedException(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(
        self,
        message: str = "You don't have permission to perform this action",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="permission_denied",
            message=message,
            details=details,
        )


# ==================== Resource Exceptions ====================


class ResourceNotFoundException(AppException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: Optional[Any] = None):
        details = {}
        if identifier is not None:
            details["identifier"] = str(identifier)

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="resource_not_found",
            message=f"{resource} not found",
            details=details,
        )


class ResourceAlreadyExistsException(AppException):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, resource: str, field: Optional[str] = None):
        details = {}
        if field:
            details["field"] = field

        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="resource_already_exists",
            message=f"{resource} already exists",
            details=details,
        )


class ResourceConflictException(AppException):
    """Raised when a change would break an invariant of the resource state."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="resource_conflict",
            message=message,
            details=details,
        )


# ==================== Validation Exceptions ====================


class ValidationException(AppException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {}
        if field:
            details["field"] = field

        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="validation_error",
            message=message,
            details=details,
        )


# ==================== Business Logic Exceptions ====================


class BusinessLogicException(AppException):
    """Base class for state-machine and business rule violations."""

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        super().__init__(
            status_code=status_code,
            error_code=error_code,
            message=message,
            details=details,
        )


class AttemptLimitReachedException(BusinessLogicException):
    """Raised when a user has used every attempt a test allows."""

    def __init__(self, attempt_limit: int):
        super().__init__(
            error_code="attempt_limit_reached",
            message="Attempt limit reached",
            details={"attempt_limit": attempt_limit},
        )


class NoActiveAttemptException(BusinessLogicException):
    """Raised when submitting without an in-progress attempt."""

    def __init__(self, test_id: Optional[int] = None):
        super().__init__(
            error_code="no_active_attempt",
            message="No active attempt for this test",
            details={"test_id": test_id} if test_id is not None else None,
        )


class AlreadySubmittedException(BusinessLogicException):
    """Raised when the attempt has already left the in-progress state."""

    def __init__(self, attempt_id: Optional[int] = None):
        super().__init__(
            error_code="already_submitted",
            message="This attempt has already been submitted",
            details={"attempt_id": attempt_id} if attempt_id is not None else None,
        )


class NotGradableException(BusinessLogicException):
    """Raised when grading an attempt that is not waiting for review."""

    def __init__(self, attempt_id: int, current_status: str):
        super().__init__(
            error_code="not_gradable",
            message="Only attempts awaiting review can be graded",
            details={"attempt_id": attempt_id, "status": current_status},
        )


class CandidateNotEligibleException(BusinessLogicException):
    """Raised when promoting a candidate that has no passed attempt."""

    def __init__(self, user_id: int):
        super().__init__(
            error_code="candidate_not_eligible",
            message="Candidate has no passed assessment",
            details={"user_id": user_id},
        )
