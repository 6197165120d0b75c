"""
Custom Exceptions - Accelerator Evaluation Platform
evaluation_platform/core/exceptions.py

Exception hierarchy for the evaluation core and its repositories. Every class
carries a machine-readable error_code and the HTTP status the API renders it with.
"""

from typing import Any, Dict, Optional


class EvaluationException(Exception):
    """Base exception for the evaluation platform."""

    error_code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class CriteriaValidationException(EvaluationException):
    """Malformed criteria, non-positive weight, missing step name or out-of-range score."""

    error_code = "VALIDATION_ERROR"
    status_code = 422


class EntityNotFoundException(EvaluationException):
    """Entity not found in storage."""

    status_code = 404

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.error_code = f"{entity_type.upper().replace(' ', '_')}_NOT_FOUND"
        super().__init__(
            f"{entity_type} with ID {entity_id} not found",
            {"entity_type": entity_type, "entity_id": str(entity_id)},
        )


class StateConflictException(EvaluationException):
    """Operation attempted from an illegal state."""

    error_code = "STATE_CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if error_code:
            self.error_code = error_code
        super().__init__(message, details)


class PermissionDeniedException(EvaluationException):
    """Caller lacks the capability an operation requires."""

    error_code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(self, capability: str, caller_id: Optional[str] = None):
        self.capability = capability
        self.caller_id = caller_id
        super().__init__(
            f"Caller lacks required capability: {capability}",
            {"capability": capability, "caller_id": caller_id},
        )


class UnauthenticatedException(EvaluationException):
    """No caller identity supplied at the boundary."""

    error_code = "UNAUTHENTICATED"
    status_code = 401

    def __init__(self, message: str = "Caller identity is required"):
        super().__init__(message)


class RepositoryException(EvaluationException):
    """Base exception for repository operations."""

    error_code = "REPOSITORY_ERROR"
    status_code = 500

    def __init__(self, message: str = "Repository operation failed"):
        super().__init__(message)


class DatabaseConnectionException(RepositoryException):
    """Database connection failure."""

    error_code = "DATABASE_UNAVAILABLE"
    status_code = 503

    def __init__(self, message: str = "Database connection failed"):
        super().__init__(message)
