"""
Core Package - Accelerator Evaluation Platform
evaluation_platform/core/__init__.py

Core infrastructure: exceptions, capability grants, logging.
Dependency getters live in evaluation_platform.core.dependencies.
"""

from evaluation_platform.core.capabilities import CapabilityGrant
from evaluation_platform.core.exceptions import (
    CriteriaValidationException,
    DatabaseConnectionException,
    EntityNotFoundException,
    EvaluationException,
    PermissionDeniedException,
    RepositoryException,
    StateConflictException,
    UnauthenticatedException,
)

__all__ = [
    "CapabilityGrant",
    # Exceptions
    "CriteriaValidationException",
    "DatabaseConnectionException",
    "EntityNotFoundException",
    "EvaluationException",
    "PermissionDeniedException",
    "RepositoryException",
    "StateConflictException",
    "UnauthenticatedException",
]
