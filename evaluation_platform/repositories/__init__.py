"""
Repositories Package - Accelerator Evaluation Platform
evaluation_platform/repositories/__init__.py

Storage backends behind the EvaluationRepository unit-of-work contract.
"""

from evaluation_platform.repositories.contracts import EvaluationRepository, EvaluationSession
from evaluation_platform.repositories.memory_repository import InMemoryEvaluationRepository

__all__ = [
    "EvaluationRepository",
    "EvaluationSession",
    "InMemoryEvaluationRepository",
]
