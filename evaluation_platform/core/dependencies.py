"""
Dependencies - Accelerator Evaluation Platform
evaluation_platform/core/dependencies.py

FastAPI dependency injection for the repository, the services and the
caller's capability grant.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Header

from evaluation_platform.config import get_settings
from evaluation_platform.core.capabilities import CapabilityGrant
from evaluation_platform.core.exceptions import UnauthenticatedException
from evaluation_platform.repositories.contracts import EvaluationRepository
from evaluation_platform.scoring.cutoff import default_settings_from
from evaluation_platform.scoring.demo_day import DemoDayWeightedScorer
from evaluation_platform.scoring.utils import to_decimal
from evaluation_platform.services.demo_day_service import DemoDayService
from evaluation_platform.services.evaluation_service import EvaluationService


@lru_cache()
def get_repository() -> EvaluationRepository:
    """Get the cached repository for the configured storage backend."""
    settings = get_settings()
    if settings.STORAGE_BACKEND == "snowflake":
        from evaluation_platform.repositories.evaluation_repository import (
            SnowflakeEvaluationRepository,
        )
        return SnowflakeEvaluationRepository(default_settings_from(settings))

    from evaluation_platform.repositories.memory_repository import InMemoryEvaluationRepository
    return InMemoryEvaluationRepository()


@lru_cache()
def get_evaluation_service() -> EvaluationService:
    """Get cached EvaluationService instance."""
    return EvaluationService(get_repository(), defaults=default_settings_from(get_settings()))


@lru_cache()
def get_demo_day_service() -> DemoDayService:
    """Get cached DemoDayService instance."""
    settings = get_settings()
    scorer = DemoDayWeightedScorer(
        min_score=to_decimal(settings.DEMO_DAY_MIN_SCORE),
        max_score=to_decimal(settings.DEMO_DAY_MAX_SCORE),
    )
    return DemoDayService(get_repository(), scorer=scorer)


def get_capability_grant(
    x_user_id: Optional[str] = Header(default=None),
    x_capabilities: Optional[str] = Header(default=None),
) -> CapabilityGrant:
    """Build the caller's grant from the headers set by the upstream auth layer."""
    if not x_user_id or not x_user_id.strip():
        raise UnauthenticatedException()
    return CapabilityGrant.from_header(x_user_id.strip(), x_capabilities)
