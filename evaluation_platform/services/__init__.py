"""
Services module for the Accelerator Evaluation Platform.
"""

from evaluation_platform.services.cache import get_cache
from evaluation_platform.services.demo_day_service import DemoDayService
from evaluation_platform.services.evaluation_service import BatchResult, EvaluationService
from evaluation_platform.services.redis_cache import RedisCache
from evaluation_platform.services.snowflake import get_snowflake_connection
from evaluation_platform.services.stage_transitions import (
    StageTransitionStateMachine,
    TransitionOutcome,
)

__all__ = [
    "BatchResult",
    "DemoDayService",
    "EvaluationService",
    "RedisCache",
    "StageTransitionStateMachine",
    "TransitionOutcome",
    "get_cache",
    "get_snowflake_connection",
]
