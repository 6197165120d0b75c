"""
scoring/ - Evaluation scoring core

Modules:
    utils.py          - Decimal utilities
    criteria.py       - Criterion weight model + normalize-on-read helpers
    score_record.py   - Per-evaluator score record and normalized total
    aggregator.py     - Score aggregator (average + AggregateResult)
    quorum.py         - Evaluator-percentage quorum validator
    cutoff.py         - Cutoff engine, cutoff configuration, evaluation settings
    demo_day.py       - Demo-day weighted scorer and ranking
"""

from evaluation_platform.scoring.aggregator import AggregateResult, ScoreAggregator
from evaluation_platform.scoring.criteria import CriterionWeight, normalize_criteria
from evaluation_platform.scoring.cutoff import (
    CutoffConfiguration,
    CutoffEngine,
    EvaluationSettings,
)
from evaluation_platform.scoring.demo_day import DemoDayWeightedScorer
from evaluation_platform.scoring.quorum import QuorumValidator
from evaluation_platform.scoring.score_record import ScoreRecord

__all__ = [
    "AggregateResult",
    "CriterionWeight",
    "CutoffConfiguration",
    "CutoffEngine",
    "DemoDayWeightedScorer",
    "EvaluationSettings",
    "QuorumValidator",
    "ScoreAggregator",
    "ScoreRecord",
    "normalize_criteria",
]
