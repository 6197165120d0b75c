# evaluation_platform/scoring/aggregator.py
"""
Score Aggregator
----------------
Reduces all ScoreRecords for one (submission, step) into an AggregateResult.

    average_score = mean(normalized_total per evaluator)   full precision
    quorum        → QuorumValidator
    verdict       → CutoffEngine

average_score is kept at full precision for the cutoff comparison and only
rounded to 2 places at the API boundary. It is None only when nobody has scored.
"""
import structlog
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from evaluation_platform.models.enumerations import AggregateStatus
from evaluation_platform.scoring.cutoff import CutoffEngine
from evaluation_platform.scoring.quorum import QuorumValidator
from evaluation_platform.scoring.score_record import ScoreRecord
from evaluation_platform.scoring.utils import mean

logger = structlog.get_logger(__name__)


@dataclass
class EvaluatorTotal:
    evaluator_id: str
    total_score: Decimal
    scored_at: datetime


@dataclass
class AggregateResult:
    """Output of ScoreAggregator.aggregate()."""
    evaluator_count: int
    total_judges: Optional[int]
    average_score: Optional[Decimal]      # full precision
    meets_evaluator_requirement: bool
    meets_cutoff: bool
    status: AggregateStatus
    cutoff_score: Decimal
    evaluator_percentage: Decimal
    required_evaluators: Optional[int] = None
    validity_message: Optional[str] = None
    evaluators: List[EvaluatorTotal] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.meets_evaluator_requirement


class ScoreAggregator:
    """Aggregate evaluator scores and apply quorum and cutoff rules."""

    def __init__(
        self,
        quorum: Optional[QuorumValidator] = None,
        cutoff_engine: Optional[CutoffEngine] = None,
    ):
        self.quorum = quorum or QuorumValidator()
        self.cutoff_engine = cutoff_engine or CutoffEngine()

    def average(self, records: List[ScoreRecord]) -> Optional[Decimal]:
        """Mean of each evaluator's normalized total; None when empty."""
        return mean([r.total_score for r in records])

    def aggregate(
        self,
        records: List[ScoreRecord],
        total_judges: Optional[int],
        cutoff_score: Decimal,
        required_percentage: Decimal,
    ) -> AggregateResult:
        """
        Args:
            records: every ScoreRecord for one (submission, step); at most one
                     per evaluator.
            total_judges: size of the step's eligible evaluator pool.
            cutoff_score: cutoff for this step.
            required_percentage: requiredEvaluatorPercentage, 0-100.
        """
        evaluator_count = len(records)
        average = self.average(records)
        quorum = self.quorum.validate(evaluator_count, total_judges, required_percentage)
        verdict = self.cutoff_engine.evaluate(
            average, cutoff_score, quorum.meets_requirement
        )

        message = quorum.validity_message
        if evaluator_count == 0:
            message = "No evaluators have scored this submission yet"

        result = AggregateResult(
            evaluator_count=evaluator_count,
            total_judges=total_judges,
            average_score=average,
            meets_evaluator_requirement=quorum.meets_requirement and evaluator_count > 0,
            meets_cutoff=verdict.meets_cutoff,
            status=verdict.status,
            cutoff_score=cutoff_score,
            evaluator_percentage=quorum.evaluator_percentage,
            required_evaluators=quorum.required_evaluators,
            validity_message=message,
            evaluators=[
                EvaluatorTotal(r.evaluator_id, r.total_score, r.created_at)
                for r in sorted(records, key=lambda r: r.created_at)
            ],
        )

        logger.debug(
            "aggregate_computed",
            evaluator_count=evaluator_count,
            total_judges=total_judges,
            average_score=float(average) if average is not None else None,
            cutoff_score=float(cutoff_score),
            status=result.status.value,
        )
        return result
