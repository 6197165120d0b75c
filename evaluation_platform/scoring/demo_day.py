# evaluation_platform/scoring/demo_day.py
"""
Demo Day Weighted Scorer
------------------------
Single-stage weighted scoring for judged project submissions.

Formula (one canonical form, used everywhere a total is shown):
    total_score = Σ (raw_key × weight_key)                  raw weighted sum
    max_total   = Σ (max_score × weight_key)
    percentage  = total_score / max_total × 100

A submission's average_score is the mean of its judges' total_score. Ranking
is by average descending; ties go to the earlier submitted_at; unscored
submissions come last and carry no rank.
"""
import structlog
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from evaluation_platform.scoring.criteria import CriterionWeight, collect_scores, total_weight
from evaluation_platform.scoring.score_record import weighted_total
from evaluation_platform.scoring.utils import mean

logger = structlog.get_logger(__name__)


@dataclass
class DemoDayTotal:
    """Output of DemoDayWeightedScorer.score()."""
    scores: Dict[str, Decimal]
    total_score: Decimal
    max_total: Decimal
    percentage: Decimal


@dataclass
class RankedEntry:
    submission_id: str
    average_score: Optional[Decimal]
    judge_count: int
    submitted_at: Optional[datetime]
    rank: Optional[int] = None


class DemoDayWeightedScorer:
    """Weighted-criteria scoring for a demo-day event."""

    def __init__(self, min_score: Decimal = Decimal("1"), max_score: Decimal = Decimal("10")):
        self.min_score = min_score
        self.max_score = max_score

    def max_total(self, criteria: List[CriterionWeight]) -> Decimal:
        return self.max_score * total_weight(criteria)

    def totals(
        self,
        criteria: List[CriterionWeight],
        scores: Dict[str, Decimal],
        total_score: Optional[Decimal] = None,
    ) -> DemoDayTotal:
        """
        Compute total, maximum and percentage from already validated scores.
        A stored total_score is reported as is.
        """
        total = weighted_total(criteria, scores) if total_score is None else total_score
        max_total = self.max_total(criteria)
        percentage = (total / max_total * Decimal("100")) if max_total > 0 else Decimal("0")
        return DemoDayTotal(
            scores=scores,
            total_score=total,
            max_total=max_total,
            percentage=percentage,
        )

    def score(self, criteria: List[CriterionWeight], raw_scores: Any) -> DemoDayTotal:
        """
        Validate one judge's raw scores and compute the weighted total.

        Every configured criterion is required, each in [min_score, max_score].
        """
        scores = collect_scores(criteria, raw_scores, self.min_score, self.max_score)
        result = self.totals(criteria, scores)
        logger.debug(
            "demo_day_total_computed",
            criteria=[c.key for c in criteria],
            total_score=float(result.total_score),
            max_total=float(result.max_total),
        )
        return result

    def average(self, totals: Sequence[Decimal]) -> Optional[Decimal]:
        return mean(list(totals))

    def rank(self, entries: List[RankedEntry]) -> List[RankedEntry]:
        """Order entries and assign 1-based ranks to the scored ones."""
        def sort_key(e: RankedEntry):
            unscored = e.average_score is None
            return (
                unscored,
                -(e.average_score or Decimal("0")),
                e.submitted_at is None,
                e.submitted_at or datetime.min,
            )

        ordered = sorted(entries, key=sort_key)
        position = 0
        for entry in ordered:
            if entry.average_score is None:
                entry.rank = None
                continue
            position += 1
            entry.rank = position
        return ordered
