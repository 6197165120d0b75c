# evaluation_platform/scoring/score_record.py
"""
Score Record
------------
One evaluator's raw per-criterion scores for one submission at one step.

Formula:
    weighted_total   = Σ (raw_c × weight_c)
    normalized_total = weighted_total / (Σ weight_c × max_score) × max_score

The normalized total lands on the [min_score, max_score] scale whatever the
number or weight of criteria, so a fixed 0-10 cutoff applies to every step.
"""
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from evaluation_platform.scoring.criteria import (
    CriterionWeight,
    collect_scores,
    total_weight,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ScoreRecord:
    submission_id: str
    step_id: str
    evaluator_id: str
    scores: Dict[str, Decimal]          # criterion id -> raw score
    total_score: Decimal                # normalized total, full precision
    feedback: Optional[str] = None
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def key(self):
        """Upsert identity: one record per (submission, step, evaluator)."""
        return (self.submission_id, self.step_id, self.evaluator_id)


def weighted_total(criteria: List[CriterionWeight], scores: Dict[str, Decimal]) -> Decimal:
    """Σ(raw × weight) over the criteria present in scores."""
    return sum(
        (scores[c.key] * c.weight for c in criteria if c.key in scores),
        Decimal("0"),
    )


def normalized_total(
    criteria: List[CriterionWeight],
    scores: Dict[str, Decimal],
    max_score: Decimal,
) -> Decimal:
    """Weighted total rescaled to the evaluator input range."""
    scored = [c for c in criteria if c.key in scores]
    weight_sum = total_weight(scored)
    if weight_sum == 0:
        return Decimal("0")
    return weighted_total(scored, scores) / (weight_sum * max_score) * max_score


def build_score_record(
    criteria: List[CriterionWeight],
    submission_id: str,
    step_id: str,
    evaluator_id: str,
    raw_scores: Any,
    min_score: Decimal,
    max_score: Decimal,
    feedback: Optional[str] = None,
    notes: Optional[str] = None,
    existing: Optional[ScoreRecord] = None,
) -> ScoreRecord:
    """
    Validate raw scores and produce the record to store.

    When the evaluator already scored this (submission, step) the existing
    record is overwritten in place: same id and created_at, new values.
    """
    scores = collect_scores(criteria, raw_scores, min_score, max_score)
    total = normalized_total(criteria, scores, max_score)

    if existing is not None:
        return replace(
            existing,
            scores=scores,
            total_score=total,
            feedback=feedback,
            notes=notes,
            updated_at=_now(),
        )
    return ScoreRecord(
        submission_id=submission_id,
        step_id=step_id,
        evaluator_id=evaluator_id,
        scores=scores,
        total_score=total,
        feedback=feedback,
        notes=notes,
    )
