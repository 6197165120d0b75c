# evaluation_platform/scoring/cutoff.py
"""
Cutoff Engine
-------------
Turns an average score and a step cutoff into a verdict.

    average is None             → NOT_SCORED
    quorum not met              → PENDING   (never judged on an under-quorum sample)
    average ≥ cutoff            → PASSED    (inclusive boundary)
    average < cutoff            → FAILED

Also holds the per-application configuration the verdict depends on:
step cutoffs ({"step1": x, "step2": y}) and evaluation settings
(requiredEvaluatorPercentage, minScore, maxScore). Both may arrive as native
objects or JSON strings and are normalized on read.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from evaluation_platform.core.exceptions import CriteriaValidationException
from evaluation_platform.models.enumerations import AggregateStatus
from evaluation_platform.scoring.criteria import coerce_json
from evaluation_platform.scoring.utils import to_decimal


@dataclass(frozen=True)
class CutoffVerdict:
    status: AggregateStatus
    meets_cutoff: bool


class CutoffEngine:
    """Compare an aggregate against the configured cutoff."""

    def evaluate(
        self,
        average_score: Optional[Decimal],
        cutoff: Decimal,
        meets_evaluator_requirement: bool,
    ) -> CutoffVerdict:
        if average_score is None:
            return CutoffVerdict(AggregateStatus.NOT_SCORED, False)
        meets_cutoff = average_score >= cutoff
        if not meets_evaluator_requirement:
            return CutoffVerdict(AggregateStatus.PENDING, meets_cutoff)
        if meets_cutoff:
            return CutoffVerdict(AggregateStatus.PASSED, True)
        return CutoffVerdict(AggregateStatus.FAILED, False)


@dataclass(frozen=True)
class CutoffConfiguration:
    step1: Decimal = Decimal("0")
    step2: Decimal = Decimal("0")

    def for_step(self, step_number: int) -> Decimal:
        return self.step1 if step_number == 1 else self.step2

    def to_dict(self) -> Dict[str, float]:
        return {"step1": float(self.step1), "step2": float(self.step2)}


@dataclass(frozen=True)
class EvaluationSettings:
    required_evaluator_percentage: Decimal = Decimal("75")
    min_score: Decimal = Decimal("1")
    max_score: Decimal = Decimal("10")
    admit_requires_passing_score: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requiredEvaluatorPercentage": float(self.required_evaluator_percentage),
            "minScore": float(self.min_score),
            "maxScore": float(self.max_score),
            "admitRequiresPassingScore": self.admit_requires_passing_score,
        }


def _decimal_field(data: Dict[str, Any], name: str, default: Decimal) -> Decimal:
    raw = data.get(name)
    if raw is None:
        return default
    try:
        return to_decimal(raw)
    except ValueError:
        raise CriteriaValidationException(
            f"{name} must be a number", {"field": name, "value": str(raw)}
        ) from None


def parse_cutoffs(raw: Any) -> CutoffConfiguration:
    """Read stored cutoffs; missing steps default to 0."""
    data = coerce_json(raw, "cutoffScores") or {}
    if isinstance(data, CutoffConfiguration):
        return data
    return CutoffConfiguration(
        step1=_decimal_field(data, "step1", Decimal("0")),
        step2=_decimal_field(data, "step2", Decimal("0")),
    )


def validate_settings(settings: EvaluationSettings) -> EvaluationSettings:
    if not Decimal("0") <= settings.required_evaluator_percentage <= Decimal("100"):
        raise CriteriaValidationException(
            "requiredEvaluatorPercentage must be between 0 and 100",
            {"requiredEvaluatorPercentage": str(settings.required_evaluator_percentage)},
        )
    if settings.min_score >= settings.max_score:
        raise CriteriaValidationException(
            "minScore must be less than maxScore",
            {"minScore": str(settings.min_score), "maxScore": str(settings.max_score)},
        )
    return settings


def parse_settings(raw: Any, defaults: EvaluationSettings) -> EvaluationSettings:
    """Read stored evaluation settings, filling gaps from defaults."""
    data = coerce_json(raw, "evaluationSettings")
    if isinstance(data, EvaluationSettings):
        return data
    if not data:
        return defaults
    admit_rule = data.get("admitRequiresPassingScore")
    return validate_settings(EvaluationSettings(
        required_evaluator_percentage=_decimal_field(
            data, "requiredEvaluatorPercentage", defaults.required_evaluator_percentage
        ),
        min_score=_decimal_field(data, "minScore", defaults.min_score),
        max_score=_decimal_field(data, "maxScore", defaults.max_score),
        admit_requires_passing_score=(
            defaults.admit_requires_passing_score if admit_rule is None else bool(admit_rule)
        ),
    ))


def validate_cutoff(value: Decimal, settings: EvaluationSettings, step_key: str) -> Decimal:
    """A cutoff must lie inside the evaluator input range."""
    if value < settings.min_score or value > settings.max_score:
        raise CriteriaValidationException(
            f"{step_key} cutoff must be between {settings.min_score} and {settings.max_score}",
            {"step": step_key, "value": str(value)},
        )
    return value


def default_settings_from(config) -> EvaluationSettings:
    """Build application-level defaults from the Settings object."""
    return EvaluationSettings(
        required_evaluator_percentage=to_decimal(config.DEFAULT_REQUIRED_EVALUATOR_PERCENTAGE),
        min_score=to_decimal(config.DEFAULT_MIN_SCORE),
        max_score=to_decimal(config.DEFAULT_MAX_SCORE),
    )
