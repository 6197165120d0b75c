from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from evaluation_platform.models.enumerations import (
    AggregateStatus,
    SkipReason,
    StepType,
    SubmissionStatus,
)
from evaluation_platform.scoring.criteria import coerce_json
from evaluation_platform.scoring.utils import round_display


def display_score(value: Optional[Decimal]) -> Optional[float]:
    rounded = round_display(value)
    return float(rounded) if rounded is not None else None


# =====================================================================
# Applications
# =====================================================================

class ApplicationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Application (program intake) name")


class ApplicationResponse(BaseModel):
    id: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


# =====================================================================
# Step setup
# =====================================================================

class CriterionInput(BaseModel):
    """
    One weighted criterion. Weight defaults to 1.0 when omitted; a supplied
    weight must be positive (checked when the steps are created).
    """
    name: str = Field(..., description="Criterion name, non-empty")
    weight: Optional[float] = Field(default=None, description="Positive weight, no upper bound")
    order: Optional[int] = Field(default=None, description="Display order")


class StepConfig(BaseModel):
    name: str = Field(..., description="Step name")
    type: Optional[StepType] = Field(default=None, description="Step type; defaults per step number")
    criteria: List[CriterionInput] = Field(..., description="Ordered criteria list")

    @field_validator("criteria", mode="before")
    @classmethod
    def normalize_criteria_payload(cls, v: Any) -> Any:
        """Accept a native list, a JSON string or an index-keyed object."""
        v = coerce_json(v, "criteria")
        if isinstance(v, dict) and all(isinstance(item, dict) for item in v.values()):
            try:
                return [v[k] for k in sorted(v, key=lambda k: int(k))]
            except ValueError:
                return list(v.values())
        return v


class StepSetupRequest(BaseModel):
    step1: StepConfig
    step2: StepConfig


class CriterionResponse(BaseModel):
    key: str
    label: str
    weight: float
    order: int


class StepResponse(BaseModel):
    id: str
    application_id: str
    step_number: int
    name: str
    type: StepType
    is_active: bool
    criteria: List[CriterionResponse]
    evaluator_ids: List[str]
    total_judges: int

    @classmethod
    def from_step(cls, step) -> "StepResponse":
        return cls(
            id=step.id,
            application_id=step.application_id,
            step_number=step.step_number,
            name=step.name,
            type=step.type,
            is_active=step.is_active,
            criteria=[
                CriterionResponse(key=c.key, label=c.label, weight=float(c.weight), order=c.order)
                for c in step.criteria
            ],
            evaluator_ids=list(step.evaluator_ids),
            total_judges=step.total_judges,
        )


class StepSetupResponse(BaseModel):
    step1_id: str
    step2_id: str
    steps: List[StepResponse]


class EvaluatorPoolRequest(BaseModel):
    evaluator_ids: List[str] = Field(..., description="Eligible evaluator ids for the step")


# =====================================================================
# Scores
# =====================================================================

class ScoreSubmitRequest(BaseModel):
    scores: Dict[str, Any] = Field(..., description="criterion id -> raw score")
    feedback: Optional[str] = Field(default=None, max_length=5000)
    notes: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("scores", mode="before")
    @classmethod
    def decode_scores(cls, v: Any) -> Any:
        return coerce_json(v, "scores")


class ScoreRecordResponse(BaseModel):
    id: str
    submission_id: str
    step_id: str
    evaluator_id: str
    scores: Dict[str, float]
    total_score: float
    feedback: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record) -> "ScoreRecordResponse":
        return cls(
            id=record.id,
            submission_id=record.submission_id,
            step_id=record.step_id,
            evaluator_id=record.evaluator_id,
            scores={k: float(v) for k, v in record.scores.items()},
            total_score=display_score(record.total_score),
            feedback=record.feedback,
            notes=record.notes,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class MyScoreResponse(BaseModel):
    has_scored: bool
    score: Optional[ScoreRecordResponse] = None


# =====================================================================
# Aggregates and scoreboard
# =====================================================================

class EvaluatorScore(BaseModel):
    evaluator_id: str
    total_score: float
    scored_at: datetime


class AggregateResponse(BaseModel):
    evaluator_count: int
    total_judges: Optional[int] = None
    average_score: Optional[float] = Field(default=None, description="Rounded to 2 places")
    meets_evaluator_requirement: bool
    meets_cutoff: bool
    status: AggregateStatus
    cutoff_score: float
    evaluator_percentage: float
    required_evaluators: Optional[int] = None
    is_valid: bool
    validity_message: Optional[str] = None

    @classmethod
    def from_result(cls, result) -> "AggregateResponse":
        return cls(
            evaluator_count=result.evaluator_count,
            total_judges=result.total_judges,
            average_score=display_score(result.average_score),
            meets_evaluator_requirement=result.meets_evaluator_requirement,
            meets_cutoff=result.meets_cutoff,
            status=result.status,
            cutoff_score=float(result.cutoff_score),
            evaluator_percentage=display_score(result.evaluator_percentage),
            required_evaluators=result.required_evaluators,
            is_valid=result.is_valid,
            validity_message=result.validity_message,
        )


class ScoreboardEntry(BaseModel):
    submission_id: str
    applicant_name: str
    applicant_email: Optional[str] = None
    company_name: Optional[str] = None
    status: SubmissionStatus
    current_step: int
    submitted_at: Optional[datetime] = None
    aggregate: AggregateResponse
    evaluators: List[EvaluatorScore]
    selectable: bool = Field(..., description="Eligible for the step's bulk action")


class ScoreboardResponse(BaseModel):
    step_id: str
    step_number: int
    cutoff_score: float
    total_judges: int
    required_evaluator_percentage: float
    entries: List[ScoreboardEntry]


# =====================================================================
# Batch transitions
# =====================================================================

class BatchRequest(BaseModel):
    submission_ids: List[str] = Field(..., description="Submission ids to transition")


class SkippedItem(BaseModel):
    submission_id: str
    reason: SkipReason
    detail: Optional[str] = None


class BatchResponse(BaseModel):
    count: int
    transitioned: List[str]
    skipped: List[SkippedItem]

    @classmethod
    def from_batch(cls, batch) -> "BatchResponse":
        return cls(
            count=batch.count,
            transitioned=[o.submission_id for o in batch.results if o.applied],
            skipped=[
                SkippedItem(submission_id=o.submission_id, reason=o.reason, detail=o.detail)
                for o in batch.skipped
            ],
        )


# =====================================================================
# Cutoffs and settings
# =====================================================================

class CutoffUpdate(BaseModel):
    step1: Optional[float] = None
    step2: Optional[float] = None


class CutoffResponse(BaseModel):
    step1: float
    step2: float


class EvaluationSettingsUpdate(BaseModel):
    required_evaluator_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    admit_requires_passing_score: Optional[bool] = None


class EvaluationSettingsResponse(BaseModel):
    required_evaluator_percentage: float
    min_score: float
    max_score: float
    admit_requires_passing_score: bool

    @classmethod
    def from_settings(cls, s) -> "EvaluationSettingsResponse":
        return cls(
            required_evaluator_percentage=float(s.required_evaluator_percentage),
            min_score=float(s.min_score),
            max_score=float(s.max_score),
            admit_requires_passing_score=s.admit_requires_passing_score,
        )


# =====================================================================
# Submissions
# =====================================================================

class SubmissionCreate(BaseModel):
    applicant_first_name: str = Field(..., min_length=1, max_length=255)
    applicant_last_name: str = Field(..., min_length=1, max_length=255)
    applicant_email: Optional[str] = Field(default=None, max_length=255)
    company_name: Optional[str] = Field(default=None, max_length=255)


class SubmissionResponse(BaseModel):
    id: str
    application_id: str
    applicant_first_name: str
    applicant_last_name: str
    applicant_email: Optional[str] = None
    company_name: Optional[str] = None
    status: SubmissionStatus
    current_step: int
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None

    class Config:
        from_attributes = True


class StepStatus(BaseModel):
    step_number: int
    step_name: str
    step_type: StepType
    evaluator_count: int
    average_score: Optional[float] = None
    is_current_step: bool


class SubmissionEvaluationStatus(BaseModel):
    submission_id: str
    status: SubmissionStatus
    current_step: int
    steps: List[StepStatus]
