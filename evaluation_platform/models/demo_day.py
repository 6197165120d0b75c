from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Any, Dict, List, Optional

from evaluation_platform.models.evaluation import CriterionResponse, display_score
from evaluation_platform.scoring.criteria import coerce_json


class EventConfigRequest(BaseModel):
    """
    Demo-day scoring configuration.

    scoring_criteria wins when present; otherwise criteria are derived from
    scoring_weights ({key: weight}); with neither, the default five criteria
    at weight 20 apply.
    """
    name: str = Field(..., min_length=1, max_length=255)
    scoring_criteria: Optional[Any] = Field(
        default=None, description="[{key, label, weight}] as a list or JSON string"
    )
    scoring_weights: Optional[Any] = Field(
        default=None, description="{key: weight} as an object or JSON string"
    )
    judge_ids: List[str] = Field(default_factory=list, description="Judges on the event roster")


class EventResponse(BaseModel):
    id: str
    name: str
    criteria: List[CriterionResponse]
    judge_ids: List[str]
    max_total_score: float

    @classmethod
    def from_event(cls, event, max_total) -> "EventResponse":
        return cls(
            id=event.id,
            name=event.name,
            criteria=[
                CriterionResponse(key=c.key, label=c.label, weight=float(c.weight), order=c.order)
                for c in event.criteria
            ],
            judge_ids=list(event.judge_ids),
            max_total_score=display_score(max_total),
        )


class DemoDaySubmissionCreate(BaseModel):
    project_name: str = Field(..., min_length=1, max_length=255)
    team_name: Optional[str] = Field(default=None, max_length=255)


class DemoDaySubmissionResponse(BaseModel):
    id: str
    event_id: str
    project_name: str
    team_name: Optional[str] = None
    submitted_at: datetime
    average_score: Optional[float] = None
    rank: Optional[int] = None

    @classmethod
    def from_submission(cls, s) -> "DemoDaySubmissionResponse":
        return cls(
            id=s.id,
            event_id=s.event_id,
            project_name=s.project_name,
            team_name=s.team_name,
            submitted_at=s.submitted_at,
            average_score=display_score(s.average_score),
            rank=s.rank,
        )


class DemoDayScoreRequest(BaseModel):
    scores: Dict[str, Any] = Field(..., description="criterion key -> raw score (1-10)")
    feedback: Optional[str] = Field(default=None, max_length=5000)
    notes: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("scores", mode="before")
    @classmethod
    def decode_scores(cls, v: Any) -> Any:
        return coerce_json(v, "scores")


class DemoDayScoreResponse(BaseModel):
    id: str
    submission_id: str
    judge_id: str
    scores: Dict[str, float]
    total_score: float
    max_total_score: float
    percentage: float
    feedback: Optional[str] = None
    notes: Optional[str] = None


class RankingEntry(BaseModel):
    rank: Optional[int] = None
    submission_id: str
    project_name: str
    team_name: Optional[str] = None
    average_score: Optional[float] = None
    percentage: Optional[float] = None
    judge_count: int
    submitted_at: Optional[datetime] = None


class RankingsResponse(BaseModel):
    event_id: str
    max_total_score: float
    rankings: List[RankingEntry]


class DemoDayStatsResponse(BaseModel):
    event_id: str
    total_submissions: int
    scored_submissions: int
    total_judges: int
    completed_scores: int
    judging_progress: float = Field(..., description="completed / (judges × submissions) × 100")
    average_score: Optional[float] = None
    highest_score: Optional[float] = None
    lowest_score: Optional[float] = None
