"""
Domain records held by the repositories.

These are plain dataclasses in their canonical in-memory form: criteria are
ordered CriterionWeight lists, cutoffs and settings are parsed objects. The
Snowflake repository converts to and from its JSON columns.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from evaluation_platform.models.enumerations import StepType, SubmissionStatus
from evaluation_platform.scoring.criteria import CriterionWeight
from evaluation_platform.scoring.cutoff import CutoffConfiguration, EvaluationSettings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Application:
    id: str
    name: str
    cutoffs: CutoffConfiguration = field(default_factory=CutoffConfiguration)
    settings: Optional[EvaluationSettings] = None     # None → configured defaults
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class EvaluationStep:
    application_id: str
    step_number: int
    name: str
    type: StepType
    criteria: List[CriterionWeight]
    is_active: bool = False
    evaluator_ids: List[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def total_judges(self) -> int:
        return len(self.evaluator_ids)


@dataclass
class Submission:
    application_id: str
    applicant_first_name: str = ""
    applicant_last_name: str = ""
    applicant_email: Optional[str] = None
    company_name: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.DRAFT
    current_step: int = 1
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def applicant_name(self) -> str:
        return f"{self.applicant_first_name} {self.applicant_last_name}".strip()


@dataclass
class DemoDayEvent:
    name: str
    criteria: List[CriterionWeight]
    judge_ids: List[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class DemoDaySubmission:
    event_id: str
    project_name: str
    team_name: Optional[str] = None
    submitted_at: datetime = field(default_factory=utcnow)
    average_score: Optional[Decimal] = None    # persisted by finalize
    rank: Optional[int] = None                 # persisted by finalize
    id: str = field(default_factory=new_id)


@dataclass
class DemoDayScore:
    submission_id: str
    judge_id: str
    scores: Dict[str, Decimal]
    total_score: Decimal
    feedback: Optional[str] = None
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
