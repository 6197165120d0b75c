"""
Repository Contracts - Accelerator Evaluation Platform
evaluation_platform/repositories/contracts.py

Every service operation runs inside exactly one unit of work. The session it
yields is a consistent snapshot: aggregates computed from it and the
transitions decided on them are committed together, or not at all.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import List, Optional

from evaluation_platform.models.records import (
    Application,
    DemoDayEvent,
    DemoDayScore,
    DemoDaySubmission,
    EvaluationStep,
    Submission,
)
from evaluation_platform.scoring.score_record import ScoreRecord


class EvaluationSession(ABC):
    """Reads and writes available inside one unit of work."""

    # ---- applications ----
    @abstractmethod
    def get_application(self, application_id: str) -> Optional[Application]: ...

    @abstractmethod
    def save_application(self, application: Application) -> None: ...

    # ---- evaluation steps ----
    @abstractmethod
    def list_steps(self, application_id: str) -> List[EvaluationStep]:
        """Steps of one application ordered by step_number."""

    @abstractmethod
    def get_step(self, step_id: str) -> Optional[EvaluationStep]: ...

    @abstractmethod
    def add_step(self, step: EvaluationStep) -> None: ...

    @abstractmethod
    def save_step(self, step: EvaluationStep) -> None: ...

    # ---- submissions ----
    @abstractmethod
    def get_submission(self, submission_id: str) -> Optional[Submission]: ...

    @abstractmethod
    def list_submissions(self, application_id: str) -> List[Submission]: ...

    @abstractmethod
    def save_submission(self, submission: Submission) -> None: ...

    # ---- step scores ----
    @abstractmethod
    def get_score(
        self, submission_id: str, step_id: str, evaluator_id: str
    ) -> Optional[ScoreRecord]: ...

    @abstractmethod
    def list_scores(
        self, step_id: str, submission_id: Optional[str] = None
    ) -> List[ScoreRecord]: ...

    @abstractmethod
    def upsert_score(self, record: ScoreRecord) -> ScoreRecord:
        """Insert or overwrite the record keyed by (submission, step, evaluator)."""

    # ---- demo day ----
    @abstractmethod
    def get_event(self, event_id: str) -> Optional[DemoDayEvent]: ...

    @abstractmethod
    def save_event(self, event: DemoDayEvent) -> None: ...

    @abstractmethod
    def get_demo_submission(self, submission_id: str) -> Optional[DemoDaySubmission]: ...

    @abstractmethod
    def list_demo_submissions(self, event_id: str) -> List[DemoDaySubmission]: ...

    @abstractmethod
    def save_demo_submission(self, submission: DemoDaySubmission) -> None: ...

    @abstractmethod
    def get_demo_score(self, submission_id: str, judge_id: str) -> Optional[DemoDayScore]: ...

    @abstractmethod
    def list_demo_scores(self, submission_id: str) -> List[DemoDayScore]: ...

    @abstractmethod
    def upsert_demo_score(self, score: DemoDayScore) -> DemoDayScore:
        """Insert or overwrite the score keyed by (submission, judge)."""


class EvaluationRepository(ABC):
    """Storage backend. unit_of_work() is the snapshot/transaction boundary."""

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[EvaluationSession]: ...

    @abstractmethod
    def ping(self) -> bool:
        """True when the backend is reachable."""
