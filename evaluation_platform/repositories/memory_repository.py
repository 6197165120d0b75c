"""
In-Memory Repository - Accelerator Evaluation Platform
evaluation_platform/repositories/memory_repository.py

Process-local storage used for development and tests.

A unit of work takes the store lock and stages a view that shares the committed
tables; a table is copied only when the unit first writes to it, and the staged
view is swapped in on success. Records are deep-copied on every read and write,
so committed records are never mutated in place.

Concurrent units of work serialize on the lock (so two upserts for the same
evaluator end as one record, last write wins), and an exception discards every
change made inside the unit.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Dict, Generator, List, Optional, Set, Tuple

from evaluation_platform.models.records import (
    Application,
    DemoDayEvent,
    DemoDayScore,
    DemoDaySubmission,
    EvaluationStep,
    Submission,
)
from evaluation_platform.repositories.contracts import EvaluationRepository, EvaluationSession
from evaluation_platform.scoring.score_record import ScoreRecord

logger = logging.getLogger(__name__)


@dataclass
class _Store:
    applications: Dict[str, Application] = field(default_factory=dict)
    steps: Dict[str, EvaluationStep] = field(default_factory=dict)
    submissions: Dict[str, Submission] = field(default_factory=dict)
    scores: Dict[Tuple[str, str, str], ScoreRecord] = field(default_factory=dict)
    events: Dict[str, DemoDayEvent] = field(default_factory=dict)
    demo_submissions: Dict[str, DemoDaySubmission] = field(default_factory=dict)
    demo_scores: Dict[Tuple[str, str], DemoDayScore] = field(default_factory=dict)


class InMemorySession(EvaluationSession):
    """Session over a staged view of the store. Returned records are copies."""

    def __init__(self, store: _Store):
        self._store = store
        self._copied: Set[str] = set()

    def _table(self, name: str) -> dict:
        """Writable table: copied from the committed one on first write."""
        if name not in self._copied:
            setattr(self._store, name, dict(getattr(self._store, name)))
            self._copied.add(name)
        return getattr(self._store, name)

    # ---- applications ----
    def get_application(self, application_id: str) -> Optional[Application]:
        return copy.deepcopy(self._store.applications.get(application_id))

    def save_application(self, application: Application) -> None:
        self._table("applications")[application.id] = copy.deepcopy(application)

    # ---- evaluation steps ----
    def list_steps(self, application_id: str) -> List[EvaluationStep]:
        steps = [s for s in self._store.steps.values() if s.application_id == application_id]
        return copy.deepcopy(sorted(steps, key=lambda s: s.step_number))

    def get_step(self, step_id: str) -> Optional[EvaluationStep]:
        return copy.deepcopy(self._store.steps.get(step_id))

    def add_step(self, step: EvaluationStep) -> None:
        self._table("steps")[step.id] = copy.deepcopy(step)

    def save_step(self, step: EvaluationStep) -> None:
        self._table("steps")[step.id] = copy.deepcopy(step)

    # ---- submissions ----
    def get_submission(self, submission_id: str) -> Optional[Submission]:
        return copy.deepcopy(self._store.submissions.get(submission_id))

    def list_submissions(self, application_id: str) -> List[Submission]:
        subs = [s for s in self._store.submissions.values() if s.application_id == application_id]
        return copy.deepcopy(sorted(subs, key=lambda s: s.created_at))

    def save_submission(self, submission: Submission) -> None:
        self._table("submissions")[submission.id] = copy.deepcopy(submission)

    # ---- step scores ----
    def get_score(self, submission_id: str, step_id: str, evaluator_id: str) -> Optional[ScoreRecord]:
        return copy.deepcopy(self._store.scores.get((submission_id, step_id, evaluator_id)))

    def list_scores(self, step_id: str, submission_id: Optional[str] = None) -> List[ScoreRecord]:
        return copy.deepcopy([
            r for r in self._store.scores.values()
            if r.step_id == step_id and (submission_id is None or r.submission_id == submission_id)
        ])

    def upsert_score(self, record: ScoreRecord) -> ScoreRecord:
        self._table("scores")[record.key] = copy.deepcopy(record)
        return record

    # ---- demo day ----
    def get_event(self, event_id: str) -> Optional[DemoDayEvent]:
        return copy.deepcopy(self._store.events.get(event_id))

    def save_event(self, event: DemoDayEvent) -> None:
        self._table("events")[event.id] = copy.deepcopy(event)

    def get_demo_submission(self, submission_id: str) -> Optional[DemoDaySubmission]:
        return copy.deepcopy(self._store.demo_submissions.get(submission_id))

    def list_demo_submissions(self, event_id: str) -> List[DemoDaySubmission]:
        subs = [s for s in self._store.demo_submissions.values() if s.event_id == event_id]
        return copy.deepcopy(sorted(subs, key=lambda s: s.submitted_at))

    def save_demo_submission(self, submission: DemoDaySubmission) -> None:
        self._table("demo_submissions")[submission.id] = copy.deepcopy(submission)

    def get_demo_score(self, submission_id: str, judge_id: str) -> Optional[DemoDayScore]:
        return copy.deepcopy(self._store.demo_scores.get((submission_id, judge_id)))

    def list_demo_scores(self, submission_id: str) -> List[DemoDayScore]:
        return copy.deepcopy([
            s for s in self._store.demo_scores.values() if s.submission_id == submission_id
        ])

    def upsert_demo_score(self, score: DemoDayScore) -> DemoDayScore:
        self._table("demo_scores")[(score.submission_id, score.judge_id)] = copy.deepcopy(score)
        return score


class InMemoryEvaluationRepository(EvaluationRepository):
    """Thread-safe in-process repository."""

    def __init__(self):
        self._store = _Store()
        self._lock = threading.RLock()

    @contextmanager
    def unit_of_work(self) -> Generator[InMemorySession, None, None]:
        with self._lock:
            staged = replace(self._store)
            try:
                yield InMemorySession(staged)
            except Exception:
                logger.debug("unit of work rolled back")
                raise
            self._store = staged

    def ping(self) -> bool:
        return True
