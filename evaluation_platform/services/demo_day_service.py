"""
Demo Day Service - Accelerator Evaluation Platform
evaluation_platform/services/demo_day_service.py

Single-stage judged events: criteria configuration, project submissions,
judge scoring, rankings and judging statistics.
"""

from decimal import Decimal
from typing import Any, List, Optional, Tuple

import structlog

from evaluation_platform.core.capabilities import CapabilityGrant
from evaluation_platform.core.exceptions import (
    CriteriaValidationException,
    EntityNotFoundException,
    PermissionDeniedException,
    StateConflictException,
)
from evaluation_platform.models.demo_day import (
    DemoDayStatsResponse,
    RankingEntry,
    RankingsResponse,
)
from evaluation_platform.models.enumerations import Capability
from evaluation_platform.models.evaluation import display_score
from evaluation_platform.models.records import (
    DemoDayEvent,
    DemoDayScore,
    DemoDaySubmission,
    utcnow,
)
from evaluation_platform.repositories.contracts import EvaluationRepository, EvaluationSession
from evaluation_platform.scoring.criteria import CriterionWeight, resolve_event_criteria
from evaluation_platform.scoring.demo_day import DemoDayTotal, DemoDayWeightedScorer, RankedEntry
from evaluation_platform.scoring.utils import round_display
from evaluation_platform.services.cache import TTL_RANKINGS, cached, invalidate
from evaluation_platform.services.redis_cache import rankings_key

logger = structlog.get_logger(__name__)


def _weights(criteria: List[CriterionWeight]) -> List[Tuple[str, Decimal]]:
    return [(c.key, c.weight) for c in criteria]


class DemoDayService:
    """Service layer for demo-day events."""

    def __init__(
        self,
        repository: EvaluationRepository,
        scorer: Optional[DemoDayWeightedScorer] = None,
    ):
        self.repository = repository
        self.scorer = scorer or DemoDayWeightedScorer()

    def _require_event(self, session: EvaluationSession, event_id: str) -> DemoDayEvent:
        event = session.get_event(event_id)
        if event is None:
            raise EntityNotFoundException("Event", event_id)
        return event

    def _require_submission(self, session: EvaluationSession, submission_id: str) -> DemoDaySubmission:
        submission = session.get_demo_submission(submission_id)
        if submission is None:
            raise EntityNotFoundException("Demo day submission", submission_id)
        return submission

    # =====================================================================
    # Events and submissions
    # =====================================================================

    def configure_event(
        self,
        grant: CapabilityGrant,
        name: str,
        scoring_criteria: Any = None,
        scoring_weights: Any = None,
        judge_ids: Optional[List[str]] = None,
        event_id: Optional[str] = None,
    ) -> DemoDayEvent:
        """
        Create an event, or reconfigure an existing one when event_id is given.

        Criteria resolve as: structured criteria, else the weight map, else the
        five default criteria at weight 20. A reconfiguration that sends neither
        keeps the current criteria. Criteria are locked once any judge has
        scored: stored totals were computed with the old weights.
        """
        grant.require(Capability.EVENTS_MANAGE)
        if not name or not name.strip():
            raise CriteriaValidationException("Event name is required")
        keep_criteria = event_id is not None and scoring_criteria is None and scoring_weights is None
        criteria = None if keep_criteria else resolve_event_criteria(scoring_criteria, scoring_weights)
        roster = list(dict.fromkeys(j for j in (judge_ids or []) if j))

        with self.repository.unit_of_work() as session:
            if event_id is not None:
                event = self._require_event(session, event_id)
                if criteria is not None and _weights(criteria) != _weights(event.criteria):
                    self._ensure_unscored(session, event)
                    event.criteria = criteria
                event.name = name.strip()
                event.judge_ids = roster
            else:
                event = DemoDayEvent(name=name.strip(), criteria=criteria, judge_ids=roster)
            session.save_event(event)

        invalidate(rankings_key(event.id))
        logger.info(
            "demo_day_event_configured",
            event_id=event.id,
            criteria=[c.key for c in event.criteria],
            total_judges=len(roster),
        )
        return event

    def _ensure_unscored(self, session: EvaluationSession, event: DemoDayEvent) -> None:
        scored = sum(
            len(session.list_demo_scores(s.id)) for s in session.list_demo_submissions(event.id)
        )
        if scored:
            raise StateConflictException(
                "Scoring criteria cannot change after judges have scored",
                error_code="CRITERIA_LOCKED",
                details={"event_id": event.id, "scores": scored},
            )

    def get_event(self, event_id: str) -> DemoDayEvent:
        with self.repository.unit_of_work() as session:
            return self._require_event(session, event_id)

    def create_submission(
        self, event_id: str, project_name: str, team_name: Optional[str] = None
    ) -> DemoDaySubmission:
        with self.repository.unit_of_work() as session:
            self._require_event(session, event_id)
            submission = DemoDaySubmission(
                event_id=event_id, project_name=project_name, team_name=team_name
            )
            session.save_demo_submission(submission)
        invalidate(rankings_key(event_id))
        logger.info("demo_day_submission_created", event_id=event_id, submission_id=submission.id)
        return submission

    # =====================================================================
    # Scoring
    # =====================================================================

    def submit_score(
        self,
        grant: CapabilityGrant,
        submission_id: str,
        scores: Any,
        feedback: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Tuple[DemoDayScore, DemoDayTotal]:
        """
        Upsert the calling judge's score. Judges outside the event roster are
        refused even when they hold the judging capability.
        """
        grant.require(Capability.EVENTS_JUDGE)
        with self.repository.unit_of_work() as session:
            submission = self._require_submission(session, submission_id)
            event = self._require_event(session, submission.event_id)
            if grant.caller_id not in event.judge_ids:
                raise PermissionDeniedException(Capability.EVENTS_JUDGE.value, grant.caller_id)

            total = self.scorer.score(event.criteria, scores)
            existing = session.get_demo_score(submission_id, grant.caller_id)
            now = utcnow()
            record = DemoDayScore(
                submission_id=submission_id,
                judge_id=grant.caller_id,
                scores=total.scores,
                total_score=total.total_score,
                feedback=feedback,
                notes=notes,
            )
            if existing is not None:
                record.id = existing.id
                record.created_at = existing.created_at
            record.updated_at = now
            session.upsert_demo_score(record)

        invalidate(rankings_key(submission.event_id))
        logger.info(
            "demo_day_score_submitted",
            submission_id=submission_id,
            judge_id=grant.caller_id,
            total_score=float(total.total_score),
            percentage=float(round_display(total.percentage)),
        )
        return record, total

    def get_score(
        self, submission_id: str, judge_id: str
    ) -> Optional[Tuple[DemoDayScore, DemoDayTotal]]:
        with self.repository.unit_of_work() as session:
            submission = self._require_submission(session, submission_id)
            event = self._require_event(session, submission.event_id)
            record = session.get_demo_score(submission_id, judge_id)
            if record is None:
                return None
            return record, self.scorer.totals(event.criteria, record.scores, record.total_score)

    # =====================================================================
    # Rankings
    # =====================================================================

    def _ranked(self, session: EvaluationSession, event: DemoDayEvent) -> List[Tuple[RankedEntry, DemoDaySubmission]]:
        submissions = {s.id: s for s in session.list_demo_submissions(event.id)}
        entries = []
        for submission in submissions.values():
            totals = [s.total_score for s in session.list_demo_scores(submission.id)]
            entries.append(RankedEntry(
                submission_id=submission.id,
                average_score=self.scorer.average(totals),
                judge_count=len(totals),
                submitted_at=submission.submitted_at,
            ))
        return [(e, submissions[e.submission_id]) for e in self.scorer.rank(entries)]

    def _build_rankings(self, event_id: str) -> RankingsResponse:
        with self.repository.unit_of_work() as session:
            event = self._require_event(session, event_id)
            ranked = self._ranked(session, event)
        max_total = self.scorer.max_total(event.criteria)
        return RankingsResponse(
            event_id=event_id,
            max_total_score=display_score(max_total),
            rankings=[
                RankingEntry(
                    rank=entry.rank,
                    submission_id=entry.submission_id,
                    project_name=submission.project_name,
                    team_name=submission.team_name,
                    average_score=display_score(entry.average_score),
                    percentage=(
                        display_score(entry.average_score / max_total * Decimal("100"))
                        if entry.average_score is not None and max_total > 0 else None
                    ),
                    judge_count=entry.judge_count,
                    submitted_at=entry.submitted_at,
                )
                for entry, submission in ranked
            ],
        )

    def rankings(self, event_id: str) -> RankingsResponse:
        return cached(
            rankings_key(event_id),
            RankingsResponse,
            TTL_RANKINGS,
            lambda: self._build_rankings(event_id),
        )

    def finalize_rankings(self, grant: CapabilityGrant, event_id: str) -> RankingsResponse:
        """Persist each submission's average score and rank."""
        grant.require(Capability.EVENTS_MANAGE)
        with self.repository.unit_of_work() as session:
            event = self._require_event(session, event_id)
            for entry, submission in self._ranked(session, event):
                submission.average_score = round_display(entry.average_score)
                submission.rank = entry.rank
                session.save_demo_submission(submission)
        invalidate(rankings_key(event_id))
        logger.info("rankings_finalized", event_id=event_id)
        return self._build_rankings(event_id)

    def stats(self, event_id: str) -> DemoDayStatsResponse:
        """Judging progress = completed scores / (judges × submissions) × 100."""
        with self.repository.unit_of_work() as session:
            event = self._require_event(session, event_id)
            ranked = self._ranked(session, event)

        averages = [e.average_score for e, _ in ranked if e.average_score is not None]
        completed = sum(e.judge_count for e, _ in ranked)
        expected = len(event.judge_ids) * len(ranked)
        progress = Decimal(completed) / Decimal(expected) * Decimal("100") if expected else Decimal("0")
        return DemoDayStatsResponse(
            event_id=event_id,
            total_submissions=len(ranked),
            scored_submissions=len(averages),
            total_judges=len(event.judge_ids),
            completed_scores=completed,
            judging_progress=display_score(progress),
            average_score=display_score(sum(averages, Decimal("0")) / len(averages)) if averages else None,
            highest_score=display_score(max(averages)) if averages else None,
            lowest_score=display_score(min(averages)) if averages else None,
        )
