"""
Evaluation Service - Accelerator Evaluation Platform
evaluation_platform/services/evaluation_service.py

Two-step evaluation pipeline: step setup, evaluator pools, score submission,
aggregation, scoreboards, stage transitions and per-application cutoff /
evaluation settings.

Every public method runs inside exactly one repository unit of work. Mutating
methods take a CapabilityGrant and check it before touching storage. Batch
transitions decide each id against aggregates computed from the same snapshot
they commit to, and report skipped ids instead of failing the batch.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

from evaluation_platform.core.capabilities import CapabilityGrant
from evaluation_platform.core.exceptions import (
    CriteriaValidationException,
    EntityNotFoundException,
    StateConflictException,
)
from evaluation_platform.models.enumerations import (
    AggregateStatus,
    Capability,
    DECIDED_STATUSES,
    SkipReason,
    StepType,
    SubmissionStatus,
)
from evaluation_platform.models.evaluation import (
    AggregateResponse,
    EvaluatorScore,
    ScoreboardEntry,
    ScoreboardResponse,
    StepStatus,
    SubmissionEvaluationStatus,
    display_score,
)
from evaluation_platform.models.records import (
    Application,
    EvaluationStep,
    Submission,
    new_id,
    utcnow,
)
from evaluation_platform.repositories.contracts import EvaluationRepository, EvaluationSession
from evaluation_platform.scoring.aggregator import AggregateResult, ScoreAggregator
from evaluation_platform.scoring.criteria import CriterionWeight, normalize_criteria
from evaluation_platform.scoring.cutoff import (
    CutoffConfiguration,
    EvaluationSettings,
    validate_cutoff,
    validate_settings,
)
from evaluation_platform.scoring.score_record import ScoreRecord, build_score_record
from evaluation_platform.scoring.utils import mean, to_decimal
from evaluation_platform.services.cache import TTL_SCOREBOARD, cached, invalidate
from evaluation_platform.services.redis_cache import scoreboard_key
from evaluation_platform.services.stage_transitions import (
    FINAL_STEP,
    FIRST_STEP,
    StageTransitionStateMachine,
    TransitionOutcome,
)

logger = structlog.get_logger(__name__)

DEFAULT_STEP_TYPES = {1: StepType.INITIAL_REVIEW, 2: StepType.INTERVIEW}


@dataclass
class BatchResult:
    """Per-id outcomes of a batch transition."""
    results: List[TransitionOutcome] = field(default_factory=list)

    @property
    def count(self) -> int:
        return sum(1 for r in self.results if r.applied)

    @property
    def skipped(self) -> List[TransitionOutcome]:
        return [r for r in self.results if not r.applied]


def _field(config: Any, name: str) -> Any:
    if isinstance(config, dict):
        return config.get(name)
    return getattr(config, name, None)


class EvaluationService:
    """Service layer for the step-based evaluation pipeline."""

    def __init__(
        self,
        repository: EvaluationRepository,
        defaults: Optional[EvaluationSettings] = None,
        aggregator: Optional[ScoreAggregator] = None,
        state_machine: Optional[StageTransitionStateMachine] = None,
    ):
        self.repository = repository
        self.defaults = defaults or EvaluationSettings()
        self.aggregator = aggregator or ScoreAggregator()
        self.state_machine = state_machine or StageTransitionStateMachine()

    # =====================================================================
    # Lookups
    # =====================================================================

    def settings_for(self, application: Application) -> EvaluationSettings:
        return application.settings or self.defaults

    def _require_application(self, session: EvaluationSession, application_id: str) -> Application:
        application = session.get_application(application_id)
        if application is None:
            raise EntityNotFoundException("Application", application_id)
        return application

    def _require_step(self, session: EvaluationSession, step_id: str) -> EvaluationStep:
        step = session.get_step(step_id)
        if step is None:
            raise EntityNotFoundException("Step", step_id)
        return step

    def _require_submission(
        self,
        session: EvaluationSession,
        submission_id: str,
        application_id: Optional[str] = None,
    ) -> Submission:
        submission = session.get_submission(submission_id)
        if submission is None or (
            application_id is not None and submission.application_id != application_id
        ):
            raise EntityNotFoundException("Submission", submission_id)
        return submission

    def _step_by_number(
        self, session: EvaluationSession, application_id: str, step_number: int
    ) -> EvaluationStep:
        for step in session.list_steps(application_id):
            if step.step_number == step_number:
                return step
        raise StateConflictException(
            "Evaluation steps have not been set up for this application",
            error_code="STEPS_NOT_CONFIGURED",
            details={"application_id": application_id},
        )

    def _aggregate(
        self,
        session: EvaluationSession,
        application: Application,
        step: EvaluationStep,
        submission_id: str,
    ) -> AggregateResult:
        settings = self.settings_for(application)
        return self.aggregator.aggregate(
            session.list_scores(step.id, submission_id),
            total_judges=step.total_judges,
            cutoff_score=application.cutoffs.for_step(step.step_number),
            required_percentage=settings.required_evaluator_percentage,
        )

    def _invalidate_application(self, session: EvaluationSession, application_id: str) -> None:
        invalidate(*(scoreboard_key(s.id) for s in session.list_steps(application_id)))

    # =====================================================================
    # Applications
    # =====================================================================

    def create_application(self, grant: CapabilityGrant, name: str) -> Application:
        grant.require(Capability.APPLICATIONS_MANAGE)
        if not name or not name.strip():
            raise CriteriaValidationException("Application name is required")
        application = Application(id=new_id(), name=name.strip())
        with self.repository.unit_of_work() as session:
            session.save_application(application)
        logger.info("application_created", application_id=application.id)
        return application

    def get_application(self, application_id: str) -> Application:
        with self.repository.unit_of_work() as session:
            return self._require_application(session, application_id)

    # =====================================================================
    # Step setup
    # =====================================================================

    def _build_step(self, application_id: str, step_number: int, config: Any) -> EvaluationStep:
        name = _field(config, "name")
        if not isinstance(name, str) or not name.strip():
            raise CriteriaValidationException(
                f"Step {step_number} name is required", {"step": step_number}
            )
        raw_criteria = _field(config, "criteria")
        if raw_criteria is not None and not isinstance(raw_criteria, (str, dict)):
            raw_criteria = [
                c if isinstance(c, (dict, CriterionWeight)) else c.model_dump()
                for c in raw_criteria
            ]
        criteria = normalize_criteria(raw_criteria, f"step{step_number}.criteria")
        if not criteria:
            raise CriteriaValidationException(
                f"Step {step_number} needs at least one criterion", {"step": step_number}
            )
        # Stored criteria are keyed by a fresh criterion id
        criteria = [replace(c, key=new_id()) for c in criteria]
        step_type = _field(config, "type") or DEFAULT_STEP_TYPES[step_number]
        return EvaluationStep(
            application_id=application_id,
            step_number=step_number,
            name=name.strip(),
            type=StepType(step_type),
            criteria=criteria,
            is_active=step_number == FIRST_STEP,
        )

    def setup_steps(
        self,
        grant: CapabilityGrant,
        application_id: str,
        step1: Any,
        step2: Any,
    ) -> Tuple[EvaluationStep, EvaluationStep]:
        """
        Create step 1 and step 2 together.

        Both step configs are validated before anything is written; any
        invalid criterion aborts the whole setup.
        """
        grant.require(Capability.APPLICATIONS_MANAGE)
        first = self._build_step(application_id, 1, step1)
        second = self._build_step(application_id, 2, step2)

        with self.repository.unit_of_work() as session:
            self._require_application(session, application_id)
            if session.list_steps(application_id):
                raise StateConflictException(
                    "Evaluation steps already exist for this application",
                    error_code="STEPS_ALREADY_EXIST",
                    details={"application_id": application_id},
                )
            session.add_step(first)
            session.add_step(second)

        logger.info(
            "steps_created",
            application_id=application_id,
            step1_id=first.id,
            step2_id=second.id,
            step1_criteria=len(first.criteria),
            step2_criteria=len(second.criteria),
        )
        return first, second

    def list_steps(self, application_id: str) -> List[EvaluationStep]:
        with self.repository.unit_of_work() as session:
            self._require_application(session, application_id)
            return session.list_steps(application_id)

    def assign_evaluators(
        self,
        grant: CapabilityGrant,
        step_id: str,
        evaluator_ids: Iterable[str],
    ) -> EvaluationStep:
        """Replace the step's eligible evaluator pool."""
        grant.require(Capability.APPLICATIONS_MANAGE)
        pool = list(dict.fromkeys(e for e in evaluator_ids if e))
        with self.repository.unit_of_work() as session:
            step = self._require_step(session, step_id)
            step.evaluator_ids = pool
            session.save_step(step)
        invalidate(scoreboard_key(step_id))
        logger.info("evaluator_pool_assigned", step_id=step_id, total_judges=len(pool))
        return step

    # =====================================================================
    # Scores
    # =====================================================================

    def submit_score(
        self,
        grant: CapabilityGrant,
        submission_id: str,
        step_id: str,
        scores: Any,
        feedback: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ScoreRecord:
        """
        Upsert the caller's score for (submission, step).

        The evaluator is the grant's caller. A repeat submission overwrites the
        previous record. The first score moves a SUBMITTED submission to
        UNDER_REVIEW.
        """
        grant.require(Capability.EVALUATION_SCORE)
        with self.repository.unit_of_work() as session:
            step = self._require_step(session, step_id)
            submission = self._require_submission(session, submission_id, step.application_id)
            application = self._require_application(session, step.application_id)
            settings = self.settings_for(application)

            existing = session.get_score(submission_id, step_id, grant.caller_id)
            record = build_score_record(
                step.criteria,
                submission_id=submission_id,
                step_id=step_id,
                evaluator_id=grant.caller_id,
                raw_scores=scores,
                min_score=settings.min_score,
                max_score=settings.max_score,
                feedback=feedback,
                notes=notes,
                existing=existing,
            )
            session.upsert_score(record)
            if self.state_machine.begin_review(submission):
                session.save_submission(submission)

        invalidate(scoreboard_key(step_id))
        logger.info(
            "score_submitted",
            submission_id=submission_id,
            step_id=step_id,
            evaluator_id=grant.caller_id,
            total_score=float(record.total_score),
            overwritten=existing is not None,
        )
        return record

    def get_my_score(
        self, submission_id: str, step_id: str, evaluator_id: str
    ) -> Optional[ScoreRecord]:
        with self.repository.unit_of_work() as session:
            step = self._require_step(session, step_id)
            self._require_submission(session, submission_id, step.application_id)
            return session.get_score(submission_id, step_id, evaluator_id)

    def aggregate(self, submission_id: str, step_id: str) -> AggregateResult:
        with self.repository.unit_of_work() as session:
            step = self._require_step(session, step_id)
            self._require_submission(session, submission_id, step.application_id)
            application = self._require_application(session, step.application_id)
            return self._aggregate(session, application, step, submission_id)

    # =====================================================================
    # Scoreboard
    # =====================================================================

    def _is_selectable(
        self,
        step: EvaluationStep,
        submission: Submission,
        result: AggregateResult,
        settings: EvaluationSettings,
    ) -> bool:
        if submission.status in DECIDED_STATUSES or submission.current_step != step.step_number:
            return False
        if step.step_number == FINAL_STEP and not settings.admit_requires_passing_score:
            return True
        return result.status == AggregateStatus.PASSED and result.meets_evaluator_requirement

    def _build_scoreboard(self, step_id: str, submission_id: Optional[str]) -> ScoreboardResponse:
        with self.repository.unit_of_work() as session:
            step = self._require_step(session, step_id)
            application = self._require_application(session, step.application_id)
            settings = self.settings_for(application)

            submissions = [
                s for s in session.list_submissions(application.id)
                if s.status != SubmissionStatus.DRAFT and s.current_step >= step.step_number
            ]
            if submission_id is not None:
                submissions = [s for s in submissions if s.id == submission_id]

            rows = []
            for submission in submissions:
                result = self._aggregate(session, application, step, submission.id)
                rows.append((submission, result))

        rows.sort(key=lambda row: (
            row[1].average_score is None,
            -(row[1].average_score or Decimal("0")),
            row[0].submitted_at or row[0].created_at,
        ))

        entries = [
            ScoreboardEntry(
                submission_id=submission.id,
                applicant_name=submission.applicant_name,
                applicant_email=submission.applicant_email,
                company_name=submission.company_name,
                status=submission.status,
                current_step=submission.current_step,
                submitted_at=submission.submitted_at,
                aggregate=AggregateResponse.from_result(result),
                evaluators=[
                    EvaluatorScore(
                        evaluator_id=e.evaluator_id,
                        total_score=display_score(e.total_score),
                        scored_at=e.scored_at,
                    )
                    for e in result.evaluators
                ],
                selectable=self._is_selectable(step, submission, result, settings),
            )
            for submission, result in rows
        ]
        return ScoreboardResponse(
            step_id=step.id,
            step_number=step.step_number,
            cutoff_score=float(application.cutoffs.for_step(step.step_number)),
            total_judges=step.total_judges,
            required_evaluator_percentage=float(settings.required_evaluator_percentage),
            entries=entries,
        )

    def scoreboard(self, step_id: str, submission_id: Optional[str] = None) -> ScoreboardResponse:
        """
        Every submission at or past this step with its aggregate, best first.

        Full scoreboards are cached; single-submission views are not.
        """
        if submission_id is not None:
            return self._build_scoreboard(step_id, submission_id)
        return cached(
            scoreboard_key(step_id),
            ScoreboardResponse,
            TTL_SCOREBOARD,
            lambda: self._build_scoreboard(step_id, None),
        )

    # =====================================================================
    # Transitions
    # =====================================================================

    def _run_batch(
        self,
        session: EvaluationSession,
        application_id: str,
        submission_ids: List[str],
        decide,
    ) -> BatchResult:
        ids = list(dict.fromkeys(submission_ids))
        if not ids:
            raise CriteriaValidationException("submission_ids must not be empty")

        batch = BatchResult()
        found = 0
        for submission_id in ids:
            submission = session.get_submission(submission_id)
            if submission is None or submission.application_id != application_id:
                logger.info("transition_skipped", submission_id=submission_id, reason="not_found")
                batch.results.append(TransitionOutcome(
                    submission_id=submission_id,
                    applied=False,
                    reason=SkipReason.NOT_FOUND,
                    detail="Submission not found in this application",
                ))
                continue
            found += 1
            outcome = decide(submission)
            if outcome.applied:
                session.save_submission(submission)
            batch.results.append(outcome)

        if found == 0:
            raise EntityNotFoundException("Submission", ", ".join(ids))
        return batch

    def advance(
        self,
        grant: CapabilityGrant,
        application_id: str,
        step_id: str,
        submission_ids: List[str],
    ) -> BatchResult:
        """Move step-1 PASSED submissions to step 2."""
        grant.require(Capability.EVALUATION_ADVANCE)
        with self.repository.unit_of_work() as session:
            application = self._require_application(session, application_id)
            step = self._require_step(session, step_id)
            if step.application_id != application_id:
                raise EntityNotFoundException("Step", step_id)
            if step.step_number != FIRST_STEP:
                raise StateConflictException(
                    f"Only step {FIRST_STEP} submissions can be advanced",
                    details={"step_id": step_id, "step_number": step.step_number},
                )

            def decide(submission: Submission) -> TransitionOutcome:
                result = self._aggregate(session, application, step, submission.id)
                return self.state_machine.advance(submission, result)

            batch = self._run_batch(session, application_id, submission_ids, decide)
            if batch.count:
                self._invalidate_application(session, application_id)

        logger.info(
            "advance_completed",
            application_id=application_id,
            requested=len(submission_ids),
            count=batch.count,
            skipped=len(batch.skipped),
        )
        return batch

    def admit(
        self,
        grant: CapabilityGrant,
        application_id: str,
        submission_ids: List[str],
    ) -> BatchResult:
        """Accept step-2 submissions; by default they must have PASSED step 2."""
        grant.require(Capability.EVALUATION_ADMIT)
        now = utcnow()
        with self.repository.unit_of_work() as session:
            application = self._require_application(session, application_id)
            settings = self.settings_for(application)
            final_step = self._step_by_number(session, application_id, FINAL_STEP)

            def decide(submission: Submission) -> TransitionOutcome:
                result = None
                if settings.admit_requires_passing_score:
                    result = self._aggregate(session, application, final_step, submission.id)
                return self.state_machine.admit(
                    submission, result,
                    requires_passing_score=settings.admit_requires_passing_score,
                    now=now,
                )

            batch = self._run_batch(session, application_id, submission_ids, decide)
            if batch.count:
                self._invalidate_application(session, application_id)

        logger.info(
            "admit_completed",
            application_id=application_id,
            requested=len(submission_ids),
            count=batch.count,
            skipped=len(batch.skipped),
        )
        return batch

    def bulk_reject(
        self,
        grant: CapabilityGrant,
        application_id: str,
        submission_ids: List[str],
    ) -> BatchResult:
        """Reject any submission, including ACCEPTED ones (administrative override)."""
        grant.require(Capability.APPLICATIONS_REVIEW)
        now = utcnow()
        with self.repository.unit_of_work() as session:
            self._require_application(session, application_id)
            batch = self._run_batch(
                session, application_id, submission_ids,
                lambda submission: self.state_machine.reject(submission, now=now),
            )
            if batch.count:
                self._invalidate_application(session, application_id)

        logger.info(
            "bulk_reject_completed",
            application_id=application_id,
            count=batch.count,
            skipped=len(batch.skipped),
        )
        return batch

    def waitlist(
        self,
        grant: CapabilityGrant,
        application_id: str,
        submission_ids: List[str],
    ) -> BatchResult:
        """Administrative override to WAITLISTED; not reachable via advance/admit."""
        grant.require(Capability.APPLICATIONS_REVIEW)
        now = utcnow()
        with self.repository.unit_of_work() as session:
            self._require_application(session, application_id)
            batch = self._run_batch(
                session, application_id, submission_ids,
                lambda submission: self.state_machine.waitlist(submission, now=now),
            )
            if batch.count:
                self._invalidate_application(session, application_id)

        logger.info(
            "waitlist_completed",
            application_id=application_id,
            count=batch.count,
            skipped=len(batch.skipped),
        )
        return batch

    # =====================================================================
    # Cutoffs and evaluation settings
    # =====================================================================

    def get_cutoffs(self, application_id: str) -> CutoffConfiguration:
        with self.repository.unit_of_work() as session:
            return self._require_application(session, application_id).cutoffs

    def update_cutoffs(
        self,
        grant: CapabilityGrant,
        application_id: str,
        step1: Optional[Any] = None,
        step2: Optional[Any] = None,
    ) -> CutoffConfiguration:
        """Set one or both step cutoffs; each must lie in [minScore, maxScore]."""
        grant.require(Capability.APPLICATIONS_MANAGE)
        if step1 is None and step2 is None:
            raise CriteriaValidationException(
                "At least one cutoff score (step1 or step2) is required"
            )
        with self.repository.unit_of_work() as session:
            application = self._require_application(session, application_id)
            settings = self.settings_for(application)
            cutoffs = application.cutoffs
            changes: Dict[str, Decimal] = {}
            for key, raw in (("step1", step1), ("step2", step2)):
                if raw is None:
                    continue
                try:
                    value = to_decimal(raw)
                except ValueError:
                    raise CriteriaValidationException(
                        f"{key} cutoff must be a number", {"step": key}
                    ) from None
                changes[key] = validate_cutoff(value, settings, key)
            application.cutoffs = replace(cutoffs, **changes)
            session.save_application(application)
            self._invalidate_application(session, application_id)

        logger.info(
            "cutoffs_updated",
            application_id=application_id,
            step1=float(application.cutoffs.step1),
            step2=float(application.cutoffs.step2),
        )
        return application.cutoffs

    def get_evaluation_settings(self, application_id: str) -> EvaluationSettings:
        with self.repository.unit_of_work() as session:
            return self.settings_for(self._require_application(session, application_id))

    def update_evaluation_settings(
        self,
        grant: CapabilityGrant,
        application_id: str,
        required_evaluator_percentage: Optional[Any] = None,
        min_score: Optional[Any] = None,
        max_score: Optional[Any] = None,
        admit_requires_passing_score: Optional[bool] = None,
    ) -> EvaluationSettings:
        grant.require(Capability.APPLICATIONS_MANAGE)
        with self.repository.unit_of_work() as session:
            application = self._require_application(session, application_id)
            current = self.settings_for(application)
            changes: Dict[str, Any] = {}
            for name, raw in (
                ("required_evaluator_percentage", required_evaluator_percentage),
                ("min_score", min_score),
                ("max_score", max_score),
            ):
                if raw is None:
                    continue
                try:
                    changes[name] = to_decimal(raw)
                except ValueError:
                    raise CriteriaValidationException(
                        f"{name} must be a number", {"field": name}
                    ) from None
            if admit_requires_passing_score is not None:
                changes["admit_requires_passing_score"] = bool(admit_requires_passing_score)

            application.settings = validate_settings(replace(current, **changes))
            session.save_application(application)
            self._invalidate_application(session, application_id)

        logger.info(
            "evaluation_settings_updated",
            application_id=application_id,
            **{k: str(v) for k, v in changes.items()},
        )
        return application.settings

    # =====================================================================
    # Submissions
    # =====================================================================

    def create_submission(
        self,
        application_id: str,
        applicant_first_name: str,
        applicant_last_name: str,
        applicant_email: Optional[str] = None,
        company_name: Optional[str] = None,
    ) -> Submission:
        """Create a DRAFT submission for an applicant."""
        with self.repository.unit_of_work() as session:
            self._require_application(session, application_id)
            submission = Submission(
                application_id=application_id,
                applicant_first_name=applicant_first_name,
                applicant_last_name=applicant_last_name,
                applicant_email=applicant_email,
                company_name=company_name,
            )
            session.save_submission(submission)
        logger.info("submission_created", application_id=application_id, submission_id=submission.id)
        return submission

    def submit_submission(self, submission_id: str) -> Submission:
        """DRAFT → SUBMITTED."""
        with self.repository.unit_of_work() as session:
            submission = self._require_submission(session, submission_id)
            if submission.status != SubmissionStatus.DRAFT:
                raise StateConflictException(
                    f"Submission is already {submission.status.value}",
                    error_code="ALREADY_SUBMITTED",
                    details={"submission_id": submission_id},
                )
            submission.status = SubmissionStatus.SUBMITTED
            submission.submitted_at = utcnow()
            session.save_submission(submission)
            self._invalidate_application(session, submission.application_id)
        logger.info("submission_submitted", submission_id=submission_id)
        return submission

    def get_submission(self, submission_id: str) -> Submission:
        with self.repository.unit_of_work() as session:
            return self._require_submission(session, submission_id)

    def submission_status(self, submission_id: str) -> SubmissionEvaluationStatus:
        """Per-step evaluator count and average for one submission."""
        with self.repository.unit_of_work() as session:
            submission = self._require_submission(session, submission_id)
            steps = session.list_steps(submission.application_id)
            statuses = []
            for step in steps:
                records = session.list_scores(step.id, submission_id)
                statuses.append(StepStatus(
                    step_number=step.step_number,
                    step_name=step.name,
                    step_type=step.type,
                    evaluator_count=len(records),
                    average_score=display_score(mean([r.total_score for r in records])),
                    is_current_step=step.step_number == submission.current_step,
                ))
        return SubmissionEvaluationStatus(
            submission_id=submission.id,
            status=submission.status,
            current_step=submission.current_step,
            steps=statuses,
        )
