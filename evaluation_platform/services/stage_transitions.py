"""
Stage Transition State Machine - Accelerator Evaluation Platform
evaluation_platform/services/stage_transitions.py

Legal submission status transitions:

    SUBMITTED ──begin_review──▶ UNDER_REVIEW(step 1)
    UNDER_REVIEW(step 1) ──advance──▶ UNDER_REVIEW(step 2)    needs step-1 PASSED
    UNDER_REVIEW(step 2) ──admit────▶ ACCEPTED                 needs step-2 PASSED*
    any ──reject──▶ REJECTED                                   administrative override
    non-decided ──waitlist──▶ WAITLISTED                       administrative override

    * or only "final step reached" when admitRequiresPassingScore is false

The machine never computes scores; it consumes AggregateResults computed by the
caller from the same snapshot the transition is committed against. Each method
mutates the submission it is given only when the transition is legal, and
always returns a TransitionOutcome. Capability checks happen before any call
reaches this class.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog

from evaluation_platform.models.enumerations import (
    AggregateStatus,
    DECIDED_STATUSES,
    SkipReason,
    SubmissionStatus,
)
from evaluation_platform.models.records import Submission, utcnow
from evaluation_platform.scoring.aggregator import AggregateResult

logger = structlog.get_logger(__name__)

FIRST_STEP = 1
FINAL_STEP = 2

_VERDICT_SKIPS = {
    AggregateStatus.NOT_SCORED: SkipReason.NOT_SCORED,
    AggregateStatus.PENDING: SkipReason.QUORUM_UNMET,
    AggregateStatus.FAILED: SkipReason.BELOW_CUTOFF,
}


@dataclass
class TransitionOutcome:
    """Per-submission result of a transition attempt."""
    submission_id: str
    applied: bool
    from_status: Optional[SubmissionStatus] = None
    to_status: Optional[SubmissionStatus] = None
    from_step: Optional[int] = None
    to_step: Optional[int] = None
    reason: Optional[SkipReason] = None
    detail: Optional[str] = None


class StageTransitionStateMachine:
    """Decide and apply submission lifecycle transitions."""

    def _skip(
        self,
        action: str,
        submission: Submission,
        reason: SkipReason,
        detail: str,
    ) -> TransitionOutcome:
        logger.info(
            "transition_skipped",
            action=action,
            submission_id=submission.id,
            status=submission.status.value,
            current_step=submission.current_step,
            reason=reason.value,
        )
        return TransitionOutcome(
            submission_id=submission.id,
            applied=False,
            from_status=submission.status,
            from_step=submission.current_step,
            reason=reason,
            detail=detail,
        )

    def _apply(
        self,
        action: str,
        submission: Submission,
        status: SubmissionStatus,
        step: int,
        reviewed_at: Optional[datetime] = None,
    ) -> TransitionOutcome:
        outcome = TransitionOutcome(
            submission_id=submission.id,
            applied=True,
            from_status=submission.status,
            from_step=submission.current_step,
            to_status=status,
            to_step=step,
        )
        submission.status = status
        submission.current_step = step
        if reviewed_at is not None:
            submission.reviewed_at = reviewed_at
        logger.info(
            f"submission_{action}",
            submission_id=submission.id,
            from_status=outcome.from_status.value,
            to_status=status.value,
            from_step=outcome.from_step,
            to_step=step,
        )
        return outcome

    def _verdict_skip(
        self,
        action: str,
        submission: Submission,
        aggregate: Optional[AggregateResult],
    ) -> Optional[TransitionOutcome]:
        status = aggregate.status if aggregate is not None else AggregateStatus.NOT_SCORED
        if status == AggregateStatus.PASSED:
            return None
        detail = (
            aggregate.validity_message
            if aggregate is not None and aggregate.validity_message
            else f"Step {submission.current_step} aggregate is {status.value}"
        )
        return self._skip(action, submission, _VERDICT_SKIPS[status], detail)

    def begin_review(self, submission: Submission) -> bool:
        """SUBMITTED → UNDER_REVIEW on the first accepted score."""
        if submission.status != SubmissionStatus.SUBMITTED:
            return False
        self._apply("review_started", submission, SubmissionStatus.UNDER_REVIEW, submission.current_step)
        return True

    def advance(
        self,
        submission: Submission,
        aggregate: Optional[AggregateResult],
    ) -> TransitionOutcome:
        """
        Step 1 → step 2.

        Args:
            submission: the submission to move, from the current snapshot.
            aggregate: its step-1 AggregateResult from the same snapshot.
        """
        if submission.status in DECIDED_STATUSES:
            return self._skip(
                "advance", submission, SkipReason.ALREADY_TERMINAL,
                f"Submission already has a final decision ({submission.status.value})",
            )
        if submission.current_step >= FINAL_STEP:
            return self._skip(
                "advance", submission, SkipReason.ALREADY_ADVANCED,
                f"Submission is already at step {submission.current_step}",
            )
        if submission.status == SubmissionStatus.DRAFT:
            return self._skip(
                "advance", submission, SkipReason.WRONG_STEP,
                "Submission has not been submitted",
            )
        skipped = self._verdict_skip("advance", submission, aggregate)
        if skipped is not None:
            return skipped
        return self._apply("advanced", submission, SubmissionStatus.UNDER_REVIEW, FINAL_STEP)

    def admit(
        self,
        submission: Submission,
        aggregate: Optional[AggregateResult],
        requires_passing_score: bool = True,
        now: Optional[datetime] = None,
    ) -> TransitionOutcome:
        """Final step → ACCEPTED. Never promotes a step-1 submission."""
        if submission.status in DECIDED_STATUSES:
            return self._skip(
                "admit", submission, SkipReason.ALREADY_TERMINAL,
                f"Submission already has a final decision ({submission.status.value})",
            )
        if submission.current_step != FINAL_STEP:
            return self._skip(
                "admit", submission, SkipReason.WRONG_STEP,
                f"Submission is at step {submission.current_step}, admit requires step {FINAL_STEP}",
            )
        if requires_passing_score:
            skipped = self._verdict_skip("admit", submission, aggregate)
            if skipped is not None:
                return skipped
        return self._apply(
            "admitted", submission, SubmissionStatus.ACCEPTED, submission.current_step,
            reviewed_at=now or utcnow(),
        )

    def reject(
        self,
        submission: Submission,
        now: Optional[datetime] = None,
    ) -> TransitionOutcome:
        """Always legal, including from ACCEPTED; an already rejected submission is a skip."""
        if submission.status == SubmissionStatus.REJECTED:
            return self._skip(
                "reject", submission, SkipReason.ALREADY_REJECTED,
                "Submission is already rejected",
            )
        return self._apply(
            "rejected", submission, SubmissionStatus.REJECTED, submission.current_step,
            reviewed_at=now or utcnow(),
        )

    def waitlist(
        self,
        submission: Submission,
        now: Optional[datetime] = None,
    ) -> TransitionOutcome:
        if submission.status in DECIDED_STATUSES:
            return self._skip(
                "waitlist", submission, SkipReason.ALREADY_TERMINAL,
                f"Submission already has a final decision ({submission.status.value})",
            )
        return self._apply(
            "waitlisted", submission, SubmissionStatus.WAITLISTED, submission.current_step,
            reviewed_at=now or utcnow(),
        )
