from enum import Enum

class SubmissionStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    WAITLISTED = "WAITLISTED"     # Administrative override only

class StepType(str, Enum):
    INITIAL_REVIEW = "INITIAL_REVIEW"
    INTERVIEW = "INTERVIEW"
    PITCH = "PITCH"

class AggregateStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    PENDING = "PENDING"           # Quorum not met
    NOT_SCORED = "NOT_SCORED"

class SkipReason(str, Enum):
    NOT_FOUND = "not_found"
    WRONG_STEP = "wrong_step"
    ALREADY_ADVANCED = "already_advanced"
    ALREADY_TERMINAL = "already_terminal"
    ALREADY_REJECTED = "already_rejected"
    NOT_SCORED = "not_scored"
    QUORUM_UNMET = "quorum_unmet"
    BELOW_CUTOFF = "below_cutoff"

class Capability(str, Enum):
    EVALUATION_SCORE = "evaluation.score"
    EVALUATION_ADVANCE = "evaluation.advance"
    EVALUATION_ADMIT = "evaluation.admit"
    APPLICATIONS_REVIEW = "applications.review"   # reject / waitlist
    APPLICATIONS_MANAGE = "applications.manage"   # steps, cutoffs, settings, pools
    EVENTS_JUDGE = "events.judge"
    EVENTS_MANAGE = "events.manage"


# No further Advance/Admit once a submission reaches one of these
DECIDED_STATUSES = frozenset({
    SubmissionStatus.ACCEPTED,
    SubmissionStatus.REJECTED,
    SubmissionStatus.WAITLISTED,
})
