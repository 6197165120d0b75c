# tests/test_models.py

"""
Model Validation Tests - request payload validation and response builders
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from evaluation_platform.core.exceptions import CriteriaValidationException
from evaluation_platform.models.demo_day import DemoDayScoreRequest, EventConfigRequest
from evaluation_platform.models.enumerations import (
    AggregateStatus,
    Capability,
    SkipReason,
    StepType,
    SubmissionStatus,
)
from evaluation_platform.models.evaluation import (
    AggregateResponse,
    BatchResponse,
    EvaluationSettingsUpdate,
    ScoreSubmitRequest,
    StepConfig,
    SubmissionCreate,
    display_score,
)
from evaluation_platform.scoring.aggregator import AggregateResult
from evaluation_platform.services.evaluation_service import BatchResult
from evaluation_platform.services.stage_transitions import TransitionOutcome


# ENUMERATION TESTS


class TestEnumerations:

    def test_submission_statuses(self):
        assert [s.value for s in SubmissionStatus] == [
            "DRAFT", "SUBMITTED", "UNDER_REVIEW", "ACCEPTED", "REJECTED", "WAITLISTED",
        ]

    def test_step_types(self):
        assert [t.value for t in StepType] == ["INITIAL_REVIEW", "INTERVIEW", "PITCH"]

    def test_aggregate_statuses(self):
        assert {s.value for s in AggregateStatus} == {"PASSED", "FAILED", "PENDING", "NOT_SCORED"}

    def test_capabilities_are_dotted(self):
        assert all("." in c.value for c in Capability)


# STEP CONFIG TESTS


class TestStepConfig:

    def test_native_list(self):
        config = StepConfig(name="Review", criteria=[{"name": "Market", "weight": 2}])
        assert config.criteria[0].name == "Market"
        assert config.criteria[0].weight == 2.0

    def test_weight_optional(self):
        config = StepConfig(name="Review", criteria=[{"name": "Market"}])
        assert config.criteria[0].weight is None

    def test_json_string(self):
        config = StepConfig(name="Review", criteria='[{"name": "Team", "weight": 1.5}]')
        assert config.criteria[0].weight == 1.5

    def test_index_keyed_object_is_ordered(self):
        config = StepConfig(
            name="Review",
            criteria={"1": {"name": "Second"}, "0": {"name": "First"}, "10": {"name": "Last"}},
        )
        assert [c.name for c in config.criteria] == ["First", "Second", "Last"]

    def test_invalid_json(self):
        with pytest.raises(CriteriaValidationException):
            StepConfig(name="Review", criteria="[{not json")

    def test_criterion_requires_name(self):
        with pytest.raises(ValidationError):
            StepConfig(name="Review", criteria=[{"weight": 2}])

    def test_type_optional(self):
        assert StepConfig(name="Review", criteria=[]).type is None
        assert StepConfig(name="Pitch", type="PITCH", criteria=[]).type == StepType.PITCH


# SCORE REQUEST TESTS


class TestScoreRequests:

    def test_scores_object(self):
        request = ScoreSubmitRequest(scores={"c-1": 8, "c-2": "7.5"})
        assert request.scores == {"c-1": 8, "c-2": "7.5"}

    def test_scores_json_string(self):
        request = ScoreSubmitRequest(scores='{"c-1": 8}', feedback="Solid")
        assert request.scores == {"c-1": 8}
        assert request.feedback == "Solid"

    def test_scores_required(self):
        with pytest.raises(ValidationError):
            ScoreSubmitRequest()

    def test_feedback_length_limit(self):
        with pytest.raises(ValidationError):
            ScoreSubmitRequest(scores={}, feedback="x" * 5001)

    def test_demo_day_scores_json_string(self):
        assert DemoDayScoreRequest(scores='{"team": 9}').scores == {"team": 9}


# OTHER REQUEST MODELS


class TestRequestModels:

    @pytest.mark.parametrize("pct", [-1, 100.5])
    def test_percentage_bounds(self, pct):
        with pytest.raises(ValidationError):
            EvaluationSettingsUpdate(required_evaluator_percentage=pct)

    def test_settings_update_all_optional(self):
        assert EvaluationSettingsUpdate().model_dump() == {
            "required_evaluator_percentage": None,
            "min_score": None,
            "max_score": None,
            "admit_requires_passing_score": None,
        }

    def test_submission_names_required(self):
        with pytest.raises(ValidationError):
            SubmissionCreate(applicant_first_name="", applicant_last_name="Lovelace")

    def test_event_config_defaults(self):
        request = EventConfigRequest(name="Demo Day")
        assert request.scoring_criteria is None
        assert request.scoring_weights is None
        assert request.judge_ids == []


# RESPONSE BUILDERS


class TestResponseBuilders:

    def test_display_score(self):
        assert display_score(Decimal("7.335")) == 7.34
        assert display_score(None) is None

    def test_aggregate_response_rounds_average(self):
        result = AggregateResult(
            evaluator_count=3,
            total_judges=4,
            average_score=Decimal("22") / Decimal("3"),
            meets_evaluator_requirement=True,
            meets_cutoff=True,
            status=AggregateStatus.PASSED,
            cutoff_score=Decimal("7"),
            evaluator_percentage=Decimal("75"),
            required_evaluators=3,
        )
        response = AggregateResponse.from_result(result)
        assert response.average_score == 7.33
        assert response.evaluator_percentage == 75.0
        assert response.is_valid is True

    def test_batch_response(self):
        batch = BatchResult(results=[
            TransitionOutcome(submission_id="a", applied=True),
            TransitionOutcome(
                submission_id="b", applied=False,
                reason=SkipReason.BELOW_CUTOFF, detail="Step 1 aggregate is FAILED",
            ),
        ])
        response = BatchResponse.from_batch(batch)
        assert response.count == 1
        assert response.transitioned == ["a"]
        assert response.skipped[0].reason == SkipReason.BELOW_CUTOFF
        assert response.model_dump(mode="json")["skipped"][0]["reason"] == "below_cutoff"
