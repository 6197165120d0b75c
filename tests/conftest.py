# tests/conftest.py

"""
Pytest Fixtures - Shared services, grants and seeded applications for all tests

Every test gets a fresh in-memory repository; Redis caching is disabled so
service tests never touch a network.

PIPELINE FIXTURE REFERENCE:
- Step 1 criteria: Market (weight 2), Team (weight 1), Product (no weight → 1.0)
- Step 2 criteria: Pitch (weight 1), Traction (weight 3)
- Evaluator pool on both steps: eval-1 .. eval-4 (quorum at 75% = 3 evaluators)
"""

import os

os.environ["STORAGE_BACKEND"] = "memory"
os.environ["CACHE_ENABLED"] = "false"
os.environ["APP_ENV"] = "development"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from evaluation_platform.core.capabilities import CapabilityGrant
from evaluation_platform.core.dependencies import (
    get_demo_day_service,
    get_evaluation_service,
    get_repository,
)
from evaluation_platform.main import app
from evaluation_platform.models.enumerations import Capability
from evaluation_platform.repositories.memory_repository import InMemoryEvaluationRepository
from evaluation_platform.services.demo_day_service import DemoDayService
from evaluation_platform.services.evaluation_service import EvaluationService


EVALUATORS = ["eval-1", "eval-2", "eval-3", "eval-4"]


# =============================================================================
# REPOSITORY AND SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def repository():
    """Fresh in-memory repository."""
    return InMemoryEvaluationRepository()


@pytest.fixture
def service(repository):
    return EvaluationService(repository)


@pytest.fixture
def demo_service(repository):
    return DemoDayService(repository)


# =============================================================================
# CAPABILITY GRANT FIXTURES
# =============================================================================

@pytest.fixture
def admin_grant():
    """Program manager holding every capability."""
    return CapabilityGrant.of("admin-1", *Capability)


@pytest.fixture
def evaluator_grant():
    """Factory: scoring-only grant for an evaluator id."""
    def _grant(evaluator_id: str) -> CapabilityGrant:
        return CapabilityGrant.of(evaluator_id, Capability.EVALUATION_SCORE)
    return _grant


@pytest.fixture
def judge_grant():
    """Factory: demo-day judging grant for a judge id."""
    def _grant(judge_id: str) -> CapabilityGrant:
        return CapabilityGrant.of(judge_id, Capability.EVENTS_JUDGE)
    return _grant


# =============================================================================
# SEEDED APPLICATION FIXTURES
# =============================================================================

@pytest.fixture
def step_configs():
    """Valid step-1 / step-2 configuration."""
    return {
        "step1": {
            "name": "Initial Review",
            "criteria": [
                {"name": "Market", "weight": 2},
                {"name": "Team", "weight": 1},
                {"name": "Product"},
            ],
        },
        "step2": {
            "name": "Interview",
            "criteria": [
                {"name": "Pitch", "weight": 1},
                {"name": "Traction", "weight": 3},
            ],
        },
    }


@pytest.fixture
def pipeline(service, admin_grant, step_configs):
    """Application with both steps set up and a 4-evaluator pool on each."""
    application = service.create_application(admin_grant, "Spring Cohort 2026")
    step1, step2 = service.setup_steps(
        admin_grant, application.id, step_configs["step1"], step_configs["step2"]
    )
    step1 = service.assign_evaluators(admin_grant, step1.id, EVALUATORS)
    step2 = service.assign_evaluators(admin_grant, step2.id, EVALUATORS)
    return SimpleNamespace(application=application, step1=step1, step2=step2)


@pytest.fixture
def make_submission(service, pipeline):
    """Factory: create and submit an applicant's submission."""
    def _make(first_name: str = "Ada", last_name: str = "Lovelace", company: str = "Analytical"):
        submission = service.create_submission(
            pipeline.application.id,
            applicant_first_name=first_name,
            applicant_last_name=last_name,
            applicant_email=f"{first_name.lower()}@example.com",
            company_name=company,
        )
        return service.submit_submission(submission.id)
    return _make


@pytest.fixture
def score_as(service, evaluator_grant):
    """Factory: score every criterion of a step with the same value for each evaluator."""
    def _score(submission, step, evaluator_ids, value):
        for evaluator_id in evaluator_ids:
            service.submit_score(
                evaluator_grant(evaluator_id),
                submission_id=submission.id,
                step_id=step.id,
                scores={c.key: value for c in step.criteria},
            )
    return _score


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture
def client(repository):
    """TestClient wired to the per-test in-memory repository."""
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_evaluation_service] = lambda: EvaluationService(repository)
    app.dependency_overrides[get_demo_day_service] = lambda: DemoDayService(repository)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Factory: upstream identity headers for a caller."""
    def _headers(user_id: str, *capabilities: Capability) -> dict:
        return {
            "X-User-Id": user_id,
            "X-Capabilities": ",".join(c.value for c in capabilities),
        }
    return _headers
