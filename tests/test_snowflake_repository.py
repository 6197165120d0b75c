"""
Snowflake Repository Tests - Accelerator Evaluation Platform
tests/test_snowflake_repository.py

The connector is mocked: these tests cover row mapping, JSON column
normalization, MERGE parameters and transaction handling.
"""
import json
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from snowflake.connector.errors import InterfaceError, ProgrammingError

from evaluation_platform.core.exceptions import (
    DatabaseConnectionException,
    RepositoryException,
)
from evaluation_platform.models.enumerations import StepType, SubmissionStatus
from evaluation_platform.models.records import Application
from evaluation_platform.repositories.evaluation_repository import SnowflakeEvaluationRepository
from evaluation_platform.scoring.cutoff import EvaluationSettings
from evaluation_platform.scoring.score_record import ScoreRecord

CREATED = datetime(2026, 3, 1, 12, 0)


@pytest.fixture
def cursor():
    return MagicMock()


@pytest.fixture
def conn(cursor):
    connection = MagicMock()
    connection.cursor.return_value = cursor
    return connection


@pytest.fixture
def repo(conn):
    with patch(
        "evaluation_platform.repositories.base.get_snowflake_connection", return_value=conn
    ):
        yield SnowflakeEvaluationRepository(EvaluationSettings())


class TestTransactions:

    def test_commit_and_close_on_success(self, repo, conn, cursor):
        cursor.fetchone.return_value = None
        with repo.unit_of_work() as session:
            session.get_application("app-1")
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_called_once()

    def test_rollback_on_error(self, repo, conn):
        with pytest.raises(ValueError):
            with repo.unit_of_work():
                raise ValueError("boom")
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        conn.close.assert_called_once()

    def test_connection_failure(self):
        with patch(
            "evaluation_platform.repositories.base.get_snowflake_connection",
            side_effect=InterfaceError("no route"),
        ):
            repo = SnowflakeEvaluationRepository(EvaluationSettings())
            with pytest.raises(DatabaseConnectionException):
                with repo.unit_of_work():
                    pass
            assert repo.ping() is False

    def test_query_error_wrapped(self, repo, cursor):
        cursor.execute.side_effect = ProgrammingError("bad sql")
        with pytest.raises(RepositoryException):
            with repo.unit_of_work() as session:
                session.get_step("step-1")
        cursor.close.assert_called()

    def test_ping(self, repo, cursor):
        cursor.fetchone.return_value = {"1": 1}
        assert repo.ping() is True


class TestRowMapping:

    def test_application_json_strings(self, repo, cursor):
        cursor.fetchone.return_value = {
            "ID": "app-1",
            "NAME": "Spring Cohort",
            "CUTOFF_SCORES": '{"step1": 6.5, "step2": 7}',
            "EVALUATION_SETTINGS": '{"requiredEvaluatorPercentage": 50}',
            "CREATED_AT": CREATED,
        }
        with repo.unit_of_work() as session:
            application = session.get_application("app-1")

        assert application.cutoffs.step1 == Decimal("6.5")
        assert application.settings.required_evaluator_percentage == Decimal("50")
        assert application.settings.max_score == Decimal("10")
        assert application.created_at.tzinfo == timezone.utc

    def test_application_without_settings(self, repo, cursor):
        cursor.fetchone.return_value = {
            "ID": "app-1", "NAME": "Cohort", "CUTOFF_SCORES": None,
            "EVALUATION_SETTINGS": None, "CREATED_AT": CREATED,
        }
        with repo.unit_of_work() as session:
            application = session.get_application("app-1")
        assert application.settings is None
        assert application.cutoffs.step2 == Decimal("0")

    def test_missing_row(self, repo, cursor):
        cursor.fetchone.return_value = None
        with repo.unit_of_work() as session:
            assert session.get_submission("missing") is None

    def test_step_row(self, repo, cursor):
        cursor.fetchone.return_value = {
            "ID": "step-1",
            "APPLICATION_ID": "app-1",
            "STEP_NUMBER": 1,
            "NAME": "Initial Review",
            "TYPE": "INITIAL_REVIEW",
            "CRITERIA": '[{"key": "c-1", "label": "Market", "weight": 2, "order": 0}]',
            "IS_ACTIVE": True,
            "EVALUATOR_IDS": '["eval-1", "eval-2"]',
            "CREATED_AT": CREATED,
        }
        with repo.unit_of_work() as session:
            step = session.get_step("step-1")
        assert step.type == StepType.INITIAL_REVIEW
        assert [(c.key, c.weight) for c in step.criteria] == [("c-1", Decimal("2"))]
        assert step.total_judges == 2

    def test_score_rows(self, repo, cursor):
        cursor.fetchall.return_value = [{
            "ID": "score-1",
            "SUBMISSION_ID": "sub-1",
            "STEP_ID": "step-1",
            "EVALUATOR_ID": "eval-1",
            "SCORES": '{"c-1": 8, "feedback": "strong team"}',
            "TOTAL_SCORE": 8.0,
            "FEEDBACK": None,
            "NOTES": None,
            "CREATED_AT": CREATED,
            "UPDATED_AT": CREATED,
        }]
        with repo.unit_of_work() as session:
            records = session.list_scores("step-1", "sub-1")
        assert records[0].scores == {"c-1": Decimal("8")}
        assert records[0].total_score == Decimal("8.0")

    def test_submission_row(self, repo, cursor):
        cursor.fetchall.return_value = [{
            "ID": "sub-1", "APPLICATION_ID": "app-1",
            "APPLICANT_FIRST_NAME": "Ada", "APPLICANT_LAST_NAME": "Lovelace",
            "APPLICANT_EMAIL": None, "COMPANY_NAME": None,
            "STATUS": "UNDER_REVIEW", "CURRENT_STEP": 2,
            "SUBMITTED_AT": CREATED, "REVIEWED_AT": None, "REVIEW_NOTES": None,
            "CREATED_AT": CREATED,
        }]
        with repo.unit_of_work() as session:
            (submission,) = session.list_submissions("app-1")
        assert submission.status == SubmissionStatus.UNDER_REVIEW
        assert submission.current_step == 2
        assert submission.applicant_name == "Ada Lovelace"

    def test_event_falls_back_to_weight_map(self, repo, cursor):
        cursor.fetchone.return_value = {
            "ID": "event-1", "NAME": "Demo Day",
            "SCORING_CRITERIA": None,
            "SCORING_WEIGHTS": '{"innovation": 2, "team": 1}',
            "JUDGE_IDS": '["judge-1"]',
            "CREATED_AT": CREATED,
        }
        with repo.unit_of_work() as session:
            event = session.get_event("event-1")
        assert [c.key for c in event.criteria] == ["innovation", "team"]
        assert event.judge_ids == ["judge-1"]


class TestWrites:

    def test_score_upsert_is_merge(self, repo, cursor):
        record = ScoreRecord(
            submission_id="sub-1",
            step_id="step-1",
            evaluator_id="eval-1",
            scores={"c-1": Decimal("7.5")},
            total_score=Decimal("7.5"),
        )
        with repo.unit_of_work() as session:
            session.upsert_score(record)

        sql, params = cursor.execute.call_args[0]
        assert "MERGE INTO application_scores" in sql
        assert params[:3] == ("sub-1", "step-1", "eval-1")
        assert json.loads(params[3]) == {"c-1": 7.5}
        assert params[4] == "7.5"

    def test_application_settings_serialized(self, repo, cursor):
        application = Application(id="app-1", name="Cohort", settings=EvaluationSettings())
        with repo.unit_of_work() as session:
            session.save_application(application)

        _, params = cursor.execute.call_args[0]
        assert json.loads(params[2]) == {"step1": 0.0, "step2": 0.0}
        assert json.loads(params[3])["requiredEvaluatorPercentage"] == 75.0
