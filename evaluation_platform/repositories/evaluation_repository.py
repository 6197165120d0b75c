"""
Evaluation Repository - Snowflake persistence
evaluation_platform/repositories/evaluation_repository.py

Tables:
  - applications            cutoff_scores / evaluation_settings as JSON
  - evaluation_steps        criteria / evaluator_ids as JSON
  - application_submissions
  - application_scores      one row per (submission_id, step_id, evaluator_id)
  - demo_day_events         scoring_criteria / scoring_weights / judge_ids as JSON
  - demo_day_submissions
  - demo_day_scores         one row per (submission_id, judge_id)

JSON columns may come back as native values or JSON strings; both are
normalized on read. Score upserts are MERGE statements keyed on the natural key.
"""

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional

from evaluation_platform.config import get_settings
from evaluation_platform.core.exceptions import RepositoryException
from evaluation_platform.models.enumerations import StepType, SubmissionStatus
from evaluation_platform.models.records import (
    Application,
    DemoDayEvent,
    DemoDayScore,
    DemoDaySubmission,
    EvaluationStep,
    Submission,
)
from evaluation_platform.repositories.base import BaseRepository
from evaluation_platform.repositories.contracts import EvaluationRepository, EvaluationSession
from evaluation_platform.scoring.criteria import (
    coerce_json,
    normalize_criteria,
    parse_stored_scores,
    resolve_event_criteria,
)
from evaluation_platform.scoring.cutoff import (
    EvaluationSettings,
    default_settings_from,
    parse_cutoffs,
    parse_settings,
)
from evaluation_platform.scoring.score_record import ScoreRecord

logger = logging.getLogger(__name__)


def _decimal(value: Any) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


class SnowflakeSession(EvaluationSession):
    """Session bound to one open Snowflake connection/transaction."""

    def __init__(self, repo: "SnowflakeEvaluationRepository", conn):
        self._repo = repo
        self._conn = conn

    def _one(self, sql: str, params: tuple) -> Dict[str, Any]:
        return self._repo.row_to_dict(
            self._repo.execute_query(self._conn, sql, params, fetch_one=True)
        )

    def _all(self, sql: str, params: tuple) -> List[Dict[str, Any]]:
        return self._repo.rows_to_dicts(
            self._repo.execute_query(self._conn, sql, params, fetch_all=True)
        )

    def _run(self, sql: str, params: tuple) -> None:
        self._repo.execute_query(self._conn, sql, params)

    # =====================================================================
    # applications
    # =====================================================================

    def _to_application(self, row: Dict[str, Any]) -> Application:
        raw_settings = coerce_json(row.get("evaluation_settings"), "evaluationSettings")
        return Application(
            id=row["id"],
            name=row.get("name") or "",
            cutoffs=parse_cutoffs(row.get("cutoff_scores")),
            settings=(
                parse_settings(raw_settings, self._repo.default_settings)
                if raw_settings else None
            ),
            created_at=self._repo.normalize_timestamp(row.get("created_at")),
        )

    def get_application(self, application_id: str) -> Optional[Application]:
        row = self._one(
            "SELECT id, name, cutoff_scores, evaluation_settings, created_at "
            "FROM applications WHERE id = %s",
            (application_id,),
        )
        return self._to_application(row) if row else None

    def save_application(self, application: Application) -> None:
        cutoffs = self._repo.to_json(application.cutoffs.to_dict())
        settings = (
            self._repo.to_json(application.settings.to_dict()) if application.settings else None
        )
        self._run(
            """
            MERGE INTO applications t
            USING (SELECT %s AS id) s
            ON t.id = s.id
            WHEN MATCHED THEN UPDATE SET
                name = %s,
                cutoff_scores = PARSE_JSON(%s),
                evaluation_settings = PARSE_JSON(%s)
            WHEN NOT MATCHED THEN INSERT (
                id, name, cutoff_scores, evaluation_settings, created_at
            ) VALUES (
                %s, %s, PARSE_JSON(%s), PARSE_JSON(%s), %s
            )
            """,
            (
                application.id,
                application.name, cutoffs, settings,
                application.id, application.name, cutoffs, settings, application.created_at,
            ),
        )

    # =====================================================================
    # evaluation steps
    # =====================================================================

    _STEP_COLUMNS = (
        "id, application_id, step_number, name, type, criteria, "
        "is_active, evaluator_ids, created_at"
    )

    def _to_step(self, row: Dict[str, Any]) -> EvaluationStep:
        return EvaluationStep(
            id=row["id"],
            application_id=row["application_id"],
            step_number=int(row["step_number"]),
            name=row["name"],
            type=StepType(row["type"]),
            criteria=normalize_criteria(row.get("criteria")),
            is_active=bool(row.get("is_active")),
            evaluator_ids=list(coerce_json(row.get("evaluator_ids"), "evaluatorIds") or []),
            created_at=self._repo.normalize_timestamp(row.get("created_at")),
        )

    def list_steps(self, application_id: str) -> List[EvaluationStep]:
        rows = self._all(
            f"SELECT {self._STEP_COLUMNS} FROM evaluation_steps "
            "WHERE application_id = %s ORDER BY step_number",
            (application_id,),
        )
        return [self._to_step(r) for r in rows]

    def get_step(self, step_id: str) -> Optional[EvaluationStep]:
        row = self._one(
            f"SELECT {self._STEP_COLUMNS} FROM evaluation_steps WHERE id = %s", (step_id,)
        )
        return self._to_step(row) if row else None

    def add_step(self, step: EvaluationStep) -> None:
        self._run(
            """
            INSERT INTO evaluation_steps (
                id, application_id, step_number, name, type, criteria,
                is_active, evaluator_ids, created_at
            )
            SELECT %s, %s, %s, %s, %s, PARSE_JSON(%s), %s, PARSE_JSON(%s), %s
            """,
            (
                step.id, step.application_id, step.step_number, step.name, step.type.value,
                self._repo.to_json([c.to_dict() for c in step.criteria]),
                step.is_active, self._repo.to_json(step.evaluator_ids), step.created_at,
            ),
        )

    def save_step(self, step: EvaluationStep) -> None:
        self._run(
            """
            UPDATE evaluation_steps
            SET name = %s, is_active = %s, evaluator_ids = PARSE_JSON(%s)
            WHERE id = %s
            """,
            (step.name, step.is_active, self._repo.to_json(step.evaluator_ids), step.id),
        )

    # =====================================================================
    # submissions
    # =====================================================================

    _SUBMISSION_COLUMNS = (
        "id, application_id, applicant_first_name, applicant_last_name, applicant_email, "
        "company_name, status, current_step, submitted_at, reviewed_at, review_notes, created_at"
    )

    def _to_submission(self, row: Dict[str, Any]) -> Submission:
        ts = self._repo.normalize_timestamp
        return Submission(
            id=row["id"],
            application_id=row["application_id"],
            applicant_first_name=row.get("applicant_first_name") or "",
            applicant_last_name=row.get("applicant_last_name") or "",
            applicant_email=row.get("applicant_email"),
            company_name=row.get("company_name"),
            status=SubmissionStatus(row["status"]),
            current_step=int(row.get("current_step") or 1),
            submitted_at=ts(row.get("submitted_at")),
            reviewed_at=ts(row.get("reviewed_at")),
            review_notes=row.get("review_notes"),
            created_at=ts(row.get("created_at")),
        )

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        row = self._one(
            f"SELECT {self._SUBMISSION_COLUMNS} FROM application_submissions WHERE id = %s",
            (submission_id,),
        )
        return self._to_submission(row) if row else None

    def list_submissions(self, application_id: str) -> List[Submission]:
        rows = self._all(
            f"SELECT {self._SUBMISSION_COLUMNS} FROM application_submissions "
            "WHERE application_id = %s ORDER BY created_at",
            (application_id,),
        )
        return [self._to_submission(r) for r in rows]

    def save_submission(self, submission: Submission) -> None:
        s = submission
        self._run(
            """
            MERGE INTO application_submissions t
            USING (SELECT %s AS id) src
            ON t.id = src.id
            WHEN MATCHED THEN UPDATE SET
                status = %s,
                current_step = %s,
                submitted_at = %s,
                reviewed_at = %s,
                review_notes = %s
            WHEN NOT MATCHED THEN INSERT (
                id, application_id, applicant_first_name, applicant_last_name,
                applicant_email, company_name, status, current_step,
                submitted_at, reviewed_at, review_notes, created_at
            ) VALUES (
                %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s
            )
            """,
            (
                s.id,
                # UPDATE values
                s.status.value, s.current_step, s.submitted_at, s.reviewed_at, s.review_notes,
                # INSERT values
                s.id, s.application_id, s.applicant_first_name, s.applicant_last_name,
                s.applicant_email, s.company_name, s.status.value, s.current_step,
                s.submitted_at, s.reviewed_at, s.review_notes, s.created_at,
            ),
        )

    # =====================================================================
    # step scores
    # =====================================================================

    _SCORE_COLUMNS = (
        "id, submission_id, step_id, evaluator_id, scores, total_score, "
        "feedback, notes, created_at, updated_at"
    )

    def _to_score(self, row: Dict[str, Any]) -> ScoreRecord:
        ts = self._repo.normalize_timestamp
        return ScoreRecord(
            id=row["id"],
            submission_id=row["submission_id"],
            step_id=row["step_id"],
            evaluator_id=row["evaluator_id"],
            scores=parse_stored_scores(row.get("scores")),
            total_score=_decimal(row["total_score"]),
            feedback=row.get("feedback"),
            notes=row.get("notes"),
            created_at=ts(row.get("created_at")),
            updated_at=ts(row.get("updated_at")),
        )

    def get_score(self, submission_id: str, step_id: str, evaluator_id: str) -> Optional[ScoreRecord]:
        row = self._one(
            f"SELECT {self._SCORE_COLUMNS} FROM application_scores "
            "WHERE submission_id = %s AND step_id = %s AND evaluator_id = %s",
            (submission_id, step_id, evaluator_id),
        )
        return self._to_score(row) if row else None

    def list_scores(self, step_id: str, submission_id: Optional[str] = None) -> List[ScoreRecord]:
        if submission_id is None:
            rows = self._all(
                f"SELECT {self._SCORE_COLUMNS} FROM application_scores WHERE step_id = %s",
                (step_id,),
            )
        else:
            rows = self._all(
                f"SELECT {self._SCORE_COLUMNS} FROM application_scores "
                "WHERE step_id = %s AND submission_id = %s",
                (step_id, submission_id),
            )
        return [self._to_score(r) for r in rows]

    def upsert_score(self, record: ScoreRecord) -> ScoreRecord:
        """MERGE by (submission_id, step_id, evaluator_id); last write wins."""
        scores = self._repo.to_json(record.scores)
        total = str(record.total_score)
        self._run(
            """
            MERGE INTO application_scores t
            USING (SELECT %s AS submission_id, %s AS step_id, %s AS evaluator_id) s
            ON t.submission_id = s.submission_id
               AND t.step_id = s.step_id
               AND t.evaluator_id = s.evaluator_id
            WHEN MATCHED THEN UPDATE SET
                scores = PARSE_JSON(%s),
                total_score = %s,
                feedback = %s,
                notes = %s,
                updated_at = CURRENT_TIMESTAMP()
            WHEN NOT MATCHED THEN INSERT (
                id, submission_id, step_id, evaluator_id, scores, total_score,
                feedback, notes, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, PARSE_JSON(%s), %s,
                %s, %s, CURRENT_TIMESTAMP(), CURRENT_TIMESTAMP()
            )
            """,
            (
                record.submission_id, record.step_id, record.evaluator_id,
                # UPDATE values
                scores, total, record.feedback, record.notes,
                # INSERT values
                record.id, record.submission_id, record.step_id, record.evaluator_id,
                scores, total, record.feedback, record.notes,
            ),
        )
        return record

    # =====================================================================
    # demo day
    # =====================================================================

    def _to_event(self, row: Dict[str, Any]) -> DemoDayEvent:
        return DemoDayEvent(
            id=row["id"],
            name=row.get("name") or "",
            criteria=resolve_event_criteria(
                row.get("scoring_criteria"), row.get("scoring_weights")
            ),
            judge_ids=list(coerce_json(row.get("judge_ids"), "judgeIds") or []),
            created_at=self._repo.normalize_timestamp(row.get("created_at")),
        )

    def get_event(self, event_id: str) -> Optional[DemoDayEvent]:
        row = self._one(
            "SELECT id, name, scoring_criteria, scoring_weights, judge_ids, created_at "
            "FROM demo_day_events WHERE id = %s",
            (event_id,),
        )
        return self._to_event(row) if row else None

    def save_event(self, event: DemoDayEvent) -> None:
        criteria = self._repo.to_json([c.to_dict() for c in event.criteria])
        judges = self._repo.to_json(event.judge_ids)
        self._run(
            """
            MERGE INTO demo_day_events t
            USING (SELECT %s AS id) s
            ON t.id = s.id
            WHEN MATCHED THEN UPDATE SET
                name = %s,
                scoring_criteria = PARSE_JSON(%s),
                judge_ids = PARSE_JSON(%s)
            WHEN NOT MATCHED THEN INSERT (
                id, name, scoring_criteria, judge_ids, created_at
            ) VALUES (
                %s, %s, PARSE_JSON(%s), PARSE_JSON(%s), %s
            )
            """,
            (
                event.id,
                event.name, criteria, judges,
                event.id, event.name, criteria, judges, event.created_at,
            ),
        )

    _DEMO_SUBMISSION_COLUMNS = (
        "id, event_id, project_name, team_name, submitted_at, average_score, rank"
    )

    def _to_demo_submission(self, row: Dict[str, Any]) -> DemoDaySubmission:
        return DemoDaySubmission(
            id=row["id"],
            event_id=row["event_id"],
            project_name=row.get("project_name") or "",
            team_name=row.get("team_name"),
            submitted_at=self._repo.normalize_timestamp(row.get("submitted_at")),
            average_score=_decimal(row.get("average_score")),
            rank=row.get("rank"),
        )

    def get_demo_submission(self, submission_id: str) -> Optional[DemoDaySubmission]:
        row = self._one(
            f"SELECT {self._DEMO_SUBMISSION_COLUMNS} FROM demo_day_submissions WHERE id = %s",
            (submission_id,),
        )
        return self._to_demo_submission(row) if row else None

    def list_demo_submissions(self, event_id: str) -> List[DemoDaySubmission]:
        rows = self._all(
            f"SELECT {self._DEMO_SUBMISSION_COLUMNS} FROM demo_day_submissions "
            "WHERE event_id = %s ORDER BY submitted_at",
            (event_id,),
        )
        return [self._to_demo_submission(r) for r in rows]

    def save_demo_submission(self, submission: DemoDaySubmission) -> None:
        s = submission
        average = str(s.average_score) if s.average_score is not None else None
        self._run(
            """
            MERGE INTO demo_day_submissions t
            USING (SELECT %s AS id) src
            ON t.id = src.id
            WHEN MATCHED THEN UPDATE SET
                project_name = %s,
                team_name = %s,
                average_score = %s,
                rank = %s
            WHEN NOT MATCHED THEN INSERT (
                id, event_id, project_name, team_name, submitted_at, average_score, rank
            ) VALUES (
                %s, %s, %s, %s, %s, %s, %s
            )
            """,
            (
                s.id,
                s.project_name, s.team_name, average, s.rank,
                s.id, s.event_id, s.project_name, s.team_name, s.submitted_at, average, s.rank,
            ),
        )

    _DEMO_SCORE_COLUMNS = (
        "id, submission_id, judge_id, scores, total_score, feedback, notes, created_at, updated_at"
    )

    def _to_demo_score(self, row: Dict[str, Any]) -> DemoDayScore:
        ts = self._repo.normalize_timestamp
        return DemoDayScore(
            id=row["id"],
            submission_id=row["submission_id"],
            judge_id=row["judge_id"],
            scores=parse_stored_scores(row.get("scores")),
            total_score=_decimal(row["total_score"]),
            feedback=row.get("feedback"),
            notes=row.get("notes"),
            created_at=ts(row.get("created_at")),
            updated_at=ts(row.get("updated_at")),
        )

    def get_demo_score(self, submission_id: str, judge_id: str) -> Optional[DemoDayScore]:
        row = self._one(
            f"SELECT {self._DEMO_SCORE_COLUMNS} FROM demo_day_scores "
            "WHERE submission_id = %s AND judge_id = %s",
            (submission_id, judge_id),
        )
        return self._to_demo_score(row) if row else None

    def list_demo_scores(self, submission_id: str) -> List[DemoDayScore]:
        rows = self._all(
            f"SELECT {self._DEMO_SCORE_COLUMNS} FROM demo_day_scores WHERE submission_id = %s",
            (submission_id,),
        )
        return [self._to_demo_score(r) for r in rows]

    def upsert_demo_score(self, score: DemoDayScore) -> DemoDayScore:
        """MERGE by (submission_id, judge_id); last write wins."""
        scores = self._repo.to_json(score.scores)
        total = str(score.total_score)
        self._run(
            """
            MERGE INTO demo_day_scores t
            USING (SELECT %s AS submission_id, %s AS judge_id) s
            ON t.submission_id = s.submission_id AND t.judge_id = s.judge_id
            WHEN MATCHED THEN UPDATE SET
                scores = PARSE_JSON(%s),
                total_score = %s,
                feedback = %s,
                notes = %s,
                updated_at = CURRENT_TIMESTAMP()
            WHEN NOT MATCHED THEN INSERT (
                id, submission_id, judge_id, scores, total_score,
                feedback, notes, created_at, updated_at
            ) VALUES (
                %s, %s, %s, PARSE_JSON(%s), %s,
                %s, %s, CURRENT_TIMESTAMP(), CURRENT_TIMESTAMP()
            )
            """,
            (
                score.submission_id, score.judge_id,
                scores, total, score.feedback, score.notes,
                score.id, score.submission_id, score.judge_id,
                scores, total, score.feedback, score.notes,
            ),
        )
        return score


class SnowflakeEvaluationRepository(BaseRepository, EvaluationRepository):
    """Snowflake-backed repository; each unit of work is one transaction."""

    def __init__(self, default_settings: Optional[EvaluationSettings] = None):
        self.default_settings = default_settings or default_settings_from(get_settings())

    @contextmanager
    def unit_of_work(self) -> Generator[SnowflakeSession, None, None]:
        with self.transaction() as conn:
            yield SnowflakeSession(self, conn)

    def ping(self) -> bool:
        try:
            with self.get_connection() as conn:
                self.execute_query(conn, "SELECT 1", fetch_one=True)
            return True
        except RepositoryException as e:
            logger.warning(f"Snowflake ping failed: {e}")
            return False
