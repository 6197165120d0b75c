"""
Evaluation Router - Accelerator Evaluation Platform
evaluation_platform/routers/evaluation.py

Two-step evaluation: step setup, evaluator pools, scoring, aggregates,
scoreboards and the batch stage transitions.

Endpoints:
    POST /api/v1/applications/{application_id}/steps                    - Create step 1 and step 2
    GET  /api/v1/applications/{application_id}/steps                    - List steps
    PUT  /api/v1/steps/{step_id}/evaluators                             - Replace the evaluator pool
    POST /api/v1/steps/{step_id}/submissions/{submission_id}/scores     - Submit / update my score
    GET  /api/v1/steps/{step_id}/submissions/{submission_id}/scores/me  - My score
    GET  /api/v1/steps/{step_id}/submissions/{submission_id}/aggregate  - Aggregate for one submission
    GET  /api/v1/steps/{step_id}/scoreboard                             - Step scoreboard
    POST /api/v1/applications/{application_id}/steps/{step_id}/advance  - Advance step-1 PASSED submissions
    POST /api/v1/applications/{application_id}/admit                    - Admit step-2 submissions
    POST /api/v1/applications/{application_id}/reject                   - Reject submissions
    POST /api/v1/applications/{application_id}/waitlist                 - Waitlist submissions
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from evaluation_platform.config import settings
from evaluation_platform.core.capabilities import CapabilityGrant
from evaluation_platform.core.dependencies import get_capability_grant, get_evaluation_service
from evaluation_platform.models.evaluation import (
    AggregateResponse,
    BatchRequest,
    BatchResponse,
    EvaluatorPoolRequest,
    MyScoreResponse,
    ScoreRecordResponse,
    ScoreSubmitRequest,
    ScoreboardResponse,
    StepResponse,
    StepSetupRequest,
    StepSetupResponse,
)
from evaluation_platform.services.evaluation_service import EvaluationService

router = APIRouter(prefix=settings.API_V1_PREFIX, tags=["Evaluation"])


#  Steps


@router.post(
    "/applications/{application_id}/steps",
    response_model=StepSetupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create evaluation steps",
    description="Creates step 1 and step 2 together; nothing is written if either step is invalid.",
)
async def setup_steps(
    application_id: str,
    body: StepSetupRequest,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> StepSetupResponse:
    first, second = service.setup_steps(grant, application_id, body.step1, body.step2)
    return StepSetupResponse(
        step1_id=first.id,
        step2_id=second.id,
        steps=[StepResponse.from_step(first), StepResponse.from_step(second)],
    )


@router.get(
    "/applications/{application_id}/steps",
    response_model=List[StepResponse],
    summary="List evaluation steps",
)
async def list_steps(
    application_id: str,
    service: EvaluationService = Depends(get_evaluation_service),
) -> List[StepResponse]:
    return [StepResponse.from_step(s) for s in service.list_steps(application_id)]


@router.put(
    "/steps/{step_id}/evaluators",
    response_model=StepResponse,
    summary="Replace the step's evaluator pool",
)
async def assign_evaluators(
    step_id: str,
    body: EvaluatorPoolRequest,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> StepResponse:
    return StepResponse.from_step(service.assign_evaluators(grant, step_id, body.evaluator_ids))


#  Scores


@router.post(
    "/steps/{step_id}/submissions/{submission_id}/scores",
    response_model=ScoreRecordResponse,
    summary="Submit or update the caller's score",
)
async def submit_score(
    step_id: str,
    submission_id: str,
    body: ScoreSubmitRequest,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> ScoreRecordResponse:
    record = service.submit_score(
        grant,
        submission_id=submission_id,
        step_id=step_id,
        scores=body.scores,
        feedback=body.feedback,
        notes=body.notes,
    )
    return ScoreRecordResponse.from_record(record)


@router.get(
    "/steps/{step_id}/submissions/{submission_id}/scores/me",
    response_model=MyScoreResponse,
    summary="The caller's score for a submission",
)
async def get_my_score(
    step_id: str,
    submission_id: str,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> MyScoreResponse:
    record = service.get_my_score(submission_id, step_id, grant.caller_id)
    if record is None:
        return MyScoreResponse(has_scored=False)
    return MyScoreResponse(has_scored=True, score=ScoreRecordResponse.from_record(record))


@router.get(
    "/steps/{step_id}/submissions/{submission_id}/aggregate",
    response_model=AggregateResponse,
    summary="Aggregate score for one submission",
)
async def get_aggregate(
    step_id: str,
    submission_id: str,
    service: EvaluationService = Depends(get_evaluation_service),
) -> AggregateResponse:
    return AggregateResponse.from_result(service.aggregate(submission_id, step_id))


@router.get(
    "/steps/{step_id}/scoreboard",
    response_model=ScoreboardResponse,
    summary="Step scoreboard",
    description="Submissions at or past this step, best average first. Cached in Redis.",
)
async def get_scoreboard(
    step_id: str,
    submission_id: Optional[str] = Query(default=None, description="Limit to one submission"),
    service: EvaluationService = Depends(get_evaluation_service),
) -> ScoreboardResponse:
    return service.scoreboard(step_id, submission_id)


#  Transitions


@router.post(
    "/applications/{application_id}/steps/{step_id}/advance",
    response_model=BatchResponse,
    summary="Advance submissions to step 2",
)
async def advance(
    application_id: str,
    step_id: str,
    body: BatchRequest,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> BatchResponse:
    return BatchResponse.from_batch(
        service.advance(grant, application_id, step_id, body.submission_ids)
    )


@router.post(
    "/applications/{application_id}/admit",
    response_model=BatchResponse,
    summary="Admit step-2 submissions",
)
async def admit(
    application_id: str,
    body: BatchRequest,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> BatchResponse:
    return BatchResponse.from_batch(service.admit(grant, application_id, body.submission_ids))


@router.post(
    "/applications/{application_id}/reject",
    response_model=BatchResponse,
    summary="Reject submissions",
)
async def reject(
    application_id: str,
    body: BatchRequest,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> BatchResponse:
    return BatchResponse.from_batch(service.bulk_reject(grant, application_id, body.submission_ids))


@router.post(
    "/applications/{application_id}/waitlist",
    response_model=BatchResponse,
    summary="Waitlist submissions",
)
async def waitlist(
    application_id: str,
    body: BatchRequest,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> BatchResponse:
    return BatchResponse.from_batch(service.waitlist(grant, application_id, body.submission_ids))
