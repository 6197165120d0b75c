"""
Demo Day Router - Accelerator Evaluation Platform
evaluation_platform/routers/demo_day.py

Endpoints:
    POST /api/v1/demo-day/events                             - Create an event
    PUT  /api/v1/demo-day/events/{event_id}                  - Reconfigure an event
    GET  /api/v1/demo-day/events/{event_id}                  - Get an event
    POST /api/v1/demo-day/events/{event_id}/submissions      - Add a project submission
    POST /api/v1/demo-day/submissions/{submission_id}/scores - Submit / update my score (roster judges)
    GET  /api/v1/demo-day/submissions/{submission_id}/scores/me - My score
    GET  /api/v1/demo-day/events/{event_id}/rankings         - Live rankings
    POST /api/v1/demo-day/events/{event_id}/rankings/finalize - Persist averages and ranks
    GET  /api/v1/demo-day/events/{event_id}/stats            - Judging statistics
"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from evaluation_platform.config import settings
from evaluation_platform.core.capabilities import CapabilityGrant
from evaluation_platform.core.dependencies import get_capability_grant, get_demo_day_service
from evaluation_platform.models.demo_day import (
    DemoDayScoreRequest,
    DemoDayScoreResponse,
    DemoDayStatsResponse,
    DemoDaySubmissionCreate,
    DemoDaySubmissionResponse,
    EventConfigRequest,
    EventResponse,
    RankingsResponse,
)
from evaluation_platform.models.evaluation import display_score
from evaluation_platform.services.demo_day_service import DemoDayService

router = APIRouter(prefix=f"{settings.API_V1_PREFIX}/demo-day", tags=["Demo Day"])


def _score_response(record, total) -> DemoDayScoreResponse:
    return DemoDayScoreResponse(
        id=record.id,
        submission_id=record.submission_id,
        judge_id=record.judge_id,
        scores={k: float(v) for k, v in record.scores.items()},
        total_score=display_score(total.total_score),
        max_total_score=display_score(total.max_total),
        percentage=display_score(total.percentage),
        feedback=record.feedback,
        notes=record.notes,
    )


#  Events


@router.post(
    "/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a demo-day event",
)
async def create_event(
    body: EventConfigRequest,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: DemoDayService = Depends(get_demo_day_service),
) -> EventResponse:
    event = service.configure_event(
        grant,
        name=body.name,
        scoring_criteria=body.scoring_criteria,
        scoring_weights=body.scoring_weights,
        judge_ids=body.judge_ids,
    )
    return EventResponse.from_event(event, service.scorer.max_total(event.criteria))


@router.put(
    "/events/{event_id}",
    response_model=EventResponse,
    summary="Reconfigure a demo-day event",
)
async def update_event(
    event_id: str,
    body: EventConfigRequest,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: DemoDayService = Depends(get_demo_day_service),
) -> EventResponse:
    event = service.configure_event(
        grant,
        name=body.name,
        scoring_criteria=body.scoring_criteria,
        scoring_weights=body.scoring_weights,
        judge_ids=body.judge_ids,
        event_id=event_id,
    )
    return EventResponse.from_event(event, service.scorer.max_total(event.criteria))


@router.get("/events/{event_id}", response_model=EventResponse, summary="Get a demo-day event")
async def get_event(
    event_id: str,
    service: DemoDayService = Depends(get_demo_day_service),
) -> EventResponse:
    event = service.get_event(event_id)
    return EventResponse.from_event(event, service.scorer.max_total(event.criteria))


@router.post(
    "/events/{event_id}/submissions",
    response_model=DemoDaySubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a project submission",
)
async def create_submission(
    event_id: str,
    body: DemoDaySubmissionCreate,
    service: DemoDayService = Depends(get_demo_day_service),
) -> DemoDaySubmissionResponse:
    submission = service.create_submission(event_id, body.project_name, body.team_name)
    return DemoDaySubmissionResponse.from_submission(submission)


#  Scores


@router.post(
    "/submissions/{submission_id}/scores",
    response_model=DemoDayScoreResponse,
    summary="Submit or update the calling judge's score",
)
async def submit_score(
    submission_id: str,
    body: DemoDayScoreRequest,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: DemoDayService = Depends(get_demo_day_service),
) -> DemoDayScoreResponse:
    record, total = service.submit_score(
        grant, submission_id, body.scores, feedback=body.feedback, notes=body.notes
    )
    return _score_response(record, total)


@router.get(
    "/submissions/{submission_id}/scores/me",
    response_model=Optional[DemoDayScoreResponse],
    summary="The calling judge's score, or null",
)
async def get_my_score(
    submission_id: str,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: DemoDayService = Depends(get_demo_day_service),
) -> Optional[DemoDayScoreResponse]:
    found = service.get_score(submission_id, grant.caller_id)
    if found is None:
        return None
    return _score_response(*found)


#  Rankings and stats


@router.get(
    "/events/{event_id}/rankings",
    response_model=RankingsResponse,
    summary="Live rankings",
    description="Average descending, earlier submission first on ties, unscored last. Cached in Redis.",
)
async def get_rankings(
    event_id: str,
    service: DemoDayService = Depends(get_demo_day_service),
) -> RankingsResponse:
    return service.rankings(event_id)


@router.post(
    "/events/{event_id}/rankings/finalize",
    response_model=RankingsResponse,
    summary="Persist average scores and ranks",
)
async def finalize_rankings(
    event_id: str,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: DemoDayService = Depends(get_demo_day_service),
) -> RankingsResponse:
    return service.finalize_rankings(grant, event_id)


@router.get(
    "/events/{event_id}/stats",
    response_model=DemoDayStatsResponse,
    summary="Judging statistics",
)
async def get_stats(
    event_id: str,
    service: DemoDayService = Depends(get_demo_day_service),
) -> DemoDayStatsResponse:
    return service.stats(event_id)
