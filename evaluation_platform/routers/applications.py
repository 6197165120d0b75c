"""
Applications Router - Accelerator Evaluation Platform
evaluation_platform/routers/applications.py

Application intake, submissions, cutoff scores and evaluation settings.

Endpoints:
    POST /api/v1/applications                                   - Create an application
    GET  /api/v1/applications/{application_id}                  - Get an application
    POST /api/v1/applications/{application_id}/submissions      - Create a DRAFT submission
    POST /api/v1/submissions/{submission_id}/submit             - DRAFT → SUBMITTED
    GET  /api/v1/submissions/{submission_id}                    - Get a submission
    GET  /api/v1/submissions/{submission_id}/evaluation-status  - Per-step evaluation status
    GET  /api/v1/applications/{application_id}/cutoffs          - Step cutoffs
    PUT  /api/v1/applications/{application_id}/cutoffs          - Update step cutoffs
    GET  /api/v1/applications/{application_id}/evaluation-settings - Evaluation settings
    PUT  /api/v1/applications/{application_id}/evaluation-settings - Update evaluation settings
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from evaluation_platform.config import settings
from evaluation_platform.core.capabilities import CapabilityGrant
from evaluation_platform.core.dependencies import get_capability_grant, get_evaluation_service
from evaluation_platform.core.exceptions import EvaluationException
from evaluation_platform.models.evaluation import (
    ApplicationCreate,
    ApplicationResponse,
    CutoffResponse,
    CutoffUpdate,
    EvaluationSettingsResponse,
    EvaluationSettingsUpdate,
    SubmissionCreate,
    SubmissionEvaluationStatus,
    SubmissionResponse,
)
from evaluation_platform.services.evaluation_service import EvaluationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.API_V1_PREFIX, tags=["Applications"])


#  Validation Error Messages


FIELD_MESSAGES = {
    "name": {
        "missing": "Name is required",
        "string_too_short": "Name cannot be empty",
        "string_too_long": "Name must not exceed 255 characters",
    },
    "step1.criteria": {
        "missing": "Step 1 criteria are required",
        "list_type": "Step 1 criteria must be a list",
    },
    "step2.criteria": {
        "missing": "Step 2 criteria are required",
        "list_type": "Step 2 criteria must be a list",
    },
    "scores": {
        "missing": "Scores are required",
        "dict_type": "Scores must be an object of criterion id to score",
    },
    "submission_ids": {
        "missing": "submission_ids is required",
        "list_type": "submission_ids must be a list",
    },
    "required_evaluator_percentage": {
        "less_than_equal": "Required evaluator percentage must be between 0 and 100",
        "greater_than_equal": "Required evaluator percentage must be between 0 and 100",
    },
}

DEFAULT_MESSAGES = {
    "missing": "Field '{field}' is required",
    "string_too_short": "Field '{field}' is too short",
    "string_too_long": "Field '{field}' is too long",
    "less_than_equal": "Field '{field}' exceeds maximum allowed value",
    "greater_than_equal": "Field '{field}' is below minimum allowed value",
    "string_type": "Field '{field}' must be a string",
    "float_type": "Field '{field}' must be a number",
    "float_parsing": "Field '{field}' must be a valid number",
    "int_type": "Field '{field}' must be an integer",
    "int_parsing": "Field '{field}' must be a valid integer",
    "bool_type": "Field '{field}' must be true or false",
    "bool_parsing": "Field '{field}' must be true or false",
    "enum": "Field '{field}' has an unsupported value",
    "json_invalid": "Malformed JSON request body",
}


def get_validation_message(field: str, error_type: str) -> str:
    if field in FIELD_MESSAGES:
        for key in FIELD_MESSAGES[field]:
            if key in error_type:
                return FIELD_MESSAGES[field][key]
    for key, template in DEFAULT_MESSAGES.items():
        if key in error_type:
            return template.format(field=field)
    return f"Invalid value for field '{field}'"


#  Schemas


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: Optional[dict] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


#  Exception Handlers


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(
                error_code="VALIDATION_ERROR", message="Request validation failed"
            ).model_dump(mode="json"),
        )
    err = errors[0]
    error_type = err.get("type", "")
    loc = err.get("loc", [])
    if "json_invalid" in error_type:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(
                error_code="INVALID_REQUEST", message="Malformed JSON request body"
            ).model_dump(mode="json"),
        )
    field = ".".join(str(l) for l in loc if l not in ("body", "header"))
    message = get_validation_message(field, error_type)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error_code="VALIDATION_ERROR",
            message=message,
            details={"field": field, "type": error_type} if field else None,
        ).model_dump(mode="json"),
    )


async def evaluation_exception_handler(request: Request, exc: EvaluationException):
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
        ).model_dump(mode="json"),
    )


#  Applications


@router.post(
    "/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an application",
)
async def create_application(
    body: ApplicationCreate,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> ApplicationResponse:
    application = service.create_application(grant, body.name)
    return ApplicationResponse.model_validate(application)


@router.get(
    "/applications/{application_id}",
    response_model=ApplicationResponse,
    summary="Get an application",
)
async def get_application(
    application_id: str,
    service: EvaluationService = Depends(get_evaluation_service),
) -> ApplicationResponse:
    return ApplicationResponse.model_validate(service.get_application(application_id))


#  Submissions


@router.post(
    "/applications/{application_id}/submissions",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft submission",
)
async def create_submission(
    application_id: str,
    body: SubmissionCreate,
    service: EvaluationService = Depends(get_evaluation_service),
) -> SubmissionResponse:
    submission = service.create_submission(
        application_id,
        applicant_first_name=body.applicant_first_name,
        applicant_last_name=body.applicant_last_name,
        applicant_email=body.applicant_email,
        company_name=body.company_name,
    )
    return SubmissionResponse.model_validate(submission)


@router.post(
    "/submissions/{submission_id}/submit",
    response_model=SubmissionResponse,
    summary="Submit a draft submission",
)
async def submit_submission(
    submission_id: str,
    service: EvaluationService = Depends(get_evaluation_service),
) -> SubmissionResponse:
    return SubmissionResponse.model_validate(service.submit_submission(submission_id))


@router.get(
    "/submissions/{submission_id}",
    response_model=SubmissionResponse,
    summary="Get a submission",
)
async def get_submission(
    submission_id: str,
    service: EvaluationService = Depends(get_evaluation_service),
) -> SubmissionResponse:
    return SubmissionResponse.model_validate(service.get_submission(submission_id))


@router.get(
    "/submissions/{submission_id}/evaluation-status",
    response_model=SubmissionEvaluationStatus,
    summary="Per-step evaluation status of a submission",
)
async def get_submission_evaluation_status(
    submission_id: str,
    service: EvaluationService = Depends(get_evaluation_service),
) -> SubmissionEvaluationStatus:
    return service.submission_status(submission_id)


#  Cutoffs and evaluation settings


@router.get(
    "/applications/{application_id}/cutoffs",
    response_model=CutoffResponse,
    summary="Get step cutoff scores",
)
async def get_cutoffs(
    application_id: str,
    service: EvaluationService = Depends(get_evaluation_service),
) -> CutoffResponse:
    return CutoffResponse(**service.get_cutoffs(application_id).to_dict())


@router.put(
    "/applications/{application_id}/cutoffs",
    response_model=CutoffResponse,
    summary="Update step cutoff scores",
    description="At least one of step1 / step2; each must lie within the application's score range.",
)
async def update_cutoffs(
    application_id: str,
    body: CutoffUpdate,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> CutoffResponse:
    cutoffs = service.update_cutoffs(grant, application_id, step1=body.step1, step2=body.step2)
    return CutoffResponse(**cutoffs.to_dict())


@router.get(
    "/applications/{application_id}/evaluation-settings",
    response_model=EvaluationSettingsResponse,
    summary="Get evaluation settings",
)
async def get_evaluation_settings(
    application_id: str,
    service: EvaluationService = Depends(get_evaluation_service),
) -> EvaluationSettingsResponse:
    return EvaluationSettingsResponse.from_settings(service.get_evaluation_settings(application_id))


@router.put(
    "/applications/{application_id}/evaluation-settings",
    response_model=EvaluationSettingsResponse,
    summary="Update evaluation settings",
)
async def update_evaluation_settings(
    application_id: str,
    body: EvaluationSettingsUpdate,
    grant: CapabilityGrant = Depends(get_capability_grant),
    service: EvaluationService = Depends(get_evaluation_service),
) -> EvaluationSettingsResponse:
    updated = service.update_evaluation_settings(
        grant,
        application_id,
        required_evaluator_percentage=body.required_evaluator_percentage,
        min_score=body.min_score,
        max_score=body.max_score,
        admit_requires_passing_score=body.admit_requires_passing_score,
    )
    return EvaluationSettingsResponse.from_settings(updated)
