"""Assessment API endpoints: lifecycle, workflow transitions and history."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi import status as http_status

from assessment_platform.api.deps import (
    get_assessment_service,
    get_current_user,
    get_workflow_service,
)
from assessment_platform.core.config import settings
from assessment_platform.models.enums import AssessmentStatus, LoggableKind
from assessment_platform.models.organization import User
from assessment_platform.schemas.assessment import (
    AssessmentDetailResponse,
    AssessmentListResponse,
    AssessmentRead,
    AssessmentResponseRead,
    AssessmentWorkflowRequest,
    AssessmentWorkflowResponse,
    CreateAssessmentRequest,
    ErrorResponse,
    UpdateAssessmentRequest,
    WorkflowLogListResponse,
    WorkflowLogRead,
)
from assessment_platform.services.assessment_service import AssessmentService
from assessment_platform.services.workflow_service import WorkflowService

router = APIRouter(prefix="/assessments", tags=["assessments"])


@router.get(
    "/",
    response_model=AssessmentListResponse,
    summary="List assessments",
    description="List assessments of one organization, optionally filtered by status.",
)
async def list_assessments(
    organization_id: UUID = Query(..., description="Organization ID is required for tenant isolation"),
    status: Optional[AssessmentStatus] = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
) -> AssessmentListResponse:
    assessments, total = await service.list_assessments(
        organization_id, current_user, status=status, limit=limit, offset=offset
    )
    return AssessmentListResponse(
        assessments=[AssessmentRead.model_validate(a) for a in assessments],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(assessments) < total,
    )


@router.post(
    "/",
    response_model=AssessmentRead,
    status_code=http_status.HTTP_201_CREATED,
    summary="Create new assessment",
    description="Create a draft assessment with one response per requirement of the standard.",
    responses={
        403: {"model": ErrorResponse, "description": "Not allowed for this organization"},
        404: {"model": ErrorResponse, "description": "Standard not found"},
    },
)
async def create_assessment(
    request_data: CreateAssessmentRequest,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
) -> AssessmentRead:
    assessment = await service.create_assessment(request_data, current_user)
    return AssessmentRead.model_validate(assessment)


@router.get(
    "/{assessment_id}",
    response_model=AssessmentDetailResponse,
    summary="Get assessment details",
    responses={404: {"model": ErrorResponse, "description": "Assessment not found"}},
)
async def get_assessment(
    assessment_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
    workflow: WorkflowService = Depends(get_workflow_service),
) -> AssessmentDetailResponse:
    assessment = await service.get_assessment(assessment_id, current_user)
    responses = await service.get_responses(assessment_id)
    return AssessmentDetailResponse(
        assessment=AssessmentRead.model_validate(assessment),
        responses=[AssessmentResponseRead.model_validate(r) for r in responses],
        response_counts=await service.get_response_counts(assessment_id),
        valid_transitions=await workflow.available_transitions(
            LoggableKind.ASSESSMENT, assessment_id, current_user
        ),
    )


@router.patch(
    "/{assessment_id}",
    response_model=AssessmentRead,
    summary="Update assessment",
    description="Update name, period and dates. Status changes use the workflow endpoint.",
    responses={
        403: {"model": ErrorResponse, "description": "Assessment not editable by this user"},
        404: {"model": ErrorResponse, "description": "Assessment not found"},
    },
)
async def update_assessment(
    assessment_id: UUID,
    request_data: UpdateAssessmentRequest,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
) -> AssessmentRead:
    await service.get_assessment(assessment_id, current_user)
    assessment = await service.update_assessment(assessment_id, request_data, current_user)
    return AssessmentRead.model_validate(assessment)


@router.delete(
    "/{assessment_id}",
    status_code=http_status.HTTP_204_NO_CONTENT,
    summary="Delete assessment",
    description="Soft delete a draft or active assessment.",
)
async def delete_assessment(
    assessment_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
) -> None:
    await service.get_assessment(assessment_id, current_user)
    await service.delete_assessment(assessment_id, current_user)


@router.post(
    "/{assessment_id}/workflow",
    response_model=AssessmentWorkflowResponse,
    summary="Transition assessment status",
    responses={
        403: {"model": ErrorResponse, "description": "Transition not allowed for this user"},
        404: {"model": ErrorResponse, "description": "Assessment not found"},
        409: {"model": ErrorResponse, "description": "Concurrent modification, retry"},
        422: {"model": ErrorResponse, "description": "Illegal transition or business rule violation"},
        503: {"model": ErrorResponse, "description": "Store unavailable, retry"},
    },
)
async def transition_assessment(
    assessment_id: UUID,
    request_data: AssessmentWorkflowRequest,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
    workflow: WorkflowService = Depends(get_workflow_service),
) -> AssessmentWorkflowResponse:
    await service.get_assessment(assessment_id, current_user)
    result = await workflow.transition(
        LoggableKind.ASSESSMENT,
        assessment_id,
        request_data.status,
        current_user,
        note=request_data.note,
    )
    return AssessmentWorkflowResponse(
        assessment=AssessmentRead.model_validate(result.entity),
        transition=WorkflowLogRead.model_validate(result.log_entry),
        cascaded_responses=result.cascaded,
    )


@router.get(
    "/{assessment_id}/workflow-logs",
    response_model=WorkflowLogListResponse,
    summary="Assessment workflow history",
    description="Status transitions of an assessment, most recent first.",
)
async def get_assessment_workflow_logs(
    assessment_id: UUID,
    limit: int = Query(settings.WORKFLOW_LOG_PAGE_SIZE, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
) -> WorkflowLogListResponse:
    await service.get_assessment(assessment_id, current_user)
    logs, total = await service.get_workflow_log(
        LoggableKind.ASSESSMENT, assessment_id, limit=limit, offset=offset
    )
    return WorkflowLogListResponse(
        logs=[WorkflowLogRead.model_validate(entry) for entry in logs],
        total=total,
        limit=limit,
        offset=offset,
    )
