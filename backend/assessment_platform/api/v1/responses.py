"""Assessment response endpoints: content edits, per-requirement workflow and action plans."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi import status as http_status

from assessment_platform.api.deps import (
    get_action_plan_service,
    get_assessment_service,
    get_current_user,
    get_workflow_service,
)
from assessment_platform.core.config import settings
from assessment_platform.models.enums import LoggableKind
from assessment_platform.models.organization import User
from assessment_platform.schemas.assessment import (
    ActionPlanRead,
    AssessmentResponseRead,
    CreateActionPlanRequest,
    ErrorResponse,
    ResponseWorkflowRequest,
    ResponseWorkflowResponse,
    UpdateActionPlanRequest,
    UpdateResponseRequest,
    WorkflowLogListResponse,
    WorkflowLogRead,
)
from assessment_platform.services.action_plan_service import ActionPlanService
from assessment_platform.services.assessment_service import AssessmentService
from assessment_platform.services.workflow_service import WorkflowService

router = APIRouter(tags=["assessment-responses"])


@router.patch(
    "/assessment-responses/{response_id}",
    response_model=AssessmentResponseRead,
    summary="Update response content",
    description="Edit comments and compliance classification while the requirement is editable.",
    responses={
        403: {"model": ErrorResponse, "description": "Requirement not editable"},
        404: {"model": ErrorResponse, "description": "Response not found"},
    },
)
async def update_response(
    response_id: UUID,
    request_data: UpdateResponseRequest,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
) -> AssessmentResponseRead:
    await service.get_response(response_id, current_user)
    response = await service.update_response(response_id, request_data, current_user)
    return AssessmentResponseRead.model_validate(response)


@router.post(
    "/assessment-responses/{response_id}/workflow",
    response_model=ResponseWorkflowResponse,
    summary="Transition response status",
    responses={
        403: {"model": ErrorResponse, "description": "Transition not allowed for this user"},
        404: {"model": ErrorResponse, "description": "Response not found"},
        409: {"model": ErrorResponse, "description": "Concurrent modification, retry"},
        422: {"model": ErrorResponse, "description": "Illegal transition"},
    },
)
async def transition_response(
    response_id: UUID,
    request_data: ResponseWorkflowRequest,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
    workflow: WorkflowService = Depends(get_workflow_service),
) -> ResponseWorkflowResponse:
    await service.get_response(response_id, current_user)
    result = await workflow.transition(
        LoggableKind.ASSESSMENT_RESPONSE,
        response_id,
        request_data.status,
        current_user,
        note=request_data.note,
    )
    return ResponseWorkflowResponse(
        response=AssessmentResponseRead.model_validate(result.entity),
        transition=WorkflowLogRead.model_validate(result.log_entry),
    )


@router.get(
    "/assessment-responses/{response_id}/workflow-logs",
    response_model=WorkflowLogListResponse,
    summary="Response workflow history",
)
async def get_response_workflow_logs(
    response_id: UUID,
    limit: int = Query(settings.WORKFLOW_LOG_PAGE_SIZE, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
) -> WorkflowLogListResponse:
    await service.get_response(response_id, current_user)
    logs, total = await service.get_workflow_log(
        LoggableKind.ASSESSMENT_RESPONSE, response_id, limit=limit, offset=offset
    )
    return WorkflowLogListResponse(
        logs=[WorkflowLogRead.model_validate(entry) for entry in logs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/assessment-responses/{response_id}/action-plans",
    response_model=List[ActionPlanRead],
    summary="List action plans of a response",
)
async def list_action_plans(
    response_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
    action_plans: ActionPlanService = Depends(get_action_plan_service),
) -> List[ActionPlanRead]:
    await service.get_response(response_id, current_user)
    plans = await action_plans.list_action_plans(response_id)
    return [ActionPlanRead.model_validate(plan) for plan in plans]


@router.post(
    "/assessment-responses/{response_id}/action-plans",
    response_model=ActionPlanRead,
    status_code=http_status.HTTP_201_CREATED,
    summary="Create action plan",
    responses={403: {"model": ErrorResponse, "description": "Action plans are locked"}},
)
async def create_action_plan(
    response_id: UUID,
    request_data: CreateActionPlanRequest,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
    action_plans: ActionPlanService = Depends(get_action_plan_service),
) -> ActionPlanRead:
    await service.get_response(response_id, current_user)
    plan = await action_plans.create_action_plan(response_id, request_data, current_user)
    return ActionPlanRead.model_validate(plan)


@router.patch(
    "/action-plans/{action_plan_id}",
    response_model=ActionPlanRead,
    summary="Update action plan",
    responses={403: {"model": ErrorResponse, "description": "Action plans are locked"}},
)
async def update_action_plan(
    action_plan_id: UUID,
    request_data: UpdateActionPlanRequest,
    current_user: User = Depends(get_current_user),
    action_plans: ActionPlanService = Depends(get_action_plan_service),
) -> ActionPlanRead:
    plan = await action_plans.update_action_plan(action_plan_id, request_data, current_user)
    return ActionPlanRead.model_validate(plan)


@router.delete(
    "/action-plans/{action_plan_id}",
    status_code=http_status.HTTP_204_NO_CONTENT,
    summary="Delete action plan",
)
async def delete_action_plan(
    action_plan_id: UUID,
    current_user: User = Depends(get_current_user),
    action_plans: ActionPlanService = Depends(get_action_plan_service),
) -> None:
    await action_plans.delete_action_plan(action_plan_id, current_user)
