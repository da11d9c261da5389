"""API Dependencies."""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_platform.core.auth import get_current_user
from assessment_platform.core.database import get_async_session
from assessment_platform.models.organization import User
from assessment_platform.services.action_plan_service import ActionPlanService
from assessment_platform.services.assessment_service import AssessmentService
from assessment_platform.services.workflow_service import WorkflowService


def get_assessment_service(db: AsyncSession = Depends(get_async_session)) -> AssessmentService:
    return AssessmentService(db)


def get_workflow_service(db: AsyncSession = Depends(get_async_session)) -> WorkflowService:
    return WorkflowService(db)


def get_action_plan_service(db: AsyncSession = Depends(get_async_session)) -> ActionPlanService:
    return ActionPlanService(db)


# Re-export auth dependencies for convenience
__all__ = [
    "get_async_session",
    "get_current_user",
    "get_assessment_service",
    "get_workflow_service",
    "get_action_plan_service",
    "User",
]
