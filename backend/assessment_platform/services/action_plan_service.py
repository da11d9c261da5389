"""Action plans hang off a response and follow its editability."""

import logging
import uuid
from typing import List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from assessment_platform.core.exceptions import AuthorizationError, NotFoundError
from assessment_platform.core.transactions import unit_of_work
from assessment_platform.models.assessment import (
    Assessment,
    AssessmentActionPlan,
    AssessmentResponse,
)
from assessment_platform.models.base import utcnow
from assessment_platform.models.organization import User
from assessment_platform.repositories.assessment import (
    ActionPlanRepository,
    AssessmentRepository,
    AssessmentResponseRepository,
)
from assessment_platform.schemas.assessment import (
    CreateActionPlanRequest,
    UpdateActionPlanRequest,
)
from assessment_platform.services.workflow_policies import can_manage_action_plan

logger = logging.getLogger(__name__)


class ActionPlanService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.action_plan_repository = ActionPlanRepository(db)
        self.assessment_repository = AssessmentRepository(db)
        self.response_repository = AssessmentResponseRepository(db)

    async def _load_context(self, response_id: uuid.UUID) -> Tuple[AssessmentResponse, Assessment]:
        response = await self.response_repository.get_by_id(response_id)
        if not response:
            raise NotFoundError(f"Assessment response {response_id} not found")
        assessment = await self.assessment_repository.get_active(response.assessment_id)
        if not assessment:
            raise NotFoundError(f"Assessment response {response_id} not found")
        return response, assessment

    async def _authorize(self, actor: User, response: AssessmentResponse, assessment: Assessment) -> None:
        if not can_manage_action_plan(actor, response, assessment):
            raise AuthorizationError(
                "Action plans can only be managed on an active requirement of an active or rejected assessment.",
                details={
                    "response_status": response.status,
                    "assessment_status": assessment.status,
                },
            )

    async def _get_plan(self, action_plan_id: uuid.UUID) -> AssessmentActionPlan:
        plan = await self.action_plan_repository.get_by_id(action_plan_id)
        if not plan or plan.is_deleted:
            raise NotFoundError(f"Action plan {action_plan_id} not found")
        return plan

    async def list_action_plans(self, response_id: uuid.UUID) -> List[AssessmentActionPlan]:
        return await self.action_plan_repository.get_by_response(response_id)

    async def create_action_plan(
        self, response_id: uuid.UUID, request: CreateActionPlanRequest, actor: User
    ) -> AssessmentActionPlan:
        async with unit_of_work(self.db, "create action plan"):
            response, assessment = await self._load_context(response_id)
            await self._authorize(actor, response, assessment)
            plan = await self.action_plan_repository.create(
                assessment_id=assessment.id,
                assessment_response_id=response.id,
                **request.model_dump(),
            )

        logger.info(f"[ACTION_PLAN] Action plan {plan.id} created on response {response_id}")
        return plan

    async def update_action_plan(
        self, action_plan_id: uuid.UUID, request: UpdateActionPlanRequest, actor: User
    ) -> AssessmentActionPlan:
        async with unit_of_work(self.db, "update action plan"):
            plan = await self._get_plan(action_plan_id)
            response, assessment = await self._load_context(plan.assessment_response_id)
            await self._authorize(actor, response, assessment)

            for field, value in request.model_dump(exclude_unset=True).items():
                setattr(plan, field, value)
            await self.db.flush()

        logger.info(f"[ACTION_PLAN] Action plan {action_plan_id} updated")
        return plan

    async def delete_action_plan(self, action_plan_id: uuid.UUID, actor: User) -> None:
        async with unit_of_work(self.db, "delete action plan"):
            plan = await self._get_plan(action_plan_id)
            response, assessment = await self._load_context(plan.assessment_response_id)
            await self._authorize(actor, response, assessment)
            plan.deleted_at = utcnow()
            await self.db.flush()

        logger.info(f"[ACTION_PLAN] Action plan {action_plan_id} deleted")
