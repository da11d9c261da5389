"""Assessment lifecycle: creation with response seeding, edits, soft deletion and history reads."""

import logging
import uuid
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession

from assessment_platform.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from assessment_platform.core.transactions import unit_of_work
from assessment_platform.models.assessment import (
    Assessment,
    AssessmentResponse,
    WorkflowLogEntry,
)
from assessment_platform.models.base import utcnow
from assessment_platform.models.enums import AssessmentStatus, LoggableKind
from assessment_platform.models.organization import User
from assessment_platform.repositories.assessment import (
    AssessmentRepository,
    AssessmentResponseRepository,
    WorkflowLogRepository,
)
from assessment_platform.schemas.assessment import (
    CreateAssessmentRequest,
    UpdateAssessmentRequest,
    UpdateResponseRequest,
)
from assessment_platform.services import workflow_policies as policies
from assessment_platform.services.requirement_catalog import (
    DatabaseRequirementCatalog,
    RequirementCatalog,
)
from assessment_platform.services.workflow_service import parse_kind

logger = logging.getLogger(__name__)


class AssessmentService:
    """
    Assessment service for everything except status changes.

    Status changes belong to WorkflowService; this service only writes the
    initial ``draft`` status and its creation log entry.
    """

    def __init__(self, db: AsyncSession, catalog: Optional[RequirementCatalog] = None):
        self.db = db
        self.assessment_repository = AssessmentRepository(db)
        self.response_repository = AssessmentResponseRepository(db)
        self.log_repository = WorkflowLogRepository(db)
        self.catalog = catalog or DatabaseRequirementCatalog(db)

    # ============================================================================
    # ASSESSMENT LIFECYCLE
    # ============================================================================

    async def create_assessment(self, request: CreateAssessmentRequest, actor: User) -> Assessment:
        """
        Create a draft assessment for an organization.

        Steps:
        1. Check the actor may create assessments for the organization
        2. Create the assessment in ``draft``
        3. Seed one ``active`` response per requirement of the standard
        4. Log the creation event
        5. Commit all of it together
        """
        if not policies.can_create_assessment(actor, request.organization_id):
            raise AuthorizationError(
                "You are not allowed to create assessments for this organization."
            )

        logger.info(
            f"[ASSESSMENT_SERVICE] Creating assessment '{request.name}' for organization "
            f"{request.organization_id} (standard {request.standard_id})"
        )

        async with unit_of_work(self.db, "create assessment"):
            requirement_ids = await self.catalog.requirement_ids(request.standard_id)

            assessment = await self.assessment_repository.create(
                organization_id=request.organization_id,
                standard_id=request.standard_id,
                name=request.name,
                period_value=request.period_value,
                start_date=request.start_date,
                end_date=request.end_date,
                status=AssessmentStatus.DRAFT.value,
                created_by=actor.id,
            )
            await self.response_repository.bulk_create(assessment.id, requirement_ids)
            await self.log_repository.append(
                LoggableKind.ASSESSMENT,
                assessment.id,
                from_status=None,
                to_status=AssessmentStatus.DRAFT.value,
                user_id=actor.id,
                note="Assessment created",
            )

        logger.info(
            f"[ASSESSMENT_SERVICE] Assessment {assessment.id} created with "
            f"{len(requirement_ids)} response(s)"
        )
        return assessment

    async def get_assessment(self, assessment_id: uuid.UUID, actor: Optional[User] = None) -> Assessment:
        assessment = await self.assessment_repository.get_active(assessment_id)
        if not assessment:
            raise NotFoundError(f"Assessment {assessment_id} not found")
        if actor is not None and not policies.can_view_assessment(actor, assessment):
            # Other tenants' assessments are indistinguishable from missing ones
            raise NotFoundError(f"Assessment {assessment_id} not found")
        return assessment

    async def list_assessments(
        self,
        organization_id: uuid.UUID,
        actor: User,
        status: Optional[AssessmentStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Assessment], int]:
        if not actor.has_organization_access(organization_id):
            raise AuthorizationError("You do not have access to this organization.")

        status_value = status.value if status else None
        assessments = await self.assessment_repository.get_by_organization(
            organization_id,
            status=status_value,
            limit=limit,
            offset=offset,
        )
        total = await self.assessment_repository.count_by_organization(organization_id, status=status_value)
        return assessments, total

    async def update_assessment(
        self, assessment_id: uuid.UUID, request: UpdateAssessmentRequest, actor: User
    ) -> Assessment:
        """Edit descriptive fields. Status is never touched here."""
        async with unit_of_work(self.db, "update assessment"):
            assessment = await self.assessment_repository.get_for_update(assessment_id)
            if not assessment or assessment.is_deleted:
                raise NotFoundError(f"Assessment {assessment_id} not found")
            if not policies.can_edit_assessment(actor, assessment):
                raise AuthorizationError(
                    f"Assessment in status '{assessment.status}' cannot be edited by this user."
                )

            changes = request.model_dump(exclude_unset=True)
            start = changes.get("start_date", assessment.start_date)
            end = changes.get("end_date", assessment.end_date)
            if start and end and end < start:
                raise ValidationError("end_date must not be before start_date", field="end_date")

            for field, value in changes.items():
                setattr(assessment, field, value)
            await self.db.flush()

        logger.info(f"[ASSESSMENT_SERVICE] Assessment {assessment_id} updated: {sorted(changes)}")
        return assessment

    async def delete_assessment(self, assessment_id: uuid.UUID, actor: User) -> None:
        """Soft delete; responses and the workflow log are kept."""
        async with unit_of_work(self.db, "delete assessment"):
            assessment = await self.assessment_repository.get_for_update(assessment_id)
            if not assessment or assessment.is_deleted:
                raise NotFoundError(f"Assessment {assessment_id} not found")
            if not policies.can_delete_assessment(actor, assessment):
                raise AuthorizationError(
                    f"Assessment in status '{assessment.status}' cannot be deleted by this user."
                )
            assessment.deleted_at = utcnow()
            await self.db.flush()

        logger.info(f"[ASSESSMENT_SERVICE] Assessment {assessment_id} deleted by user {actor.id}")

    # ============================================================================
    # RESPONSES
    # ============================================================================

    async def get_responses(self, assessment_id: uuid.UUID) -> List[AssessmentResponse]:
        return await self.response_repository.get_by_assessment(assessment_id)

    async def get_response_counts(self, assessment_id: uuid.UUID) -> Dict[str, int]:
        return await self.response_repository.count_by_status(assessment_id)

    async def get_response(self, response_id: uuid.UUID, actor: Optional[User] = None) -> AssessmentResponse:
        response = await self.response_repository.get_by_id(response_id)
        if not response:
            raise NotFoundError(f"Assessment response {response_id} not found")
        await self.get_assessment(response.assessment_id, actor)
        return response

    async def update_response(
        self, response_id: uuid.UUID, request: UpdateResponseRequest, actor: User
    ) -> AssessmentResponse:
        """Edit comments and compliance classification while the response is editable."""
        async with unit_of_work(self.db, "update response"):
            response = await self.response_repository.get_for_update(response_id)
            if not response:
                raise NotFoundError(f"Assessment response {response_id} not found")
            assessment = await self.assessment_repository.get_active(response.assessment_id)
            if not assessment:
                raise NotFoundError(f"Assessment response {response_id} not found")

            if not policies.can_edit_response(actor, response, assessment):
                raise AuthorizationError(
                    f"Requirement in status '{response.status}' of an assessment in status "
                    f"'{assessment.status}' cannot be edited.",
                    details={
                        "response_status": response.status,
                        "assessment_status": assessment.status,
                    },
                )

            changes = request.model_dump(exclude_unset=True)
            if "compliance_status" in changes and changes["compliance_status"] is not None:
                changes["compliance_status"] = changes["compliance_status"].value
            for field, value in changes.items():
                setattr(response, field, value)
            response.updated_by = actor.id
            await self.db.flush()

        logger.info(f"[ASSESSMENT_SERVICE] Response {response_id} updated: {sorted(changes)}")
        return response

    # ============================================================================
    # HISTORY
    # ============================================================================

    async def get_workflow_log(
        self,
        kind: Union[str, LoggableKind],
        entity_id: uuid.UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[WorkflowLogEntry], int]:
        """Log entries of one entity, most recent first, with the total count."""
        kind = parse_kind(kind)
        entries = await self.log_repository.get_for_entity(kind, entity_id, limit=limit, offset=offset)
        total = await self.log_repository.count_for_entity(kind, entity_id)
        return entries, total
