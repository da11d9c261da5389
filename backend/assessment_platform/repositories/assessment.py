"""Assessment repository for data access operations."""

import uuid
from typing import Dict, List, Optional

from sqlalchemy import and_, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_platform.core.exceptions import AuditLogImmutableError
from assessment_platform.models.assessment import (
    Assessment,
    AssessmentActionPlan,
    AssessmentResponse,
    WorkflowLogEntry,
)
from assessment_platform.models.enums import AssessmentResponseStatus, LoggableKind
from assessment_platform.repositories.base import BaseRepository

# Entity kind → model, for resolving the subject of a workflow log entry
LOGGABLE_MODELS = {
    LoggableKind.ASSESSMENT: Assessment,
    LoggableKind.ASSESSMENT_RESPONSE: AssessmentResponse,
}


class AssessmentRepository(BaseRepository[Assessment]):
    """Repository for assessment operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Assessment)

    async def get_active(self, assessment_id: uuid.UUID) -> Optional[Assessment]:
        """Get an assessment unless it has been soft deleted."""
        query = select(Assessment).where(
            and_(Assessment.id == assessment_id, Assessment.deleted_at.is_(None))
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_organization(
        self,
        organization_id: uuid.UUID,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Assessment]:
        """Get assessments for an organization with filtering."""
        query = select(Assessment).where(
            and_(
                Assessment.organization_id == organization_id,
                Assessment.deleted_at.is_(None),
            )
        )

        if status:
            query = query.where(Assessment.status == status)

        query = query.order_by(desc(Assessment.updated_at))

        if offset:
            query = query.offset(offset)

        if limit:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_by_organization(
        self, organization_id: uuid.UUID, status: Optional[str] = None
    ) -> int:
        """Count non-deleted assessments of an organization, with the listing's status filter."""
        query = select(func.count(Assessment.id)).where(
            and_(
                Assessment.organization_id == organization_id,
                Assessment.deleted_at.is_(None),
            )
        )
        if status:
            query = query.where(Assessment.status == status)
        result = await self.db.execute(query)
        return result.scalar() or 0


class AssessmentResponseRepository(BaseRepository[AssessmentResponse]):
    """Repository for per-requirement responses."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, AssessmentResponse)

    async def get_by_assessment(self, assessment_id: uuid.UUID) -> List[AssessmentResponse]:
        query = (
            select(AssessmentResponse)
            .where(AssessmentResponse.assessment_id == assessment_id)
            .order_by(AssessmentResponse.created_at, AssessmentResponse.id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def bulk_create(
        self, assessment_id: uuid.UUID, requirement_ids: List[uuid.UUID]
    ) -> List[AssessmentResponse]:
        """Create one active response per requirement."""
        responses = [
            AssessmentResponse(
                assessment_id=assessment_id,
                standard_requirement_id=requirement_id,
                status=AssessmentResponseStatus.ACTIVE.value,
            )
            for requirement_id in requirement_ids
        ]
        self.db.add_all(responses)
        await self.db.flush()
        return responses

    async def lock_statuses(self, assessment_id: uuid.UUID) -> Dict[uuid.UUID, str]:
        """
        Read the status of every response of an assessment under a row lock.

        Aggregates cannot be combined with FOR UPDATE, so the rows are fetched
        and counted by the caller.
        """
        query = (
            select(AssessmentResponse.id, AssessmentResponse.status)
            .where(AssessmentResponse.assessment_id == assessment_id)
            .with_for_update()
        )
        result = await self.db.execute(query)
        return {row.id: row.status for row in result.all()}

    async def count_by_status(self, assessment_id: uuid.UUID) -> Dict[str, int]:
        query = (
            select(AssessmentResponse.status, func.count(AssessmentResponse.id))
            .where(AssessmentResponse.assessment_id == assessment_id)
            .group_by(AssessmentResponse.status)
        )
        result = await self.db.execute(query)
        counts = {status.value: 0 for status in AssessmentResponseStatus}
        for status, count in result.all():
            counts[status] = count
        return counts

    async def set_status_for_assessment(
        self, assessment_id: uuid.UUID, status: AssessmentResponseStatus
    ) -> int:
        """Force every response of an assessment into one status; returns rows touched."""
        locked = await self.lock_statuses(assessment_id)
        if not locked:
            return 0

        stmt = (
            update(AssessmentResponse)
            .where(AssessmentResponse.assessment_id == assessment_id)
            .values(
                status=status.value,
                version=AssessmentResponse.version + 1,
            )
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(stmt)
        return len(locked)


class WorkflowLogRepository(BaseRepository[WorkflowLogEntry]):
    """Append-only access to the workflow log."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, WorkflowLogEntry)

    async def append(
        self,
        kind: LoggableKind,
        loggable_id: uuid.UUID,
        from_status: Optional[str],
        to_status: str,
        user_id: Optional[str],
        note: Optional[str] = None,
    ) -> WorkflowLogEntry:
        entry = WorkflowLogEntry(
            loggable_type=kind.value,
            loggable_id=loggable_id,
            from_status=from_status,
            to_status=to_status,
            note=note,
            user_id=user_id,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def get_for_entity(
        self,
        kind: LoggableKind,
        loggable_id: uuid.UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> List[WorkflowLogEntry]:
        """Log entries of one entity, most recent first."""
        query = (
            select(WorkflowLogEntry)
            .where(
                and_(
                    WorkflowLogEntry.loggable_type == kind.value,
                    WorkflowLogEntry.loggable_id == loggable_id,
                )
            )
            .order_by(desc(WorkflowLogEntry.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_for_entity(self, kind: LoggableKind, loggable_id: uuid.UUID) -> int:
        query = select(func.count(WorkflowLogEntry.id)).where(
            and_(
                WorkflowLogEntry.loggable_type == kind.value,
                WorkflowLogEntry.loggable_id == loggable_id,
            )
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def get_loggable(self, entry: WorkflowLogEntry):
        """The assessment or response an entry describes, None once it is gone."""
        model = LOGGABLE_MODELS[entry.loggable_kind]
        return await self.db.get(model, entry.loggable_id)

    async def update(self, id: uuid.UUID, **kwargs):
        raise AuditLogImmutableError(f"Workflow log entry {id} cannot be modified")

    async def delete(self, id: uuid.UUID):
        raise AuditLogImmutableError(f"Workflow log entry {id} cannot be deleted")


class ActionPlanRepository(BaseRepository[AssessmentActionPlan]):
    """Repository for action plans attached to responses."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, AssessmentActionPlan)

    async def get_by_response(self, response_id: uuid.UUID) -> List[AssessmentActionPlan]:
        query = (
            select(AssessmentActionPlan)
            .where(
                and_(
                    AssessmentActionPlan.assessment_response_id == response_id,
                    AssessmentActionPlan.deleted_at.is_(None),
                )
            )
            .order_by(AssessmentActionPlan.created_at)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())
