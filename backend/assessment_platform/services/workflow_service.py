"""
Workflow orchestrator for assessments and their responses.

Every status change of an Assessment or an AssessmentResponse goes through
``WorkflowService.transition``. One call is one transaction:

1. Load the entity under a row lock (fresh from the database)
2. Check the (current, target) pair against the entity's transition table
3. Apply entity-specific business rules (assessments only)
4. Run the authorization guard for the acting principal
5. Persist the new status (optimistic version check) and cascade
6. Append exactly one workflow log entry
7. Commit

Any failure rolls the whole call back: no status change, no cascade and no
log entry survive a rejected or failed transition.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from assessment_platform.core.exceptions import (
    ApplicationError,
    BusinessRuleViolationError,
    NotFoundError,
    ValidationError,
)
from assessment_platform.core.transactions import unit_of_work
from assessment_platform.models.assessment import (
    Assessment,
    AssessmentResponse,
    WorkflowLogEntry,
)
from assessment_platform.models.enums import (
    AssessmentResponseStatus,
    AssessmentStatus,
    LoggableKind,
)
from assessment_platform.models.organization import User
from assessment_platform.repositories.assessment import (
    AssessmentRepository,
    AssessmentResponseRepository,
    WorkflowLogRepository,
)
from assessment_platform.services.state_machines import (
    ASSESSMENT_CASCADES,
    STATE_MACHINES,
    StateMachine,
)
from assessment_platform.services.workflow_policies import (
    AssessmentTransitionPolicy,
    ResponseTransitionPolicy,
)

logger = logging.getLogger(__name__)

WorkflowEntity = Union[Assessment, AssessmentResponse]


@dataclass
class TransitionResult:
    """Outcome of a successful transition."""

    entity: WorkflowEntity
    log_entry: WorkflowLogEntry
    from_status: str
    to_status: str
    cascaded: int = 0


def parse_kind(kind: Union[str, LoggableKind]) -> LoggableKind:
    if isinstance(kind, LoggableKind):
        return kind
    try:
        return LoggableKind(kind)
    except ValueError:
        raise ValidationError(
            f"Unknown entity kind '{kind}'. Expected one of: {', '.join(LoggableKind.values())}",
            field="kind",
        )


class WorkflowService:
    """Single entry point for assessment and response status changes."""

    def __init__(
        self,
        db: AsyncSession,
        assessment_policy: Optional[AssessmentTransitionPolicy] = None,
        response_policy: Optional[ResponseTransitionPolicy] = None,
    ):
        self.db = db
        self.assessments = AssessmentRepository(db)
        self.responses = AssessmentResponseRepository(db)
        self.logs = WorkflowLogRepository(db)
        self.assessment_policy = assessment_policy or AssessmentTransitionPolicy()
        self.response_policy = response_policy or ResponseTransitionPolicy()

        self._handlers: Dict[
            LoggableKind,
            Callable[..., Awaitable[TransitionResult]],
        ] = {
            LoggableKind.ASSESSMENT: self._transition_assessment,
            LoggableKind.ASSESSMENT_RESPONSE: self._transition_response,
        }

    async def transition(
        self,
        kind: Union[str, LoggableKind],
        entity_id: uuid.UUID,
        target_status: Union[str, AssessmentStatus, AssessmentResponseStatus],
        actor: User,
        note: Optional[str] = None,
    ) -> TransitionResult:
        """
        Move an assessment or a response to ``target_status``.

        Raises IllegalTransitionError, BusinessRuleViolationError,
        ForbiddenTransitionError, NotFoundError, ConcurrencyConflictError or
        TransientStoreError. Nothing is written when any of them is raised.
        """
        kind = parse_kind(kind)
        machine = STATE_MACHINES[kind]
        handler = self._handlers[kind]
        raw_target = getattr(target_status, "value", target_status)

        try:
            async with unit_of_work(self.db, f"{kind.value} {entity_id} transition"):
                result = await handler(machine, entity_id, target_status, actor, note)
        except ApplicationError as e:
            logger.warning(
                f"[WORKFLOW] {kind.value} {entity_id} → {raw_target} rejected for user {actor.id} "
                f"({e.error_code}): {e.message}"
            )
            raise

        logger.info(
            f"[WORKFLOW] {kind.value} {entity_id}: {result.from_status} → {result.to_status} "
            f"by user {actor.id}"
            + (f", {result.cascaded} response(s) reset" if result.cascaded else "")
        )
        return result

    async def available_transitions(
        self,
        kind: Union[str, LoggableKind],
        entity_id: uuid.UUID,
        actor: User,
    ) -> List[str]:
        """Targets the actor may request right now: table-legal and allowed by the guard."""
        kind = parse_kind(kind)
        machine = STATE_MACHINES[kind]

        if kind == LoggableKind.ASSESSMENT:
            assessment = await self._get_assessment(entity_id)
            current = machine.parse(assessment.status)
            return [
                target.value
                for target in machine.allowed_targets(current)
                if not self._blocked_by_policy(current, target)
                and self.assessment_policy.is_allowed(actor, assessment, current, target)
            ]

        response, assessment = await self._get_response_with_assessment(entity_id)
        current = machine.parse(response.status)
        return [
            target.value
            for target in machine.allowed_targets(current)
            if self.response_policy.is_allowed(actor, response, assessment, current, target)
        ]

    # ============================================================================
    # PER-KIND HANDLERS
    # ============================================================================

    async def _transition_assessment(
        self,
        machine: StateMachine,
        assessment_id: uuid.UUID,
        target_status,
        actor: User,
        note: Optional[str],
    ) -> TransitionResult:
        assessment = await self.assessments.get_for_update(assessment_id)
        if not assessment or assessment.is_deleted:
            raise NotFoundError(f"Assessment {assessment_id} not found")

        current, target = machine.ensure_transition(assessment.status, target_status)
        await self._check_assessment_rules(assessment, current, target)
        self.assessment_policy.authorize(actor, assessment, current, target)

        assessment.status = target.value
        await self.db.flush()

        cascaded = 0
        cascade_status = ASSESSMENT_CASCADES.get(target)
        if cascade_status is not None:
            cascaded = await self.responses.set_status_for_assessment(assessment.id, cascade_status)

        entry = await self.logs.append(
            LoggableKind.ASSESSMENT,
            assessment.id,
            from_status=current.value,
            to_status=target.value,
            user_id=actor.id,
            note=note,
        )
        return TransitionResult(
            entity=assessment,
            log_entry=entry,
            from_status=current.value,
            to_status=target.value,
            cascaded=cascaded,
        )

    async def _transition_response(
        self,
        machine: StateMachine,
        response_id: uuid.UUID,
        target_status,
        actor: User,
        note: Optional[str],
    ) -> TransitionResult:
        response = await self.responses.get_for_update(response_id)
        if not response:
            raise NotFoundError(f"Assessment response {response_id} not found")
        assessment = await self.assessments.get_active(response.assessment_id)
        if not assessment:
            raise NotFoundError(f"Assessment response {response_id} not found")

        current, target = machine.ensure_transition(response.status, target_status)
        self.response_policy.authorize(actor, response, assessment, current, target)

        response.status = target.value
        response.updated_by = actor.id
        await self.db.flush()

        entry = await self.logs.append(
            LoggableKind.ASSESSMENT_RESPONSE,
            response.id,
            from_status=current.value,
            to_status=target.value,
            user_id=actor.id,
            note=note,
        )
        return TransitionResult(
            entity=response,
            log_entry=entry,
            from_status=current.value,
            to_status=target.value,
        )

    # ============================================================================
    # BUSINESS RULES
    # ============================================================================

    @staticmethod
    def _blocked_by_policy(current: AssessmentStatus, target: AssessmentStatus) -> bool:
        return current == AssessmentStatus.DRAFT and target == AssessmentStatus.CANCELLED

    async def _check_assessment_rules(
        self,
        assessment: Assessment,
        current: AssessmentStatus,
        target: AssessmentStatus,
    ) -> None:
        if self._blocked_by_policy(current, target):
            raise BusinessRuleViolationError(
                "Draft assessments cannot be cancelled.",
                details={"from_status": current.value, "to_status": target.value},
            )

        if target == AssessmentStatus.PENDING_REVIEW:
            # Locks the rows it counts so no response can leave 'reviewed' before commit
            statuses = await self.responses.lock_statuses(assessment.id)
            unreviewed = sum(
                1 for status in statuses.values()
                if status != AssessmentResponseStatus.REVIEWED.value
            )
            if unreviewed > 0:
                raise BusinessRuleViolationError(
                    f"Cannot submit assessment. {unreviewed} requirement(s) are not yet reviewed.",
                    details={"unreviewed_count": unreviewed, "total_count": len(statuses)},
                )

    # ============================================================================
    # LOOKUPS
    # ============================================================================

    async def _get_assessment(self, assessment_id: uuid.UUID) -> Assessment:
        assessment = await self.assessments.get_active(assessment_id)
        if not assessment:
            raise NotFoundError(f"Assessment {assessment_id} not found")
        return assessment

    async def _get_response_with_assessment(self, response_id: uuid.UUID):
        response = await self.responses.get_by_id(response_id)
        if not response:
            raise NotFoundError(f"Assessment response {response_id} not found")
        assessment = await self._get_assessment(response.assessment_id)
        return response, assessment
