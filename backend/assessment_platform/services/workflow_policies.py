"""
Authorization rules for the assessment workflow.

Transition guards are tables: the assessment guard is keyed by target status,
the response guard by (from, to) pair through a named rule so each response
action can be restricted on its own. Everything is expressed through the
principal's four primitives: is_system_admin, is_organization_admin,
has_organization_access and has_permission.

The remaining functions are read-only gates other features consult before
mutating something that hangs off an assessment or a response.
"""
import logging
from typing import Callable, Dict, Optional, Tuple

from assessment_platform.core.exceptions import ForbiddenTransitionError
from assessment_platform.models.assessment import Assessment, AssessmentResponse
from assessment_platform.models.enums import AssessmentResponseStatus, AssessmentStatus
from assessment_platform.models.organization import REVIEW_ASSESSMENTS, User

logger = logging.getLogger(__name__)

A = AssessmentStatus
R = AssessmentResponseStatus

AssessmentGuard = Callable[[User, Assessment], bool]


def _organization_access(actor: User, assessment: Assessment) -> bool:
    return actor.has_organization_access(assessment.organization_id)


def _organization_admin(actor: User, assessment: Assessment) -> bool:
    return actor.is_organization_admin() and _organization_access(actor, assessment)


def _system_admin_only(actor: User, assessment: Assessment) -> bool:
    return actor.is_system_admin()


ASSESSMENT_TRANSITION_GUARDS: Dict[AssessmentStatus, AssessmentGuard] = {
    A.ACTIVE: _organization_admin,
    A.PENDING_REVIEW: _organization_access,
    A.REVIEWED: _organization_admin,
    A.PENDING_FINISH: _organization_admin,
    A.FINISHED: _system_admin_only,
    A.REJECTED: _organization_admin,
    A.CANCELLED: _system_admin_only,
}


class AssessmentTransitionPolicy:
    """Who may move an assessment into a given status."""

    def __init__(self, guards: Optional[Dict[AssessmentStatus, AssessmentGuard]] = None):
        self.guards = dict(ASSESSMENT_TRANSITION_GUARDS if guards is None else guards)

    def is_allowed(
        self,
        actor: User,
        assessment: Assessment,
        current: AssessmentStatus,
        target: AssessmentStatus,
    ) -> bool:
        if actor.is_system_admin():
            return True
        guard = self.guards.get(target)
        if guard is None:
            return False
        return guard(actor, assessment)

    def authorize(
        self,
        actor: User,
        assessment: Assessment,
        current: AssessmentStatus,
        target: AssessmentStatus,
    ) -> None:
        if not self.is_allowed(actor, assessment, current, target):
            logger.warning(
                f"[WORKFLOW_POLICY] User {actor.id} denied assessment {assessment.id}: "
                f"{current.value} → {target.value}"
            )
            raise ForbiddenTransitionError(
                f"You are not allowed to move this assessment from '{current.value}' to '{target.value}'.",
                details={"from_status": current.value, "to_status": target.value},
            )


# (from, to) → rule name; the rule name picks the method on the policy
RESPONSE_TRANSITION_RULES: Dict[Tuple[AssessmentResponseStatus, AssessmentResponseStatus], str] = {
    (R.ACTIVE, R.PENDING_REVIEW): "submit_for_review",
    (R.PENDING_REVIEW, R.REVIEWED): "approve_review",
    (R.PENDING_REVIEW, R.ACTIVE): "return_to_active",
    (R.REVIEWED, R.ACTIVE): "reopen_reviewed",
}


class ResponseTransitionPolicy:
    """
    Who may move a single response.

    Subclass and override one of the ``can_*`` methods to tighten a single
    action, e.g. restricting ``can_reopen_reviewed`` to organization admins.
    """

    def __init__(self, rules: Optional[Dict[Tuple[AssessmentResponseStatus, AssessmentResponseStatus], str]] = None):
        self.rules = dict(RESPONSE_TRANSITION_RULES if rules is None else rules)

    def can_submit_for_review(self, actor: User, response: AssessmentResponse, assessment: Assessment) -> bool:
        return _organization_access(actor, assessment)

    def can_approve_review(self, actor: User, response: AssessmentResponse, assessment: Assessment) -> bool:
        return actor.has_permission(REVIEW_ASSESSMENTS) and _organization_access(actor, assessment)

    def can_return_to_active(self, actor: User, response: AssessmentResponse, assessment: Assessment) -> bool:
        return _organization_access(actor, assessment)

    def can_reopen_reviewed(self, actor: User, response: AssessmentResponse, assessment: Assessment) -> bool:
        return _organization_access(actor, assessment)

    def rule_for(self, current: AssessmentResponseStatus, target: AssessmentResponseStatus) -> Optional[str]:
        return self.rules.get((current, target))

    def is_allowed(
        self,
        actor: User,
        response: AssessmentResponse,
        assessment: Assessment,
        current: AssessmentResponseStatus,
        target: AssessmentResponseStatus,
    ) -> bool:
        # Requirements of a finished assessment only move for reviewers
        if assessment.status == A.FINISHED.value and not actor.has_permission(REVIEW_ASSESSMENTS):
            return False
        rule = self.rule_for(current, target)
        if rule is None:
            return False
        check = getattr(self, f"can_{rule}")
        return check(actor, response, assessment)

    def authorize(
        self,
        actor: User,
        response: AssessmentResponse,
        assessment: Assessment,
        current: AssessmentResponseStatus,
        target: AssessmentResponseStatus,
    ) -> None:
        if not self.is_allowed(actor, response, assessment, current, target):
            logger.warning(
                f"[WORKFLOW_POLICY] User {actor.id} denied response {response.id}: "
                f"{current.value} → {target.value}"
            )
            raise ForbiddenTransitionError(
                f"You are not allowed to move this requirement from '{current.value}' to '{target.value}'.",
                details={
                    "from_status": current.value,
                    "to_status": target.value,
                    "rule": self.rule_for(current, target),
                },
            )


# ============================================================================
# READ-ONLY GATES
# ============================================================================

# Assessment statuses in which response content stays editable
RESPONSE_EDITABLE_ASSESSMENT_STATUSES = frozenset({
    A.DRAFT.value,
    A.ACTIVE.value,
    A.REJECTED.value,
    A.CANCELLED.value,
    A.PENDING_FINISH.value,
})

# Assessment statuses in which action plans and attachments can be managed
RESPONSE_ARTIFACT_ASSESSMENT_STATUSES = frozenset({
    A.ACTIVE.value,
    A.REJECTED.value,
})

ASSESSMENT_IMMUTABLE_STATUSES = frozenset({A.FINISHED.value, A.CANCELLED.value})
ASSESSMENT_DELETABLE_STATUSES = frozenset({A.DRAFT.value, A.ACTIVE.value})


def can_create_assessment(actor: User, organization_id) -> bool:
    return actor.has_permission(REVIEW_ASSESSMENTS) and actor.has_organization_access(organization_id)


def can_view_assessment(actor: User, assessment: Assessment) -> bool:
    return _organization_access(actor, assessment)


def can_edit_assessment(actor: User, assessment: Assessment) -> bool:
    """Name, period and dates; never once the assessment is finished or cancelled."""
    if assessment.status in ASSESSMENT_IMMUTABLE_STATUSES:
        return False
    return actor.has_permission(REVIEW_ASSESSMENTS) and _organization_access(actor, assessment)


def can_delete_assessment(actor: User, assessment: Assessment) -> bool:
    if assessment.status not in ASSESSMENT_DELETABLE_STATUSES:
        return False
    return actor.has_permission(REVIEW_ASSESSMENTS) and _organization_access(actor, assessment)


def can_edit_response(actor: User, response: AssessmentResponse, assessment: Assessment) -> bool:
    """Comments and compliance classification; locked while under review."""
    if response.status != R.ACTIVE.value:
        return False
    if assessment.status not in RESPONSE_EDITABLE_ASSESSMENT_STATUSES:
        return False
    return _organization_access(actor, assessment)


def can_manage_action_plan(actor: User, response: AssessmentResponse, assessment: Assessment) -> bool:
    if response.status != R.ACTIVE.value:
        return False
    if assessment.status not in RESPONSE_ARTIFACT_ASSESSMENT_STATUSES:
        return False
    return _organization_access(actor, assessment)


def can_manage_attachment(actor: User, response: AssessmentResponse, assessment: Assessment) -> bool:
    return can_manage_action_plan(actor, response, assessment)
