"""Authorization guards and read-only gates, evaluated without a database."""

import uuid

import pytest

from assessment_platform.core.exceptions import ForbiddenTransitionError
from assessment_platform.models.assessment import Assessment, AssessmentResponse
from assessment_platform.models.enums import AssessmentResponseStatus, AssessmentStatus
from assessment_platform.models.organization import (
    ORGANIZATION_ADMIN_ROLE,
    ORGANIZATION_MEMBER_ROLE,
    REVIEW_ASSESSMENTS,
    SUPER_ADMIN_ROLE,
    User,
)
from assessment_platform.services import workflow_policies as policies
from assessment_platform.services.state_machines import ASSESSMENT_TRANSITIONS
from assessment_platform.services.workflow_policies import (
    AssessmentTransitionPolicy,
    ResponseTransitionPolicy,
)

A = AssessmentStatus
R = AssessmentResponseStatus

ORG_ID = uuid.uuid4()
OTHER_ORG_ID = uuid.uuid4()

SYSTEM_ADMIN = User(id="sa", roles=[SUPER_ADMIN_ROLE])
ORG_ADMIN = User(id="oa", roles=[ORGANIZATION_ADMIN_ROLE], organization_id=str(ORG_ID))
MEMBER = User(id="om", roles=[ORGANIZATION_MEMBER_ROLE], organization_id=str(ORG_ID))
FOREIGN_ADMIN = User(id="fa", roles=[ORGANIZATION_ADMIN_ROLE], organization_id=str(OTHER_ORG_ID))
FOREIGN_MEMBER = User(id="fm", roles=[ORGANIZATION_MEMBER_ROLE], organization_id=str(OTHER_ORG_ID))


def make_assessment(status: AssessmentStatus) -> Assessment:
    return Assessment(id=uuid.uuid4(), organization_id=ORG_ID, status=status.value)


def make_response(status: AssessmentResponseStatus) -> AssessmentResponse:
    return AssessmentResponse(id=uuid.uuid4(), status=status.value)


# target → (system admin, org admin, member, foreign admin)
ASSESSMENT_GUARD_MATRIX = {
    A.ACTIVE: (True, True, False, False),
    A.PENDING_REVIEW: (True, True, True, False),
    A.REVIEWED: (True, True, False, False),
    A.PENDING_FINISH: (True, True, False, False),
    A.FINISHED: (True, False, False, False),
    A.REJECTED: (True, True, False, False),
    A.CANCELLED: (True, False, False, False),
}


@pytest.mark.parametrize("target,expected", list(ASSESSMENT_GUARD_MATRIX.items()))
def test_assessment_guard_matrix(target, expected):
    policy = AssessmentTransitionPolicy()
    actors = (SYSTEM_ADMIN, ORG_ADMIN, MEMBER, FOREIGN_ADMIN)

    for actor, allowed in zip(actors, expected):
        for current, targets in ASSESSMENT_TRANSITIONS.items():
            if target not in targets:
                continue
            assessment = make_assessment(current)
            assert policy.is_allowed(actor, assessment, current, target) is allowed, (
                f"{actor.id}: {current.value} → {target.value}"
            )


def test_system_admin_is_never_denied():
    policy = AssessmentTransitionPolicy()
    for current, targets in ASSESSMENT_TRANSITIONS.items():
        for target in targets:
            policy.authorize(SYSTEM_ADMIN, make_assessment(current), current, target)


@pytest.mark.parametrize("actor", [ORG_ADMIN, MEMBER, FOREIGN_ADMIN])
def test_non_admin_cannot_finish(actor):
    policy = AssessmentTransitionPolicy()
    with pytest.raises(ForbiddenTransitionError) as exc_info:
        policy.authorize(actor, make_assessment(A.PENDING_FINISH), A.PENDING_FINISH, A.FINISHED)
    assert exc_info.value.error_code == "authorizationError"
    assert exc_info.value.details == {"from_status": "pending_finish", "to_status": "finished"}


def test_assessment_guards_are_replaceable():
    guards = dict(policies.ASSESSMENT_TRANSITION_GUARDS)
    guards[A.PENDING_REVIEW] = lambda actor, assessment: actor.is_organization_admin()
    policy = AssessmentTransitionPolicy(guards)

    assessment = make_assessment(A.ACTIVE)
    assert policy.is_allowed(ORG_ADMIN, assessment, A.ACTIVE, A.PENDING_REVIEW)
    assert not policy.is_allowed(MEMBER, assessment, A.ACTIVE, A.PENDING_REVIEW)


def test_target_without_guard_is_denied_for_non_admins():
    policy = AssessmentTransitionPolicy(guards={})
    assessment = make_assessment(A.ACTIVE)
    assert not policy.is_allowed(ORG_ADMIN, assessment, A.ACTIVE, A.PENDING_REVIEW)
    assert policy.is_allowed(SYSTEM_ADMIN, assessment, A.ACTIVE, A.PENDING_REVIEW)


# (from, to) → (system admin, org admin, member, foreign member)
RESPONSE_GUARD_MATRIX = {
    (R.ACTIVE, R.PENDING_REVIEW): (True, True, True, False),
    (R.PENDING_REVIEW, R.REVIEWED): (True, True, False, False),
    (R.PENDING_REVIEW, R.ACTIVE): (True, True, True, False),
    (R.REVIEWED, R.ACTIVE): (True, True, True, False),
}


@pytest.mark.parametrize("pair,expected", list(RESPONSE_GUARD_MATRIX.items()))
def test_response_guard_matrix(pair, expected):
    current, target = pair
    policy = ResponseTransitionPolicy()
    assessment = make_assessment(A.ACTIVE)
    response = make_response(current)

    for actor, allowed in zip((SYSTEM_ADMIN, ORG_ADMIN, MEMBER, FOREIGN_MEMBER), expected):
        assert policy.is_allowed(actor, response, assessment, current, target) is allowed


def test_member_with_review_permission_can_approve():
    reviewer = User(
        id="rv",
        roles=[ORGANIZATION_MEMBER_ROLE],
        permissions=[REVIEW_ASSESSMENTS],
        organization_id=str(ORG_ID),
    )
    policy = ResponseTransitionPolicy()
    assert policy.is_allowed(
        reviewer, make_response(R.PENDING_REVIEW), make_assessment(A.ACTIVE), R.PENDING_REVIEW, R.REVIEWED
    )


def test_reopen_rule_can_be_restricted_independently():
    class StrictReopenPolicy(ResponseTransitionPolicy):
        def can_reopen_reviewed(self, actor, response, assessment):
            return actor.is_organization_admin() and super().can_reopen_reviewed(actor, response, assessment)

    policy = StrictReopenPolicy()
    assessment = make_assessment(A.ACTIVE)

    with pytest.raises(ForbiddenTransitionError) as exc_info:
        policy.authorize(MEMBER, make_response(R.REVIEWED), assessment, R.REVIEWED, R.ACTIVE)
    assert exc_info.value.details["rule"] == "reopen_reviewed"

    # pending_review → active is a different rule and stays open to members
    policy.authorize(MEMBER, make_response(R.PENDING_REVIEW), assessment, R.PENDING_REVIEW, R.ACTIVE)
    policy.authorize(ORG_ADMIN, make_response(R.REVIEWED), assessment, R.REVIEWED, R.ACTIVE)


def test_finished_assessment_responses_move_only_for_reviewers():
    policy = ResponseTransitionPolicy()
    finished = make_assessment(A.FINISHED)

    assert not policy.is_allowed(MEMBER, make_response(R.REVIEWED), finished, R.REVIEWED, R.ACTIVE)
    assert not policy.is_allowed(MEMBER, make_response(R.ACTIVE), finished, R.ACTIVE, R.PENDING_REVIEW)
    assert policy.is_allowed(ORG_ADMIN, make_response(R.REVIEWED), finished, R.REVIEWED, R.ACTIVE)
    assert policy.is_allowed(SYSTEM_ADMIN, make_response(R.REVIEWED), finished, R.REVIEWED, R.ACTIVE)

    with pytest.raises(ForbiddenTransitionError):
        policy.authorize(MEMBER, make_response(R.REVIEWED), finished, R.REVIEWED, R.ACTIVE)


# ============================================================================
# GATES
# ============================================================================


@pytest.mark.parametrize(
    "assessment_status,expected",
    [
        (A.DRAFT, True),
        (A.ACTIVE, True),
        (A.REJECTED, True),
        (A.CANCELLED, True),
        (A.PENDING_FINISH, True),
        (A.PENDING_REVIEW, False),
        (A.REVIEWED, False),
        (A.FINISHED, False),
    ],
)
def test_can_edit_response_depends_on_assessment_status(assessment_status, expected):
    assessment = make_assessment(assessment_status)
    assert policies.can_edit_response(MEMBER, make_response(R.ACTIVE), assessment) is expected


@pytest.mark.parametrize("response_status", [R.PENDING_REVIEW, R.REVIEWED])
def test_response_under_review_is_locked(response_status):
    assessment = make_assessment(A.ACTIVE)
    assert not policies.can_edit_response(SYSTEM_ADMIN, make_response(response_status), assessment)


def test_can_edit_response_requires_organization_access():
    assessment = make_assessment(A.ACTIVE)
    assert not policies.can_edit_response(FOREIGN_MEMBER, make_response(R.ACTIVE), assessment)


@pytest.mark.parametrize(
    "assessment_status,response_status,expected",
    [
        (A.ACTIVE, R.ACTIVE, True),
        (A.REJECTED, R.ACTIVE, True),
        (A.DRAFT, R.ACTIVE, False),
        (A.PENDING_FINISH, R.ACTIVE, False),
        (A.ACTIVE, R.PENDING_REVIEW, False),
        (A.ACTIVE, R.REVIEWED, False),
    ],
)
def test_action_plan_and_attachment_gates(assessment_status, response_status, expected):
    assessment = make_assessment(assessment_status)
    response = make_response(response_status)
    assert policies.can_manage_action_plan(MEMBER, response, assessment) is expected
    assert policies.can_manage_attachment(MEMBER, response, assessment) is expected


def test_create_requires_review_permission_and_access():
    assert policies.can_create_assessment(ORG_ADMIN, ORG_ID)
    assert policies.can_create_assessment(SYSTEM_ADMIN, OTHER_ORG_ID)
    assert not policies.can_create_assessment(MEMBER, ORG_ID)
    assert not policies.can_create_assessment(FOREIGN_ADMIN, ORG_ID)


def test_view_requires_organization_access():
    assessment = make_assessment(A.FINISHED)
    assert policies.can_view_assessment(MEMBER, assessment)
    assert not policies.can_view_assessment(FOREIGN_ADMIN, assessment)


@pytest.mark.parametrize("status", list(A))
def test_edit_and_delete_gates(status):
    assessment = make_assessment(status)
    assert policies.can_edit_assessment(ORG_ADMIN, assessment) is (status not in (A.FINISHED, A.CANCELLED))
    assert policies.can_delete_assessment(ORG_ADMIN, assessment) is (status in (A.DRAFT, A.ACTIVE))
    assert not policies.can_edit_assessment(MEMBER, assessment)
    assert not policies.can_delete_assessment(MEMBER, assessment)
