"""Transition tables of both workflows."""

import itertools

import pytest

from assessment_platform.core.exceptions import IllegalTransitionError
from assessment_platform.models.enums import AssessmentResponseStatus, AssessmentStatus, LoggableKind
from assessment_platform.services.state_machines import (
    ASSESSMENT_CASCADES,
    ASSESSMENT_MACHINE,
    RESPONSE_MACHINE,
    STATE_MACHINES,
)

A = AssessmentStatus
R = AssessmentResponseStatus

EXPECTED_ASSESSMENT_TABLE = {
    "draft": {"active", "cancelled"},
    "active": {"pending_review"},
    "pending_review": {"reviewed", "active", "rejected"},
    "reviewed": {"pending_finish", "active", "rejected"},
    "pending_finish": {"finished", "active", "rejected", "reviewed"},
    "rejected": {"active"},
    "cancelled": {"active"},
    "finished": {"cancelled"},
}

EXPECTED_RESPONSE_TABLE = {
    "active": {"pending_review"},
    "pending_review": {"reviewed", "active"},
    "reviewed": {"active"},
}


@pytest.mark.parametrize("current,target", list(itertools.product(A.values(), A.values())))
def test_assessment_table_membership(current, target):
    expected = target in EXPECTED_ASSESSMENT_TABLE[current]
    assert ASSESSMENT_MACHINE.can_transition(A(current), A(target)) is expected

    if expected:
        assert ASSESSMENT_MACHINE.ensure_transition(current, target) == (A(current), A(target))
    else:
        with pytest.raises(IllegalTransitionError) as exc_info:
            ASSESSMENT_MACHINE.ensure_transition(current, target)
        assert exc_info.value.details["from_status"] == current
        assert exc_info.value.details["to_status"] == target


@pytest.mark.parametrize("current,target", list(itertools.product(R.values(), R.values())))
def test_response_table_membership(current, target):
    expected = target in EXPECTED_RESPONSE_TABLE[current]
    assert RESPONSE_MACHINE.can_transition(R(current), R(target)) is expected


def test_every_status_has_an_exit():
    for status in A:
        assert ASSESSMENT_MACHINE.allowed_targets(status)
    for status in R:
        assert RESPONSE_MACHINE.allowed_targets(status)


def test_allowed_targets_follow_enum_order():
    assert [s.value for s in ASSESSMENT_MACHINE.allowed_targets(A.PENDING_FINISH)] == [
        "active", "reviewed", "finished", "rejected",
    ]


def test_unknown_target_is_illegal():
    with pytest.raises(IllegalTransitionError) as exc_info:
        ASSESSMENT_MACHINE.ensure_transition("active", "archived")
    assert exc_info.value.details["allowed"] == ["pending_review"]
    assert "Cannot transition assessment from 'active' to 'archived'" in exc_info.value.message


def test_response_statuses_are_not_assessment_statuses():
    # 'rejected' exists for assessments only
    with pytest.raises(IllegalTransitionError):
        RESPONSE_MACHINE.ensure_transition("pending_review", "rejected")


def test_illegal_transition_error_code():
    with pytest.raises(IllegalTransitionError) as exc_info:
        RESPONSE_MACHINE.ensure_transition(R.ACTIVE, R.REVIEWED)
    assert exc_info.value.error_code == "illegalTransition"
    assert exc_info.value.retryable is False


def test_machines_are_dispatched_by_kind():
    assert STATE_MACHINES[LoggableKind.ASSESSMENT] is ASSESSMENT_MACHINE
    assert STATE_MACHINES[LoggableKind.ASSESSMENT_RESPONSE] is RESPONSE_MACHINE
    assert ASSESSMENT_MACHINE.initial == A.DRAFT
    assert RESPONSE_MACHINE.initial == R.ACTIVE


def test_only_active_cascades():
    assert ASSESSMENT_CASCADES == {A.ACTIVE: R.ACTIVE}
