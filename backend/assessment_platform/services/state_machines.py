"""
Transition tables for the assessment and response workflows.

Both machines are plain data: a mapping from each status to the set of
statuses it may move to. The orchestrator resolves the machine by entity kind
and asks it whether a (current, target) pair is legal; authorization and
cross-entity rules live elsewhere.

Assessment workflow:
    draft → active → pending_review → reviewed → pending_finish → finished

    Revert paths: pending_review/reviewed/pending_finish → active,
    pending_finish → reviewed. Alternatives: rejected, cancelled.

Response workflow:
    active → pending_review → reviewed

    pending_review → active (reviewer returns it), reviewed → active
    (error found after approval).
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, Optional, Type

from assessment_platform.core.exceptions import IllegalTransitionError
from assessment_platform.models.enums import (
    AssessmentResponseStatus,
    AssessmentStatus,
    LoggableKind,
)

A = AssessmentStatus
R = AssessmentResponseStatus

ASSESSMENT_TRANSITIONS: Dict[AssessmentStatus, FrozenSet[AssessmentStatus]] = {
    A.DRAFT: frozenset({A.ACTIVE, A.CANCELLED}),
    A.ACTIVE: frozenset({A.PENDING_REVIEW}),
    A.PENDING_REVIEW: frozenset({A.REVIEWED, A.ACTIVE, A.REJECTED}),
    A.REVIEWED: frozenset({A.PENDING_FINISH, A.ACTIVE, A.REJECTED}),
    A.PENDING_FINISH: frozenset({A.FINISHED, A.ACTIVE, A.REJECTED, A.REVIEWED}),
    A.REJECTED: frozenset({A.ACTIVE}),
    A.CANCELLED: frozenset({A.ACTIVE}),
    A.FINISHED: frozenset({A.CANCELLED}),
}

RESPONSE_TRANSITIONS: Dict[AssessmentResponseStatus, FrozenSet[AssessmentResponseStatus]] = {
    R.ACTIVE: frozenset({R.PENDING_REVIEW}),
    R.PENDING_REVIEW: frozenset({R.REVIEWED, R.ACTIVE}),
    R.REVIEWED: frozenset({R.ACTIVE}),
}

# Assessment target status → status forced onto every child response.
# Targets not listed here leave responses untouched.
ASSESSMENT_CASCADES: Dict[AssessmentStatus, AssessmentResponseStatus] = {
    A.ACTIVE: R.ACTIVE,
}


@dataclass(frozen=True)
class StateMachine:
    """A closed status set with its transition table."""

    kind: LoggableKind
    status_type: Type[Enum]
    initial: Enum
    transitions: Mapping[Enum, FrozenSet[Enum]]

    def parse(self, value) -> Optional[Enum]:
        """Coerce a raw value into this machine's status type, None if it is not one."""
        raw = value.value if isinstance(value, Enum) else value
        try:
            return self.status_type(raw)
        except ValueError:
            return None

    def allowed_targets(self, current: Enum) -> List[Enum]:
        """Targets reachable from current, in declaration order of the status type."""
        targets = self.transitions.get(current, frozenset())
        return [status for status in self.status_type if status in targets]

    def can_transition(self, current: Enum, target: Enum) -> bool:
        return target in self.transitions.get(current, frozenset())

    def ensure_transition(self, current_value, target_value) -> tuple:
        """
        Validate (current, target) against the table.

        Returns the pair as enum members. Raises IllegalTransitionError when
        the target is unknown to this machine or not reachable from current.
        """
        current = self.parse(current_value)
        if current is None:
            raise IllegalTransitionError(self.kind.value, str(current_value), str(target_value), [])

        target = self.parse(target_value)
        allowed = [status.value for status in self.allowed_targets(current)]
        if target is None or not self.can_transition(current, target):
            raw_target = target_value.value if isinstance(target_value, Enum) else target_value
            raise IllegalTransitionError(self.kind.value, current.value, str(raw_target), allowed)

        return current, target


ASSESSMENT_MACHINE = StateMachine(
    kind=LoggableKind.ASSESSMENT,
    status_type=AssessmentStatus,
    initial=A.DRAFT,
    transitions=ASSESSMENT_TRANSITIONS,
)

RESPONSE_MACHINE = StateMachine(
    kind=LoggableKind.ASSESSMENT_RESPONSE,
    status_type=AssessmentResponseStatus,
    initial=R.ACTIVE,
    transitions=RESPONSE_TRANSITIONS,
)

STATE_MACHINES: Dict[LoggableKind, StateMachine] = {
    LoggableKind.ASSESSMENT: ASSESSMENT_MACHINE,
    LoggableKind.ASSESSMENT_RESPONSE: RESPONSE_MACHINE,
}
