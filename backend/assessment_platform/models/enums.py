"""Closed value sets used by the workflow models."""
from enum import Enum
from typing import List


class AssessmentStatus(str, Enum):
    """
    Assessment (parent) workflow statuses.

    Flow: draft → active → pending_review → reviewed → pending_finish → finished
    Alternative paths: rejected, cancelled
    """

    DRAFT = "draft"
    ACTIVE = "active"
    PENDING_REVIEW = "pending_review"
    REVIEWED = "reviewed"
    PENDING_FINISH = "pending_finish"
    FINISHED = "finished"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class AssessmentResponseStatus(str, Enum):
    """
    Per-requirement response statuses.

    Flow: active → pending_review → reviewed. Responses have no
    rejected/cancelled/finished states, they only ever fall back to active.
    """

    ACTIVE = "active"
    PENDING_REVIEW = "pending_review"
    REVIEWED = "reviewed"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class ComplianceStatus(str, Enum):
    """Compliance classification of a single response."""

    NON_COMPLIANT = "non_compliant"
    PARTIALLY_COMPLIANT = "partially_compliant"
    FULLY_COMPLIANT = "fully_compliant"
    NOT_APPLICABLE = "not_applicable"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class LoggableKind(str, Enum):
    """Discriminant of the entity a workflow log entry belongs to."""

    ASSESSMENT = "assessment"
    ASSESSMENT_RESPONSE = "assessment_response"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


def sql_in_list(values: List[str]) -> str:
    """Render values for a CHECK ... IN (...) constraint."""
    return ", ".join(f"'{value}'" for value in values)
