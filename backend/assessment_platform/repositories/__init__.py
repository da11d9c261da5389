"""Repository layer for data access."""

from .assessment import (
    ActionPlanRepository,
    AssessmentRepository,
    AssessmentResponseRepository,
    WorkflowLogRepository,
)
from .base import BaseRepository
from .standard import StandardRepository

__all__ = [
    "BaseRepository",
    "AssessmentRepository",
    "AssessmentResponseRepository",
    "WorkflowLogRepository",
    "ActionPlanRepository",
    "StandardRepository",
]
