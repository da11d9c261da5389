"""
Model registry to ensure proper import order and avoid circular dependencies.
Import all models here in dependency order.
"""

from assessment_platform.models.base import Base, BaseModel

from assessment_platform.models.organization import Organization
from assessment_platform.models.standard import Standard, StandardSection, StandardRequirement

from assessment_platform.models.assessment import (
    Assessment,
    AssessmentResponse,
    AssessmentActionPlan,
    WorkflowLogEntry,
)

__all__ = [
    'Base',
    'BaseModel',
    'Organization',
    'Standard',
    'StandardSection',
    'StandardRequirement',
    'Assessment',
    'AssessmentResponse',
    'AssessmentActionPlan',
    'WorkflowLogEntry',
]
