"""Pydantic schemas for assessment API endpoints."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from assessment_platform.core.config import settings
from assessment_platform.models.enums import (
    AssessmentResponseStatus,
    AssessmentStatus,
    ComplianceStatus,
)


# ============================================================================
# REQUESTS
# ============================================================================


class _PeriodMixin(BaseModel):
    @model_validator(mode="after")
    def check_period(self):
        start = getattr(self, "start_date", None)
        end = getattr(self, "end_date", None)
        if start and end and end < start:
            raise ValueError("end_date must not be before start_date")
        return self


class CreateAssessmentRequest(_PeriodMixin):
    """Create assessment request schema."""

    organization_id: UUID
    standard_id: UUID
    name: str = Field(min_length=1, max_length=255)
    period_value: Optional[str] = Field(None, max_length=255)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class UpdateAssessmentRequest(_PeriodMixin):
    """Update assessment request schema. Status changes go through the workflow endpoint."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    period_value: Optional[str] = Field(None, max_length=255)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    model_config = {"extra": "forbid"}

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value: Optional[str]) -> str:
        # Omitting the field keeps the name; an explicit null is rejected
        if value is None:
            raise ValueError("name cannot be null")
        return value


class UpdateResponseRequest(BaseModel):
    """Content edit of a single response."""

    comments: Optional[str] = None
    compliance_status: Optional[ComplianceStatus] = None

    model_config = {"extra": "forbid"}


class AssessmentWorkflowRequest(BaseModel):
    """Requested assessment status change."""

    status: AssessmentStatus
    note: Optional[str] = Field(None, max_length=settings.WORKFLOW_NOTE_MAX_LENGTH)


class ResponseWorkflowRequest(BaseModel):
    """Requested response status change."""

    status: AssessmentResponseStatus
    note: Optional[str] = Field(None, max_length=settings.WORKFLOW_NOTE_MAX_LENGTH)


class CreateActionPlanRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    action_plan: Optional[str] = None
    due_date: Optional[date] = None
    pic: Optional[str] = Field(None, max_length=255)


class UpdateActionPlanRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    action_plan: Optional[str] = None
    due_date: Optional[date] = None
    pic: Optional[str] = Field(None, max_length=255)

    model_config = {"extra": "forbid"}


# ============================================================================
# RESPONSES
# ============================================================================


class AssessmentRead(BaseModel):
    """Assessment response schema."""

    id: UUID
    organization_id: UUID
    standard_id: UUID
    name: str
    period_value: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: AssessmentStatus
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AssessmentResponseRead(BaseModel):
    """Per-requirement response schema."""

    id: UUID
    assessment_id: UUID
    standard_requirement_id: UUID
    status: AssessmentResponseStatus
    comments: Optional[str] = None
    compliance_status: Optional[ComplianceStatus] = None
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ActionPlanRead(BaseModel):
    id: UUID
    assessment_id: UUID
    assessment_response_id: UUID
    title: str
    action_plan: Optional[str] = None
    due_date: Optional[date] = None
    pic: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class WorkflowLogRead(BaseModel):
    """One entry of an entity's workflow history."""

    id: UUID
    loggable_type: str
    loggable_id: UUID
    from_status: Optional[str] = None
    to_status: str
    note: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AssessmentDetailResponse(BaseModel):
    """Assessment with its responses and the transitions the caller may request."""

    assessment: AssessmentRead
    responses: List[AssessmentResponseRead] = Field(default_factory=list)
    response_counts: Dict[str, int] = Field(default_factory=dict)
    valid_transitions: List[str] = Field(default_factory=list)


class AssessmentListResponse(BaseModel):
    """Assessment list response with pagination."""

    assessments: List[AssessmentRead] = Field(default_factory=list)
    total: int = Field(description="Total number of assessments matching the query")
    limit: int = Field(description="Maximum number of results per page")
    offset: int = Field(description="Number of results skipped")
    has_more: bool = Field(description="Whether there are more results available")


class AssessmentWorkflowResponse(BaseModel):
    assessment: AssessmentRead
    transition: WorkflowLogRead
    cascaded_responses: int = 0


class ResponseWorkflowResponse(BaseModel):
    response: AssessmentResponseRead
    transition: WorkflowLogRead


class WorkflowLogListResponse(BaseModel):
    logs: List[WorkflowLogRead] = Field(default_factory=list)
    total: int
    limit: int
    offset: int


class ErrorResponse(BaseModel):
    """Error response schema."""

    detail: str = Field(description="Error message")
    error_code: Optional[str] = Field(
        None, description="Error code for programmatic handling"
    )
    details: Optional[Dict[str, Any]] = Field(
        None, description="Structured error context"
    )
