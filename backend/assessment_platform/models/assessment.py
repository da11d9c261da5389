"""Assessment models - assessments, per-requirement responses, action plans and the workflow log."""
import uuid
from datetime import date, datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_platform.core.exceptions import AuditLogImmutableError
from assessment_platform.models.base import Base, BaseModel, SoftDeleteMixin, utcnow
from assessment_platform.models.enums import (
    AssessmentResponseStatus,
    AssessmentStatus,
    ComplianceStatus,
    LoggableKind,
    sql_in_list,
)

if TYPE_CHECKING:
    from assessment_platform.models.organization import Organization
    from assessment_platform.models.standard import Standard, StandardRequirement


class Assessment(SoftDeleteMixin, BaseModel):
    """One organization's pass through one standard for one period."""

    __tablename__ = "assessments"

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    standard_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("standards.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    period_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=AssessmentStatus.DRAFT.value, nullable=False, index=True
    )

    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Optimistic concurrency: every UPDATE is conditioned on the version read
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="assessments"
    )
    standard: Mapped["Standard"] = relationship("Standard")
    responses: Mapped[List["AssessmentResponse"]] = relationship(
        "AssessmentResponse",
        back_populates="assessment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            f"status IN ({sql_in_list(AssessmentStatus.values())})",
            name="ck_assessment_valid_status",
        ),
        CheckConstraint(
            "end_date IS NULL OR start_date IS NULL OR end_date >= start_date",
            name="ck_assessment_valid_period",
        ),
    )

    def __repr__(self) -> str:
        return f"<Assessment(name={self.name}, status={self.status})>"


class AssessmentResponse(BaseModel):
    """An assessment's answer to one requirement; the unit of individual review."""

    __tablename__ = "assessment_responses"

    assessment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    standard_requirement_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("standard_requirements.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(20), default=AssessmentResponseStatus.ACTIVE.value, nullable=False, index=True
    )
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    compliance_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    assessment: Mapped["Assessment"] = relationship(
        "Assessment", back_populates="responses"
    )
    requirement: Mapped["StandardRequirement"] = relationship("StandardRequirement")
    action_plans: Mapped[List["AssessmentActionPlan"]] = relationship(
        "AssessmentActionPlan", back_populates="assessment_response"
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint(
            "assessment_id", "standard_requirement_id",
            name="uq_assessment_response_requirement",
        ),
        CheckConstraint(
            f"status IN ({sql_in_list(AssessmentResponseStatus.values())})",
            name="ck_assessment_response_valid_status",
        ),
        CheckConstraint(
            f"compliance_status IS NULL OR compliance_status IN ({sql_in_list(ComplianceStatus.values())})",
            name="ck_assessment_response_valid_compliance",
        ),
    )

    def __repr__(self) -> str:
        return f"<AssessmentResponse(assessment={self.assessment_id}, requirement={self.standard_requirement_id}, status={self.status})>"


class AssessmentActionPlan(SoftDeleteMixin, BaseModel):
    """Remediation task for a response that is not fully compliant."""

    __tablename__ = "assessment_action_plans"

    assessment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assessment_response_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("assessment_responses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    action_plan: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    pic: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    assessment_response: Mapped["AssessmentResponse"] = relationship(
        "AssessmentResponse", back_populates="action_plans"
    )

    def __repr__(self) -> str:
        return f"<AssessmentActionPlan(response={self.assessment_response_id}, title={self.title})>"


class WorkflowLogEntry(Base):
    """
    Append-only audit record of one status transition.

    Attached to either an Assessment or an AssessmentResponse through an
    explicit kind discriminant. No foreign key, entries outlive the entity
    they describe.
    """

    __tablename__ = "assessment_workflow_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    loggable_type: Mapped[str] = mapped_column(String(50), nullable=False)
    loggable_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    from_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            f"loggable_type IN ({sql_in_list(LoggableKind.values())})",
            name="ck_workflow_log_valid_loggable_type",
        ),
        Index(
            "ix_workflow_log_loggable",
            "loggable_type", "loggable_id", "created_at",
        ),
    )

    @property
    def loggable_kind(self) -> LoggableKind:
        return LoggableKind(self.loggable_type)

    def __repr__(self) -> str:
        return f"<WorkflowLogEntry({self.loggable_type}={self.loggable_id}, {self.from_status} → {self.to_status})>"


@event.listens_for(WorkflowLogEntry, "before_update")
def _reject_log_update(mapper, connection, target):
    raise AuditLogImmutableError(f"Workflow log entry {target.id} cannot be modified")


@event.listens_for(WorkflowLogEntry, "before_delete")
def _reject_log_delete(mapper, connection, target):
    raise AuditLogImmutableError(f"Workflow log entry {target.id} cannot be deleted")
