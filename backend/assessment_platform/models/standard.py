"""Standard catalog models - standards, sections and requirements."""
import uuid
from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_platform.models.base import BaseModel


class Standard(BaseModel):
    """A compliance standard (e.g. a framework version)."""

    __tablename__ = "standards"

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    sections: Mapped[List["StandardSection"]] = relationship(
        "StandardSection", back_populates="standard", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Standard(code={self.code}, name={self.name})>"


class StandardSection(BaseModel):
    """Hierarchical grouping of requirements inside a standard."""

    __tablename__ = "standard_sections"

    standard_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("standards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("standard_sections.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    standard: Mapped["Standard"] = relationship("Standard", back_populates="sections")
    requirements: Mapped[List["StandardRequirement"]] = relationship(
        "StandardRequirement", back_populates="section", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<StandardSection(code={self.code}, standard={self.standard_id})>"


class StandardRequirement(BaseModel):
    """A single checkable clause within a standard section."""

    __tablename__ = "standard_requirements"

    section_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("standard_sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    section: Mapped["StandardSection"] = relationship(
        "StandardSection", back_populates="requirements"
    )

    def __repr__(self) -> str:
        return f"<StandardRequirement(code={self.code}, section={self.section_id})>"
