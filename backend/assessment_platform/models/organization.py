"""Organization model and the authenticated principal."""
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel as PydanticBaseModel
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_platform.models.base import BaseModel

if TYPE_CHECKING:
    from assessment_platform.models.assessment import Assessment


# Role names as issued in the identity provider's realm roles
SUPER_ADMIN_ROLE = "super_admin"
ORGANIZATION_ADMIN_ROLE = "organization_admin"
ORGANIZATION_MEMBER_ROLE = "organization_member"

# Permission names checked by the workflow guards
VIEW_ASSESSMENTS = "view-assessments"
REVIEW_ASSESSMENTS = "review-assessments"

ROLE_PERMISSIONS = {
    SUPER_ADMIN_ROLE: [VIEW_ASSESSMENTS, REVIEW_ASSESSMENTS],
    ORGANIZATION_ADMIN_ROLE: [VIEW_ASSESSMENTS, REVIEW_ASSESSMENTS],
    ORGANIZATION_MEMBER_ROLE: [VIEW_ASSESSMENTS],
}


class Organization(BaseModel):
    """Organizations that run assessments."""

    __tablename__ = "organizations"

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(default=True, nullable=False)

    assessments: Mapped[List["Assessment"]] = relationship(
        "Assessment", back_populates="organization"
    )

    def __repr__(self) -> str:
        return f"<Organization(code={self.code}, name={self.name})>"


# Pydantic model for authenticated user (not stored in DB)
class User(PydanticBaseModel):
    """Authenticated principal built from the identity provider's token."""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    roles: List[str] = []
    permissions: List[str] = []
    organization_id: Optional[str] = None
    organization_name: Optional[str] = None

    def is_system_admin(self) -> bool:
        return SUPER_ADMIN_ROLE in self.roles

    def is_organization_admin(self) -> bool:
        return ORGANIZATION_ADMIN_ROLE in self.roles

    def has_organization_access(self, organization_id) -> bool:
        """System administrators reach every organization, everyone else only their own."""
        if self.is_system_admin():
            return True
        if self.organization_id is None or organization_id is None:
            return False
        return str(self.organization_id) == str(organization_id)

    def has_permission(self, name: str) -> bool:
        if self.is_system_admin() or name in self.permissions:
            return True
        return any(name in ROLE_PERMISSIONS.get(role, []) for role in self.roles)
