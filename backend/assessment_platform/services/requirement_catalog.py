"""Requirement catalog provider used to seed assessment responses."""
import uuid
from abc import ABC, abstractmethod
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from assessment_platform.core.exceptions import NotFoundError
from assessment_platform.repositories.standard import StandardRepository


class RequirementCatalog(ABC):
    """Source of the requirements an assessment answers, one response per requirement."""

    @abstractmethod
    async def requirement_ids(self, standard_id: uuid.UUID) -> List[uuid.UUID]:
        ...


class DatabaseRequirementCatalog(RequirementCatalog):
    def __init__(self, db: AsyncSession):
        self.standards = StandardRepository(db)

    async def requirement_ids(self, standard_id: uuid.UUID) -> List[uuid.UUID]:
        standard = await self.standards.get_by_id(standard_id)
        if not standard:
            raise NotFoundError(f"Standard {standard_id} not found")
        return await self.standards.get_requirement_ids(standard_id)
