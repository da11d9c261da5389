"""Standard catalog repository."""

import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_platform.models.standard import Standard, StandardRequirement, StandardSection
from assessment_platform.repositories.base import BaseRepository


class StandardRepository(BaseRepository[Standard]):
    """Read access to standards and their requirement tree."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Standard)

    async def get_by_code(self, code: str) -> Optional[Standard]:
        result = await self.db.execute(select(Standard).where(Standard.code == code))
        return result.scalar_one_or_none()

    async def get_requirement_ids(self, standard_id: uuid.UUID) -> List[uuid.UUID]:
        """All requirement ids of a standard across every section, in catalog order."""
        query = (
            select(StandardRequirement.id)
            .join(StandardSection, StandardRequirement.section_id == StandardSection.id)
            .where(StandardSection.standard_id == standard_id)
            .order_by(
                StandardSection.order_index,
                StandardSection.code,
                StandardRequirement.order_index,
                StandardRequirement.code,
            )
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())
