"""
Organization repository.
"""
import uuid
from typing import Optional
from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import update

from leadsync.models.organization import Organization, normalize_company_name
from leadsync.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    """Repository for Organization operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Organization, session)

    async def get_by_name(self, name: str) -> Optional[Organization]:
        """Case-insensitive lookup through the normalized name key."""
        key = normalize_company_name(name)
        if not key:
            return None
        query = select(Organization).where(Organization.name_key == key)
        result = await self.session.exec(query)
        return result.first()

    async def get_by_linkedin_url(self, linkedin_url: str) -> Optional[Organization]:
        """Get organization by its professional-network URL."""
        query = select(Organization).where(Organization.linkedin_url == linkedin_url)
        result = await self.session.exec(query)
        return result.first()

    async def touch_last_activity(self, org_id: uuid.UUID, when: Optional[datetime] = None) -> bool:
        """Record the latest engagement time for an organization."""
        stmt = (
            update(Organization)
            .where(Organization.id == org_id)
            .values(last_activity=when or datetime.utcnow())
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1
