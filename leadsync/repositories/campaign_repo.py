"""
Campaign and enrollment repositories.
"""
import uuid
from typing import Optional, List
from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import update

from leadsync.models.campaign import Campaign, CampaignEnrollment, EnrollmentStatus
from leadsync.repositories.base import BaseRepository


class CampaignRepository(BaseRepository[Campaign]):
    """Repository for Campaign operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Campaign, session)

    async def get_by_external_id(self, external_id: str) -> Optional[Campaign]:
        """Get the local mirror of a provider campaign."""
        query = select(Campaign).where(Campaign.external_id == external_id)
        result = await self.session.exec(query)
        return result.first()

    async def increment_leads_count(self, campaign_id: uuid.UUID, count: int = 1) -> bool:
        """Increment leads count for a campaign."""
        if count <= 0:
            return False
        stmt = (
            update(Campaign)
            .where(Campaign.id == campaign_id)
            .values(leads_count=Campaign.leads_count + count, updated_at=datetime.utcnow())
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1


class EnrollmentRepository(BaseRepository[CampaignEnrollment]):
    """Repository for CampaignEnrollment operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(CampaignEnrollment, session)

    async def upsert_many(self, campaign_id: uuid.UUID, contact_ids: List[uuid.UUID]) -> int:
        """
        Enroll contacts, leaving already-enrolled pairs untouched.
        Runs as one transaction; returns the number of rows newly inserted.
        """
        if not contact_ids:
            return 0

        now = datetime.utcnow()
        rows = [
            {
                "id": uuid.uuid4(),
                "campaign_id": campaign_id,
                "contact_id": contact_id,
                "status": EnrollmentStatus.ACTIVE,
                "enrolled_at": now,
                "updated_at": now,
            }
            for contact_id in dict.fromkeys(contact_ids)
        ]
        stmt = self.insert_ignoring_conflicts(rows, ["campaign_id", "contact_id"])
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return max(result.rowcount or 0, 0)

    async def get_for(self, campaign_id: uuid.UUID, contact_id: uuid.UUID) -> Optional[CampaignEnrollment]:
        """Get the enrollment of one contact in one campaign."""
        query = select(CampaignEnrollment).where(
            CampaignEnrollment.campaign_id == campaign_id,
            CampaignEnrollment.contact_id == contact_id
        )
        result = await self.session.exec(query)
        return result.first()

    async def update_status(self, enrollment_id: uuid.UUID, status: str) -> bool:
        """Set enrollment status unless it already has that value."""
        stmt = (
            update(CampaignEnrollment)
            .where(CampaignEnrollment.id == enrollment_id, CampaignEnrollment.status != status)
            .values(status=status, updated_at=datetime.utcnow())
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1
