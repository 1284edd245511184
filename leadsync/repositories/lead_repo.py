"""
Lead repository with the enrichment state transitions.
"""
import uuid
from typing import Optional
from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func, update

from leadsync.models.lead import Lead, EnrichmentStatus
from leadsync.repositories.base import BaseRepository


class LeadRepository(BaseRepository[Lead]):
    """Repository for Lead operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Lead, session)

    async def get_by_email(self, email: str, owner_id: Optional[uuid.UUID] = None) -> Optional[Lead]:
        """Get lead by email, case-insensitive, optionally scoped to its owner."""
        query = select(Lead).where(func.lower(Lead.email) == email.strip().lower())
        if owner_id:
            query = query.where(Lead.owner_id == owner_id)
        query = query.order_by(Lead.created_at.desc())
        result = await self.session.exec(query)
        return result.first()

    async def claim_for_enrichment(self, lead_id: uuid.UUID) -> bool:
        """
        Move a lead from pending to enriching.
        Returns False when another caller already claimed it or it is not pending.
        """
        now = datetime.utcnow()
        stmt = (
            update(Lead)
            .where(Lead.id == lead_id, Lead.enrichment_status == EnrichmentStatus.PENDING)
            .values(
                enrichment_status=EnrichmentStatus.ENRICHING,
                enrichment_timestamp=now,
                updated_at=now,
            )
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def reset_enrichment(self, lead_id: uuid.UUID) -> bool:
        """Put a completed or failed lead back to pending for a re-run."""
        stmt = (
            update(Lead)
            .where(
                Lead.id == lead_id,
                Lead.enrichment_status.in_([EnrichmentStatus.COMPLETED, EnrichmentStatus.FAILED]),
            )
            .values(enrichment_status=EnrichmentStatus.PENDING, updated_at=datetime.utcnow())
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def set_enrichment_result(
        self,
        lead_id: uuid.UUID,
        status: str,
        enrichment_data: Optional[dict],
        backfill: Optional[dict] = None
    ) -> Optional[Lead]:
        """Store the outcome of an enrichment run."""
        lead = await self.get(lead_id)
        if not lead:
            return None

        now = datetime.utcnow()
        lead.enrichment_status = status
        lead.enrichment_data = enrichment_data
        lead.enrichment_timestamp = now
        lead.updated_at = now

        # Only fill fields that are still empty
        for field, value in (backfill or {}).items():
            if value and not getattr(lead, field, None):
                setattr(lead, field, value)

        self.session.add(lead)
        await self.session.commit()
        await self.session.refresh(lead)
        return lead

    async def update_status(self, lead_id: uuid.UUID, status: str) -> bool:
        """Set lead status unless it already has that value."""
        stmt = (
            update(Lead)
            .where(Lead.id == lead_id, Lead.status != status)
            .values(status=status, updated_at=datetime.utcnow())
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def link(
        self,
        lead: Lead,
        contact_id: Optional[uuid.UUID] = None,
        company_id: Optional[uuid.UUID] = None
    ) -> Lead:
        """Attach resolved contact / organization ids, keeping existing links."""
        changed = False
        if contact_id and lead.contact_id != contact_id:
            lead.contact_id = contact_id
            changed = True
        if company_id and not lead.company_id:
            lead.company_id = company_id
            changed = True

        if changed:
            lead.updated_at = datetime.utcnow()
            self.session.add(lead)
            await self.session.commit()
            await self.session.refresh(lead)
        return lead
