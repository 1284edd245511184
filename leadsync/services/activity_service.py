"""
Activity service - deduplicated activity logging.
"""
import uuid
import logging
from typing import Optional, List
from datetime import datetime

from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.config import Settings, settings as default_settings
from leadsync.core.timeutils import to_naive_utc
from leadsync.models.activity import ActivityLog
from leadsync.repositories.activity_repo import ActivityLogRepository
from leadsync.repositories.organization_repo import OrganizationRepository

logger = logging.getLogger(__name__)


class ActivityService:
    """Service for activity logging."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or default_settings
        self.activity_repo = ActivityLogRepository(session)
        self.org_repo = OrganizationRepository(session)

    async def record(
        self,
        lead_id: uuid.UUID,
        activity_type: str,
        timestamp: Optional[datetime] = None,
        meta_data: Optional[dict] = None,
        organization_id: Optional[uuid.UUID] = None
    ) -> Optional[uuid.UUID]:
        """
        Append an activity unless one of the same type is already recorded
        for the lead inside the dedup window.

        Returns the new entry id, or None for a duplicate. When the entry is
        inserted and the lead belongs to an organization, that organization's
        last_activity is moved to now.
        """
        when = to_naive_utc(timestamp) if timestamp else datetime.utcnow()

        if await self.activity_repo.exists_within(
            lead_id, activity_type, when, self.settings.ACTIVITY_DEDUP_WINDOW_SECONDS
        ):
            logger.debug(f"Skipping duplicate {activity_type} for lead {lead_id} at {when}")
            return None

        entry_id = await self.activity_repo.insert(lead_id, activity_type, when, meta_data)
        if entry_id is None:
            logger.debug(f"Concurrent {activity_type} for lead {lead_id} already recorded")
            return None

        if organization_id:
            await self.org_repo.touch_last_activity(organization_id)
        return entry_id

    async def get_by_lead(
        self,
        lead_id: uuid.UUID,
        activity_type: Optional[str] = None,
        limit: int = 50
    ) -> List[ActivityLog]:
        """Get activity for a lead."""
        return await self.activity_repo.get_by_lead(lead_id, activity_type, limit)
