"""
Activity log repository.
"""
import uuid
from typing import Optional, List
from datetime import datetime, timedelta

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.models.activity import ActivityLog, time_bucket
from leadsync.repositories.base import BaseRepository


class ActivityLogRepository(BaseRepository[ActivityLog]):
    """Repository for ActivityLog operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(ActivityLog, session)

    async def exists_within(
        self,
        lead_id: uuid.UUID,
        activity_type: str,
        timestamp: datetime,
        window_seconds: int
    ) -> bool:
        """Check for an entry of this type within +/- window of timestamp."""
        window = timedelta(seconds=window_seconds)
        query = select(ActivityLog.id).where(
            ActivityLog.lead_id == lead_id,
            ActivityLog.activity_type == activity_type,
            ActivityLog.timestamp >= timestamp - window,
            ActivityLog.timestamp <= timestamp + window
        ).limit(1)
        result = await self.session.exec(query)
        return result.first() is not None

    async def insert(
        self,
        lead_id: uuid.UUID,
        activity_type: str,
        timestamp: datetime,
        meta_data: Optional[dict] = None
    ) -> Optional[uuid.UUID]:
        """
        Append an entry.
        Returns the new id, or None when the store already holds an entry
        for the same lead, type and minute bucket.
        """
        entry_id = uuid.uuid4()
        row = {
            "id": entry_id,
            "lead_id": lead_id,
            "activity_type": activity_type,
            "timestamp": timestamp,
            "time_bucket": time_bucket(timestamp),
            "meta_data": meta_data or {},
            "created_at": datetime.utcnow(),
        }
        stmt = self.insert_ignoring_conflicts([row], ["lead_id", "activity_type", "time_bucket"])
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return entry_id if result.rowcount == 1 else None

    async def get_by_lead(
        self,
        lead_id: uuid.UUID,
        activity_type: Optional[str] = None,
        limit: int = 50
    ) -> List[ActivityLog]:
        """Get activity for a lead, newest first."""
        query = select(ActivityLog).where(ActivityLog.lead_id == lead_id)
        if activity_type:
            query = query.where(ActivityLog.activity_type == activity_type)
        query = query.order_by(ActivityLog.timestamp.desc()).limit(limit)
        result = await self.session.exec(query)
        return result.all()
