"""
Activity API routes - recorded history per lead.
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.api.deps import get_settings
from leadsync.config import Settings
from leadsync.core.exceptions import raise_not_found
from leadsync.database import get_session
from leadsync.models.lead import Lead
from leadsync.schemas.activity import ActivityRead
from leadsync.services.activity_service import ActivityService

router = APIRouter(prefix="/api/leads", tags=["activity"])


@router.get("/{lead_id}/activities", response_model=List[ActivityRead])
async def get_lead_activities(
    lead_id: uuid.UUID,
    activity_type: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings)
):
    """Activity of a lead, newest first."""
    if not await session.get(Lead, lead_id):
        raise_not_found("Lead", str(lead_id))
    return await ActivityService(session, settings).get_by_lead(lead_id, activity_type, limit)
