"""
Campaigns API routes - enrollment and Lemlist pull sync.
"""
import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.api.deps import get_lemlist_client_factory, get_settings
from leadsync.config import Settings
from leadsync.core.exceptions import (
    CampaignNotFound,
    ConfigurationError,
    ExternalServiceError,
    ValidationError,
    raise_bad_gateway,
    raise_bad_request,
    raise_not_found,
)
from leadsync.database import get_session
from leadsync.schemas.campaign import BulkEnrollmentResult, EnrollmentRequest, LeadSyncResult, SyncResult
from leadsync.schemas.common import ErrorResponse
from leadsync.services.activity_sync_service import ActivitySyncReconciler
from leadsync.services.enrollment_service import CampaignEnrollmentBatcher

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


@router.post(
    "/{campaign_id}/enrollments",
    response_model=BulkEnrollmentResult,
    responses=ERROR_RESPONSES,
)
async def enroll_in_campaign(
    campaign_id: str,
    request: EnrollmentRequest,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    client_factory=Depends(get_lemlist_client_factory)
):
    """
    Enroll contacts or leads in a campaign.
    campaign_id is a local campaign id or a Lemlist id ("cam_...").
    """
    batcher = CampaignEnrollmentBatcher(session, settings, client_factory)
    try:
        return await batcher.enroll(
            campaign_id,
            contact_ids=request.contact_ids,
            lead_ids=request.lead_ids,
            user_id=request.user_id,
        )
    except CampaignNotFound:
        raise_not_found("Campaign", campaign_id)
    except (ConfigurationError, ValidationError) as e:
        raise_bad_request(e.message)
    except ExternalServiceError as e:
        logger.error(f"Enrollment into {campaign_id} failed upstream: {e.message}")
        raise_bad_gateway(e.message)


@router.post("/{campaign_id}/sync", response_model=SyncResult, responses=ERROR_RESPONSES)
async def sync_campaign(
    campaign_id: str,
    user_id: Optional[uuid.UUID] = Query(None),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    client_factory=Depends(get_lemlist_client_factory)
):
    """Pull lead engagement for a Lemlist campaign."""
    reconciler = ActivitySyncReconciler(session, settings, client_factory)
    try:
        return await reconciler.sync_campaign(user_id, campaign_id)
    except CampaignNotFound:
        raise_not_found("Campaign", campaign_id)
    except ConfigurationError as e:
        raise_bad_request(e.message)
    except ExternalServiceError as e:
        logger.error(f"Sync of {campaign_id} failed upstream: {e.message}")
        raise_bad_gateway(e.message)


@router.post("/{campaign_id}/sync/{email}", response_model=LeadSyncResult, responses=ERROR_RESPONSES)
async def sync_campaign_lead(
    campaign_id: str,
    email: str,
    user_id: Optional[uuid.UUID] = Query(None),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    client_factory=Depends(get_lemlist_client_factory)
):
    """Pull engagement for one lead of a Lemlist campaign."""
    reconciler = ActivitySyncReconciler(session, settings, client_factory)
    try:
        return await reconciler.sync_lead_by_email(user_id, campaign_id, email)
    except CampaignNotFound:
        raise_not_found("Campaign", campaign_id)
    except ConfigurationError as e:
        raise_bad_request(e.message)
    except ExternalServiceError as e:
        logger.error(f"Sync of {email} in {campaign_id} failed upstream: {e.message}")
        raise_bad_gateway(e.message)
