"""
Webhook API routes - inbound Lemlist events and Lemlist hook management.
"""
import uuid
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Body, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.api.deps import get_lemlist_client_factory, get_settings
from leadsync.config import Settings
from leadsync.core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    raise_bad_gateway,
    raise_bad_request,
    raise_not_found,
)
from leadsync.database import get_session
from leadsync.repositories.webhook_repo import WebhookDeliveryRepository
from leadsync.schemas.campaign import WebhookProcessingResult
from leadsync.schemas.common import ErrorResponse
from leadsync.schemas.lemlist import LemlistWebhook, LemlistWebhookCreate
from leadsync.services.activity_sync_service import ActivitySyncReconciler
from leadsync.services.credential_service import CredentialService

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)

HOOK_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


# Hook management (declared before the receiver so "hooks" is not read as a user id)

@router.get("/lemlist/hooks", response_model=List[LemlistWebhook], responses=HOOK_ERROR_RESPONSES)
async def list_lemlist_hooks(
    user_id: uuid.UUID = Query(...),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    client_factory=Depends(get_lemlist_client_factory)
):
    """List the webhooks registered at Lemlist for the user's account."""
    try:
        client = await CredentialService(session, settings, client_factory).get_lemlist_client(user_id)
        return await client.list_webhooks()
    except ConfigurationError as e:
        raise_bad_request(e.message)
    except ExternalServiceError as e:
        logger.error(f"Listing Lemlist hooks for user {user_id} failed: {e.message}")
        raise_bad_gateway(e.message)


@router.post(
    "/lemlist/hooks",
    response_model=LemlistWebhook,
    status_code=201,
    responses=HOOK_ERROR_RESPONSES,
)
async def create_lemlist_hook(
    hook: LemlistWebhookCreate,
    user_id: uuid.UUID = Query(...),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    client_factory=Depends(get_lemlist_client_factory)
):
    """Register a webhook at Lemlist, usually pointing at /api/webhooks/lemlist/{user_id}."""
    try:
        client = await CredentialService(session, settings, client_factory).get_lemlist_client(user_id)
        created = await client.create_webhook(hook)
    except ConfigurationError as e:
        raise_bad_request(e.message)
    except ExternalServiceError as e:
        logger.error(f"Creating Lemlist hook for user {user_id} failed: {e.message}")
        raise_bad_gateway(e.message)
    logger.info(f"Registered Lemlist hook {created.hook_id} ({created.event or 'all events'}) for user {user_id}")
    return created


@router.delete("/lemlist/hooks/{hook_id}", status_code=204, responses=HOOK_ERROR_RESPONSES)
async def delete_lemlist_hook(
    hook_id: str,
    user_id: uuid.UUID = Query(...),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    client_factory=Depends(get_lemlist_client_factory)
):
    """Remove a webhook registered at Lemlist."""
    try:
        client = await CredentialService(session, settings, client_factory).get_lemlist_client(user_id)
        deleted = await client.delete_webhook(hook_id)
    except ConfigurationError as e:
        raise_bad_request(e.message)
    except ExternalServiceError as e:
        logger.error(f"Deleting Lemlist hook {hook_id} failed: {e.message}")
        raise_bad_gateway(e.message)
    if not deleted:
        raise_not_found("Webhook", hook_id)


# Inbound events

@router.post("/lemlist/{user_id}", response_model=WebhookProcessingResult)
async def receive_lemlist_webhook(
    user_id: uuid.UUID,
    payload: Dict[str, Any] = Body(...),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings)
):
    """
    Receive a Lemlist event.
    Always answers 200 so Lemlist does not retry; the outcome is in the body
    and in the delivery log.
    """
    delivery_repo = WebhookDeliveryRepository(session)
    delivery = await delivery_repo.log_delivery(
        user_id=user_id,
        event_type=str(payload.get("type") or "unknown"),
        payload=payload,
        lead_email=payload.get("email"),
        campaign_id=payload.get("campaignId") or payload.get("lemlistCampaignId"),
    )
    delivery_id = delivery.id

    reconciler = ActivitySyncReconciler(session, settings)
    result = await reconciler.process_webhook(user_id, payload)

    await delivery_repo.mark_processed(delivery_id, result.error)
    if not result.success:
        logger.warning(f"Lemlist webhook {delivery_id} for user {user_id} not applied: {result.error}")
    return result
