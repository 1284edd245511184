"""
Enrichment API routes.
"""
import uuid
import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.api.deps import get_session_factory, get_settings
from leadsync.config import Settings
from leadsync.core.exceptions import NotFoundError, raise_bad_request, raise_not_found
from leadsync.database import get_session
from leadsync.models.lead import EnrichmentStatus, Lead
from leadsync.schemas.common import QueuedResponse
from leadsync.schemas.enrichment import EnrichmentStatusResponse
from leadsync.services.enrichment_service import EnrichmentOrchestrator

router = APIRouter(prefix="/api/enrichment", tags=["Enrichment"])
logger = logging.getLogger(__name__)


@router.post("/leads/{lead_id}", response_model=QueuedResponse, status_code=202)
async def enrich_lead(
    lead_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    session_factory: sessionmaker = Depends(get_session_factory),
    settings: Settings = Depends(get_settings)
):
    """
    Enrich a single lead.
    Returns immediately and processes in background.
    """
    lead = await session.get(Lead, lead_id)
    if not lead:
        raise_not_found("Lead", str(lead_id))

    background_tasks.add_task(_enrich_lead_task, session_factory, settings, lead_id, False)
    return QueuedResponse(lead_id=lead_id, message="Enrichment started in background")


@router.post("/leads/{lead_id}/retrigger", response_model=QueuedResponse, status_code=202)
async def retrigger_enrichment(
    lead_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    session_factory: sessionmaker = Depends(get_session_factory),
    settings: Settings = Depends(get_settings)
):
    """Re-run enrichment for a completed or failed lead."""
    lead = await session.get(Lead, lead_id)
    if not lead:
        raise_not_found("Lead", str(lead_id))
    if lead.enrichment_status == EnrichmentStatus.ENRICHING:
        raise_bad_request("Lead is already being enriched")

    background_tasks.add_task(_enrich_lead_task, session_factory, settings, lead_id, True)
    return QueuedResponse(lead_id=lead_id, message="Enrichment re-run started in background")


@router.get("/leads/{lead_id}/status", response_model=EnrichmentStatusResponse)
async def get_enrichment_status(
    lead_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings)
):
    """Get enrichment status for a lead."""
    try:
        return await EnrichmentOrchestrator(session, settings).get_status(lead_id)
    except NotFoundError:
        raise_not_found("Lead", str(lead_id))


# Background tasks

async def _enrich_lead_task(
    session_factory: sessionmaker,
    settings: Settings,
    lead_id: uuid.UUID,
    retrigger: bool
):
    """Background task to enrich a single lead in its own session."""
    async with session_factory() as session:
        lead = await session.get(Lead, lead_id)
        if not lead:
            logger.error(f"Lead {lead_id} not found for enrichment")
            return

        orchestrator = EnrichmentOrchestrator(session, settings)
        if retrigger:
            await orchestrator.retrigger(lead)
        else:
            await orchestrator.enrich(lead)
