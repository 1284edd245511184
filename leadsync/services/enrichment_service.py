"""
Enrichment service - runs a lead through the identity-resolution webhook.

State machine over lead.enrichment_status:
    pending -> enriching -> completed | failed
Only retrigger() moves a finished lead back to pending.
"""
import asyncio
import uuid
import logging
import traceback
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.config import Settings, settings as default_settings
from leadsync.core.exceptions import HttpError, NotFoundError
from leadsync.core.timeutils import isoformat_utc
from leadsync.models.activity import ActivityTypes
from leadsync.models.lead import Lead, EnrichmentStatus
from leadsync.repositories.lead_repo import LeadRepository
from leadsync.schemas.enrichment import (
    EnrichmentRequest,
    EnrichmentStatusResponse,
    ProviderEnvelope,
    extract_company,
    simplify_enrichment,
)
from leadsync.services.activity_service import ActivityService
from leadsync.services.integrations.base import EnrichmentProvider
from leadsync.services.integrations.enrichment import EnrichmentWebhookClient
from leadsync.services.org_service import OrganizationService

logger = logging.getLogger(__name__)

ENRICHMENT_SOURCE = "enrichment"
ERROR_STACK_LIMIT = 1000


def no_match_reason(envelope: Optional[ProviderEnvelope]) -> Optional[str]:
    """Why a 2xx provider answer carries no usable match, or None if it does."""
    if envelope is None:
        return "No response from provider"
    if envelope.status != 200:
        return f"Provider returned status {envelope.status}"
    if envelope.data is None:
        return "No data in provider response"
    return None


class EnrichmentOrchestrator:
    """
    Enriches leads and merges the result into the lead and its organization.
    enrich() never raises: every failure ends up recorded on the lead.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        provider: Optional[EnrichmentProvider] = None
    ):
        self.session = session
        self.settings = settings or default_settings
        self._provider = provider
        self.lead_repo = LeadRepository(session)
        self.org_service = OrganizationService(session)
        self.activity_service = ActivityService(session, self.settings)

    @property
    def provider(self) -> EnrichmentProvider:
        if self._provider is None:
            self._provider = EnrichmentWebhookClient(
                url=self.settings.ENRICHMENT_WEBHOOK_URL,
                api_key=self.settings.ENRICHMENT_API_KEY,
                timeout=self.settings.ENRICHMENT_TIMEOUT_SECONDS,
            )
        return self._provider

    async def enrich(self, lead: Lead) -> None:
        lead_id = lead.id

        if not self.settings.enrichment_configured:
            logger.warning(f"Enrichment webhook not configured, skipping lead {lead_id}")
            return

        if not lead.has_identity:
            logger.warning(f"Lead {lead_id} has no email or name, skipping enrichment")
            return

        if not await self.lead_repo.claim_for_enrichment(lead_id):
            logger.info(f"Lead {lead_id} is not pending enrichment, skipping")
            return

        request = EnrichmentRequest(
            lead_id=str(lead_id),
            company=lead.company,
            email=lead.email,
            first_name=lead.first_name,
            last_name=lead.last_name,
            linkedin_url=lead.linkedin_url,
            timestamp=isoformat_utc(),
        )

        try:
            try:
                envelope = await self.provider.enrich(request)
            except HttpError as e:
                await self._record_http_failure(lead_id, e)
                return

            reason = no_match_reason(envelope)
            if reason:
                logger.warning(f"Enrichment for lead {lead_id} gave no match: {reason}")
                await self.lead_repo.set_enrichment_result(
                    lead_id,
                    EnrichmentStatus.FAILED,
                    {
                        "error": reason,
                        "provider_status": envelope.status if envelope else None,
                        "failed_at": isoformat_utc(),
                    },
                )
                return

            await self._apply_match(lead, envelope)
        except asyncio.CancelledError as e:
            await self._record_failure(lead_id, e)
            raise
        except Exception as e:
            await self._record_failure(lead_id, e)

    async def retrigger(self, lead: Lead) -> bool:
        """
        Re-run enrichment for a finished lead.
        Returns False while the lead is still being enriched.
        """
        if lead.enrichment_status == EnrichmentStatus.ENRICHING:
            logger.warning(f"Lead {lead.id} is already being enriched, not retriggering")
            return False

        if lead.enrichment_status != EnrichmentStatus.PENDING:
            await self.lead_repo.reset_enrichment(lead.id)
            await self.session.refresh(lead)

        await self.enrich(lead)
        return True

    async def get_status(self, lead_id: uuid.UUID) -> EnrichmentStatusResponse:
        lead = await self.lead_repo.get(lead_id)
        if not lead:
            raise NotFoundError("Lead", str(lead_id))

        data = lead.enrichment_data or {}
        return EnrichmentStatusResponse(
            lead_id=lead.id,
            enrichment_status=lead.enrichment_status,
            enrichment_timestamp=lead.enrichment_timestamp,
            error=data.get("error") if lead.enrichment_status == EnrichmentStatus.FAILED else None,
            likelihood=data.get("likelihood"),
            company_id=lead.company_id,
        )

    async def _apply_match(self, lead: Lead, envelope: ProviderEnvelope):
        lead_id = lead.id
        company_name = lead.company
        simplified = simplify_enrichment(envelope)

        backfill = {
            "linkedin_url": simplified.linkedin_url,
            "job_title": simplified.job_title,
            "phone": simplified.mobile_phone,
            "company": simplified.job_company,
        }
        lead = await self.lead_repo.set_enrichment_result(
            lead_id,
            EnrichmentStatus.COMPLETED,
            simplified.model_dump(),
            backfill=backfill,
        )

        org = await self.org_service.merge_profile(extract_company(envelope), fallback_name=company_name)
        if org and lead:
            lead = await self.lead_repo.link(lead, company_id=org.id)

        await self.activity_service.record(
            lead_id,
            ActivityTypes.LEAD_UPDATED,
            meta_data={
                "source": ENRICHMENT_SOURCE,
                "likelihood": simplified.likelihood,
                "enriched_at": simplified.enriched_at,
            },
            organization_id=lead.company_id if lead else None,
        )
        logger.info(
            f"Enriched lead {lead_id} (likelihood={simplified.likelihood}, "
            f"organization={org.id if org else None})"
        )

    async def _record_http_failure(self, lead_id: uuid.UUID, error: HttpError):
        logger.error(f"Enrichment webhook failed for lead {lead_id}: {error.message}")
        await self.lead_repo.set_enrichment_result(
            lead_id,
            EnrichmentStatus.FAILED,
            {
                "error": error.message,
                "error_code": error.status_code,
                "error_message": error.error_message,
                "error_details": error.details,
                "failed_at": isoformat_utc(),
            },
        )

    async def _record_failure(self, lead_id: uuid.UUID, error: BaseException):
        """Mark the lead failed after an unexpected error; never raises."""
        logger.error(f"Enrichment failed for lead {lead_id}: {type(error).__name__}: {error}")
        failed_at = isoformat_utc()
        error_type = type(error).__name__
        try:
            await self.session.rollback()
            await self.lead_repo.set_enrichment_result(
                lead_id,
                EnrichmentStatus.FAILED,
                {
                    "error": str(error) or error_type,
                    "error_type": error_type,
                    "error_stack": traceback.format_exc()[:ERROR_STACK_LIMIT],
                    "failed_at": failed_at,
                },
            )
            await self.activity_service.record(
                lead_id,
                ActivityTypes.LEAD_UPDATED,
                meta_data={
                    "source": ENRICHMENT_SOURCE,
                    "error": str(error) or error_type,
                    "error_type": error_type,
                    "failed_at": failed_at,
                },
            )
        except Exception as record_error:
            logger.error(f"Could not record enrichment failure for lead {lead_id}: {record_error}")
