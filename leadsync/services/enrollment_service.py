"""
Enrollment service - bulk campaign enrollment of contacts or leads.

Items are processed in sequential chunks. Inside a chunk, provider calls run
concurrently under a semaphore and are all settled before anything is
counted; the surviving contacts are then upserted locally in one transaction.
A failure of one item (or of one chunk's local write) never aborts the batch.
"""
import asyncio
import uuid
import logging
from typing import Optional, List, Tuple, Sequence

from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.config import Settings, settings as default_settings
from leadsync.core.exceptions import (
    CampaignNotFound,
    ExternalServiceError,
    LeadSyncException,
    ProviderUnavailable,
    describe_error,
)
from leadsync.models.campaign import Campaign, CampaignProvider
from leadsync.models.contact import Contact
from leadsync.repositories.campaign_repo import CampaignRepository, EnrollmentRepository
from leadsync.repositories.contact_repo import ContactRepository
from leadsync.repositories.lead_repo import LeadRepository
from leadsync.repositories.organization_repo import OrganizationRepository
from leadsync.schemas.campaign import BulkEnrollmentResult
from leadsync.schemas.lemlist import LemlistLeadInput
from leadsync.services.contact_resolver import ContactResolver
from leadsync.services.credential_service import CredentialService, LemlistClientFactory
from leadsync.services.integrations.lemlist import LemlistClient

logger = logging.getLogger(__name__)

# (contact id, id as the caller sent it)
EnrollmentTarget = Tuple[uuid.UUID, str]


def split_name(name: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """First word is the first name, the rest is the last name."""
    if not name or name == "Unknown":
        return None, None
    parts = name.split()
    if not parts:
        return None, None
    return parts[0], " ".join(parts[1:]) or None


class CampaignEnrollmentBatcher:
    """Enrolls contacts into local or Lemlist campaigns."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        client_factory: Optional[LemlistClientFactory] = None
    ):
        self.session = session
        self.settings = settings or default_settings
        self.campaign_repo = CampaignRepository(session)
        self.enrollment_repo = EnrollmentRepository(session)
        self.contact_repo = ContactRepository(session)
        self.lead_repo = LeadRepository(session)
        self.org_repo = OrganizationRepository(session)
        self.resolver = ContactResolver(session)
        self.credential_service = CredentialService(session, self.settings, client_factory)

    async def enroll(
        self,
        campaign_id: str,
        contact_ids: Optional[Sequence[uuid.UUID]] = None,
        lead_ids: Optional[Sequence[uuid.UUID]] = None,
        user_id: Optional[uuid.UUID] = None
    ) -> BulkEnrollmentResult:
        """
        Enroll contacts (or leads, resolved to contacts first) in a campaign.

        Raises:
            CampaignNotFound: the campaign exists neither locally nor at the provider
            ConfigurationError: a provider campaign was targeted without credentials
            ExternalServiceError: every provider call failed at the transport level
        """
        campaign, client = await self._resolve_campaign(str(campaign_id), user_id)
        local_campaign_id = campaign.id
        external_id = campaign.external_id

        result = BulkEnrollmentResult()
        if lead_ids:
            targets = await self._resolve_leads(lead_ids, result)
        else:
            targets = [(cid, str(cid)) for cid in contact_ids or []]

        batch_size = max(self.settings.ENROLLMENT_BATCH_SIZE, 1)
        dispatched = 0
        unreachable = 0
        for start in range(0, len(targets), batch_size):
            chunk = targets[start:start + batch_size]
            attempted, failed = await self._enroll_chunk(
                local_campaign_id, external_id, client, chunk, result
            )
            dispatched += attempted
            unreachable += failed

        if client and dispatched and unreachable == dispatched and result.success_count == 0:
            raise ExternalServiceError(
                "Lemlist", f"could not reach Lemlist for any of {dispatched} leads"
            )

        result.message = f"Enrolled {result.success_count} of {result.success_count + result.failed_count}"
        logger.info(
            f"Campaign {campaign_id}: {result.success_count} enrolled, {result.failed_count} failed"
        )
        return result

    async def _resolve_campaign(
        self,
        campaign_id: str,
        user_id: Optional[uuid.UUID]
    ) -> Tuple[Campaign, Optional[LemlistClient]]:
        """Find the target campaign and, for provider campaigns, a client for it."""
        if campaign_id.startswith(self.settings.LEMLIST_CAMPAIGN_PREFIX):
            client = await self.credential_service.get_lemlist_client(user_id)
            campaign = await self.campaign_repo.get_by_external_id(campaign_id)
            if campaign:
                return campaign, client

            remote = await client.get_campaign(campaign_id)
            if not remote:
                raise CampaignNotFound(campaign_id)

            logger.info(f"Mirroring Lemlist campaign {campaign_id} locally")
            campaign = await self.campaign_repo.create({
                "name": remote.name or campaign_id,
                "provider": CampaignProvider.LEMLIST,
                "external_id": campaign_id,
                "status": remote.status,
            })
            return campaign, client

        try:
            local_id = uuid.UUID(campaign_id)
        except ValueError:
            raise CampaignNotFound(campaign_id)

        campaign = await self.campaign_repo.get(local_id)
        if not campaign:
            raise CampaignNotFound(campaign_id)

        if campaign.provider == CampaignProvider.LEMLIST and campaign.external_id:
            return campaign, await self.credential_service.get_lemlist_client(user_id)
        return campaign, None

    async def _resolve_leads(
        self,
        lead_ids: Sequence[uuid.UUID],
        result: BulkEnrollmentResult
    ) -> List[EnrollmentTarget]:
        targets = []
        for lead_id in lead_ids:
            lead = await self.lead_repo.get(lead_id)
            if not lead:
                result.add_error(str(lead_id), "Lead not found")
                continue
            try:
                resolved = await self.resolver.resolve(lead)
            except LeadSyncException as e:
                logger.warning(f"Could not resolve lead {lead_id}: {e.message}")
                result.add_error(str(lead_id), e.message)
                continue
            targets.append((resolved.contact_id, str(lead_id)))
        return targets

    async def _enroll_chunk(
        self,
        campaign_id: uuid.UUID,
        external_id: Optional[str],
        client: Optional[LemlistClient],
        chunk: List[EnrollmentTarget],
        result: BulkEnrollmentResult
    ) -> Tuple[int, int]:
        """
        Enroll one chunk.
        Returns (provider calls made, provider calls that could not connect).
        """
        contacts = {c.id: c for c in await self.contact_repo.get_many([cid for cid, _ in chunk])}

        survivors: List[EnrollmentTarget] = []
        pending: List[Tuple[EnrollmentTarget, Contact]] = []
        for target in chunk:
            contact = contacts.get(target[0])
            if not contact:
                result.add_error(target[1], "Contact not found")
            elif client is None:
                survivors.append(target)
            elif not contact.email:
                result.add_error(target[1], "Contact has no email")
            else:
                pending.append((target, contact))

        unreachable = 0
        if pending:
            lead_inputs = await self._to_lead_inputs([contact for _, contact in pending])
            semaphore = asyncio.Semaphore(max(self.settings.LEMLIST_MAX_CONCURRENCY, 1))

            async def dispatch(lead_input: LemlistLeadInput):
                async with semaphore:
                    return await client.add_lead_to_campaign(external_id, lead_input)

            outcomes = await asyncio.gather(
                *(dispatch(lead_input) for lead_input in lead_inputs),
                return_exceptions=True,
            )
            for (target, _), outcome in zip(pending, outcomes):
                if isinstance(outcome, BaseException):
                    if isinstance(outcome, ProviderUnavailable):
                        unreachable += 1
                    logger.warning(f"Lemlist enrollment failed for {target[1]}: {outcome}")
                    result.add_error(target[1], describe_error(outcome))
                else:
                    survivors.append(target)

        if survivors:
            try:
                inserted = await self.enrollment_repo.upsert_many(
                    campaign_id, [cid for cid, _ in survivors]
                )
            except Exception as e:
                logger.error(f"Failed to store enrollments for campaign {campaign_id}: {e}")
                for _, original_id in survivors:
                    result.add_error(original_id, f"Failed to save enrollment: {e}")
                return len(pending), unreachable

            result.add_success(len(survivors))
            if inserted:
                try:
                    await self.campaign_repo.increment_leads_count(campaign_id, inserted)
                except Exception as e:
                    logger.error(f"Failed to update leads_count for campaign {campaign_id}: {e}")

        return len(pending), unreachable

    async def _to_lead_inputs(self, contacts: List[Contact]) -> List[LemlistLeadInput]:
        """Translate contacts into Lemlist's lead shape."""
        org_ids = {c.organization_id for c in contacts if c.organization_id}
        org_names = {org.id: org.name for org in await self.org_repo.get_many(list(org_ids))}

        lead_inputs = []
        for contact in contacts:
            first_name, last_name = split_name(contact.name)
            lead_inputs.append(LemlistLeadInput(
                email=contact.email,
                first_name=first_name,
                last_name=last_name,
                company=org_names.get(contact.organization_id),
            ))
        return lead_inputs
