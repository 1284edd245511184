"""
Activity sync service - reconciles Lemlist engagement into local state.

Events arrive by push (webhooks) or pull (campaign lead listings). Both paths
go through the same mapping table and the same deduplicated activity log.
"""
import uuid
import logging
from datetime import datetime
from typing import Optional, NamedTuple, Tuple, Union

from pydantic import ValidationError as PayloadValidationError
from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.config import Settings, settings as default_settings
from leadsync.core.exceptions import CampaignNotFound, describe_error
from leadsync.models.activity import ActivityTypes
from leadsync.models.campaign import EnrollmentStatus
from leadsync.models.lead import Lead, LeadStatus
from leadsync.repositories.campaign_repo import CampaignRepository, EnrollmentRepository
from leadsync.repositories.lead_repo import LeadRepository
from leadsync.schemas.campaign import LeadSyncResult, SyncError, SyncResult, WebhookProcessingResult
from leadsync.schemas.lemlist import LemlistEventTypes, LemlistLead, LemlistWebhookPayload
from leadsync.services.activity_service import ActivityService
from leadsync.services.credential_service import CredentialService, LemlistClientFactory

logger = logging.getLogger(__name__)


class EventMapping(NamedTuple):
    activity_type: str
    lead_status: Optional[str] = None
    enrollment_status: Optional[str] = None


EVENT_MAPPING = {
    LemlistEventTypes.EMAIL_SENT: EventMapping(
        ActivityTypes.EMAIL_SENT, LeadStatus.CONTACTED, EnrollmentStatus.ACTIVE
    ),
    LemlistEventTypes.EMAIL_OPENED: EventMapping(ActivityTypes.EMAIL_OPENED),
    LemlistEventTypes.EMAIL_CLICKED: EventMapping(ActivityTypes.EMAIL_CLICKED),
    LemlistEventTypes.EMAIL_REPLIED: EventMapping(
        ActivityTypes.EMAIL_REPLIED, LeadStatus.REPLIED, EnrollmentStatus.PAUSED
    ),
    LemlistEventTypes.EMAIL_BOUNCED: EventMapping(
        ActivityTypes.EMAIL_BOUNCED, None, EnrollmentStatus.PAUSED
    ),
    LemlistEventTypes.EMAIL_UNSUBSCRIBED: EventMapping(
        ActivityTypes.EMAIL_UNSUBSCRIBED, None, EnrollmentStatus.COMPLETED
    ),
    LemlistEventTypes.INTERESTED: EventMapping(ActivityTypes.LEAD_UPDATED, LeadStatus.INTERESTED),
    LemlistEventTypes.EMAIL_INTERESTED: EventMapping(ActivityTypes.LEAD_UPDATED, LeadStatus.INTERESTED),
    LemlistEventTypes.NOT_INTERESTED: EventMapping(
        ActivityTypes.LEAD_UPDATED, LeadStatus.NOT_INTERESTED, EnrollmentStatus.COMPLETED
    ),
    LemlistEventTypes.EMAIL_NOT_INTERESTED: EventMapping(
        ActivityTypes.LEAD_UPDATED, LeadStatus.NOT_INTERESTED, EnrollmentStatus.COMPLETED
    ),
    LemlistEventTypes.CAMPAIGN_COMPLETE: EventMapping(
        ActivityTypes.WORKFLOW_COMPLETED, None, EnrollmentStatus.COMPLETED
    ),
    LemlistEventTypes.LINKEDIN_INVITE_ACCEPTED: EventMapping(ActivityTypes.LINKEDIN_ACTIVITY),
    LemlistEventTypes.LINKEDIN_REPLIED: EventMapping(ActivityTypes.LINKEDIN_ACTIVITY),
}

# Lead status only moves forward through these ranks
STATUS_RANK = {
    LeadStatus.NEW: 0,
    LeadStatus.CONTACTED: 1,
    LeadStatus.REPLIED: 2,
    LeadStatus.INTERESTED: 3,
    LeadStatus.NOT_INTERESTED: 3,
}


def should_apply_status(current: Optional[str], target: Optional[str]) -> bool:
    """True when target differs from current and is not a step backwards."""
    if not target or current == target:
        return False
    return STATUS_RANK.get(target, 0) >= STATUS_RANK.get(current, 0)


class ActivitySyncReconciler:
    """Applies Lemlist events to leads, enrollments and the activity log."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        client_factory: Optional[LemlistClientFactory] = None
    ):
        self.session = session
        self.settings = settings or default_settings
        self.lead_repo = LeadRepository(session)
        self.campaign_repo = CampaignRepository(session)
        self.enrollment_repo = EnrollmentRepository(session)
        self.activity_service = ActivityService(session, self.settings)
        self.credential_service = CredentialService(session, self.settings, client_factory)

    # -------------------------------------------------------------------------
    # Push
    # -------------------------------------------------------------------------

    async def process_webhook(
        self,
        user_id: Optional[uuid.UUID],
        payload: Union[dict, LemlistWebhookPayload]
    ) -> WebhookProcessingResult:
        """Apply one inbound Lemlist event. Problems are reported, never raised."""
        try:
            event = (
                payload if isinstance(payload, LemlistWebhookPayload)
                else LemlistWebhookPayload.model_validate(payload)
            )
        except PayloadValidationError as e:
            logger.warning(f"Invalid Lemlist webhook payload: {e}")
            return WebhookProcessingResult(success=False, error="Invalid webhook payload")

        mapping = EVENT_MAPPING.get(event.type)
        if not mapping:
            logger.info(f"Ignoring unhandled Lemlist event type '{event.type}'")
            return WebhookProcessingResult(success=True)

        if not event.email:
            logger.warning(f"Lemlist {event.type} event without lead email")
            return WebhookProcessingResult(success=False, error="Missing lead email")

        lead = await self.lead_repo.get_by_email(event.email, owner_id=user_id)
        if not lead:
            logger.warning(f"No lead for Lemlist {event.type} event ({event.email})")
            return WebhookProcessingResult(success=False, error=f"Lead not found: {event.email}")

        meta = {
            "source": "lemlist_webhook",
            "event": event.type,
            "campaign_id": event.provider_campaign_id,
            "campaign_name": event.campaign_name,
        }
        lead_id = lead.id
        try:
            activity_created, lead_updated = await self._apply_event(
                lead,
                mapping,
                event.occurred_at or datetime.utcnow(),
                meta,
                event.provider_campaign_id,
            )
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to apply Lemlist {event.type} event to lead {lead_id}: {e}")
            return WebhookProcessingResult(success=False, error=describe_error(e))

        return WebhookProcessingResult(
            success=True,
            lead_updated=lead_updated,
            activity_created=activity_created,
        )

    # -------------------------------------------------------------------------
    # Pull
    # -------------------------------------------------------------------------

    async def sync_campaign(self, user_id: Optional[uuid.UUID], campaign_id: str) -> SyncResult:
        """
        Pull every lead of a Lemlist campaign and record its engagement.
        Leads unknown locally are skipped; one lead's failure does not stop the rest.
        """
        provider_campaign_id = await self._provider_campaign_id(campaign_id)
        client = await self.credential_service.get_lemlist_client(user_id)
        remote_leads = await client.get_campaign_leads(provider_campaign_id)

        result = SyncResult()
        for remote in remote_leads:
            try:
                created = await self._sync_remote_lead(user_id, provider_campaign_id, remote)
            except Exception as e:
                await self.session.rollback()
                logger.error(f"Failed to sync {remote.email} from campaign {provider_campaign_id}: {e}")
                result.errors.append(SyncError(email=remote.email, error=describe_error(e)))
                continue
            if created is None:
                continue
            result.leads_processed += 1
            result.activities_created += created

        logger.info(
            f"Synced campaign {provider_campaign_id}: {result.leads_processed} leads, "
            f"{result.activities_created} activities, {len(result.errors)} errors"
        )
        return result

    async def sync_lead_by_email(
        self,
        user_id: Optional[uuid.UUID],
        campaign_id: str,
        email: str
    ) -> LeadSyncResult:
        """Pull and record the engagement of a single campaign lead."""
        provider_campaign_id = await self._provider_campaign_id(campaign_id)
        client = await self.credential_service.get_lemlist_client(user_id)
        remote = await client.get_lead_by_email(provider_campaign_id, email)
        if not remote:
            return LeadSyncResult(synced=False)

        created = await self._sync_remote_lead(user_id, provider_campaign_id, remote)
        if created is None:
            return LeadSyncResult(synced=False)
        return LeadSyncResult(synced=True, activities_created=created)

    async def _provider_campaign_id(self, campaign_id: str) -> str:
        """Lemlist id for a Lemlist id or the local id of its mirror."""
        if campaign_id.startswith(self.settings.LEMLIST_CAMPAIGN_PREFIX):
            return campaign_id
        try:
            campaign = await self.campaign_repo.get(uuid.UUID(campaign_id))
        except ValueError:
            campaign = None
        if not campaign or not campaign.external_id:
            raise CampaignNotFound(campaign_id)
        return campaign.external_id

    async def _sync_remote_lead(
        self,
        user_id: Optional[uuid.UUID],
        campaign_id: str,
        remote: LemlistLead
    ) -> Optional[int]:
        """Activities created for one provider lead, or None if the lead is unknown here."""
        lead = await self.lead_repo.get_by_email(remote.email, owner_id=user_id)
        if not lead:
            logger.debug(f"Skipping {remote.email}: no local lead")
            return None

        activity = remote.activity
        flags = (
            (activity.opened, activity.opened_at, LemlistEventTypes.EMAIL_OPENED),
            (activity.clicked, activity.clicked_at, LemlistEventTypes.EMAIL_CLICKED),
            (activity.replied, activity.replied_at, LemlistEventTypes.EMAIL_REPLIED),
        )

        created = 0
        for flag, occurred_at, event_type in flags:
            # Flags without their own timestamp are not recorded
            if not flag or not occurred_at:
                continue
            meta = {"source": "lemlist_sync", "event": event_type, "campaign_id": campaign_id}
            activity_created, _ = await self._apply_event(
                lead,
                EVENT_MAPPING[event_type],
                occurred_at,
                meta,
                campaign_id,
            )
            if activity_created:
                created += 1
        return created

    async def _apply_event(
        self,
        lead: Lead,
        mapping: EventMapping,
        occurred_at: datetime,
        meta: dict,
        provider_campaign_id: Optional[str]
    ) -> Tuple[bool, bool]:
        """Record the activity and apply status transitions. Returns (activity_created, lead_updated)."""
        lead_id = lead.id
        contact_id = lead.contact_id
        current_status = lead.status

        entry_id = await self.activity_service.record(
            lead_id,
            mapping.activity_type,
            occurred_at,
            meta,
            organization_id=lead.company_id,
        )

        lead_updated = False
        if should_apply_status(current_status, mapping.lead_status):
            lead_updated = await self.lead_repo.update_status(lead_id, mapping.lead_status)
            if lead_updated:
                logger.info(f"Lead {lead_id} status {current_status} -> {mapping.lead_status}")

        if mapping.enrollment_status and provider_campaign_id and contact_id:
            campaign = await self.campaign_repo.get_by_external_id(provider_campaign_id)
            if campaign:
                enrollment = await self.enrollment_repo.get_for(campaign.id, contact_id)
                if enrollment:
                    await self.enrollment_repo.update_status(enrollment.id, mapping.enrollment_status)

        return entry_id is not None, lead_updated
