"""
Base interfaces for integration providers.
Abstract base classes for third-party service integrations.
"""
from abc import ABC, abstractmethod
from typing import Optional, List

from leadsync.schemas.enrichment import EnrichmentRequest, ProviderEnvelope
from leadsync.schemas.lemlist import (
    LemlistCampaign,
    LemlistLead,
    LemlistLeadInput,
    LemlistWebhook,
    LemlistWebhookCreate,
)


class EnrichmentProvider(ABC):
    """Base interface for identity-resolution providers."""

    @abstractmethod
    async def enrich(self, request: EnrichmentRequest) -> Optional[ProviderEnvelope]:
        """
        Resolve a lead's identity.

        Returns:
            The first provider envelope, or None when the provider answered
            with an empty body. Non-2xx answers raise HttpError, timeouts
            raise EnrichmentTimeout.
        """
        pass


class CampaignPlatform(ABC):
    """Base interface for outreach campaign providers."""

    @abstractmethod
    async def list_campaigns(self) -> List[LemlistCampaign]:
        """List campaigns visible to the account."""
        pass

    @abstractmethod
    async def add_lead_to_campaign(self, campaign_id: str, lead: LemlistLeadInput) -> LemlistLead:
        """Enroll a lead in a provider campaign."""
        pass

    @abstractmethod
    async def get_lead_by_email(self, campaign_id: str, email: str) -> Optional[LemlistLead]:
        """Get a campaign lead with its activity flags."""
        pass

    @abstractmethod
    async def get_campaign_leads(self, campaign_id: str) -> List[LemlistLead]:
        """Get every lead of a campaign."""
        pass


class WebhookRegistry(ABC):
    """Base interface for provider-side webhook registration."""

    @abstractmethod
    async def list_webhooks(self) -> List[LemlistWebhook]:
        pass

    @abstractmethod
    async def create_webhook(self, webhook: LemlistWebhookCreate) -> LemlistWebhook:
        pass

    @abstractmethod
    async def delete_webhook(self, webhook_id: str) -> bool:
        pass
