"""
Lemlist API integration.
Campaign listing, lead enrollment, lead activity and webhook management.

API Docs: https://developer.lemlist.com
Auth is HTTP basic with an empty username and the API key as password.
"""
import logging
from typing import Optional, List, Any, Dict
from urllib.parse import quote

import httpx

from leadsync.config import settings
from leadsync.core.exceptions import HttpError, ProviderDataAbsent, ProviderUnavailable
from leadsync.schemas.lemlist import (
    LemlistCampaign,
    LemlistLead,
    LemlistLeadInput,
    LemlistWebhook,
    LemlistWebhookCreate,
)
from leadsync.services.integrations.base import CampaignPlatform, WebhookRegistry
from leadsync.services.integrations.enrichment import describe_error_body

logger = logging.getLogger(__name__)

SERVICE_NAME = "Lemlist"


def _items(body: Any, *keys: str) -> List[Dict[str, Any]]:
    """Lemlist answers listings either as a bare array or wrapped in an object."""
    if isinstance(body, list):
        return [item for item in body if isinstance(item, dict)]
    if isinstance(body, dict):
        for key in keys:
            if isinstance(body.get(key), list):
                return [item for item in body[key] if isinstance(item, dict)]
    return []


class LemlistClient(CampaignPlatform, WebhookRegistry):
    """
    Lemlist API client.

    Built per call from a user's stored credentials; one httpx client is
    opened per request.
    """

    def __init__(
        self,
        api_key: str,
        account_email: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        list_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.account_email = account_email
        self.base_url = (base_url or settings.LEMLIST_API_URL).rstrip("/")
        self.timeout = timeout or settings.LEMLIST_TIMEOUT_SECONDS
        self.list_timeout = list_timeout or settings.LEMLIST_LIST_TIMEOUT_SECONDS
        self.transport = transport

    @property
    def auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth("", self.api_key)

    async def _request(
        self,
        method: str,
        path: str,
        timeout: Optional[float] = None,
        **kwargs,
    ) -> httpx.Response:
        """Send one request; network failures become ProviderUnavailable."""
        async with httpx.AsyncClient(
            base_url=self.base_url,
            auth=self.auth,
            timeout=timeout or self.timeout,
            transport=self.transport,
        ) as client:
            try:
                return await client.request(method, path, **kwargs)
            except httpx.TimeoutException:
                logger.warning(f"Lemlist {method} {path} timed out")
                raise ProviderUnavailable(SERVICE_NAME, "Request timeout: Lemlist API did not respond in time")
            except httpx.HTTPError as e:
                logger.warning(f"Lemlist {method} {path} failed: {e}")
                raise ProviderUnavailable(SERVICE_NAME, str(e))

    def _raise_for_status(self, response: httpx.Response):
        if response.is_success:
            return
        message, details = describe_error_body(response)
        if response.status_code == 401:
            message = "Invalid Lemlist API key"
        elif response.status_code == 429:
            message = "Lemlist rate limit exceeded, try again later"
        raise HttpError(SERVICE_NAME, response.status_code, message, details)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            raise ProviderDataAbsent(SERVICE_NAME, "Malformed JSON in Lemlist response")

    # -------------------------------------------------------------------------
    # Campaigns
    # -------------------------------------------------------------------------

    async def list_campaigns(self) -> List[LemlistCampaign]:
        response = await self._request("GET", "/campaigns", timeout=self.list_timeout)
        self._raise_for_status(response)
        campaigns = [
            LemlistCampaign.from_api(item)
            for item in _items(self._json(response), "campaigns", "data")
        ]
        return [c for c in campaigns if c.id]

    async def get_campaign(self, campaign_id: str) -> Optional[LemlistCampaign]:
        """Find a campaign in the account's campaign list."""
        for campaign in await self.list_campaigns():
            if campaign.id == campaign_id:
                return campaign
        return None

    # -------------------------------------------------------------------------
    # Leads
    # -------------------------------------------------------------------------

    async def add_lead_to_campaign(self, campaign_id: str, lead: LemlistLeadInput) -> LemlistLead:
        """
        Add a lead to a campaign.
        A lead that is already in the campaign counts as added.
        """
        path = f"/campaigns/{campaign_id}/leads/{quote(lead.email, safe='@')}"
        response = await self._request("POST", path, json=lead.to_api())

        if response.status_code in (400, 409):
            message, _ = describe_error_body(response)
            if message and "already" in message.lower():
                logger.info(f"Lead {lead.email} already in Lemlist campaign {campaign_id}")
                return LemlistLead(
                    email=lead.email,
                    first_name=lead.first_name,
                    last_name=lead.last_name,
                    company=lead.company,
                    campaign_id=campaign_id,
                )

        self._raise_for_status(response)
        body = self._json(response) if response.content else {}
        if not isinstance(body, dict):
            body = {}
        body.setdefault("email", lead.email)
        return LemlistLead.from_api(body, campaign_id)

    async def get_lead_by_email(self, campaign_id: str, email: str) -> Optional[LemlistLead]:
        path = f"/campaigns/{campaign_id}/leads/{quote(email, safe='@')}"
        response = await self._request("GET", path)
        if response.status_code == 404:
            return None
        self._raise_for_status(response)

        body = self._json(response)
        if isinstance(body, list):
            body = body[0] if body else None
        if not isinstance(body, dict):
            return None
        body.setdefault("email", email)
        return LemlistLead.from_api(body, campaign_id)

    async def get_campaign_leads(self, campaign_id: str) -> List[LemlistLead]:
        """All leads of a campaign. Unknown or empty campaigns give []."""
        response = await self._request(
            "GET", f"/campaigns/{campaign_id}/leads", timeout=self.list_timeout
        )
        if response.status_code in (400, 404):
            logger.info(f"Lemlist campaign {campaign_id} has no leads ({response.status_code})")
            return []
        self._raise_for_status(response)

        leads = [
            LemlistLead.from_api(item, campaign_id)
            for item in _items(self._json(response), "leads", "data")
        ]
        return [lead for lead in leads if lead.email]

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    async def list_webhooks(self) -> List[LemlistWebhook]:
        response = await self._request("GET", "/hooks")
        self._raise_for_status(response)
        return [
            LemlistWebhook.model_validate(item)
            for item in _items(self._json(response), "hooks", "data")
            if item.get("_id") and item.get("targetUrl")
        ]

    async def create_webhook(self, webhook: LemlistWebhookCreate) -> LemlistWebhook:
        body: Dict[str, Any] = {"targetUrl": webhook.target_url}
        if webhook.event:
            body["type"] = webhook.event
        if webhook.campaign_id:
            body["campaignId"] = webhook.campaign_id
        if webhook.is_first is not None:
            body["isFirst"] = webhook.is_first

        response = await self._request("POST", "/hooks", json=body)
        self._raise_for_status(response)
        return LemlistWebhook.model_validate(self._json(response))

    async def delete_webhook(self, webhook_id: str) -> bool:
        response = await self._request("DELETE", f"/hooks/{webhook_id}")
        if response.status_code == 404:
            return False
        self._raise_for_status(response)
        return True
