"""
Enrichment webhook client.
POSTs lead identity to the configured provider webhook and validates the answer.
"""
import asyncio
import json
import logging
from typing import Optional, Tuple

import httpx

from leadsync.core.exceptions import (
    EnrichmentTimeout,
    HttpError,
    ProviderDataAbsent,
    ProviderUnavailable,
)
from leadsync.schemas.enrichment import EnrichmentRequest, ProviderEnvelope
from leadsync.services.integrations.base import EnrichmentProvider

logger = logging.getLogger(__name__)

SERVICE_NAME = "Enrichment webhook"
ERROR_DETAILS_LIMIT = 1000


def describe_error_body(response: httpx.Response) -> Tuple[Optional[str], Optional[str]]:
    """
    (message, details) of a failed provider answer.
    JSON bodies are kept whole; anything else is cut to the first 1000 chars.
    """
    text = response.text
    if not text:
        return None, None
    try:
        body = response.json()
    except ValueError:
        details = text[:ERROR_DETAILS_LIMIT]
        return details, details

    details = json.dumps(body)
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if message is not None and not isinstance(message, str):
            message = json.dumps(message)
        return message or details, details
    return details, details


class EnrichmentWebhookClient(EnrichmentProvider):
    """
    Client for the identity-resolution webhook.

    The call is bounded by `timeout` seconds overall; the provider's own
    hard limit is longer, so the client gives up first.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @property
    def headers(self):
        return {
            "Content-Type": "application/json",
            "X-API-Key": self.api_key,
        }

    async def enrich(self, request: EnrichmentRequest) -> Optional[ProviderEnvelope]:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
        ) as client:
            try:
                response = await asyncio.wait_for(
                    client.post(self.url, json=request.model_dump(), headers=self.headers),
                    timeout=self.timeout,
                )
            except (asyncio.TimeoutError, httpx.TimeoutException):
                logger.warning(f"Enrichment webhook timed out after {self.timeout:g}s for lead {request.lead_id}")
                raise EnrichmentTimeout(self.timeout)
            except httpx.HTTPError as e:
                raise ProviderUnavailable(SERVICE_NAME, str(e))

        if not response.is_success:
            message, details = describe_error_body(response)
            logger.warning(
                f"Enrichment webhook returned {response.status_code} for lead {request.lead_id}"
            )
            raise HttpError(SERVICE_NAME, response.status_code, message, details)

        if not response.content:
            return None

        try:
            body = response.json()
        except ValueError:
            raise ProviderDataAbsent(SERVICE_NAME, "Malformed JSON in provider response")

        # The webhook answers with a list of envelopes; only the first one counts
        if isinstance(body, list):
            body = body[0] if body else None
        if body is None:
            return None
        if not isinstance(body, dict):
            raise ProviderDataAbsent(SERVICE_NAME, "Unexpected provider response shape")

        return ProviderEnvelope.model_validate(body)
