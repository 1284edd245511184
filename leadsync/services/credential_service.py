"""
Credential service - builds provider clients from stored user credentials.
"""
import uuid
import logging
from typing import Optional, Callable

from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.config import Settings, settings as default_settings
from leadsync.core.exceptions import ConfigurationError
from leadsync.models.campaign import CampaignProvider
from leadsync.models.credential import ProviderCredential
from leadsync.repositories.credential_repo import CredentialRepository
from leadsync.services.integrations.lemlist import LemlistClient

logger = logging.getLogger(__name__)

LEMLIST_NOT_CONFIGURED = (
    "Lemlist credentials not configured. "
    "Add your Lemlist API key in the integration settings first."
)

LemlistClientFactory = Callable[[ProviderCredential, Settings], LemlistClient]


def build_lemlist_client(credential: ProviderCredential, settings: Settings) -> LemlistClient:
    return LemlistClient(
        api_key=credential.api_key,
        account_email=credential.account_email,
        base_url=settings.LEMLIST_API_URL,
        timeout=settings.LEMLIST_TIMEOUT_SECONDS,
        list_timeout=settings.LEMLIST_LIST_TIMEOUT_SECONDS,
    )


class CredentialService:
    """Resolves a user's provider credentials into a ready client."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        client_factory: Optional[LemlistClientFactory] = None
    ):
        self.session = session
        self.settings = settings or default_settings
        self.client_factory = client_factory or build_lemlist_client
        self.credential_repo = CredentialRepository(session)

    async def get_lemlist_client(self, user_id: Optional[uuid.UUID]) -> LemlistClient:
        """
        Lemlist client for a user.
        Raises ConfigurationError when the user has no active Lemlist key.
        """
        credential = None
        if user_id:
            credential = await self.credential_repo.get_active(user_id, CampaignProvider.LEMLIST)
        if not credential or not credential.api_key:
            logger.warning(f"No Lemlist credentials for user {user_id}")
            raise ConfigurationError(LEMLIST_NOT_CONFIGURED)
        return self.client_factory(credential, self.settings)
