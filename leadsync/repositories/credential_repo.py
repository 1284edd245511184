"""
Provider credential repository.
"""
import uuid
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.models.credential import ProviderCredential
from leadsync.repositories.base import BaseRepository


class CredentialRepository(BaseRepository[ProviderCredential]):
    """Repository for ProviderCredential operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(ProviderCredential, session)

    async def get_active(self, user_id: uuid.UUID, provider: str) -> Optional[ProviderCredential]:
        """Get the active credential of a user for a provider."""
        query = select(ProviderCredential).where(
            ProviderCredential.user_id == user_id,
            ProviderCredential.provider == provider,
            ProviderCredential.is_active == True  # noqa: E712
        )
        result = await self.session.exec(query)
        return result.first()
