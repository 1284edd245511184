"""
Contact repository.
"""
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.models.contact import Contact, normalize_email
from leadsync.repositories.base import BaseRepository


class ContactRepository(BaseRepository[Contact]):
    """Repository for Contact operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Contact, session)

    async def get_by_email(self, email: str) -> Optional[Contact]:
        """Get contact by normalized email."""
        normalized = normalize_email(email)
        if not normalized:
            return None
        query = select(Contact).where(Contact.email == normalized)
        result = await self.session.exec(query)
        return result.first()
