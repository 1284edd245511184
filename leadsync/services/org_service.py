"""
Organization service - find-or-create and profile merging for companies.
"""
import uuid
import logging
from typing import Optional
from datetime import datetime

from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.models.organization import Organization, normalize_company_name
from leadsync.repositories.organization_repo import OrganizationRepository
from leadsync.schemas.enrichment import CompanyProfile

logger = logging.getLogger(__name__)

# Profile fields copied onto an organization when the new value is non-empty
MERGE_FIELDS = ("website", "domain", "linkedin_url", "company_size", "industry", "head_office")


class OrganizationService:
    """Service for canonical company records."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.org_repo = OrganizationRepository(session)

    async def find_or_create(self, name: Optional[str]) -> Optional[Organization]:
        """
        Get the organization with this name (case-insensitive), creating it
        when missing. A blank name gives None.
        """
        key = normalize_company_name(name)
        if not key:
            return None

        org = await self.org_repo.get_by_name(name)
        if org:
            return org

        now = datetime.utcnow()
        row = {
            "id": uuid.uuid4(),
            "name": name.strip(),
            "name_key": key,
            "created_at": now,
            "updated_at": now,
        }
        stmt = self.org_repo.insert_ignoring_conflicts([row], ["name_key"])
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        # Another writer may have won the insert; either way the row exists now
        org = await self.org_repo.get_by_name(name)
        logger.info(f"Resolved organization '{name.strip()}' -> {org.id if org else None}")
        return org

    async def merge_profile(
        self,
        profile: CompanyProfile,
        fallback_name: Optional[str] = None
    ) -> Optional[Organization]:
        """
        Merge enrichment company attributes into an organization.

        The organization is matched by company linkedin_url first, then by
        name (profile name, else fallback_name). A field is overwritten only
        when the new value is non-empty. Returns None when there is nothing to
        match or create on.
        """
        org = None
        if profile.linkedin_url:
            org = await self.org_repo.get_by_linkedin_url(profile.linkedin_url)

        name = profile.name or fallback_name
        if not org:
            org = await self.find_or_create(name)
        if not org:
            logger.info("No company name or linkedin url in enrichment, skipping organization merge")
            return None

        changed = False
        for field in MERGE_FIELDS:
            value = getattr(profile, field)
            if value and getattr(org, field) != value:
                setattr(org, field, value)
                changed = True

        if changed:
            org.updated_at = datetime.utcnow()
            self.session.add(org)
            await self.session.commit()
            await self.session.refresh(org)
        return org
