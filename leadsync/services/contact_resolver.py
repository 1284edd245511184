"""
Contact resolver - maps a lead onto its canonical contact.
"""
import uuid
import logging
from typing import Optional
from datetime import datetime

from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.core.exceptions import LeadSyncException, PersistenceError, ValidationError
from leadsync.models.contact import Contact, CONTACT_SOURCE, normalize_email
from leadsync.models.lead import Lead
from leadsync.repositories.contact_repo import ContactRepository
from leadsync.repositories.lead_repo import LeadRepository
from leadsync.services.org_service import OrganizationService

logger = logging.getLogger(__name__)


class ResolvedContact(BaseModel):
    contact_id: uuid.UUID
    organization_id: Optional[uuid.UUID] = None
    created: bool = False


class ContactResolver:
    """
    Find-or-create the contact for a lead.

    Resolution is idempotent: a lead already linked to a contact gets that
    contact back, and a lead with an email finds the contact holding it.
    Only the first resolution of a lead can create a contact.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.contact_repo = ContactRepository(session)
        self.lead_repo = LeadRepository(session)
        self.org_service = OrganizationService(session)

    async def resolve(self, lead: Lead) -> ResolvedContact:
        if not lead.has_identity:
            raise ValidationError("Lead must have at least an email, first name or last name")

        lead_id = lead.id
        email = normalize_email(lead.email)

        try:
            if lead.contact_id:
                linked = await self.contact_repo.get(lead.contact_id)
                if linked:
                    return ResolvedContact(
                        contact_id=linked.id,
                        organization_id=linked.organization_id,
                        created=False,
                    )

            if email:
                existing = await self.contact_repo.get_by_email(email)
                if existing:
                    await self.lead_repo.link(lead, existing.id, existing.organization_id)
                    return ResolvedContact(
                        contact_id=existing.id,
                        organization_id=existing.organization_id,
                        created=False,
                    )

            org = await self.org_service.find_or_create(lead.company)
            organization_id = org.id if org else None

            now = datetime.utcnow()
            contact = Contact(
                name=lead.full_name or "Unknown",
                email=email,
                job_title=lead.job_title,
                phone=lead.phone,
                linkedin_url=lead.linkedin_url,
                organization_id=organization_id,
                source=CONTACT_SOURCE,
                lead_id=lead_id,
                created_at=now,
                updated_at=now,
            )
            self.session.add(contact)
            await self.session.commit()
            await self.session.refresh(contact)

            await self.lead_repo.link(lead, contact.id, organization_id)
        except LeadSyncException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to resolve contact for lead {lead_id}: {e}")
            raise PersistenceError(f"Failed to resolve contact for lead {lead_id}: {e}")

        logger.info(f"Created contact {contact.id} for lead {lead_id}")
        return ResolvedContact(contact_id=contact.id, organization_id=organization_id, created=True)
