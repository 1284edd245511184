"""
Lead model - raw captured contact record.
Carries the enrichment state machine and the links created by resolution.
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field
from sqlalchemy import Column

from leadsync.models.types import JSONVariant


class EnrichmentStatus:
    PENDING = "pending"
    ENRICHING = "enriching"
    COMPLETED = "completed"
    FAILED = "failed"


class LeadStatus:
    NEW = "new"
    CONTACTED = "contacted"
    REPLIED = "replied"
    INTERESTED = "interested"
    NOT_INTERESTED = "not_interested"


class Lead(SQLModel, table=True):
    """
    Lead entity - a captured person before canonicalization.
    Owned by the capture flow; this pipeline never deletes leads.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # CRM user owning the lead (provider credentials are resolved from it)
    owner_id: Optional[uuid.UUID] = Field(default=None, index=True)

    # Basic info
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = Field(default=None, index=True)
    company: Optional[str] = Field(default=None, index=True)
    job_title: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None

    # Pipeline status: new, contacted, replied, interested, not_interested
    status: str = Field(default=LeadStatus.NEW, index=True)

    # Enrichment
    enrichment_status: str = Field(default=EnrichmentStatus.PENDING, index=True)
    enrichment_data: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONVariant))
    enrichment_timestamp: Optional[datetime] = None

    # Canonical links
    company_id: Optional[uuid.UUID] = Field(default=None, foreign_key="organization.id", index=True)
    contact_id: Optional[uuid.UUID] = Field(default=None, foreign_key="contact.id", index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return " ".join(p.strip() for p in (self.first_name, self.last_name) if p and p.strip())

    @property
    def has_identity(self) -> bool:
        """True when the lead carries enough signal to match a person."""
        return bool(self.email or self.first_name or self.last_name)
