"""
Contact model - deduplicated canonical person record.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

# Provenance tag for contacts created from leads by this pipeline
CONTACT_SOURCE = "lead_sync_pipeline"


def normalize_email(email: Optional[str]) -> Optional[str]:
    if not email or not email.strip():
        return None
    return email.strip().lower()


class Contact(SQLModel, table=True):
    """Person record, keyed by lower-cased email when one is known."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    name: str = Field(default="Unknown", index=True)
    email: Optional[str] = Field(default=None, unique=True, index=True)
    job_title: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None

    organization_id: Optional[uuid.UUID] = Field(default=None, foreign_key="organization.id", index=True)

    # Source tracking
    source: str = Field(default=CONTACT_SOURCE, index=True)
    lead_id: Optional[uuid.UUID] = Field(default=None, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
