"""
Campaign model - outbound sequence, local or mirrored from Lemlist.
Enrollment is the (campaign, contact) join with its own status.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint


class CampaignProvider:
    LOCAL = "local"
    LEMLIST = "lemlist"


class EnrollmentStatus:
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class Campaign(SQLModel, table=True):
    """
    Campaign entity.
    Provider campaigns keep the provider id in external_id (e.g. "cam_...").
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Basic info
    name: str = Field(index=True)
    provider: str = Field(default=CampaignProvider.LOCAL, index=True)  # local, lemlist
    external_id: Optional[str] = Field(default=None, unique=True, index=True)

    status: str = Field(default="active", index=True)  # active, paused, completed

    # Analytics
    leads_count: int = Field(default=0)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class CampaignEnrollment(SQLModel, table=True):
    """
    Contact participation in a campaign.
    (campaign_id, contact_id) is the natural key; re-enrollment never adds a row.
    """
    __tablename__ = "campaign_enrollment"
    __table_args__ = (
        UniqueConstraint("campaign_id", "contact_id", name="uq_enrollment_campaign_contact"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    campaign_id: uuid.UUID = Field(foreign_key="campaign.id", index=True)
    contact_id: uuid.UUID = Field(foreign_key="contact.id", index=True)

    status: str = Field(default=EnrollmentStatus.ACTIVE, index=True)

    enrolled_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
