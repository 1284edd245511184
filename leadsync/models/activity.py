"""
Activity log model - append-only campaign/enrichment history per lead.
"""
import uuid
from datetime import datetime, timezone
from typing import Dict, Any

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, UniqueConstraint

from leadsync.models.types import JSONVariant

# Width of the store-level dedup bucket, in seconds
TIME_BUCKET_SECONDS = 60


def time_bucket(timestamp: datetime) -> int:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return int(timestamp.timestamp()) // TIME_BUCKET_SECONDS


class ActivityLog(SQLModel, table=True):
    """
    Activity entry for a lead.
    Two entries of one type for one lead never sit within the dedup window;
    the unique bucket constraint catches concurrent writers that race the check.
    """
    __tablename__ = "activity_log"
    __table_args__ = (
        UniqueConstraint("lead_id", "activity_type", "time_bucket", name="uq_activity_lead_type_bucket"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    lead_id: uuid.UUID = Field(foreign_key="lead.id", index=True)

    activity_type: str = Field(index=True)
    timestamp: datetime = Field(default_factory=datetime.utcnow, index=True)
    time_bucket: int = Field(default=0)

    # Example: {"source": "lemlist_webhook", "campaign_id": "cam_123", "raw_payload": {...}}
    meta_data: Dict[str, Any] = Field(default={}, sa_column=Column(JSONVariant))

    created_at: datetime = Field(default_factory=datetime.utcnow)


# Activity type constants for consistency
class ActivityTypes:
    LEAD_UPDATED = "lead_updated"

    # Email campaign events
    EMAIL_SENT = "email_sent"
    EMAIL_OPENED = "email_opened"
    EMAIL_CLICKED = "email_clicked"
    EMAIL_REPLIED = "email_replied"
    EMAIL_BOUNCED = "email_bounced"
    EMAIL_UNSUBSCRIBED = "email_unsubscribed"

    WORKFLOW_COMPLETED = "workflow_completed"
    LINKEDIN_ACTIVITY = "linkedin_activity"
