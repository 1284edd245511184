"""
Webhook delivery model - record of inbound campaign provider events.
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field
from sqlalchemy import Column

from leadsync.models.types import JSONVariant


class CampaignWebhookDelivery(SQLModel, table=True):
    """
    One webhook request received from Lemlist.
    Logged before processing, marked processed afterwards.
    """
    __tablename__ = "campaign_webhook_delivery"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, index=True)

    # Event info
    event_type: str = Field(index=True)
    payload: Dict[str, Any] = Field(default={}, sa_column=Column(JSONVariant))
    lead_email: Optional[str] = Field(default=None, index=True)
    campaign_id: Optional[str] = None

    # Processing status
    processed: bool = Field(default=False)
    processing_error: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    processed_at: Optional[datetime] = None
