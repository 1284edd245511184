"""
Webhook delivery repository.
"""
import uuid
from typing import Optional
from datetime import datetime

from sqlmodel.ext.asyncio.session import AsyncSession

from leadsync.models.webhook import CampaignWebhookDelivery
from leadsync.repositories.base import BaseRepository


class WebhookDeliveryRepository(BaseRepository[CampaignWebhookDelivery]):
    """Repository for inbound webhook deliveries."""

    def __init__(self, session: AsyncSession):
        super().__init__(CampaignWebhookDelivery, session)

    async def log_delivery(
        self,
        user_id: Optional[uuid.UUID],
        event_type: str,
        payload: dict,
        lead_email: Optional[str] = None,
        campaign_id: Optional[str] = None
    ) -> CampaignWebhookDelivery:
        """Record a delivery before it is processed."""
        return await self.create({
            "user_id": user_id,
            "event_type": event_type,
            "payload": payload,
            "lead_email": lead_email,
            "campaign_id": campaign_id,
        })

    async def mark_processed(self, delivery_id: uuid.UUID, error: Optional[str] = None) -> bool:
        """Mark a delivery processed, keeping the processing error if any."""
        delivery = await self.get(delivery_id)
        if not delivery:
            return False
        delivery.processed = True
        delivery.processing_error = error
        delivery.processed_at = datetime.utcnow()
        self.session.add(delivery)
        await self.session.commit()
        return True
