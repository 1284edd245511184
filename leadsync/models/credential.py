"""
Provider credential model.
Campaign provider API keys are stored per CRM user.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint


class ProviderCredential(SQLModel, table=True):
    """Stored API credentials for a third-party provider."""
    __tablename__ = "provider_credential"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_credential_user_provider"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(index=True)

    provider: str = Field(default="lemlist", index=True)
    api_key: str
    account_email: Optional[str] = None

    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
