"""
Organization model - canonical company record.
Keyed by normalized name, merged field by field as new attributes arrive.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field


def normalize_company_name(name: Optional[str]) -> Optional[str]:
    if not name or not name.strip():
        return None
    return " ".join(name.split()).lower()


class Organization(SQLModel, table=True):
    """Company a contact works for. Never duplicated for the same name key."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)
    name_key: str = Field(unique=True, index=True)

    # Company profile
    website: Optional[str] = None
    domain: Optional[str] = Field(default=None, index=True)
    linkedin_url: Optional[str] = Field(default=None, index=True)
    company_size: Optional[str] = None
    industry: Optional[str] = None
    head_office: Optional[str] = None

    # Engagement
    last_activity: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
