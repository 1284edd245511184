"""
Campaign enrollment and sync schemas.
"""
import uuid
from typing import Optional, List
from pydantic import BaseModel, Field, model_validator


class EnrollmentRequest(BaseModel):
    """Enroll contacts, or leads that are resolved to contacts first."""
    contact_ids: Optional[List[uuid.UUID]] = None
    lead_ids: Optional[List[uuid.UUID]] = None
    user_id: Optional[uuid.UUID] = None  # owner of the provider credentials

    @model_validator(mode="after")
    def check_ids(self):
        if bool(self.contact_ids) == bool(self.lead_ids):
            raise ValueError("Provide either contact_ids or lead_ids")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "lead_ids": ["5f0c7c1e-8a63-4a4e-9d55-0b1c2f4c9d10"],
                "user_id": "0d6f7a1c-3c2b-4f1e-a0c8-7f1d9b2e5a44"
            }
        }


class EnrollmentError(BaseModel):
    """One id that could not be enrolled."""
    id: str
    reason: str


class BulkEnrollmentResult(BaseModel):
    """Aggregate outcome of an enrollment batch."""
    success_count: int = 0
    failed_count: int = 0
    errors: List[EnrollmentError] = Field(default_factory=list)
    message: str = ""

    def add_success(self, count: int = 1):
        self.success_count += count

    def add_error(self, id: str, reason: str):
        self.failed_count += 1
        self.errors.append(EnrollmentError(id=str(id), reason=reason))


class SyncError(BaseModel):
    email: str
    error: str


class SyncResult(BaseModel):
    """Outcome of pulling one provider campaign."""
    leads_processed: int = 0
    activities_created: int = 0
    errors: List[SyncError] = Field(default_factory=list)


class LeadSyncResult(BaseModel):
    synced: bool = False
    activities_created: int = 0


class WebhookProcessingResult(BaseModel):
    """Outcome of one inbound provider event."""
    success: bool = False
    lead_updated: bool = False
    activity_created: bool = False
    error: Optional[str] = None
