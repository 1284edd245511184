"""
Common schemas used across multiple endpoints.
"""
import uuid
from typing import Optional
from pydantic import BaseModel


class QueuedResponse(BaseModel):
    """Work accepted for background processing."""
    status: str = "queued"
    lead_id: Optional[uuid.UUID] = None
    message: str

    class Config:
        json_schema_extra = {
            "example": {
                "status": "queued",
                "lead_id": "5f0c7c1e-8a63-4a4e-9d55-0b1c2f4c9d10",
                "message": "Enrichment started in background"
            }
        }


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str

    class Config:
        json_schema_extra = {"example": {"detail": "An error occurred"}}


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str = "1.0.0"
