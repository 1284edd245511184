"""
Custom exceptions for the lead sync pipeline.
Provides consistent error handling across services and API routes.
"""
from typing import Optional

from fastapi import HTTPException, status


class LeadSyncException(Exception):
    """Base exception for the pipeline"""
    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(LeadSyncException):
    """Resource not found"""
    def __init__(self, resource: str = "Resource", resource_id: str = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message)


class CampaignNotFound(NotFoundError):
    """Target campaign does not exist locally or at the provider"""
    def __init__(self, campaign_id: str = None):
        super().__init__("Campaign", campaign_id)
        self.campaign_id = campaign_id


class ValidationError(LeadSyncException):
    """Validation failed"""
    def __init__(self, message: str = "Validation failed", field: str = None):
        if field:
            message = f"Validation failed for field '{field}': {message}"
        super().__init__(message)


class ConfigurationError(LeadSyncException):
    """Missing credentials or endpoint configuration"""
    def __init__(self, message: str = "Service is not configured"):
        super().__init__(message)


class PersistenceError(LeadSyncException):
    """Store write or read failed"""
    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)


class ExternalServiceError(LeadSyncException):
    """External service call failed"""
    def __init__(self, service: str = "External service", message: str = None):
        msg = f"{service} call failed"
        if message:
            msg = f"{msg}: {message}"
        super().__init__(msg)
        self.service = service


class ProviderUnavailable(ExternalServiceError):
    """External service could not be reached (network error or timeout)"""
    pass


class HttpError(ExternalServiceError):
    """External service answered with a non-2xx status"""
    def __init__(
        self,
        service: str,
        status_code: int,
        message: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.status_code = status_code
        self.error_message = message
        self.details = details
        super().__init__(service, f"returned {status_code}" + (f": {message}" if message else ""))


class EnrichmentTimeout(ExternalServiceError):
    """Enrichment webhook did not answer in time"""
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__("Enrichment webhook", f"request timed out after {timeout:g}s")


class ProviderDataAbsent(ExternalServiceError):
    """Provider answered 2xx but the payload is unusable"""
    def __init__(self, service: str = "Provider", message: str = "No usable data in response"):
        super().__init__(service, message)


def describe_error(error: BaseException) -> str:
    """Short, user-facing reason for a per-item failure."""
    if isinstance(error, HttpError):
        return error.error_message or error.message
    if isinstance(error, LeadSyncException):
        return error.message
    return str(error) or type(error).__name__


# HTTP Exception helpers
def raise_not_found(resource: str = "Resource", resource_id: str = None):
    """Raise 404 HTTPException"""
    err = NotFoundError(resource, resource_id)
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=err.message)


def raise_bad_request(message: str):
    """Raise 400 HTTPException"""
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def raise_bad_gateway(message: str):
    """Raise 502 HTTPException for upstream failures"""
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)
