"""
API dependencies - shared across all routes.
"""
from typing import Optional

from sqlalchemy.orm import sessionmaker

from leadsync.config import Settings, settings
from leadsync.database import async_session
from leadsync.services.credential_service import LemlistClientFactory


def get_settings() -> Settings:
    return settings


def get_session_factory() -> sessionmaker:
    """Session factory for work that outlives the request (background tasks)."""
    return async_session


def get_lemlist_client_factory() -> Optional[LemlistClientFactory]:
    """None means clients are built from stored credentials with default transport."""
    return None
