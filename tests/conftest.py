import uuid
from typing import Callable, List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

import leadsync.models  # noqa: F401
from leadsync.config import Settings
from leadsync.models import (
    ActivityLog,
    Campaign,
    Contact,
    Lead,
    Organization,
    ProviderCredential,
)
from leadsync.models.campaign import CampaignProvider
from leadsync.services.integrations.lemlist import LemlistClient

ENRICHMENT_URL = "https://enrichment.test/webhook"
LEMLIST_URL = "https://lemlist.test/api"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite://",
        ENRICHMENT_WEBHOOK_URL=ENRICHMENT_URL,
        ENRICHMENT_API_KEY="test-enrichment-key",
        ENRICHMENT_TIMEOUT_SECONDS=0.2,
        LEMLIST_API_URL=LEMLIST_URL,
    )


@pytest.fixture
def user_id():
    return uuid.uuid4()


# -----------------------------------------------------------------------------
# Factories
# -----------------------------------------------------------------------------

async def make_lead(session: AsyncSession, **fields) -> Lead:
    lead = Lead(**fields)
    session.add(lead)
    await session.commit()
    await session.refresh(lead)
    return lead


async def make_contacts(session: AsyncSession, count: int, organization_id=None) -> List[Contact]:
    contacts = [
        Contact(
            name=f"Person {i}",
            email=f"person{i}@example.com",
            organization_id=organization_id,
        )
        for i in range(count)
    ]
    session.add_all(contacts)
    await session.commit()
    return contacts


async def make_campaign(session: AsyncSession, external_id: Optional[str] = None, **fields) -> Campaign:
    campaign = Campaign(
        name=fields.pop("name", "Q3 Outreach"),
        provider=CampaignProvider.LEMLIST if external_id else CampaignProvider.LOCAL,
        external_id=external_id,
        **fields,
    )
    session.add(campaign)
    await session.commit()
    await session.refresh(campaign)
    return campaign


async def make_credential(session: AsyncSession, user_id: uuid.UUID, api_key: str = "lemlist-key"):
    credential = ProviderCredential(user_id=user_id, provider="lemlist", api_key=api_key)
    session.add(credential)
    await session.commit()
    return credential


async def all_rows(session: AsyncSession, model) -> list:
    result = await session.exec(select(model))
    return result.all()


async def activities_for(session: AsyncSession, lead_id: uuid.UUID, activity_type: Optional[str] = None):
    query = select(ActivityLog).where(ActivityLog.lead_id == lead_id)
    if activity_type:
        query = query.where(ActivityLog.activity_type == activity_type)
    result = await session.exec(query)
    return result.all()


async def organizations(session: AsyncSession) -> List[Organization]:
    return await all_rows(session, Organization)


# -----------------------------------------------------------------------------
# HTTP fakes
# -----------------------------------------------------------------------------

class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable):
        self.requests: List[httpx.Request] = []

        async def recording_handler(request: httpx.Request):
            self.requests.append(request)
            response = handler(request)
            if not isinstance(response, httpx.Response):
                response = await response
            return response

        super().__init__(recording_handler)


def lemlist_factory(transport: httpx.AsyncBaseTransport):
    """Client factory building Lemlist clients on a fake transport."""
    def factory(credential, settings):
        return LemlistClient(
            api_key=credential.api_key,
            base_url=settings.LEMLIST_API_URL,
            transport=transport,
        )
    return factory
