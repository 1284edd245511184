"""
Tests for ActivitySyncReconciler and deduplicated activity logging.
"""

import uuid
from datetime import datetime, timedelta

import httpx
import pytest

from leadsync.models import CampaignEnrollment, Organization
from leadsync.models.activity import ActivityTypes
from leadsync.models.campaign import EnrollmentStatus
from leadsync.models.lead import LeadStatus
from leadsync.services.activity_service import ActivityService
from leadsync.services.activity_sync_service import (
    ActivitySyncReconciler,
    EVENT_MAPPING,
    should_apply_status,
)

from conftest import (
    RecordingTransport,
    activities_for,
    lemlist_factory,
    make_campaign,
    make_contacts,
    make_credential,
    make_lead,
)

BASE_TIME = datetime(2024, 5, 1, 12, 0, 30)


def event(event_type, email="a@b.com", at=BASE_TIME, **extra):
    payload = {"type": event_type, "email": email, "campaignId": "cam_123"}
    if at is not None:
        payload["timestamp"] = at.isoformat() + "Z"
    payload.update(extra)
    return payload


@pytest.mark.unit
class TestActivityDedup:
    """One entry per (lead, type) inside the dedup window."""

    async def test_events_ten_seconds_apart_are_deduplicated(self, session, settings, user_id):
        lead = await make_lead(session, email="a@b.com", owner_id=user_id)
        reconciler = ActivitySyncReconciler(session, settings)

        first = await reconciler.process_webhook(user_id, event("emailsOpened"))
        second = await reconciler.process_webhook(
            user_id, event("emailsOpened", at=BASE_TIME + timedelta(seconds=10))
        )

        assert first.activity_created is True
        assert second.success is True
        assert second.activity_created is False
        assert len(await activities_for(session, lead.id, ActivityTypes.EMAIL_OPENED)) == 1

    async def test_events_ninety_seconds_apart_are_both_kept(self, session, settings, user_id):
        lead = await make_lead(session, email="a@b.com", owner_id=user_id)
        reconciler = ActivitySyncReconciler(session, settings)

        await reconciler.process_webhook(user_id, event("emailsOpened"))
        await reconciler.process_webhook(
            user_id, event("emailsOpened", at=BASE_TIME + timedelta(seconds=90))
        )

        assert len(await activities_for(session, lead.id, ActivityTypes.EMAIL_OPENED)) == 2

    async def test_window_boundary_is_inclusive(self, session, settings):
        lead = await make_lead(session, email="a@b.com")
        service = ActivityService(session, settings)

        first = await service.record(lead.id, ActivityTypes.EMAIL_SENT, BASE_TIME)
        second = await service.record(lead.id, ActivityTypes.EMAIL_SENT, BASE_TIME + timedelta(seconds=60))

        assert first is not None
        assert second is None

    async def test_different_types_are_independent(self, session, settings):
        lead = await make_lead(session, email="a@b.com")
        service = ActivityService(session, settings)

        assert await service.record(lead.id, ActivityTypes.EMAIL_OPENED, BASE_TIME)
        assert await service.record(lead.id, ActivityTypes.EMAIL_CLICKED, BASE_TIME)

    async def test_same_bucket_outside_window_check_is_already_recorded(self, session, settings):
        settings.ACTIVITY_DEDUP_WINDOW_SECONDS = 0
        lead = await make_lead(session, email="a@b.com")
        service = ActivityService(session, settings)

        first = await service.record(lead.id, ActivityTypes.EMAIL_OPENED, datetime(2024, 5, 1, 12, 0, 5))
        second = await service.record(lead.id, ActivityTypes.EMAIL_OPENED, datetime(2024, 5, 1, 12, 0, 40))

        assert first is not None
        assert second is None
        assert len(await activities_for(session, lead.id)) == 1


@pytest.mark.unit
class TestWebhookProcessing:

    async def test_opened_does_not_change_status(self, session, settings, user_id):
        lead = await make_lead(session, email="a@b.com", owner_id=user_id)

        result = await ActivitySyncReconciler(session, settings).process_webhook(
            user_id, event("emailsOpened")
        )

        assert result.success is True
        assert result.lead_updated is False
        await session.refresh(lead)
        assert lead.status == LeadStatus.NEW

    async def test_email_match_is_case_insensitive(self, session, settings, user_id):
        lead = await make_lead(session, email="Jane@Acme.io", owner_id=user_id)

        result = await ActivitySyncReconciler(session, settings).process_webhook(
            user_id, event("emailsSent", email="jane@ACME.io")
        )

        assert result.success is True
        assert result.lead_updated is True
        await session.refresh(lead)
        assert lead.status == LeadStatus.CONTACTED

    async def test_replied_is_never_downgraded(self, session, settings, user_id):
        lead = await make_lead(session, email="a@b.com", owner_id=user_id)
        reconciler = ActivitySyncReconciler(session, settings)

        await reconciler.process_webhook(user_id, event("emailsReplied"))
        result = await reconciler.process_webhook(
            user_id, event("emailsSent", at=BASE_TIME + timedelta(minutes=5))
        )

        assert result.activity_created is True
        assert result.lead_updated is False
        await session.refresh(lead)
        assert lead.status == LeadStatus.REPLIED

    async def test_interested_after_replied(self, session, settings, user_id):
        lead = await make_lead(session, email="a@b.com", owner_id=user_id, status=LeadStatus.REPLIED)

        result = await ActivitySyncReconciler(session, settings).process_webhook(
            user_id, event("interested")
        )

        assert result.lead_updated is True
        await session.refresh(lead)
        assert lead.status == LeadStatus.INTERESTED
        entries = await activities_for(session, lead.id, ActivityTypes.LEAD_UPDATED)
        assert len(entries) == 1

    async def test_unknown_event_is_accepted_without_changes(self, session, settings, user_id):
        lead = await make_lead(session, email="a@b.com", owner_id=user_id)

        result = await ActivitySyncReconciler(session, settings).process_webhook(
            user_id, event("hooked")
        )

        assert result.success is True
        assert result.activity_created is False
        assert result.lead_updated is False
        assert await activities_for(session, lead.id) == []

    async def test_unknown_event_for_unknown_lead_is_accepted(self, session, settings, user_id):
        result = await ActivitySyncReconciler(session, settings).process_webhook(
            user_id, event("hooked", email="ghost@nowhere.io")
        )

        assert result.success is True
        assert result.error is None

    async def test_missing_email(self, session, settings, user_id):
        result = await ActivitySyncReconciler(session, settings).process_webhook(
            user_id, {"type": "emailsOpened"}
        )

        assert result.success is False
        assert result.error == "Missing lead email"

    async def test_unknown_lead(self, session, settings, user_id):
        result = await ActivitySyncReconciler(session, settings).process_webhook(
            user_id, event("emailsOpened", email="ghost@nowhere.io")
        )

        assert result.success is False
        assert "ghost@nowhere.io" in result.error

    async def test_lead_of_other_user_is_not_touched(self, session, settings, user_id):
        await make_lead(session, email="a@b.com", owner_id=uuid.uuid4())

        result = await ActivitySyncReconciler(session, settings).process_webhook(
            user_id, event("emailsOpened")
        )

        assert result.success is False

    async def test_missing_timestamp_uses_now(self, session, settings, user_id):
        lead = await make_lead(session, email="a@b.com", owner_id=user_id)

        await ActivitySyncReconciler(session, settings).process_webhook(
            user_id, event("emailsClicked", at=None)
        )

        entries = await activities_for(session, lead.id, ActivityTypes.EMAIL_CLICKED)
        assert abs((entries[0].timestamp - datetime.utcnow()).total_seconds()) < 60

    async def test_activity_touches_organization(self, session, settings, user_id):
        org = Organization(name="Acme", name_key="acme")
        session.add(org)
        await session.commit()
        await make_lead(session, email="a@b.com", owner_id=user_id, company_id=org.id)

        await ActivitySyncReconciler(session, settings).process_webhook(user_id, event("emailsOpened"))

        await session.refresh(org)
        assert org.last_activity is not None

    async def test_enrollment_status_follows_event(self, session, settings, user_id):
        campaign = await make_campaign(session, external_id="cam_123")
        contact = (await make_contacts(session, 1))[0]
        enrollment = CampaignEnrollment(campaign_id=campaign.id, contact_id=contact.id)
        session.add(enrollment)
        await session.commit()
        await make_lead(session, email="a@b.com", owner_id=user_id, contact_id=contact.id)

        await ActivitySyncReconciler(session, settings).process_webhook(user_id, event("emailsReplied"))

        await session.refresh(enrollment)
        assert enrollment.status == EnrollmentStatus.PAUSED


@pytest.mark.unit
class TestStatusProgression:

    @pytest.mark.parametrize("current, target, expected", [
        (LeadStatus.NEW, LeadStatus.CONTACTED, True),
        (LeadStatus.CONTACTED, LeadStatus.REPLIED, True),
        (LeadStatus.REPLIED, LeadStatus.CONTACTED, False),
        (LeadStatus.REPLIED, LeadStatus.REPLIED, False),
        (LeadStatus.INTERESTED, LeadStatus.NOT_INTERESTED, True),
        (LeadStatus.NOT_INTERESTED, LeadStatus.REPLIED, False),
        ("qualified", LeadStatus.CONTACTED, True),
        (LeadStatus.NEW, None, False),
    ])
    def test_should_apply_status(self, current, target, expected):
        assert should_apply_status(current, target) is expected

    def test_every_mapped_event_has_an_activity(self):
        assert all(mapping.activity_type for mapping in EVENT_MAPPING.values())


def campaign_leads_handler(leads):
    def handler(request: httpx.Request):
        path = request.url.path
        if path.endswith("/campaigns/cam_123/leads"):
            return httpx.Response(200, json=leads)
        if "/campaigns/cam_123/leads/" in path:
            email = path.rsplit("/", 1)[-1]
            for lead in leads:
                if lead["email"] == email:
                    return httpx.Response(200, json=lead)
        return httpx.Response(404, json={"message": "Not found"})
    return handler


@pytest.mark.unit
class TestPullSync:

    async def test_sync_campaign_records_flags(self, session, settings, user_id):
        await make_credential(session, user_id)
        lead = await make_lead(session, email="a@b.com", owner_id=user_id)
        remote = [
            {
                "_id": "lea_1",
                "email": "a@b.com",
                "openedAt": "2024-05-01T12:00:00Z",
                "repliedAt": "2024-05-01T15:00:00Z",
            },
            {"_id": "lea_2", "email": "stranger@else.io", "openedAt": "2024-05-01T12:00:00Z"},
        ]
        transport = RecordingTransport(campaign_leads_handler(remote))

        result = await ActivitySyncReconciler(
            session, settings, lemlist_factory(transport)
        ).sync_campaign(user_id, "cam_123")

        assert result.leads_processed == 1
        assert result.activities_created == 2
        assert result.errors == []
        await session.refresh(lead)
        assert lead.status == LeadStatus.REPLIED

        opened = await activities_for(session, lead.id, ActivityTypes.EMAIL_OPENED)
        assert opened[0].timestamp == datetime(2024, 5, 1, 12, 0, 0)

    async def test_repeated_sync_creates_nothing_new(self, session, settings, user_id):
        await make_credential(session, user_id)
        await make_lead(session, email="a@b.com", owner_id=user_id)
        remote = [{"email": "a@b.com", "openedAt": "2024-05-01T12:00:00Z"}]
        reconciler = ActivitySyncReconciler(
            session, settings, lemlist_factory(RecordingTransport(campaign_leads_handler(remote)))
        )

        await reconciler.sync_campaign(user_id, "cam_123")
        again = await reconciler.sync_campaign(user_id, "cam_123")

        assert again.leads_processed == 1
        assert again.activities_created == 0

    async def test_flag_without_own_timestamp_is_not_recorded(self, session, settings, user_id):
        await make_credential(session, user_id)
        lead = await make_lead(session, email="a@b.com", owner_id=user_id)
        responses = iter([
            [{"email": "a@b.com", "isOpened": True, "updatedAt": "2024-05-01T12:00:00Z"}],
            [{
                "email": "a@b.com",
                "isOpened": True,
                "clickedAt": "2024-05-01T12:05:00Z",
                "updatedAt": "2024-05-01T12:05:00Z",
            }],
        ])
        reconciler = ActivitySyncReconciler(
            session, settings,
            lemlist_factory(RecordingTransport(lambda request: httpx.Response(200, json=next(responses)))),
        )

        first = await reconciler.sync_campaign(user_id, "cam_123")
        second = await reconciler.sync_campaign(user_id, "cam_123")

        assert first.activities_created == 0
        assert second.activities_created == 1
        assert await activities_for(session, lead.id, ActivityTypes.EMAIL_OPENED) == []
        clicked = await activities_for(session, lead.id, ActivityTypes.EMAIL_CLICKED)
        assert [entry.timestamp for entry in clicked] == [datetime(2024, 5, 1, 12, 5, 0)]

    async def test_one_lead_failure_does_not_stop_sync(self, session, settings, user_id, monkeypatch):
        await make_credential(session, user_id)
        broken_id = (await make_lead(session, email="broken@b.com", owner_id=user_id)).id
        await make_lead(session, email="fine@b.com", owner_id=user_id)
        remote = [
            {"email": "broken@b.com", "openedAt": "2024-05-01T12:00:00Z"},
            {"email": "fine@b.com", "openedAt": "2024-05-01T12:00:00Z"},
        ]

        original = ActivityService.record

        async def failing_record(self, lead_id, *args, **kwargs):
            if lead_id == broken_id:
                raise RuntimeError("write failed")
            return await original(self, lead_id, *args, **kwargs)

        monkeypatch.setattr(ActivityService, "record", failing_record)

        result = await ActivitySyncReconciler(
            session, settings, lemlist_factory(RecordingTransport(campaign_leads_handler(remote)))
        ).sync_campaign(user_id, "cam_123")

        assert result.leads_processed == 1
        assert result.activities_created == 1
        assert [e.email for e in result.errors] == ["broken@b.com"]
        assert result.errors[0].error == "write failed"

    async def test_sync_lead_by_email(self, session, settings, user_id):
        await make_credential(session, user_id)
        await make_lead(session, email="a@b.com", owner_id=user_id)
        remote = [{"email": "a@b.com", "clickedAt": "2024-05-01T12:00:00Z"}]
        reconciler = ActivitySyncReconciler(
            session, settings, lemlist_factory(RecordingTransport(campaign_leads_handler(remote)))
        )

        found = await reconciler.sync_lead_by_email(user_id, "cam_123", "a@b.com")
        missing = await reconciler.sync_lead_by_email(user_id, "cam_123", "nobody@b.com")

        assert found.synced is True
        assert found.activities_created == 1
        assert missing.synced is False

    async def test_sync_through_local_mirror_id(self, session, settings, user_id):
        await make_credential(session, user_id)
        mirror = await make_campaign(session, external_id="cam_123")
        await make_lead(session, email="a@b.com", owner_id=user_id)
        remote = [{"email": "a@b.com", "openedAt": "2024-05-01T12:00:00Z"}]

        result = await ActivitySyncReconciler(
            session, settings, lemlist_factory(RecordingTransport(campaign_leads_handler(remote)))
        ).sync_campaign(user_id, str(mirror.id))

        assert result.activities_created == 1
