"""
Tests for the HTTP clients: enrichment webhook and Lemlist.
"""

import base64
import json

import httpx
import pytest

from leadsync.core.exceptions import HttpError, ProviderDataAbsent, ProviderUnavailable
from leadsync.schemas.enrichment import EnrichmentRequest
from leadsync.schemas.lemlist import LemlistLeadInput, LemlistWebhookCreate
from leadsync.services.integrations.enrichment import EnrichmentWebhookClient, describe_error_body
from leadsync.services.integrations.lemlist import LemlistClient

from conftest import LEMLIST_URL, RecordingTransport


def lemlist(handler, api_key="lemlist-key"):
    transport = RecordingTransport(handler)
    return LemlistClient(api_key=api_key, base_url=LEMLIST_URL, transport=transport), transport


@pytest.mark.unit
class TestEnrichmentWebhookClient:

    async def test_returns_first_envelope(self):
        body = [
            {"status": 200, "likelihood": 8, "data": {"id": "first"}},
            {"status": 200, "likelihood": 3, "data": {"id": "second"}},
        ]
        client = EnrichmentWebhookClient(
            "https://enrichment.test/webhook", "key",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)),
        )

        envelope = await client.enrich(EnrichmentRequest(lead_id="1", timestamp="2024-01-01T00:00:00Z"))

        assert envelope.data.id == "first"
        assert envelope.likelihood == 8

    async def test_empty_body_is_no_envelope(self):
        client = EnrichmentWebhookClient(
            "https://enrichment.test/webhook", "key",
            transport=httpx.MockTransport(lambda request: httpx.Response(200)),
        )

        assert await client.enrich(EnrichmentRequest(lead_id="1", timestamp="t")) is None

    async def test_non_object_envelope_is_rejected(self):
        client = EnrichmentWebhookClient(
            "https://enrichment.test/webhook", "key",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=["nope"])),
        )

        with pytest.raises(ProviderDataAbsent):
            await client.enrich(EnrichmentRequest(lead_id="1", timestamp="t"))

    def test_error_body_prefers_error_field(self):
        response = httpx.Response(400, json={"error": {"type": "invalid_request"}})

        message, details = describe_error_body(response)

        assert message == '{"type": "invalid_request"}'
        assert json.loads(details) == {"error": {"type": "invalid_request"}}


@pytest.mark.unit
class TestLemlistAuth:

    async def test_basic_auth_with_empty_username(self):
        client, transport = lemlist(lambda request: httpx.Response(200, json=[]), api_key="secret")

        await client.list_campaigns()

        header = transport.requests[0].headers["Authorization"]
        assert base64.b64decode(header.split(" ", 1)[1]) == b":secret"
        assert str(transport.requests[0].url) == f"{LEMLIST_URL}/campaigns"

    async def test_invalid_key(self):
        client, _ = lemlist(lambda request: httpx.Response(401, json={"message": "Unauthorized"}))

        with pytest.raises(HttpError) as exc:
            await client.list_campaigns()

        assert exc.value.status_code == 401
        assert exc.value.error_message == "Invalid Lemlist API key"

    async def test_network_failure(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        client, _ = lemlist(refuse)

        with pytest.raises(ProviderUnavailable):
            await client.list_campaigns()

    async def test_timeout(self):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client, _ = lemlist(slow)

        with pytest.raises(ProviderUnavailable) as exc:
            await client.get_lead_by_email("cam_1", "a@b.com")

        assert "timeout" in exc.value.message.lower()


@pytest.mark.unit
class TestLemlistCampaigns:

    async def test_campaign_listing_shapes(self):
        client, _ = lemlist(lambda request: httpx.Response(200, json={
            "campaigns": [
                {"_id": "cam_1", "name": "One", "status": "running"},
                {"_id": "cam_2", "name": "Two", "status": "paused"},
                {"name": "no id"},
            ]
        }))

        campaigns = await client.list_campaigns()

        assert [(c.id, c.status) for c in campaigns] == [("cam_1", "active"), ("cam_2", "paused")]

    async def test_get_campaign(self):
        client, _ = lemlist(lambda request: httpx.Response(200, json=[{"_id": "cam_1", "name": "One"}]))

        assert (await client.get_campaign("cam_1")).name == "One"
        assert await client.get_campaign("cam_9") is None


@pytest.mark.unit
class TestLemlistLeads:

    async def test_add_lead_posts_to_email_path(self):
        client, transport = lemlist(lambda request: httpx.Response(200, json={"_id": "lea_1"}))

        lead = await client.add_lead_to_campaign(
            "cam_1",
            LemlistLeadInput(email="jane@acme.io", first_name="Jane", company="Acme"),
        )

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/campaigns/cam_1/leads/jane@acme.io"
        assert json.loads(request.content) == {"firstName": "Jane", "companyName": "Acme"}
        assert lead.id == "lea_1"
        assert lead.email == "jane@acme.io"

    async def test_add_lead_already_in_campaign(self):
        client, _ = lemlist(
            lambda request: httpx.Response(400, json={"message": "Lead already in the campaign"})
        )

        lead = await client.add_lead_to_campaign("cam_1", LemlistLeadInput(email="jane@acme.io"))

        assert lead.email == "jane@acme.io"
        assert lead.campaign_id == "cam_1"

    async def test_add_lead_rejected(self):
        client, _ = lemlist(lambda request: httpx.Response(400, json={"message": "Invalid email"}))

        with pytest.raises(HttpError) as exc:
            await client.add_lead_to_campaign("cam_1", LemlistLeadInput(email="broken"))

        assert exc.value.error_message == "Invalid email"

    async def test_get_lead_maps_activity_flags(self):
        client, _ = lemlist(lambda request: httpx.Response(200, json={
            "_id": "lea_1",
            "email": "jane@acme.io",
            "openedAt": "2024-05-01T12:00:00.000Z",
            "isClicked": True,
            "status": "paused",
        }))

        lead = await client.get_lead_by_email("cam_1", "jane@acme.io")

        assert lead.activity.opened is True
        assert lead.activity.opened_at.hour == 12
        assert lead.activity.clicked is True
        assert lead.activity.clicked_at is None
        assert lead.activity.replied is False
        assert lead.status == "paused"

    async def test_get_lead_missing(self):
        client, _ = lemlist(lambda request: httpx.Response(404))

        assert await client.get_lead_by_email("cam_1", "jane@acme.io") is None

    @pytest.mark.parametrize("status", [400, 404])
    async def test_campaign_leads_of_unknown_campaign(self, status):
        client, _ = lemlist(lambda request: httpx.Response(status))

        assert await client.get_campaign_leads("cam_1") == []

    async def test_campaign_leads_skip_entries_without_email(self):
        client, _ = lemlist(lambda request: httpx.Response(200, json={
            "leads": [{"email": "a@b.com"}, {"_id": "lea_2"}]
        }))

        leads = await client.get_campaign_leads("cam_1")

        assert [lead.email for lead in leads] == ["a@b.com"]

    async def test_campaign_leads_rate_limited(self):
        client, _ = lemlist(lambda request: httpx.Response(429))

        with pytest.raises(HttpError) as exc:
            await client.get_campaign_leads("cam_1")

        assert exc.value.status_code == 429


@pytest.mark.unit
class TestLemlistWebhooks:

    async def test_create_list_delete(self):
        hooks = {}

        def handler(request: httpx.Request):
            if request.method == "POST":
                body = json.loads(request.content)
                hooks["hook_1"] = {"_id": "hook_1", **body}
                return httpx.Response(200, json=hooks["hook_1"])
            if request.method == "GET":
                return httpx.Response(200, json=list(hooks.values()))
            if request.method == "DELETE":
                hook_id = request.url.path.rsplit("/", 1)[-1]
                if hooks.pop(hook_id, None) is None:
                    return httpx.Response(404)
                return httpx.Response(200, json={})
            return httpx.Response(405)

        client, _ = lemlist(handler)

        created = await client.create_webhook(LemlistWebhookCreate(
            target_url="https://crm.test/api/webhooks/lemlist/u1",
            event="emailsReplied",
            campaign_id="cam_1",
        ))
        listed = await client.list_webhooks()

        assert created.hook_id == "hook_1"
        assert created.event == "emailsReplied"
        assert [h.target_url for h in listed] == ["https://crm.test/api/webhooks/lemlist/u1"]
        assert await client.delete_webhook("hook_1") is True
        assert await client.delete_webhook("hook_1") is False
