"""
Lemlist schemas.
Raw Lemlist responses and webhook payloads are mapped onto these models.
"""
from typing import Optional, List, Any, Dict
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from leadsync.core.timeutils import parse_timestamp


# Lemlist webhook event types
class LemlistEventTypes:
    # Lead status events
    CONTACTED = "contacted"
    HOOKED = "hooked"
    ATTRACTED = "attracted"
    WARMED = "warmed"
    INTERESTED = "interested"
    SKIPPED = "skipped"
    NOT_INTERESTED = "notInterested"

    # Email activity events
    EMAIL_SENT = "emailsSent"
    EMAIL_OPENED = "emailsOpened"
    EMAIL_CLICKED = "emailsClicked"
    EMAIL_REPLIED = "emailsReplied"
    EMAIL_BOUNCED = "emailsBounced"
    EMAIL_SEND_FAILED = "emailsSendFailed"
    EMAIL_FAILED = "emailsFailed"
    EMAIL_UNSUBSCRIBED = "emailsUnsubscribed"
    EMAIL_INTERESTED = "emailsInterested"
    EMAIL_NOT_INTERESTED = "emailsNotInterested"

    # LinkedIn events
    LINKEDIN_INVITE_ACCEPTED = "linkedinInviteAccepted"
    LINKEDIN_REPLIED = "linkedinReplied"

    # Operational
    CAMPAIGN_COMPLETE = "campaignComplete"


class LemlistCampaign(BaseModel):
    id: str
    name: str = ""
    status: str = "active"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "LemlistCampaign":
        status = str(data.get("status") or data.get("campaignStatus") or "active").lower()
        if status in ("running", "started"):
            status = "active"
        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            name=str(data.get("name") or ""),
            status=status,
        )


class LemlistLeadActivity(BaseModel):
    opened: bool = False
    opened_at: Optional[datetime] = None
    clicked: bool = False
    clicked_at: Optional[datetime] = None
    replied: bool = False
    replied_at: Optional[datetime] = None
    bounced: bool = False
    bounced_at: Optional[datetime] = None
    unsubscribed: bool = False
    unsubscribed_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None


class LemlistLead(BaseModel):
    """A lead as Lemlist reports it inside a campaign."""
    id: str = ""
    email: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    campaign_id: str
    status: str = "active"  # active, paused, completed, pending
    activity: LemlistLeadActivity = Field(default_factory=LemlistLeadActivity)

    @classmethod
    def from_api(cls, data: Dict[str, Any], campaign_id: str) -> "LemlistLead":
        """Map a raw Lemlist lead, tolerating the API's several flag spellings."""
        activity = LemlistLeadActivity(
            opened=bool(data.get("openedAt") or data.get("opened") or data.get("isOpened")),
            opened_at=parse_timestamp(data.get("openedAt")),
            clicked=bool(data.get("clickedAt") or data.get("clicked") or data.get("isClicked")),
            clicked_at=parse_timestamp(data.get("clickedAt")),
            replied=bool(data.get("repliedAt") or data.get("replied") or data.get("isReplied")),
            replied_at=parse_timestamp(data.get("repliedAt")),
            bounced=bool(data.get("bouncedAt") or data.get("bounced") or data.get("isBounced")),
            bounced_at=parse_timestamp(data.get("bouncedAt")),
            unsubscribed=bool(
                data.get("unsubscribedAt") or data.get("unsubscribed") or data.get("isUnsubscribed")
            ),
            unsubscribed_at=parse_timestamp(data.get("unsubscribedAt")),
            last_activity_at=parse_timestamp(
                data.get("lastActivityAt") or data.get("lastActivity") or data.get("updatedAt")
            ),
        )

        status = "active"
        raw_status = str(data.get("status") or "").lower()
        if raw_status == "paused":
            status = "paused"
        elif raw_status in ("completed", "finished", "done"):
            status = "completed"
        elif raw_status in ("pending", "waiting"):
            status = "pending"

        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            email=str(data.get("email") or ""),
            first_name=data.get("firstName") or None,
            last_name=data.get("lastName") or None,
            company=data.get("companyName") or data.get("company") or None,
            campaign_id=campaign_id,
            status=status,
            activity=activity,
        )


class LemlistLeadInput(BaseModel):
    """Lead-add body in Lemlist's format."""
    model_config = ConfigDict(populate_by_name=True)

    email: str
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    company: Optional[str] = Field(default=None, alias="companyName")

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"email"})


class LemlistWebhookPayload(BaseModel):
    """Inbound Lemlist event. Unknown fields are kept for the raw payload log."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str
    email: Optional[str] = None
    campaign_id: Optional[str] = Field(default=None, alias="campaignId")
    lemlist_campaign_id: Optional[str] = Field(default=None, alias="lemlistCampaignId")
    campaign_name: Optional[str] = Field(default=None, alias="campaignName")
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    company_name: Optional[str] = Field(default=None, alias="companyName")
    is_first: Optional[bool] = Field(default=None, alias="isFirst")
    timestamp: Optional[Any] = None

    @property
    def provider_campaign_id(self) -> Optional[str]:
        return self.campaign_id or self.lemlist_campaign_id

    @property
    def occurred_at(self) -> Optional[datetime]:
        return parse_timestamp(self.timestamp)


class LemlistWebhook(BaseModel):
    """Webhook subscription registered at Lemlist."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    hook_id: str = Field(alias="_id")
    target_url: str = Field(alias="targetUrl")
    event: Optional[str] = Field(default=None, alias="type")
    campaign_id: Optional[str] = Field(default=None, alias="campaignId")
    is_first: Optional[bool] = Field(default=None, alias="isFirst")


class LemlistWebhookCreate(BaseModel):
    target_url: str
    event: Optional[str] = None
    campaign_id: Optional[str] = None
    is_first: Optional[bool] = None
