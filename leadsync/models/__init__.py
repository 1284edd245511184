# Models package - normalized database models
from leadsync.models.organization import Organization
from leadsync.models.contact import Contact
from leadsync.models.lead import Lead
from leadsync.models.campaign import Campaign, CampaignEnrollment
from leadsync.models.activity import ActivityLog
from leadsync.models.webhook import CampaignWebhookDelivery
from leadsync.models.credential import ProviderCredential
