"""
Enrichment schemas.
Provider payloads are validated here before any business logic sees them.
"""
import uuid
from typing import Optional, List, Any, Dict
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from leadsync.core.timeutils import isoformat_utc


class EnrichmentRequest(BaseModel):
    """Body POSTed to the enrichment webhook."""
    lead_id: str
    company: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    linkedin_url: Optional[str] = None
    timestamp: str


class ProviderLocation(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    street_address: Optional[str] = None
    locality: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class ProviderCompany(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    linkedin_url: Optional[str] = None
    size: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    founded: Optional[Any] = None
    location: Optional[ProviderLocation] = None


class ProviderExperience(BaseModel):
    model_config = ConfigDict(extra="allow")

    is_primary: Optional[bool] = None
    company: Optional[ProviderCompany] = None
    title: Optional[Any] = None


class ProviderPerson(BaseModel):
    """Person record returned by the identity-resolution provider."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    full_name: Optional[str] = None
    linkedin_url: Optional[str] = None
    linkedin_username: Optional[str] = None
    twitter_url: Optional[str] = None
    github_url: Optional[str] = None

    # The provider sometimes sends booleans as "present" markers
    mobile_phone: Optional[Any] = None
    phone_numbers: Optional[List[Any]] = None
    work_email: Optional[Any] = None
    emails: Optional[List[Any]] = None
    personal_emails: Optional[List[Any]] = None

    job_title: Optional[str] = None
    job_company_name: Optional[str] = None
    job_company_website: Optional[str] = None
    job_company_size: Optional[str] = None
    job_company_industry: Optional[str] = None
    job_company_linkedin_url: Optional[str] = None
    location_name: Optional[Any] = None

    skills: Optional[List[Any]] = None
    experience: Optional[List[ProviderExperience]] = None
    education: Optional[List[Any]] = None

    def primary_experience(self) -> Optional[ProviderExperience]:
        for exp in self.experience or []:
            if exp.is_primary:
                return exp
        return None


class ProviderEnvelope(BaseModel):
    """Top-level provider answer: inner status, match likelihood and data."""
    model_config = ConfigDict(extra="allow")

    status: Optional[int] = None
    likelihood: Optional[float] = None
    data: Optional[ProviderPerson] = None


class CompanyProfile(BaseModel):
    """Company attributes extracted from an enrichment match."""
    name: Optional[str] = None
    linkedin_url: Optional[str] = None
    company_size: Optional[str] = None
    website: Optional[str] = None
    domain: Optional[str] = None
    industry: Optional[str] = None
    head_office: Optional[str] = None


class SimplifiedEnrichment(BaseModel):
    """Normalized shape stored in lead.enrichment_data."""
    provider_id: Optional[str] = None
    likelihood: Optional[float] = None
    linkedin_url: Optional[str] = None
    linkedin_username: Optional[str] = None
    twitter_url: Optional[str] = None
    github_url: Optional[str] = None
    mobile_phone: Optional[str] = None
    work_email: Optional[str] = None
    personal_emails: Optional[List[str]] = None
    job_title: Optional[str] = None
    job_company: Optional[str] = None
    job_company_website: Optional[str] = None
    job_company_size: Optional[str] = None
    job_company_industry: Optional[str] = None
    job_company_linkedin_url: Optional[str] = None
    location: Optional[str] = None
    skills: Optional[List[Any]] = None
    experience: Optional[List[Dict[str, Any]]] = None
    education: Optional[List[Any]] = None
    enriched_at: str


def _first_string(*candidates: Any) -> Optional[str]:
    """First string value among scalars and lists, skipping boolean markers."""
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
        if isinstance(candidate, list):
            for item in candidate:
                if isinstance(item, str) and item:
                    return item
    return None


def extract_domain(website: Optional[str]) -> Optional[str]:
    """Bare domain from a website URL ("https://www.acme.io/about" -> "acme.io")."""
    if not website:
        return None
    url = website.strip()
    for prefix in ("https://", "http://"):
        if url.lower().startswith(prefix):
            url = url[len(prefix):]
    if url.lower().startswith("www."):
        url = url[4:]
    domain = url.split("/")[0].lower()
    return domain or None


def simplify_enrichment(envelope: ProviderEnvelope) -> SimplifiedEnrichment:
    """Flatten a provider match into the stored enrichment shape."""
    data = envelope.data or ProviderPerson()
    return SimplifiedEnrichment(
        provider_id=data.id,
        likelihood=envelope.likelihood,
        linkedin_url=data.linkedin_url,
        linkedin_username=data.linkedin_username,
        twitter_url=data.twitter_url,
        github_url=data.github_url or None,
        mobile_phone=_first_string(data.mobile_phone, data.phone_numbers),
        work_email=_first_string(data.work_email, data.emails),
        personal_emails=[e for e in data.personal_emails or [] if isinstance(e, str)] or None,
        job_title=data.job_title,
        job_company=data.job_company_name,
        job_company_website=data.job_company_website,
        job_company_size=data.job_company_size,
        job_company_industry=data.job_company_industry,
        job_company_linkedin_url=data.job_company_linkedin_url,
        location=data.location_name if isinstance(data.location_name, str) else None,
        skills=data.skills,
        experience=[exp.model_dump(exclude_none=True) for exp in data.experience] if data.experience else None,
        education=data.education,
        enriched_at=isoformat_utc(),
    )


def _location_string(location: Optional[ProviderLocation]) -> Optional[str]:
    if not location:
        return None
    parts = [
        part for part in (
            location.street_address,
            location.locality,
            location.region,
            location.postal_code,
            location.country,
        ) if part
    ]
    if parts:
        return ", ".join(parts)
    return location.name or None


def extract_company(envelope: ProviderEnvelope) -> CompanyProfile:
    """
    Company attributes of the current job.
    The primary experience entry wins over the flat job_company_* fields.
    """
    data = envelope.data or ProviderPerson()
    primary = data.primary_experience()
    company = primary.company if primary and primary.company else ProviderCompany()

    website = company.website or data.job_company_website
    return CompanyProfile(
        name=company.name or data.job_company_name,
        linkedin_url=company.linkedin_url or data.job_company_linkedin_url,
        company_size=company.size or data.job_company_size,
        website=website,
        domain=extract_domain(website),
        industry=company.industry or data.job_company_industry,
        head_office=_location_string(company.location),
    )


class EnrichmentStatusResponse(BaseModel):
    """Enrichment state of a lead as exposed to the UI."""
    lead_id: uuid.UUID
    enrichment_status: str
    enrichment_timestamp: Optional[datetime] = None
    error: Optional[str] = None
    likelihood: Optional[float] = None
    company_id: Optional[uuid.UUID] = None
