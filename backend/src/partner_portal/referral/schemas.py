"""Pydantic models for referral submissions."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from partner_portal.referral.models import SubmissionSource, SubmissionStatus


class PublicSubmissionRequest(BaseModel):
    """Lead submitted from the public referral form.

    ``lead_name`` and ``lead_email`` are required; they are checked by the
    intake service so the error uses the portal's envelope.
    """
    lead_name: str | None = None
    lead_email: str | None = None
    lead_phone: str | None = None
    lead_message: str | None = Field(default=None, max_length=5000)

    referral_code: str | None = None
    referrer_name: str | None = None
    referrer_email: str | None = None
    referrer_phone: str | None = None

    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None


class LeadFields(BaseModel):
    """Optional lead details shared by admin entry and admin edits."""
    lead_phone: str | None = None
    lead_company: str | None = None
    lead_job_title: str | None = None
    lead_industry: str | None = None
    lead_company_size: str | None = None
    lead_budget_range: str | None = None
    lead_timeline: str | None = None
    lead_pain_points: str | None = None
    lead_linkedin_url: str | None = None
    lead_message: str | None = None

    referral_code: str | None = None
    partner_id: str | None = None

    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None


class AdminSubmissionRequest(LeadFields):
    """Submission entered by an admin, optionally on behalf of a user."""
    user_id: str | None = None
    lead_name: str | None = None
    lead_email: str | None = None
    status: str | None = "pending"
    admin_notes: str | None = None
    conversion_value: Decimal | None = None
    quality_score: int | None = None


class SubmissionUpdateRequest(LeadFields):
    """Admin edit of a submission; only fields present in the body apply."""
    status: str | None = None
    admin_notes: str | None = None
    conversion_value: Decimal | None = None
    lead_name: str | None = None
    lead_email: str | None = None
    quality_score: int | None = None


class PartnerSummary(BaseModel):
    """Partner fields joined onto submissions."""
    id: str
    company_name: str
    contact_name: str
    email: str
    referral_code: str

    class Config:
        from_attributes = True


class SubmissionOut(BaseModel):
    """Submission data for API responses."""
    id: str
    partner_id: str | None
    referral_code: str | None
    submitted_by_user_id: str | None

    lead_name: str
    lead_email: str
    lead_phone: str | None
    lead_company: str | None
    lead_job_title: str | None
    lead_industry: str | None
    lead_company_size: str | None
    lead_budget_range: str | None
    lead_timeline: str | None
    lead_pain_points: str | None
    lead_linkedin_url: str | None
    lead_message: str | None

    submission_source: SubmissionSource
    ip_address: str | None
    user_agent: str | None
    utm_source: str | None
    utm_medium: str | None
    utm_campaign: str | None
    is_authenticated: bool
    is_accounted: bool

    status: SubmissionStatus
    admin_notes: str | None
    conversion_value: float | None
    quality_score: int | None
    contacted_at: datetime | None
    converted_at: datetime | None
    created_at: datetime
    updated_at: datetime

    partner: PartnerSummary | None = None

    class Config:
        from_attributes = True
        use_enum_values = True


def serialize_submission(submission, include_partner: bool = True) -> dict:
    """Submission as a JSON-ready dict."""
    out = SubmissionOut.model_validate(submission)
    if not include_partner:
        out.partner = None
    return out.model_dump(mode="json")
