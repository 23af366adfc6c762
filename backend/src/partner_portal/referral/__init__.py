"""Referral intake module.

Leads arrive from the public form or the admin console, are attributed to a
channel partner, scored and stored as submissions.
"""

from partner_portal.referral.models import ChannelPartner, PartnerStatus, Submission, SubmissionSource, SubmissionStatus
from partner_portal.referral.service import SubmissionService, resolve_attribution, submission_service

__all__ = [
    "ChannelPartner",
    "PartnerStatus",
    "Submission",
    "SubmissionService",
    "SubmissionSource",
    "SubmissionStatus",
    "resolve_attribution",
    "submission_service",
]
