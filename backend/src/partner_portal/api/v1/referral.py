"""Referral API v1 endpoints."""

from fastapi import APIRouter, Depends, Request

from partner_portal.api.rate_limit import forwarded_ip, limiter
from partner_portal.auth.identity import Identity
from partner_portal.auth.middleware import get_current_identity, require_auth
from partner_portal.referral.schemas import PublicSubmissionRequest
from partner_portal.referral.service import submission_service
from partner_portal.settings import settings

router = APIRouter(prefix="/referral", tags=["referral"])


@router.post("/submit")
@limiter.limit(settings.rate_limit_submit)
async def submit_referral(
    request: Request,
    body: PublicSubmissionRequest,
    identity: Identity | None = Depends(get_current_identity),
):
    """Submit a lead from the public referral form.

    Works with or without a session; a logged-in submitter is attributed
    to their own partner and the submission is marked accounted.
    """
    result = submission_service.submit_public(
        body,
        identity=identity,
        ip_address=forwarded_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    return {
        "success": True,
        "message": (
            "Referral submitted and linked to your account! Check your dashboard."
            if result.is_accounted
            else "Referral submitted successfully!"
        ),
        "submission_id": result.submission_id,
        "is_accounted": result.is_accounted,
        "quality_score": result.quality_score,
    }


@router.get("/my-submissions")
async def my_submissions(identity: Identity = Depends(require_auth)):
    """Submissions made by the caller or attributed to the caller's partner."""
    return submission_service.list_my_submissions(identity)
