"""Submission intake: attribution, scoring and persistence of leads."""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from partner_portal.auth.identity import Identity
from partner_portal.auth.models import Caller, PartnerUser
from partner_portal.errors import ForbiddenError, InternalError, NotFoundError, ValidationError
from partner_portal.logging_config import get_logger
from partner_portal.points.ledger import APPROVAL_BONUS_POINTS, SUBMISSION_POINTS, points_ledger
from partner_portal.referral.models import (
    ADMIN_ENTRY_STATUSES,
    ChannelPartner,
    PartnerStatus,
    Submission,
    SubmissionSource,
    SubmissionStatus,
)
from partner_portal.referral.schemas import AdminSubmissionRequest, PublicSubmissionRequest, serialize_submission
from partner_portal.referral.scoring import build_lead_message, compute_quality_score
from partner_portal.storage.activity import record_activity
from partner_portal.storage.db import db

logger = get_logger(__name__)

UNKNOWN = "unknown"


def clean_text(value: str | None) -> str | None:
    """Strip a free-text value; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def resolve_attribution(
    session: Session,
    user_id: str | None,
    referral_code: str | None,
) -> str | None:
    """Work out which partner a submission belongs to.

    An authenticated submitter is attributed to their own partner (or to
    none), and the referral code is ignored. Otherwise an active partner
    with a matching referral code wins. No match is not an error.

    Args:
        session: Open session
        user_id: Authenticated submitter, if any
        referral_code: Code from the form or link

    Returns:
        Partner id or None
    """
    if user_id:
        return session.scalar(
            select(PartnerUser.partner_id).where(PartnerUser.user_id == user_id)
        )

    code = clean_text(referral_code)
    if code:
        return session.scalar(
            select(ChannelPartner.id).where(
                ChannelPartner.referral_code == code,
                ChannelPartner.status == PartnerStatus.ACTIVE,
            )
        )

    return None


def normalize_admin_status(status: str | None) -> SubmissionStatus:
    """Admin entry accepts pending/approved/denied; anything else is pending."""
    try:
        parsed = SubmissionStatus(status)
    except ValueError:
        return SubmissionStatus.PENDING
    return parsed if parsed in ADMIN_ENTRY_STATUSES else SubmissionStatus.PENDING


def parse_status(status: str) -> SubmissionStatus:
    """Parse a status value.

    Raises:
        ValidationError: If the value is not a known status
    """
    try:
        return SubmissionStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in SubmissionStatus)
        raise ValidationError(f"Invalid status '{status}'", f"Allowed: {allowed}") from None


def can_view(caller: Caller, submission: Submission) -> bool:
    """Admins see everything; others see their own and their partner's rows."""
    if caller.is_admin:
        return True
    if submission.submitted_by_user_id == caller.user_id:
        return True
    return bool(caller.partner_id) and submission.partner_id == caller.partner_id


@dataclass
class SubmissionResult:
    """Outcome of a public submission."""
    submission_id: str
    quality_score: int
    is_accounted: bool


class SubmissionService:
    """Service for creating and reading referral submissions."""

    def __init__(self):
        """Initialize submission service."""
        self.logger = get_logger(__name__)

    def submit_public(
        self,
        request: PublicSubmissionRequest,
        identity: Identity | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> SubmissionResult:
        """Accept a lead from the public form.

        Points are not awarded on this path.

        Args:
            request: Form data
            identity: Submitter's identity when logged in
            ip_address: Client IP from request headers
            user_agent: Client user agent

        Returns:
            Submission id, quality score and whether it is accounted

        Raises:
            ValidationError: If name or email is missing
            InternalError: If the insert fails
        """
        lead_name = clean_text(request.lead_name)
        lead_email = clean_text(request.lead_email)
        if not lead_name or not lead_email:
            raise ValidationError("Name and email are required")

        combined_message = build_lead_message(
            request.lead_message,
            referrer_name=clean_text(request.referrer_name),
            referrer_email=clean_text(request.referrer_email),
            referrer_phone=clean_text(request.referrer_phone),
        )
        quality_score = compute_quality_score(
            lead_phone=clean_text(request.lead_phone),
            referrer_email=clean_text(request.referrer_email),
            referrer_phone=clean_text(request.referrer_phone),
            combined_message=combined_message,
        )
        is_authenticated = identity is not None

        try:
            with db.session() as session:
                partner_id = resolve_attribution(
                    session,
                    identity.id if identity else None,
                    request.referral_code,
                )

                submission = Submission(
                    partner_id=partner_id,
                    referral_code=clean_text(request.referral_code),
                    submitted_by_user_id=identity.id if identity else None,
                    lead_name=lead_name,
                    lead_email=lead_email,
                    lead_phone=clean_text(request.lead_phone),
                    lead_message=combined_message or None,
                    submission_source=SubmissionSource.WEB_FORM,
                    ip_address=ip_address or UNKNOWN,
                    user_agent=user_agent or UNKNOWN,
                    utm_source=clean_text(request.utm_source),
                    utm_medium=clean_text(request.utm_medium),
                    utm_campaign=clean_text(request.utm_campaign),
                    is_authenticated=is_authenticated,
                    is_accounted=is_authenticated,
                    quality_score=quality_score,
                    status=SubmissionStatus.NEW,
                )
                session.add(submission)
                session.flush()
                submission_id = submission.id
        except SQLAlchemyError as e:
            self.logger.error("submission_insert_failed", source="web_form", error=str(e))
            raise InternalError("Failed to submit referral") from e

        self.logger.info(
            "submission_created",
            submission_id=submission_id,
            source="web_form",
            partner_id=partner_id,
            quality_score=quality_score,
            is_accounted=is_authenticated,
        )

        return SubmissionResult(
            submission_id=submission_id,
            quality_score=quality_score,
            is_accounted=is_authenticated,
        )

    def submit_as_admin(self, request: AdminSubmissionRequest, actor: Caller) -> dict[str, Any]:
        """Create a submission from the admin console.

        When ``user_id`` is given the submission is attributed to that user
        and they are credited 1 point, plus 2 more if it is created
        ``approved``. Insert, credit and activity log share one transaction.

        Args:
            request: Submission data
            actor: Acting admin

        Returns:
            The created submission

        Raises:
            ForbiddenError: If the actor is not an admin
            ValidationError: If name or email is missing, or partner_id is unknown
            InternalError: If persistence fails
        """
        if not actor.is_admin:
            raise ForbiddenError()

        lead_name = clean_text(request.lead_name)
        lead_email = clean_text(request.lead_email)
        if not lead_name or not lead_email:
            raise ValidationError("lead_name and lead_email are required")

        status = normalize_admin_status(request.status)
        user_id = clean_text(request.user_id)
        partner_id = clean_text(request.partner_id)

        try:
            with db.session() as session:
                if partner_id and session.get(ChannelPartner, partner_id) is None:
                    raise ValidationError("Unknown partner_id", partner_id)

                submission = Submission(
                    partner_id=partner_id,
                    referral_code=clean_text(request.referral_code),
                    submitted_by_user_id=user_id,
                    lead_name=lead_name,
                    lead_email=lead_email,
                    lead_phone=clean_text(request.lead_phone),
                    lead_company=clean_text(request.lead_company),
                    lead_job_title=clean_text(request.lead_job_title),
                    lead_industry=clean_text(request.lead_industry),
                    lead_company_size=clean_text(request.lead_company_size),
                    lead_budget_range=clean_text(request.lead_budget_range),
                    lead_timeline=clean_text(request.lead_timeline),
                    lead_pain_points=clean_text(request.lead_pain_points),
                    lead_linkedin_url=clean_text(request.lead_linkedin_url),
                    lead_message=clean_text(request.lead_message),
                    submission_source=SubmissionSource.ADMIN_ENTRY,
                    utm_source=clean_text(request.utm_source),
                    utm_medium=clean_text(request.utm_medium),
                    utm_campaign=clean_text(request.utm_campaign),
                    status=status,
                    conversion_value=request.conversion_value,
                    admin_notes=clean_text(request.admin_notes),
                    is_authenticated=bool(user_id),
                    is_accounted=bool(user_id),
                    quality_score=request.quality_score,
                )
                session.add(submission)
                session.flush()

                if user_id:
                    award = SUBMISSION_POINTS
                    if status == SubmissionStatus.APPROVED:
                        award += APPROVAL_BONUS_POINTS
                    points_ledger.credit(user_id, award, session=session)

                data = serialize_submission(submission)
                record_activity(
                    session,
                    user_id=actor.user_id,
                    action="create_submission",
                    entity_type="referral_submission",
                    entity_id=submission.id,
                    details={"submission": data},
                )
        except SQLAlchemyError as e:
            self.logger.error("submission_insert_failed", source="admin_entry", error=str(e))
            raise InternalError("Failed to create submission", str(e)) from e

        self.logger.info(
            "submission_created",
            submission_id=data["id"],
            source="admin_entry",
            status=status.value,
            credited_user_id=user_id,
        )
        return data

    def get_submission(self, submission_id: str, caller: Caller) -> dict[str, Any]:
        """Fetch one submission with its partner.

        Raises:
            NotFoundError: If missing or not visible to the caller
        """
        with db.session() as session:
            submission = session.get(Submission, submission_id)
            if not submission or not can_view(caller, submission):
                raise NotFoundError("Submission not found")
            return serialize_submission(submission)

    def list_submissions(
        self,
        caller: Caller,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Page through submissions, newest first.

        Non-admins only see their partner's submissions; without a partner
        they see none.

        Returns:
            Dict with data, total count, limit and offset
        """
        conditions = []
        if status:
            conditions.append(Submission.status == parse_status(status))

        if not caller.is_admin:
            if not caller.partner_id:
                return {"data": [], "count": 0, "limit": limit, "offset": offset}
            conditions.append(Submission.partner_id == caller.partner_id)

        with db.session() as session:
            count = session.scalar(
                select(func.count(Submission.id)).where(*conditions)
            ) or 0

            rows = session.scalars(
                select(Submission)
                .where(*conditions)
                .options(selectinload(Submission.partner))
                .order_by(Submission.created_at.desc())
                .offset(offset)
                .limit(limit)
            ).all()

            return {
                "data": [serialize_submission(s) for s in rows],
                "count": count,
                "limit": limit,
                "offset": offset,
            }

    def list_my_submissions(self, identity: Identity) -> dict[str, Any]:
        """Submissions made by the caller or attributed to the caller's partner."""
        with db.session() as session:
            partner_id = session.scalar(
                select(PartnerUser.partner_id).where(PartnerUser.user_id == identity.id)
            )

            owner_filter = Submission.submitted_by_user_id == identity.id
            if partner_id:
                owner_filter = or_(owner_filter, Submission.partner_id == partner_id)

            rows = session.scalars(
                select(Submission)
                .where(owner_filter)
                .order_by(Submission.created_at.desc())
            ).all()

            return {
                "user": {"id": identity.id, "email": identity.email},
                "partner_id": partner_id,
                "submissions": [serialize_submission(s, include_partner=False) for s in rows],
            }


# Singleton instance
submission_service = SubmissionService()
