"""Admin edits of submissions and user points."""

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from partner_portal.auth.models import Caller
from partner_portal.errors import ForbiddenError, InternalError, NotFoundError, ValidationError
from partner_portal.logging_config import get_logger
from partner_portal.points.ledger import APPROVAL_BONUS_POINTS, points_ledger
from partner_portal.referral.models import ChannelPartner, Submission, SubmissionStatus
from partner_portal.referral.schemas import serialize_submission
from partner_portal.referral.service import clean_text, parse_status
from partner_portal.storage.activity import record_activity
from partner_portal.storage.db import db
from partner_portal.storage.models import utcnow

logger = get_logger(__name__)

# Editable free-text columns; blank values are stored as NULL
OPTIONAL_TEXT_FIELDS = (
    "lead_phone",
    "lead_company",
    "lead_job_title",
    "lead_industry",
    "lead_company_size",
    "lead_budget_range",
    "lead_timeline",
    "lead_pain_points",
    "lead_linkedin_url",
    "lead_message",
    "referral_code",
    "utm_source",
    "utm_medium",
    "utm_campaign",
)

REQUIRED_TEXT_FIELDS = ("lead_name", "lead_email")

# Written as given, including explicit null, empty or zero
OVERWRITE_FIELDS = ("admin_notes", "conversion_value", "quality_score")


class StatusWorkflow:
    """Admin-only mutation of submissions and points.

    Any status may follow any other; only membership in
    ``SubmissionStatus`` is checked. ``contacted_at`` and ``converted_at``
    are stamped the first time the matching status is set and never again.
    """

    def __init__(self):
        """Initialize status workflow."""
        self.logger = get_logger(__name__)

    def update_submission(
        self,
        caller: Caller,
        submission_id: str,
        changes: dict[str, Any],
    ) -> dict[str, Any]:
        """Apply an admin edit to a submission.

        Args:
            caller: Acting admin
            submission_id: Submission to edit
            changes: Fields present in the request body

        Returns:
            The updated submission

        Raises:
            ForbiddenError: If the caller is not an admin
            NotFoundError: If the submission does not exist
            ValidationError: On an unknown status, blank name/email or unknown partner
            InternalError: If persistence fails
        """
        if not caller.is_admin:
            raise ForbiddenError()

        try:
            with db.session() as session:
                submission = session.get(Submission, submission_id, with_for_update=True)
                if not submission:
                    raise NotFoundError("Submission not found")

                previous_status = submission.status
                update = self._collect(session, submission, changes)

                for field, value in update.items():
                    setattr(submission, field, value)
                session.flush()

                bonus_user = submission.submitted_by_user_id
                if (
                    bonus_user
                    and update.get("status") == SubmissionStatus.APPROVED
                    and previous_status != SubmissionStatus.APPROVED
                ):
                    points_ledger.credit(bonus_user, APPROVAL_BONUS_POINTS, session=session)

                data = serialize_submission(submission)
                record_activity(
                    session,
                    user_id=caller.user_id,
                    action="update_submission",
                    entity_type="referral_submission",
                    entity_id=submission.id,
                    details={"changes": update},
                )
        except SQLAlchemyError as e:
            self.logger.error("submission_update_failed", submission_id=submission_id, error=str(e))
            raise InternalError("Failed to update submission", str(e)) from e

        self.logger.info(
            "submission_updated",
            submission_id=submission_id,
            fields=sorted(update),
            previous_status=previous_status.value,
            status=data["status"],
        )
        return data

    def _collect(self, session, submission: Submission, changes: dict[str, Any]) -> dict[str, Any]:
        """Validate ``changes`` and return the column values to write."""
        update: dict[str, Any] = {}
        now = utcnow()

        if "status" in changes:
            status = parse_status(changes["status"])
            update["status"] = status
            if status == SubmissionStatus.CONTACTED and submission.contacted_at is None:
                update["contacted_at"] = now
            if status == SubmissionStatus.CONVERTED and submission.converted_at is None:
                update["converted_at"] = now

        for field in OVERWRITE_FIELDS:
            if field in changes:
                update[field] = changes[field]

        for field in REQUIRED_TEXT_FIELDS:
            if field in changes:
                value = clean_text(changes[field])
                if not value:
                    raise ValidationError(f"{field} cannot be empty")
                update[field] = value

        for field in OPTIONAL_TEXT_FIELDS:
            if field in changes:
                update[field] = clean_text(changes[field])

        if "partner_id" in changes:
            partner_id = clean_text(changes["partner_id"])
            if partner_id and session.get(ChannelPartner, partner_id) is None:
                raise ValidationError("Unknown partner_id", partner_id)
            update["partner_id"] = partner_id

        return update

    def update_points(
        self,
        caller: Caller,
        user_id: str,
        points: int | None = None,
        delta: int | None = None,
    ) -> dict[str, Any]:
        """Set or adjust a user's points balance.

        ``points`` (absolute) wins over ``delta`` (signed) when both are given.

        Returns:
            Dict with user_id, previous and points

        Raises:
            ForbiddenError: If the caller is not an admin
            ValidationError: If neither value is given, or points is negative
            InsufficientPointsError: If ``delta`` would make the balance negative
        """
        if not caller.is_admin:
            raise ForbiddenError()
        if points is None and delta is None:
            raise ValidationError("Provide points or delta")

        with db.session() as session:
            if points is not None:
                previous, new_balance = points_ledger.set_points(user_id, points, session=session)
            else:
                new_balance = points_ledger.adjust(user_id, delta, session=session)
                previous = new_balance - delta

            record_activity(
                session,
                user_id=caller.user_id,
                action="update_points",
                entity_type="partner_user",
                entity_id=user_id,
                details={"previous": previous, "next": new_balance, "delta": delta},
            )

        return {"user_id": user_id, "previous": previous, "points": new_balance}


# Singleton instance
status_workflow = StatusWorkflow()
