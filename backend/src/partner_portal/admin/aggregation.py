"""Admin dashboard rollups computed from submission rows."""

from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.orm import selectinload

from partner_portal.auth.identity import IdentityProvider
from partner_portal.auth.models import Caller
from partner_portal.errors import ForbiddenError, NotFoundError
from partner_portal.logging_config import get_logger
from partner_portal.points.ledger import points_ledger
from partner_portal.referral.models import ChannelPartner, PartnerStatus, Submission, SubmissionStatus
from partner_portal.referral.schemas import serialize_submission
from partner_portal.storage.db import db
from partner_portal.storage.models import utcnow

logger = get_logger(__name__)

NEW_SUBMISSION_WINDOW = timedelta(days=7)
RECENT_LIMIT = 10
TOP_PARTNERS_LIMIT = 10


def to_decimal(value: Any) -> Decimal:
    """Parse a money value; missing or unparsable values count as zero."""
    if value is None:
        return Decimal("0")
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return parsed if parsed.is_finite() else Decimal("0")


def conversion_rate(total: int, converted: int) -> str:
    """Converted share of all submissions as a percentage with 2 decimals."""
    if total == 0:
        return "0.00"
    return f"{converted / total * 100:.2f}"


def _require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        raise ForbiddenError()


class AdminAggregationService:
    """Read-only rollups for the admin console.

    Nothing is cached; every call recomputes from ``referral_submissions``.
    The ``total_*`` counters on ChannelPartner are not used.
    """

    def __init__(self):
        """Initialize aggregation service."""
        self.logger = get_logger(__name__)

    def get_dashboard_summary(self, caller: Caller, now: datetime | None = None) -> dict[str, Any]:
        """Dashboard summary for the admin console.

        Args:
            caller: Must be an admin
            now: Reference time for the 7-day window (defaults to current UTC)

        Returns:
            Dict with summary, statusCounts, recentSubmissions and partnerPerformance

        Raises:
            ForbiddenError: If the caller is not an admin
        """
        _require_admin(caller)
        now = now or utcnow()

        with db.session() as session:
            total = session.scalar(select(func.count(Submission.id))) or 0
            new_count = session.scalar(
                select(func.count(Submission.id)).where(
                    Submission.created_at >= now - NEW_SUBMISSION_WINDOW
                )
            ) or 0

            converted_values = session.scalars(
                select(Submission.conversion_value).where(
                    Submission.status == SubmissionStatus.CONVERTED
                )
            ).all()
            total_revenue = sum((to_decimal(v) for v in converted_values), Decimal("0"))

            active_partners = session.scalar(
                select(func.count(ChannelPartner.id)).where(
                    ChannelPartner.status == PartnerStatus.ACTIVE
                )
            ) or 0

            # Histogram over every row
            status_counts = Counter(
                status.value for status in session.scalars(select(Submission.status))
            )

            recent = session.scalars(
                select(Submission)
                .options(selectinload(Submission.partner))
                .order_by(Submission.created_at.desc())
                .limit(RECENT_LIMIT)
            ).all()
            recent_submissions = [serialize_submission(s) for s in recent]

            partner_performance = self._partner_performance(session)

        self.logger.info("dashboard_computed", total=total, converted=len(converted_values))

        return {
            "summary": {
                "totalSubmissions": total,
                "newSubmissions": new_count,
                "convertedSubmissions": len(converted_values),
                "activePartners": active_partners,
                "totalRevenue": f"{total_revenue:.2f}",
                "conversionRate": conversion_rate(total, len(converted_values)),
            },
            "statusCounts": dict(status_counts),
            "recentSubmissions": recent_submissions,
            "partnerPerformance": partner_performance,
        }

    def _partner_performance(self, session) -> list[dict[str, Any]]:
        """Active partners with submission, conversion and revenue totals."""
        is_converted = Submission.status == SubmissionStatus.CONVERTED
        conversions = func.coalesce(func.sum(case((is_converted, 1), else_=0)), 0)
        revenue = func.coalesce(
            func.sum(case((is_converted, func.coalesce(Submission.conversion_value, 0)), else_=0)),
            0,
        )

        rows = session.execute(
            select(
                ChannelPartner.id,
                ChannelPartner.company_name,
                ChannelPartner.referral_code,
                func.count(Submission.id).label("total_submissions"),
                conversions.label("conversions"),
                revenue.label("revenue"),
            )
            .outerjoin(Submission, Submission.partner_id == ChannelPartner.id)
            .where(ChannelPartner.status == PartnerStatus.ACTIVE)
            .group_by(ChannelPartner.id, ChannelPartner.company_name, ChannelPartner.referral_code)
            .order_by(revenue.desc(), ChannelPartner.company_name)
            .limit(TOP_PARTNERS_LIMIT)
        ).all()

        return [
            {
                "partner_id": row.id,
                "company_name": row.company_name,
                "referral_code": row.referral_code,
                "total_submissions": row.total_submissions,
                "conversions": int(row.conversions),
                "revenue": f"{to_decimal(row.revenue):.2f}",
            }
            for row in rows
        ]

    async def get_users_with_submissions(
        self,
        caller: Caller,
        provider: IdentityProvider,
    ) -> dict[str, Any]:
        """Submissions grouped by the user who made them, with each user's email.

        Emails are resolved with one batched, bounded lookup.
        """
        _require_admin(caller)

        grouped: dict[str, list[dict[str, Any]]] = {}
        with db.session() as session:
            rows = session.scalars(
                select(Submission)
                .where(Submission.submitted_by_user_id.is_not(None))
                .options(selectinload(Submission.partner))
                .order_by(Submission.created_at.desc())
            ).all()
            for submission in rows:
                grouped.setdefault(submission.submitted_by_user_id, []).append(
                    serialize_submission(submission)
                )

        identities = await provider.get_users(grouped.keys())

        users = []
        for user_id, submissions in grouped.items():
            identity = identities.get(user_id)
            users.append({
                "user_id": user_id,
                "email": identity.email if identity else None,
                "submissions": submissions,
            })

        return {"users": users}

    async def get_user_detail(
        self,
        caller: Caller,
        user_id: str,
        provider: IdentityProvider,
    ) -> dict[str, Any]:
        """One user's identity, points and submissions (newest first).

        Raises:
            ForbiddenError: If the caller is not an admin
            NotFoundError: If the identity store does not know the user
        """
        _require_admin(caller)

        identity = await provider.get_user(user_id)
        if identity is None:
            raise NotFoundError("User not found")

        with db.session() as session:
            rows = session.scalars(
                select(Submission)
                .where(Submission.submitted_by_user_id == user_id)
                .options(selectinload(Submission.partner))
                .order_by(Submission.created_at.desc())
            ).all()
            submissions = [serialize_submission(s) for s in rows]
            points = points_ledger.get_points(user_id, session=session)

        return {
            "user": {"id": identity.id, "email": identity.email, "points": points},
            "submissions": submissions,
        }


# Singleton instance
aggregation_service = AdminAggregationService()
