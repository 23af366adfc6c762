"""Referral database models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partner_portal.storage.models import Base, new_id, utcnow


def _enum_column(enum_cls: type[Enum], name: str) -> SQLEnum:
    """Enum stored by value as a constrained VARCHAR."""
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda e: [m.value for m in e],
    )


class PartnerStatus(str, Enum):
    """Channel partner lifecycle."""
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    REJECTED = "rejected"


class SubmissionSource(str, Enum):
    """Where a submission came from."""
    WEB_FORM = "web_form"
    ADMIN_ENTRY = "admin_entry"


class SubmissionStatus(str, Enum):
    """Submission lifecycle, one closed set shared by every entry point.

    Public intake creates ``new``; admin entry creates one of the review
    states (``pending``, ``approved``, ``denied``); the status workflow may
    move a submission to any member of the set.
    """
    NEW = "new"
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    LOST = "lost"
    SPAM = "spam"


# Statuses an admin may assign when creating a submission
ADMIN_ENTRY_STATUSES = frozenset({
    SubmissionStatus.PENDING,
    SubmissionStatus.APPROVED,
    SubmissionStatus.DENIED,
})


class ChannelPartner(Base):
    """A referring organization identified by its referral code.

    ``total_referrals``, ``total_conversions`` and ``total_revenue`` are
    not maintained by this service; dashboards compute their figures from
    submissions instead.
    """

    __tablename__ = "channel_partners"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    referral_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    status: Mapped[PartnerStatus] = mapped_column(
        _enum_column(PartnerStatus, "partner_status"),
        default=PartnerStatus.PENDING,
        nullable=False,
    )
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("10.00"), nullable=False)

    # Declared aggregates, not written by this service
    total_referrals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_conversions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    submissions: Mapped[list["Submission"]] = relationship("Submission", back_populates="partner")

    def __repr__(self) -> str:
        return f"<ChannelPartner(code={self.referral_code}, status={self.status})>"


class Submission(Base):
    """A referred lead."""

    __tablename__ = "referral_submissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    # Attribution
    partner_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("channel_partners.id"), nullable=True, index=True
    )
    referral_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    submitted_by_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    # Lead
    lead_name: Mapped[str] = mapped_column(String(255), nullable=False)
    lead_email: Mapped[str] = mapped_column(String(255), nullable=False)
    lead_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    lead_company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    lead_job_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    lead_industry: Mapped[str | None] = mapped_column(String(100), nullable=True)
    lead_company_size: Mapped[str | None] = mapped_column(String(50), nullable=True)
    lead_budget_range: Mapped[str | None] = mapped_column(String(50), nullable=True)
    lead_timeline: Mapped[str | None] = mapped_column(String(50), nullable=True)
    lead_pain_points: Mapped[str | None] = mapped_column(Text, nullable=True)
    lead_linkedin_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    lead_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Provenance
    submission_source: Mapped[SubmissionSource] = mapped_column(
        _enum_column(SubmissionSource, "submission_source"), nullable=False
    )
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    utm_source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_medium: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_authenticated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_accounted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Workflow
    status: Mapped[SubmissionStatus] = mapped_column(
        _enum_column(SubmissionStatus, "submission_status"),
        default=SubmissionStatus.NEW,
        nullable=False,
        index=True,
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    conversion_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    quality_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    contacted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    converted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    partner: Mapped[ChannelPartner | None] = relationship("ChannelPartner", back_populates="submissions")

    def __repr__(self) -> str:
        return f"<Submission(id={self.id}, status={self.status}, source={self.submission_source})>"
