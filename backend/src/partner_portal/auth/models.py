"""Role and points models for identity-store users."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, Enum as SQLEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from partner_portal.storage.models import Base, new_id, utcnow


class UserRole(str, Enum):
    """Role levels resolved from ``partner_users``."""
    ADMIN = "admin"
    PARTNER = "partner"
    VIEWER = "viewer"


class PartnerUser(Base):
    """One row per identity-store user that holds a role in the portal.

    Carries the user's role, their partner organization (if any) and the
    points balance used for raffles.
    """

    __tablename__ = "partner_users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    partner_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("channel_partners.id"), nullable=True, index=True
    )
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(
            UserRole,
            name="user_role",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=UserRole.VIEWER,
        nullable=False,
    )
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_partner_users_points_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<PartnerUser(user_id={self.user_id}, role={self.role}, points={self.points})>"


@dataclass(frozen=True)
class Caller:
    """An authenticated identity together with its portal role."""

    user_id: str
    email: str | None
    role: UserRole | None = None
    partner_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def has_role(self) -> bool:
        return self.role is not None
