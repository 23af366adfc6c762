"""Raffle database models."""

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partner_portal.storage.models import Base, new_id, utcnow


class RaffleStatus(str, Enum):
    """Raffle lifecycle; only active raffles accept entries."""
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"


class Raffle(Base):
    """A prize drawing that users enter by spending points."""

    __tablename__ = "raffles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    entry_cost_points: Mapped[int] = mapped_column(Integer, nullable=False)
    max_entries: Mapped[int] = mapped_column(Integer, nullable=False)
    # Claimed slots; only raised by a conditional UPDATE
    entry_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    status: Mapped[RaffleStatus] = mapped_column(
        SQLEnum(
            RaffleStatus,
            name="raffle_status",
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=RaffleStatus.ACTIVE,
        nullable=False,
    )
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    entries: Mapped[list["RaffleEntry"]] = relationship("RaffleEntry", back_populates="raffle")

    __table_args__ = (
        CheckConstraint("entry_cost_points > 0", name="ck_raffles_entry_cost_positive"),
        CheckConstraint("max_entries > 0", name="ck_raffles_max_entries_positive"),
        CheckConstraint("entry_count <= max_entries", name="ck_raffles_entry_count_within_capacity"),
    )

    def __repr__(self) -> str:
        return f"<Raffle(id={self.id}, name='{self.name}', cost={self.entry_cost_points})>"


class RaffleEntry(Base):
    """One paid entry; a user may hold several entries in the same raffle."""

    __tablename__ = "raffle_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    raffle_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("raffles.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    points_spent: Mapped[int] = mapped_column(Integer, nullable=False)  # Cost at entry time
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    raffle: Mapped[Raffle] = relationship("Raffle", back_populates="entries")

    def __repr__(self) -> str:
        return f"<RaffleEntry(raffle={self.raffle_id}, user={self.user_id}, spent={self.points_spent})>"
