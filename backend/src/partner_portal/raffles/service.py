"""Raffle engine: listing, creation and point-funded entries."""

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from partner_portal.auth.identity import Identity
from partner_portal.auth.models import Caller
from partner_portal.errors import (
    CapacityExceededError,
    ForbiddenError,
    InternalError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from partner_portal.logging_config import get_logger
from partner_portal.points.ledger import points_ledger
from partner_portal.raffles.models import Raffle, RaffleEntry, RaffleStatus
from partner_portal.raffles.schemas import CreateRaffleRequest, RaffleOut
from partner_portal.storage.db import db

logger = get_logger(__name__)


def _load_raffle(session: Session, raffle_id: str) -> Raffle | None:
    return session.get(Raffle, raffle_id)


def _claim_slot(session: Session, raffle_id: str) -> bool:
    """Take one slot of an active raffle.

    The capacity check and the increment are one statement, so the
    database's row write lock decides which of two racing entries gets the
    last slot.
    """
    result = session.execute(
        update(Raffle)
        .where(
            Raffle.id == raffle_id,
            Raffle.status == RaffleStatus.ACTIVE,
            Raffle.entry_count < Raffle.max_entries,
        )
        .values(entry_count=Raffle.entry_count + 1)
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount)


def _serialize(raffle: Raffle) -> dict[str, Any]:
    return RaffleOut.model_validate(raffle).model_dump(mode="json")


class RaffleService:
    """Service for raffles and raffle entries."""

    def __init__(self):
        """Initialize raffle service."""
        self.logger = get_logger(__name__)

    def _list(self, status: RaffleStatus | None = None) -> list[dict[str, Any]]:
        with db.session() as session:
            query = select(Raffle).order_by(Raffle.created_at.desc())
            if status is not None:
                query = query.where(Raffle.status == status)
            return [_serialize(r) for r in session.scalars(query).all()]

    def list_raffles(self, caller: Caller) -> list[dict[str, Any]]:
        """Every raffle with its entry count, newest first (admin only)."""
        if not caller.is_admin:
            raise ForbiddenError("Forbidden - Admin only")
        return self._list()

    def list_active_raffles(self, identity: Identity) -> dict[str, Any]:
        """Active raffles plus the caller's balance, for the partner dashboard."""
        return {
            "raffles": self._list(RaffleStatus.ACTIVE),
            "points": points_ledger.get_points(identity.id),
        }

    def create_raffle(self, caller: Caller, request: CreateRaffleRequest) -> dict[str, Any]:
        """Create a raffle (admin only).

        Raises:
            ForbiddenError: If the caller is not an admin
            ValidationError: If name, cost or capacity is missing or not positive
        """
        if not caller.is_admin:
            raise ForbiddenError("Forbidden - Admin only")

        name = (request.name or "").strip()
        if not name or not request.entry_cost_points or not request.max_entries:
            raise ValidationError("name, entry_cost_points, max_entries are required")
        if request.entry_cost_points < 0 or request.max_entries < 0:
            raise ValidationError("entry_cost_points and max_entries must be positive")

        try:
            with db.session() as session:
                raffle = Raffle(
                    name=name,
                    description=request.description or None,
                    entry_cost_points=request.entry_cost_points,
                    max_entries=request.max_entries,
                    image_url=request.image_url or None,
                    created_by=caller.user_id,
                )
                session.add(raffle)
                session.flush()
                data = _serialize(raffle)
        except SQLAlchemyError as e:
            raise InternalError("Failed to create raffle", str(e)) from e

        self.logger.info(
            "raffle_created",
            raffle_id=data["id"],
            entry_cost_points=request.entry_cost_points,
            max_entries=request.max_entries,
            created_by=caller.user_id,
        )
        return data

    def enter(self, identity: Identity | None, raffle_id: str | None) -> int:
        """Spend points on an entry into a raffle.

        The slot claim, the points debit and the entry insert run in one
        transaction. Both the claim and the debit are conditional UPDATEs,
        so two concurrent entries cannot both take the last slot or
        overspend, on SQLite as well as PostgreSQL. A failed debit rolls
        the claimed slot back.

        Args:
            identity: Authenticated caller
            raffle_id: Raffle to enter

        Returns:
            Remaining points

        Raises:
            UnauthorizedError: If not authenticated
            ValidationError: If raffle_id is missing
            NotFoundError: If the raffle does not exist
            InvalidStateError: If the raffle is not active
            CapacityExceededError: If the raffle is full
            InsufficientPointsError: If the caller cannot afford the entry
        """
        if identity is None:
            raise UnauthorizedError()
        if not raffle_id:
            raise ValidationError("raffle_id is required")

        try:
            with db.session() as session:
                raffle = _load_raffle(session, raffle_id)
                if not raffle:
                    raise NotFoundError("Raffle not found")

                if raffle.status != RaffleStatus.ACTIVE:
                    raise InvalidStateError("Raffle is not active")

                if not _claim_slot(session, raffle.id):
                    # Status may have changed since the read
                    session.refresh(raffle)
                    if raffle.status != RaffleStatus.ACTIVE:
                        raise InvalidStateError("Raffle is not active")
                    raise CapacityExceededError("Raffle is full")

                remaining = points_ledger.debit(identity.id, raffle.entry_cost_points, session=session)

                session.add(RaffleEntry(
                    raffle_id=raffle.id,
                    user_id=identity.id,
                    points_spent=raffle.entry_cost_points,
                ))
                session.flush()
        except SQLAlchemyError as e:
            self.logger.error("raffle_entry_failed", raffle_id=raffle_id, user_id=identity.id, error=str(e))
            raise InternalError("Failed to create entry", str(e)) from e

        self.logger.info(
            "raffle_entry_created",
            raffle_id=raffle_id,
            user_id=identity.id,
            remaining_points=remaining,
        )
        return remaining


# Singleton instance
raffle_service = RaffleService()
