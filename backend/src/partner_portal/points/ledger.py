"""Points ledger: one non-negative integer balance per user."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from partner_portal.auth.models import PartnerUser, UserRole
from partner_portal.errors import InsufficientPointsError, ValidationError
from partner_portal.logging_config import get_logger
from partner_portal.storage.db import db
from partner_portal.storage.models import new_id, utcnow

logger = get_logger(__name__)

# Points awarded for admin-entered submissions
SUBMISSION_POINTS = 1
APPROVAL_BONUS_POINTS = 2

# Dialects with INSERT ... ON CONFLICT
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def credit_statement(dialect_name: str, user_id: str, delta: int):
    """Upsert adding ``delta`` to a balance, creating a viewer row if needed."""
    insert = UPSERT_INSERTS.get(dialect_name)
    if insert is None:
        raise NotImplementedError(f"Points upsert is not supported on {dialect_name}")

    table = PartnerUser.__table__
    stmt = insert(table).values(
        id=new_id(),
        user_id=user_id,
        role=UserRole.VIEWER,
        points=delta,
        created_at=utcnow(),
    )
    return stmt.on_conflict_do_update(
        index_elements=[table.c.user_id],
        set_={"points": table.c.points + delta},
    )


@contextmanager
def _scope(session: Session | None) -> Generator[Session, None, None]:
    """Join the caller's transaction, or open a new one."""
    if session is not None:
        yield session
        return
    with db.session() as own_session:
        yield own_session


class PointsLedger:
    """Service for reading and adjusting user points.

    Every adjustment is a single statement on the balance row: an upsert
    for credits and a conditional UPDATE for debits. A debit can never take
    a balance below zero even when requests race.
    Pass ``session`` to make the adjustment part of a larger transaction.
    """

    def __init__(self):
        """Initialize points ledger."""
        self.logger = get_logger(__name__)

    def _balance(self, session: Session, user_id: str) -> int | None:
        return session.scalar(
            select(PartnerUser.points).where(PartnerUser.user_id == user_id)
        )

    def get_points(self, user_id: str, session: Session | None = None) -> int:
        """Get a user's balance.

        Args:
            user_id: Identity-store user id

        Returns:
            Balance, 0 if the user has no row
        """
        with _scope(session) as s:
            return self._balance(s, user_id) or 0

    def adjust(self, user_id: str, delta: int, session: Session | None = None) -> int:
        """Apply a signed change to a user's balance.

        A non-negative ``delta`` is an upsert: a user without a row gets one
        (role ``viewer``), and concurrent first credits cannot collide on
        ``user_id``. A negative ``delta`` is a conditional UPDATE that only
        matches when the balance covers it.

        Args:
            user_id: Identity-store user id
            delta: Signed amount
            session: Optional enclosing transaction

        Returns:
            New balance

        Raises:
            InsufficientPointsError: If the balance would go negative
        """
        with _scope(session) as s:
            if delta >= 0:
                s.execute(credit_statement(s.get_bind().dialect.name, user_id, delta))
            else:
                result = s.execute(
                    update(PartnerUser)
                    .where(
                        PartnerUser.user_id == user_id,
                        PartnerUser.points + delta >= 0,
                    )
                    .values(points=PartnerUser.points + delta)
                )
                if not result.rowcount:
                    current = self._balance(s, user_id)
                    raise InsufficientPointsError(required=-delta, available=current or 0)

            new_balance = self._balance(s, user_id)

            self.logger.info(
                "points_adjusted",
                user_id=user_id,
                delta=delta,
                new_balance=new_balance,
            )
            return new_balance

    def credit(self, user_id: str, amount: int, session: Session | None = None) -> int:
        """Add points. ``amount`` must be positive."""
        if amount <= 0:
            raise ValueError("Amount must be positive")
        return self.adjust(user_id, amount, session=session)

    def debit(self, user_id: str, amount: int, session: Session | None = None) -> int:
        """Remove points. ``amount`` must be positive.

        Raises:
            InsufficientPointsError: If the balance is below ``amount``
        """
        if amount <= 0:
            raise ValueError("Amount must be positive")
        return self.adjust(user_id, -amount, session=session)

    def set_points(self, user_id: str, points: int, session: Session | None = None) -> tuple[int, int]:
        """Overwrite a balance (admin correction).

        Returns:
            (previous, new) balances
        """
        if points < 0:
            raise ValidationError("points must be non-negative")

        with _scope(session) as s:
            row = s.scalars(
                select(PartnerUser).where(PartnerUser.user_id == user_id).with_for_update()
            ).first()

            if row:
                previous = row.points
                row.points = points
            else:
                previous = 0
                s.add(PartnerUser(user_id=user_id, role=UserRole.VIEWER, points=points))
            s.flush()

            self.logger.info("points_set", user_id=user_id, previous=previous, new_balance=points)
            return previous, points


# Singleton instance
points_ledger = PointsLedger()
