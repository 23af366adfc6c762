"""Login bookkeeping for identity-store users."""

from sqlalchemy import select

from partner_portal.auth.identity import Identity
from partner_portal.auth.models import Caller, PartnerUser
from partner_portal.logging_config import get_logger
from partner_portal.storage.db import db
from partner_portal.storage.models import utcnow

logger = get_logger(__name__)


def record_login(identity: Identity) -> tuple[Caller, int]:
    """Stamp ``last_login_at`` once the client has signed in.

    Users without a ``partner_users`` row are not given one here.

    Returns:
        (caller, points balance)
    """
    with db.session() as session:
        row = session.scalars(
            select(PartnerUser).where(PartnerUser.user_id == identity.id)
        ).first()

        if not row:
            logger.info("login_without_role", user_id=identity.id)
            return Caller(user_id=identity.id, email=identity.email), 0

        row.last_login_at = utcnow()
        logger.info("user_logged_in", user_id=identity.id, role=row.role.value)
        return (
            Caller(
                user_id=identity.id,
                email=identity.email,
                role=row.role,
                partner_id=row.partner_id,
            ),
            row.points,
        )
