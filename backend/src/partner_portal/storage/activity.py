"""Activity log writer."""

from typing import Any

from pydantic_core import to_jsonable_python
from sqlalchemy.orm import Session

from partner_portal.logging_config import get_logger
from partner_portal.storage.models import ActivityLog

logger = get_logger(__name__)


def record_activity(
    session: Session,
    user_id: str | None,
    action: str,
    entity_type: str,
    entity_id: str | None,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> ActivityLog:
    """Append an entry to the activity log within the caller's transaction.

    Args:
        session: Open session
        user_id: Acting user
        action: Action name (create_submission, update_submission, ...)
        entity_type: Kind of entity acted on
        entity_id: Entity id
        details: Extra data; datetimes and decimals are converted for JSON

    Returns:
        The pending log entry
    """
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=to_jsonable_python(details) if details is not None else None,
        ip_address=ip_address,
    )
    session.add(entry)
    logger.info("activity_recorded", action=action, entity_type=entity_type, entity_id=entity_id)
    return entry
