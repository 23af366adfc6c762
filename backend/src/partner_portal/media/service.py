"""Site media: key to URL pairs for marketing assets."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from partner_portal.auth.models import Caller
from partner_portal.errors import ForbiddenError, InternalError, ValidationError
from partner_portal.logging_config import get_logger
from partner_portal.storage.activity import record_activity
from partner_portal.storage.db import db
from partner_portal.storage.models import SiteMedia


def _serialize(media: SiteMedia) -> dict[str, Any]:
    return {
        "key": media.key,
        "url": media.url,
        "updated_at": media.updated_at.isoformat() if media.updated_at else None,
    }


class MediaService:
    """Service for reading and replacing site media URLs."""

    def __init__(self):
        """Initialize media service."""
        self.logger = get_logger(__name__)

    def list_media(self) -> list[dict[str, Any]]:
        """All media entries ordered by key."""
        with db.session() as session:
            rows = session.scalars(select(SiteMedia).order_by(SiteMedia.key)).all()
            return [_serialize(m) for m in rows]

    def upsert_media(self, caller: Caller, key: str | None, url: str | None) -> dict[str, Any]:
        """Create or replace the URL stored under ``key``.

        Raises:
            ForbiddenError: If the caller is not an admin
            ValidationError: If key or url is missing
        """
        if not caller.is_admin:
            raise ForbiddenError()

        key = (key or "").strip()
        url = (url or "").strip()
        if not key or not url:
            raise ValidationError("key and url are required")

        try:
            with db.session() as session:
                media = session.get(SiteMedia, key)
                if media:
                    media.url = url
                else:
                    media = SiteMedia(key=key, url=url)
                    session.add(media)
                session.flush()

                record_activity(
                    session,
                    user_id=caller.user_id,
                    action="update_site_media",
                    entity_type="site_media",
                    entity_id=key,
                    details={"url": url},
                )
                data = _serialize(media)
        except SQLAlchemyError as e:
            raise InternalError("Failed to save media", str(e)) from e

        self.logger.info("site_media_saved", key=key)
        return data


# Singleton instance
media_service = MediaService()
