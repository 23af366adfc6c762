"""Site media store."""

from partner_portal.media.service import MediaService, media_service

__all__ = ["MediaService", "media_service"]
