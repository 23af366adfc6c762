"""Site media API v1 endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from partner_portal.auth.middleware import require_admin
from partner_portal.auth.models import Caller
from partner_portal.media.service import media_service

router = APIRouter(tags=["media"])


class MediaRequest(BaseModel):
    """Upsert of one media entry."""
    key: str | None = None
    url: str | None = None


@router.get("/site-media")
async def list_site_media():
    """Public list of media entries."""
    return {"media": media_service.list_media()}


@router.get("/admin/site-media")
async def admin_list_site_media(caller: Caller = Depends(require_admin)):
    """Media entries for the admin console."""
    return {"media": media_service.list_media()}


@router.post("/admin/site-media")
async def admin_save_site_media(body: MediaRequest, caller: Caller = Depends(require_admin)):
    """Create or replace a media URL."""
    media = media_service.upsert_media(caller, body.key, body.url)
    return {"success": True, "media": media}
