"""Session API v1 endpoints."""

from fastapi import APIRouter, Depends

from partner_portal.auth.identity import Identity
from partner_portal.auth.login import record_login
from partner_portal.auth.middleware import require_auth, require_caller
from partner_portal.auth.models import Caller
from partner_portal.points.ledger import points_ledger

router = APIRouter(prefix="/auth", tags=["auth"])


def _profile(caller: Caller, points: int) -> dict:
    return {
        "user_id": caller.user_id,
        "email": caller.email,
        "role": caller.role.value if caller.role else None,
        "partner_id": caller.partner_id,
        "points": points,
    }


@router.post("/login")
async def login(identity: Identity = Depends(require_auth)):
    """Record a sign-in made against the identity store."""
    caller, points = record_login(identity)
    return _profile(caller, points)


@router.get("/me")
async def get_me(caller: Caller = Depends(require_caller)):
    """Current user's role, partner and points."""
    return _profile(caller, points_ledger.get_points(caller.user_id))
