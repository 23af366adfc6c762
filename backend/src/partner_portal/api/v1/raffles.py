"""Raffle API v1 endpoints for partners."""

from fastapi import APIRouter, Depends

from partner_portal.auth.identity import Identity
from partner_portal.auth.middleware import require_auth
from partner_portal.raffles.schemas import EnterRaffleRequest
from partner_portal.raffles.service import raffle_service

router = APIRouter(prefix="/raffles", tags=["raffles"])


@router.get("")
async def list_active_raffles(identity: Identity = Depends(require_auth)):
    """Active raffles with entry counts, and the caller's points."""
    return raffle_service.list_active_raffles(identity)


@router.post("/enter")
async def enter_raffle(body: EnterRaffleRequest, identity: Identity = Depends(require_auth)):
    """Spend points on one entry into a raffle."""
    remaining = raffle_service.enter(identity, body.raffle_id)
    return {"success": True, "remaining_points": remaining}
