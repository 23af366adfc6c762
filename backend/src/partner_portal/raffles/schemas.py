"""Pydantic models for raffles."""

from datetime import datetime

from pydantic import BaseModel

from partner_portal.raffles.models import RaffleStatus


class CreateRaffleRequest(BaseModel):
    """Request to create a raffle; required fields are checked by the service."""
    name: str | None = None
    description: str | None = None
    entry_cost_points: int | None = None
    max_entries: int | None = None
    image_url: str | None = None


class EnterRaffleRequest(BaseModel):
    """Request to spend points on a raffle entry."""
    raffle_id: str | None = None


class RaffleOut(BaseModel):
    """Raffle with its live entry count."""
    id: str
    name: str
    description: str | None
    entry_cost_points: int
    max_entries: int
    status: RaffleStatus
    image_url: str | None
    created_by: str | None
    created_at: datetime
    entry_count: int = 0

    class Config:
        from_attributes = True
        use_enum_values = True
