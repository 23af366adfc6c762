"""Raffle module.

Admins create capacity-bounded raffles; users spend points to enter them.
"""

from partner_portal.raffles.models import Raffle, RaffleEntry, RaffleStatus
from partner_portal.raffles.service import RaffleService, raffle_service

__all__ = ["Raffle", "RaffleEntry", "RaffleService", "RaffleStatus", "raffle_service"]
