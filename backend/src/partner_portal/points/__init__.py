"""Points ledger module.

Points are credited for admin-entered referrals (+1, +2 more when approved)
and debited to enter raffles.
"""

from partner_portal.points.ledger import PointsLedger, points_ledger

__all__ = ["PointsLedger", "points_ledger"]
