"""Authentication and roles for the partner portal.

Identities come from the hosted identity store; roles, partner linkage and
points live in ``partner_users``.
"""

from partner_portal.auth.identity import Identity, IdentityProvider, identity_provider
from partner_portal.auth.models import Caller, PartnerUser, UserRole

__all__ = [
    "Caller",
    "Identity",
    "IdentityProvider",
    "PartnerUser",
    "UserRole",
    "identity_provider",
]
