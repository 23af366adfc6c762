"""Authentication dependencies for FastAPI."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select

from partner_portal.auth.identity import Identity, IdentityProvider, identity_provider, token_from_cookies
from partner_portal.auth.models import Caller, PartnerUser
from partner_portal.errors import ForbiddenError, UnauthorizedError
from partner_portal.logging_config import get_logger
from partner_portal.storage.db import db

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


def get_identity_provider() -> IdentityProvider:
    """Identity store client (overridden in tests)."""
    return identity_provider


async def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Identity | None:
    """Resolve the caller's identity.

    Bearer token is preferred; the identity store's session cookie is the
    fallback.

    Returns:
        Identity or None if not authenticated
    """
    token = credentials.credentials if credentials else token_from_cookies(request.cookies)
    if not token:
        return None

    identity = provider.verify_token(token)
    if identity:
        request.state.identity = identity
    return identity


def require_auth(identity: Identity | None = Depends(get_current_identity)) -> Identity:
    """Require authentication - raises 401 if not authenticated."""
    if not identity:
        raise UnauthorizedError()
    return identity


def resolve_caller(identity: Identity) -> Caller:
    """Attach the portal role and partner to an identity (read only).

    Args:
        identity: Verified identity

    Returns:
        Caller with role None when the user has no ``partner_users`` row
    """
    with db.session() as session:
        row = session.scalars(
            select(PartnerUser).where(PartnerUser.user_id == identity.id)
        ).first()

        if not row:
            return Caller(user_id=identity.id, email=identity.email)

        return Caller(
            user_id=identity.id,
            email=identity.email,
            role=row.role,
            partner_id=row.partner_id,
        )


def require_caller(identity: Identity = Depends(require_auth)) -> Caller:
    """Authenticated caller, role may be absent."""
    return resolve_caller(identity)


def require_role(caller: Caller = Depends(require_caller)) -> Caller:
    """Require any portal role - raises 403 if the user has none."""
    if not caller.has_role:
        raise ForbiddenError("User role not found")
    return caller


def require_admin(caller: Caller = Depends(require_caller)) -> Caller:
    """Require admin privileges - raises 403 otherwise."""
    if not caller.is_admin:
        logger.info("admin_access_denied", user_id=caller.user_id, role=caller.role)
        raise ForbiddenError()
    return caller
