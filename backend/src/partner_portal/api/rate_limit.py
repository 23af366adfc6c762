"""Rate limiting configuration for the partner portal API.

Counters live in ``settings.rate_limit_storage_uri``. The default
``memory://`` store only limits within one process; point it at
``redis://...`` when running several instances.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from partner_portal.settings import settings


def forwarded_ip(request: Request) -> str | None:
    """Client IP as reported by the proxy headers, if any."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.headers.get("x-real-ip") or None


def client_ip(request: Request) -> str:
    """Rate limit key: proxy-reported IP, else the socket peer."""
    return forwarded_ip(request) or get_remote_address(request)


# Single shared limiter instance
limiter = Limiter(
    key_func=client_ip,
    default_limits=[settings.rate_limit_default],
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)
