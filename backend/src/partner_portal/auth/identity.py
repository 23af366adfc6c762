"""Client for the hosted identity store.

The identity store issues HS256 access tokens (``sub`` = user id) that are
verified locally, and exposes an admin API used to look users up by id.
"""

import asyncio
import base64
import json
from dataclasses import dataclass
from typing import Iterable, Mapping

import httpx
from jose import JWTError, jwt

from partner_portal.logging_config import get_logger
from partner_portal.settings import settings

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    """A user as known to the identity store."""

    id: str
    email: str | None = None


def token_from_cookies(cookies: Mapping[str, str]) -> str | None:
    """Extract an access token from the identity store's session cookie.

    The cookie holds either the raw token, a JSON array whose first item is
    the token, a JSON object with ``access_token``, or either JSON form
    base64 encoded behind a ``base64-`` prefix.
    """
    start, end = settings.identity_cookie_marker
    value = next(
        (v for name, v in cookies.items() if start in name and end in name and v),
        None,
    )
    if not value:
        return None

    if value.startswith("base64-"):
        encoded = value[len("base64-"):]
        encoded += "=" * (-len(encoded) % 4)
        try:
            value = base64.urlsafe_b64decode(encoded).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            return None

    if value[:1] in ("[", "{"):
        try:
            parsed = json.loads(value)
        except ValueError:
            return None
        if isinstance(parsed, list):
            return parsed[0] if parsed and isinstance(parsed[0], str) else None
        if isinstance(parsed, dict):
            return parsed.get("access_token")
        return None

    return value


class IdentityProvider:
    """Verifies bearer tokens and looks users up in the identity store."""

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        jwt_secret: str | None = None,
        audience: str | None = None,
        concurrency: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.identity_url or "").rstrip("/")
        self.service_key = service_key or settings.identity_service_key
        self.jwt_secret = jwt_secret or settings.identity_jwt_secret
        self.audience = audience or settings.identity_jwt_audience
        self.concurrency = max(1, concurrency or settings.identity_lookup_concurrency)
        self._transport = transport
        self.logger = get_logger(__name__)

    # ==================== TOKENS ====================

    def verify_token(self, token: str) -> Identity | None:
        """Verify an access token.

        Args:
            token: Bearer token issued by the identity store

        Returns:
            Identity if the token is valid, None otherwise
        """
        try:
            claims = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[JWT_ALGORITHM],
                audience=self.audience,
            )
        except JWTError as e:
            self.logger.debug("token_rejected", reason=str(e))
            return None

        user_id = claims.get("sub")
        if not user_id:
            return None

        return Identity(id=str(user_id), email=claims.get("email"))

    # ==================== ADMIN LOOKUPS ====================

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.identity_timeout_seconds,
            transport=self._transport,
            headers={
                "apikey": self.service_key or "",
                "Authorization": f"Bearer {self.service_key or ''}",
            },
        )

    async def _fetch_user(self, client: httpx.AsyncClient, user_id: str) -> Identity | None:
        try:
            response = await client.get(f"/auth/v1/admin/users/{user_id}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning("identity_lookup_failed", user_id=user_id, error=str(e))
            return None

        user = data.get("user", data) if isinstance(data, dict) else None
        if not user or not user.get("id"):
            return None
        return Identity(id=str(user["id"]), email=user.get("email"))

    def _configured(self) -> bool:
        if not self.base_url or not self.service_key:
            self.logger.warning("identity_admin_not_configured")
            return False
        return True

    async def get_user(self, user_id: str) -> Identity | None:
        """Look a single user up by id."""
        if not self._configured():
            return None
        async with self._client() as client:
            return await self._fetch_user(client, user_id)

    async def get_users(self, user_ids: Iterable[str]) -> dict[str, Identity | None]:
        """Look several users up with bounded fan-out.

        Ids are de-duplicated so each distinct user is fetched once per call.

        Args:
            user_ids: User ids, duplicates allowed

        Returns:
            Mapping of user id to Identity (None when unknown or failed)
        """
        unique_ids = list(dict.fromkeys(uid for uid in user_ids if uid))
        results: dict[str, Identity | None] = {uid: None for uid in unique_ids}
        if not unique_ids or not self._configured():
            return results

        semaphore = asyncio.Semaphore(self.concurrency)

        async with self._client() as client:
            async def lookup(uid: str) -> None:
                async with semaphore:
                    results[uid] = await self._fetch_user(client, uid)

            await asyncio.gather(*(lookup(uid) for uid in unique_ids))

        self.logger.info("identity_batch_lookup", requested=len(unique_ids))
        return results


# Singleton instance
identity_provider = IdentityProvider()
