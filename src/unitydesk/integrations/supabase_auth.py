"""Bearer-token lookup against Supabase Auth."""

from __future__ import annotations

from typing import Optional, Protocol

import httpx

from unitydesk.config import Settings
from unitydesk.db.store import ComplaintStore
from unitydesk.errors import ConfigurationError, ExternalServiceError
from unitydesk.models import AuthUser
from unitydesk.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_ROLE = "CITIZEN"
ROLES = {"CITIZEN", "OFFICER", "ADMIN"}


class Authenticator(Protocol):
    async def get_user(self, token: str) -> Optional[AuthUser]: ...


class SupabaseAuth:
    """Resolves an access token to a user; the role lives in ``profiles``."""

    def __init__(
        self,
        store: ComplaintStore,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings()
        if not self.settings.has_supabase_auth():
            raise ConfigurationError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
        self.store = store
        self._transport = transport

    async def get_user(self, token: str) -> Optional[AuthUser]:
        """Return the signed-in user, or None for a missing or expired token."""
        if not token:
            return None

        url = f"{(self.settings.supabase_url or '').rstrip('/')}/auth/v1/user"
        headers = {
            "Authorization": f"Bearer {token}",
            "apikey": self.settings.supabase_anon_key or "",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.supabase_timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Auth lookup failed: {exc}") from exc

        if response.status_code in (401, 403):
            return None
        if response.status_code >= 400:
            raise ExternalServiceError(f"Auth lookup failed: HTTP {response.status_code}")

        payload = response.json()
        user_id = payload.get("id")
        if not user_id:
            return None

        role = (await self.store.get_profile_role(user_id) or DEFAULT_ROLE).upper()
        if role not in ROLES:
            logger.warning("auth.role.unknown user_id=%s role=%s", user_id, role)
            role = DEFAULT_ROLE
        return AuthUser(id=user_id, email=payload.get("email"), role=role)


class NoAuth:
    """Used when auth is not configured: every request is anonymous."""

    async def get_user(self, token: str) -> Optional[AuthUser]:
        return None
