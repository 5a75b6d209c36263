from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

import httpx

from core.config import settings
from core.exceptions import AuthenticationError, ConfigurationError, IdentityProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """Identity resolved from a session token by the auth provider."""

    id: str
    email: str | None


def _error_message(response: httpx.Response) -> str:
    try:
        body: Any = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase


class IdentityClient:
    """Talks to the provider's auth REST API (GoTrue-compatible)."""

    def __init__(
        self,
        base_url: str | None,
        anon_key: str | None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.anon_key = anon_key
        self.timeout = timeout
        self._transport = transport

    def _require_config(self) -> tuple[str, str]:
        if not self.base_url or not self.anon_key:
            logger.error("SUPABASE_URL or SUPABASE_ANON_KEY is not set")
            raise ConfigurationError("Auth provider URL or anon key is not configured")
        return self.base_url, self.anon_key

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def get_user(self, access_token: str) -> SessionUser | None:
        """Return the user behind ``access_token``, or None when the provider rejects it."""
        base_url, anon_key = self._require_config()
        headers = {"apikey": anon_key, "Authorization": f"Bearer {access_token}"}
        try:
            async with self._client() as client:
                response = await client.get(f"{base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            logger.error("Auth provider request failed: %s", e)
            raise IdentityProviderError("Auth provider unavailable", details=str(e)) from e

        if response.status_code in (401, 403):
            logger.info("Auth provider rejected session token: %s", _error_message(response))
            return None
        if response.is_error:
            message = _error_message(response)
            logger.error("Auth provider error %s: %s", response.status_code, message)
            raise IdentityProviderError("Auth provider error", details=message)

        data = response.json()
        return SessionUser(id=str(data.get("id", "")), email=data.get("email"))

    async def sign_in_with_password(self, email: str, password: str) -> str:
        """Exchange credentials for an access token."""
        base_url, anon_key = self._require_config()
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{base_url}/auth/v1/token",
                    params={"grant_type": "password"},
                    headers={"apikey": anon_key},
                    json={"email": email, "password": password},
                )
        except httpx.HTTPError as e:
            logger.error("Auth provider request failed: %s", e)
            raise IdentityProviderError("Auth provider unavailable", details=str(e)) from e

        if response.status_code in (400, 401, 403, 422):
            raise AuthenticationError(_error_message(response))
        if response.is_error:
            message = _error_message(response)
            logger.error("Auth provider error %s: %s", response.status_code, message)
            raise IdentityProviderError("Auth provider error", details=message)

        token = response.json().get("access_token")
        if not token:
            raise IdentityProviderError("Auth provider returned no access token")
        return str(token)


def get_identity_client() -> IdentityClient:
    cfg = settings.backend
    assert cfg is not None
    return IdentityClient(cfg.url, cfg.anon_key, timeout=cfg.request_timeout)
