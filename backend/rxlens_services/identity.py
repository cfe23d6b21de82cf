from __future__ import annotations

import hashlib
import logging
import os
import re
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str | None = None


class SupabaseIdentityProvider:
    """Resolves bearer tokens through the Supabase Auth ``/user`` endpoint."""

    def __init__(
        self,
        *,
        base_url: str,
        service_key: str,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def resolve(self, token: str) -> Identity | None:
        if not self._base_url or not self._service_key:
            logger.error("Supabase identity provider is not configured")
            return None
        headers = {
            "Authorization": f"Bearer {token}",
            "apikey": self._service_key,
        }
        try:
            with httpx.Client(
                timeout=httpx.Timeout(self._timeout_seconds, connect=5.0),
                transport=self._transport,
            ) as client:
                response = client.get(f"{self._base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Identity lookup failed: %s", exc)
            return None
        if response.status_code != 200:
            logger.info("Identity provider rejected token with HTTP %s", response.status_code)
            return None
        try:
            payload = response.json()
        except ValueError:
            return None
        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not isinstance(user_id, str) or not user_id.strip():
            return None
        email = payload.get("email")
        return Identity(user_id=user_id.strip(), email=email if isinstance(email, str) else None)


_TRUSTED_USER_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._:@-]{1,63}$")


class TrustedTokenIdentityProvider:
    """Treats the bearer token itself as the user id.

    Only for local development and tests behind a trusted gateway.
    """

    def resolve(self, token: str) -> Identity | None:
        candidate = token.strip()
        if not candidate:
            return None
        if len(candidate) > 96:
            return Identity(user_id=f"token_{hashlib.sha256(candidate.encode('utf-8')).hexdigest()[:24]}")
        if not _TRUSTED_USER_ID_RE.fullmatch(candidate):
            return None
        return Identity(user_id=candidate)


def identity_provider_from_env() -> SupabaseIdentityProvider | TrustedTokenIdentityProvider:
    mode = (os.getenv("RXLENS_IDENTITY_PROVIDER") or "supabase").strip().lower()
    if mode == "trusted":
        return TrustedTokenIdentityProvider()
    if mode != "supabase":
        raise ValueError(f"Unsupported RXLENS_IDENTITY_PROVIDER: {mode}")
    return SupabaseIdentityProvider(
        base_url=(os.getenv("SUPABASE_URL") or "").strip(),
        service_key=(os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip(),
    )
