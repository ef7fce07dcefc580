"""Client for the external identity provider.

Talks to a GoTrue-compatible REST API (``<identity_url>/auth/v1``).
Password sign-in, session refresh, TOTP factor enrollment, challenge and
verification all happen there; this service never stores credentials.

Every call that does not come back 2xx, and every transport failure,
raises ``IdentityProviderError``. Callers in the auth gate treat that as
"no session".
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from app.config import settings

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


# ── Provider payloads ───────────────────────────────────────

class IdentitySession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str
    expires_in: int | None = None
    user: dict[str, Any] = Field(default_factory=dict)


class Factor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    factor_type: str = "totp"
    status: str = "unverified"
    friendly_name: str | None = None

    @property
    def is_verified_totp(self) -> bool:
        return self.factor_type == "totp" and self.status == "verified"


class TotpEnrollment(BaseModel):
    factor_id: str
    qr_code: str
    secret: str
    uri: str


def factors_of(user: dict) -> list[Factor]:
    return [Factor.model_validate(f) for f in (user.get("factors") or [])]


def verified_totp_factors(factors: list[Factor]) -> list[Factor]:
    return [f for f in factors if f.is_verified_totp]


# ── Client ──────────────────────────────────────────────────

class IdentityProvider:
    """Thin async wrapper over the provider's REST endpoints."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        service_key: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.anon_key = anon_key
        self.service_key = service_key
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/auth/v1",
            timeout=timeout,
            transport=transport,
        )

    async def close(self):
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        service: bool = False,
        json: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        key = self.service_key if service else self.anon_key
        headers = {"apikey": key}
        bearer = key if service else token
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"

        try:
            response = await self._client.request(
                method, path, headers=headers, json=json, params=params,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Identity provider unreachable: {method} {path}: {e}")
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
                message = (
                    body.get("error_description")
                    or body.get("msg")
                    or body.get("message")
                    or response.text
                )
            except ValueError:
                message = response.text
            raise IdentityProviderError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Sessions

    async def sign_in_with_password(self, email: str, password: str) -> IdentitySession:
        data = await self._request(
            "POST", "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return IdentitySession.model_validate(data)

    async def refresh_session(self, refresh_token: str) -> IdentitySession:
        data = await self._request(
            "POST", "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return IdentitySession.model_validate(data)

    async def get_user(self, access_token: str) -> dict:
        return await self._request("GET", "/user", token=access_token)

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/logout", token=access_token)

    # TOTP factors

    async def enroll_totp(self, access_token: str, friendly_name: str) -> TotpEnrollment:
        data = await self._request(
            "POST", "/factors",
            token=access_token,
            json={"factor_type": "totp", "friendly_name": friendly_name},
        )
        totp = data.get("totp") or {}
        return TotpEnrollment(
            factor_id=data["id"],
            qr_code=totp.get("qr_code", ""),
            secret=totp.get("secret", ""),
            uri=totp.get("uri", ""),
        )

    async def challenge(self, access_token: str, factor_id: str) -> str:
        data = await self._request(
            "POST", f"/factors/{factor_id}/challenge", token=access_token,
        )
        return data["id"]

    async def verify(
        self, access_token: str, factor_id: str, challenge_id: str, code: str,
    ) -> IdentitySession:
        """Verify a TOTP code. The returned session carries aal2."""
        data = await self._request(
            "POST", f"/factors/{factor_id}/verify",
            token=access_token,
            json={"challenge_id": challenge_id, "code": code},
        )
        return IdentitySession.model_validate(data)

    async def unenroll(self, access_token: str, factor_id: str) -> None:
        """Delete one of the caller's own factors (needs an aal2 session)."""
        await self._request("DELETE", f"/factors/{factor_id}", token=access_token)

    # Admin (service key)

    async def admin_list_factors(self, user_id: str) -> list[Factor]:
        data = await self._request(
            "GET", f"/admin/users/{user_id}/factors", service=True,
        )
        if isinstance(data, dict):
            data = data.get("factors", [])
        return [Factor.model_validate(f) for f in data or []]

    async def admin_delete_factor(self, user_id: str, factor_id: str) -> None:
        await self._request(
            "DELETE", f"/admin/users/{user_id}/factors/{factor_id}", service=True,
        )


_provider: Optional[IdentityProvider] = None


def get_identity_provider() -> IdentityProvider:
    """Get or create the shared provider client."""
    global _provider
    if _provider is None:
        _provider = IdentityProvider(
            settings.identity_url,
            settings.identity_anon_key,
            settings.identity_service_key,
            timeout=settings.identity_timeout_seconds,
        )
    return _provider


async def close_identity_provider():
    global _provider
    if _provider is not None:
        await _provider.close()
        _provider = None
