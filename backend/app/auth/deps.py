"""Session resolution shared by the auth gate and the auth router.

Dependencies:
  get_session_context    → SessionContext for the current request
  require_session        → same, 401 when there is no usable session
  require_mfa_session    → same, 401 unless the session is aal2
"""

import logging
from dataclasses import dataclass, field

from fastapi import Depends, Request

from app.auth.gate import ANONYMOUS, GateSignals, GateState, evaluate
from app.auth.identity import (
    Factor,
    IdentityProviderError,
    IdentitySession,
    factors_of,
    get_identity_provider,
    verified_totp_factors,
)
from app.auth.jwt import AAL_MFA, assurance_level, token_expired
from app.auth.session import read_session_tokens
from app.auth.trusted_device import COOKIE_NAME as TRUST_COOKIE
from app.auth.trusted_device import TrustedDevices
from app.middleware.exceptions import AuthenticationRequired

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Everything the gate knows about the caller for one request."""

    access_token: str | None = None
    refresh_token: str | None = None
    user: dict | None = None
    factors: list[Factor] = field(default_factory=list)
    trusted_device: bool = False
    # Set when the access token had to be refreshed; cookies must be rewritten
    refreshed: IdentitySession | None = None

    @property
    def has_session(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> str | None:
        return self.user.get("id") if self.user else None

    @property
    def verified_factors(self) -> list[Factor]:
        return verified_totp_factors(self.factors)

    @property
    def assurance_level(self) -> str | None:
        return assurance_level(self.access_token)

    @property
    def signals(self) -> GateSignals:
        if not self.has_session:
            return ANONYMOUS
        return GateSignals(
            has_session=True,
            has_verified_totp=bool(self.verified_factors),
            assurance_level=self.assurance_level,
            trusted_device=self.trusted_device,
        )

    @property
    def state(self) -> GateState:
        return evaluate(self.signals)


async def resolve_session(request: Request) -> SessionContext:
    """Collect the gate signals for a request.

    An expired access token is refreshed once with the refresh token.
    Any provider failure yields an anonymous context.
    """
    access_token, refresh_token = read_session_tokens(request)
    trusted = await TrustedDevices.is_trusted(request.cookies.get(TRUST_COOKIE))

    if not access_token and not refresh_token:
        return SessionContext(trusted_device=trusted)

    provider = get_identity_provider()
    refreshed = None

    if refresh_token and (not access_token or token_expired(access_token)):
        try:
            refreshed = await provider.refresh_session(refresh_token)
        except IdentityProviderError as e:
            logger.warning(
                "Session refresh rejected",
                extra={"path": request.url.path, "reason": e.message},
            )
            return SessionContext(trusted_device=trusted)
        access_token = refreshed.access_token
        refresh_token = refreshed.refresh_token

    try:
        user = await provider.get_user(access_token)
    except IdentityProviderError as e:
        logger.warning(
            "Session rejected by identity provider",
            extra={"path": request.url.path, "reason": e.message},
        )
        return SessionContext(trusted_device=trusted)

    return SessionContext(
        access_token=access_token,
        refresh_token=refresh_token,
        user=user,
        factors=factors_of(user or {}),
        trusted_device=trusted,
        refreshed=refreshed,
    )


async def get_session_context(request: Request) -> SessionContext:
    """Reuse the context the gate already resolved, if any."""
    context = getattr(request.state, "session_context", None)
    if context is None:
        context = await resolve_session(request)
        request.state.session_context = context
    return context


async def require_session(
    context: SessionContext = Depends(get_session_context),
) -> SessionContext:
    if not context.has_session:
        raise AuthenticationRequired("Not authenticated")
    return context


async def require_mfa_session(
    context: SessionContext = Depends(require_session),
) -> SessionContext:
    if context.assurance_level != AAL_MFA:
        raise AuthenticationRequired("Second factor verification required")
    return context
