"""Access policy for protected routes.

Pure functions over the signals gathered for one request. Nothing here
touches the network; see app.auth.deps.resolve_session for how the
signals are collected and app.middleware.auth_gate for enforcement.

    signals ──evaluate()──▶ GateState ──decide()──▶ GateDecision

Every anomaly maps to EXPEL: the caller is sent off-site with no
explanation.
"""

import enum
from dataclasses import dataclass

from app.auth.jwt import AAL_MFA

DASHBOARD_PATH = "/dashboard"
CHALLENGE_PATH = "/auth/verify-totp"


class GateState(str, enum.Enum):
    ANONYMOUS = "anonymous"
    AWAITING_MFA = "password-verified-awaiting-mfa"
    MFA_VERIFIED = "mfa-verified"
    TRUSTED_DEVICE = "trusted-device-bypass"


class GateDecision(str, enum.Enum):
    ALLOW = "allow"
    CHALLENGE = "challenge"
    EXPEL = "expel"


@dataclass(frozen=True)
class GateSignals:
    has_session: bool
    has_verified_totp: bool = False
    assurance_level: str | None = None
    trusted_device: bool = False


ANONYMOUS = GateSignals(has_session=False)


def evaluate(signals: GateSignals) -> GateState:
    # An account without a verified factor is incomplete, not "needs enrollment"
    if not signals.has_session or not signals.has_verified_totp:
        return GateState.ANONYMOUS
    if signals.assurance_level == AAL_MFA:
        return GateState.MFA_VERIFIED
    if signals.trusted_device:
        return GateState.TRUSTED_DEVICE
    return GateState.AWAITING_MFA


_DECISIONS = {
    GateState.ANONYMOUS: GateDecision.EXPEL,
    GateState.AWAITING_MFA: GateDecision.CHALLENGE,
    GateState.MFA_VERIFIED: GateDecision.ALLOW,
    GateState.TRUSTED_DEVICE: GateDecision.ALLOW,
}


def decide(state: GateState) -> GateDecision:
    return _DECISIONS[state]


def next_path(state: GateState) -> str:
    """Where a caller holding a session should land after the login page."""
    if decide(state) == GateDecision.ALLOW:
        return DASHBOARD_PATH
    return CHALLENGE_PATH
