"""Decoding of identity-provider session tokens.

Sessions are minted by the identity provider; this service only reads
them. Relevant claims:
  - sub:  user ID
  - aal:  "aal1" after a password sign-in, "aal2" after a TOTP verify
  - amr:  list of authentication methods used
  - exp:  expiry timestamp
"""

import time

from jose import JWTError, jwt

from app.config import settings

AAL_PASSWORD = "aal1"
AAL_MFA = "aal2"


def read_session_claims(token: str | None, *, allow_expired: bool = False) -> dict:
    """Decode and validate a session JWT. Returns empty dict on failure."""
    if not token:
        return {}
    try:
        return jwt.decode(
            token,
            settings.identity_jwt_secret,
            algorithms=[settings.identity_jwt_algorithm],
            options={"verify_aud": False, "verify_exp": not allow_expired},
        )
    except JWTError:
        return {}


def token_expired(token: str | None) -> bool:
    """True for a correctly signed token whose exp is in the past."""
    claims = read_session_claims(token, allow_expired=True)
    if not claims:
        return False
    return float(claims.get("exp", 0)) <= time.time()


def assurance_level(token: str | None) -> str | None:
    return read_session_claims(token).get("aal")
