"""Trusted-device tokens backed by Redis.

A browser that has passed a TOTP challenge may be issued a long-lived
bypass token. Only the SHA-256 of the token is stored, as a value-less
key with a TTL; Redis eviction is the only expiry mechanism and the
application never deletes entries, so logging out does not revoke trust.
"""

import hashlib
import logging
import secrets

from fastapi import Response

from app.config import settings
from app.utils.cache import get_redis

logger = logging.getLogger(__name__)

COOKIE_NAME = "trusted_device"
KEY_PREFIX = "trusted:"
TOKEN_BYTES = 32


def ttl_seconds() -> int:
    return settings.trusted_device_ttl_days * 24 * 60 * 60


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TrustedDevices:
    """Issue and check trusted-device tokens."""

    @staticmethod
    async def issue() -> str:
        """Create a token, store its hash, and return the raw value.

        Raises redis errors to the caller; a device that could not be
        remembered must not receive a cookie.
        """
        token = secrets.token_hex(TOKEN_BYTES)
        redis_client = await get_redis()
        await redis_client.setex(f"{KEY_PREFIX}{hash_token(token)}", ttl_seconds(), "1")
        return token

    @staticmethod
    async def is_trusted(token: str | None) -> bool:
        """Lookup by existence. Store errors count as not trusted."""
        if not token:
            return False

        try:
            redis_client = await get_redis()
            exists = await redis_client.exists(f"{KEY_PREFIX}{hash_token(token)}")
            return exists > 0
        except Exception as e:
            logger.error(f"Failed to check trusted device: {e}")
            return False


def set_trust_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=ttl_seconds(),
        httponly=True,
        secure=settings.environment == "production",
        samesite="lax",
        path="/",
    )
