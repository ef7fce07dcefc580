"""Session cookies carrying the provider's access and refresh tokens."""

from fastapi import Request, Response

from app.auth.identity import IdentitySession
from app.config import settings

ACCESS_COOKIE = "ops-access-token"
REFRESH_COOKIE = "ops-refresh-token"
SESSION_MAX_AGE = 60 * 60 * 24 * 30  # 30 days; expired access tokens are refreshed


def read_session_tokens(request: Request) -> tuple[str | None, str | None]:
    return request.cookies.get(ACCESS_COOKIE), request.cookies.get(REFRESH_COOKIE)


def set_session_cookies(response: Response, session: IdentitySession) -> None:
    for name, value in (
        (ACCESS_COOKIE, session.access_token),
        (REFRESH_COOKIE, session.refresh_token),
    ):
        response.set_cookie(
            name,
            value,
            max_age=SESSION_MAX_AGE,
            httponly=True,
            secure=settings.environment == "production",
            samesite="lax",
            path="/",
        )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE, path="/")
    response.delete_cookie(REFRESH_COOKIE, path="/")
