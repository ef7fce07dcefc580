"""Authentication gate applied to every request before routing.

Public paths pass straight through. Everything else is evaluated with
app.auth.gate and either forwarded, sent to the TOTP challenge page, or
expelled to the configured external address with the session cookies
cleared. No error body is ever returned to the caller from here.
"""

import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from app.auth.deps import SessionContext, resolve_session
from app.auth.gate import (
    CHALLENGE_PATH,
    DASHBOARD_PATH,
    GateDecision,
    decide,
    next_path,
)
from app.auth.session import clear_session_cookies, set_session_cookies
from app.config import settings

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"

PUBLIC_PREFIXES = (
    "/auth/",
    "/api/auth/",
    "/health",
)
PUBLIC_PATHS = {
    LOGIN_PATH,
    "/docs",
    "/docs/oauth2-redirect",
    "/redoc",
    "/openapi.json",
}


def is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def expel(status_code: int = 302) -> RedirectResponse:
    """Fail-closed exit: off-site redirect with the session cleared."""
    response = RedirectResponse(settings.fail_closed_redirect_url, status_code=status_code)
    clear_session_cookies(response)
    return response


def _with_refreshed_cookies(response: Response, context: SessionContext) -> Response:
    if context.refreshed is not None:
        set_session_cookies(response, context.refreshed)
    return response


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Enforce the session/TOTP/trusted-device policy on protected paths."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path

        if request.method == "OPTIONS":
            return await call_next(request)

        if path == "/":
            context = await self._resolve(request)
            target = DASHBOARD_PATH if context.has_session else LOGIN_PATH
            return _with_refreshed_cookies(RedirectResponse(target, status_code=302), context)

        if path == LOGIN_PATH:
            context = await self._resolve(request)
            if context.has_session:
                response = RedirectResponse(next_path(context.state), status_code=302)
                return _with_refreshed_cookies(response, context)
            return await call_next(request)

        if is_public(path):
            return await call_next(request)

        context = await self._resolve(request)
        decision = decide(context.state)

        if decision == GateDecision.EXPEL:
            logger.warning(
                "Gate expelled request",
                extra={
                    "path": path,
                    "method": request.method,
                    "has_session": context.has_session,
                    "state": context.state.value,
                },
            )
            return expel()

        if decision == GateDecision.CHALLENGE:
            response = RedirectResponse(CHALLENGE_PATH, status_code=302)
            return _with_refreshed_cookies(response, context)

        response = await call_next(request)
        return _with_refreshed_cookies(response, context)

    async def _resolve(self, request: Request) -> SessionContext:
        context = await resolve_session(request)
        request.state.session_context = context
        return context
