"""View routes.

The front end renders pages; these endpoints exist so the gate has real
paths to guard and redirect between, and so a client can ask what a
page needs. /dashboard is only reachable through the gate.
"""

from fastapi import APIRouter, Depends

from app.auth.deps import SessionContext, get_session_context
from app.schemas.auth import ViewDescriptor

router = APIRouter(tags=["views"])


def _describe(view: str, title: str, context: SessionContext) -> ViewDescriptor:
    return ViewDescriptor(
        view=view,
        title=title,
        authenticated=context.has_session,
        assurance_level=context.assurance_level if context.has_session else None,
    )


@router.get("/login", response_model=ViewDescriptor)
async def login_page(context: SessionContext = Depends(get_session_context)):
    return _describe("login", "Sign in", context)


@router.get("/auth/verify-totp", response_model=ViewDescriptor)
async def verify_totp_page(context: SessionContext = Depends(get_session_context)):
    return _describe("verify-totp", "Secondary verification required", context)


@router.get("/auth/setup-totp", response_model=ViewDescriptor)
async def setup_totp_page(context: SessionContext = Depends(get_session_context)):
    return _describe("setup-totp", "Set up authenticator app", context)


@router.get("/dashboard", response_model=ViewDescriptor)
async def dashboard_page(context: SessionContext = Depends(get_session_context)):
    return _describe("dashboard", "Dashboard", context)
