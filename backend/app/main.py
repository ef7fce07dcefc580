import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.auth.identity import close_identity_provider
from app.config import settings
from app.middleware.auth_gate import AuthGateMiddleware
from app.middleware.exceptions import register_exception_handlers
from app.middleware.security import SecurityHeadersMiddleware
from app.routers import (
    activity,
    auth,
    clients,
    dashboard,
    health,
    notes,
    onboarding,
    pages,
    products,
    projects,
    tasks,
    time,
)
from app.utils.cache import close_redis

logger = logging.getLogger("opsdesk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("OpsDesk starting", extra={"environment": settings.environment})
    try:
        yield
    finally:
        await close_identity_provider()
        await close_redis()
        logger.info("OpsDesk stopped")


app = FastAPI(
    title="OpsDesk",
    description="Agency operations dashboard: clients, projects, notes, time and onboarding",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (last added runs first) ───────────────────────
# Auth gate (innermost - every route sits behind it)
app.add_middleware(AuthGateMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Security headers (outermost - applies to gate redirects too)
app.add_middleware(SecurityHeadersMiddleware)

# ── Routers ──────────────────────────────────────────────────
# Public
app.include_router(health.router)
app.include_router(pages.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])

# Behind the gate
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
app.include_router(clients.router, prefix="/api/clients", tags=["clients"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
app.include_router(projects.router, prefix="/api/projects", tags=["projects"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
app.include_router(notes.router, prefix="/api/notes", tags=["notes"])
app.include_router(time.router, prefix="/api/time", tags=["time"])
app.include_router(activity.router, prefix="/api/activity", tags=["activity"])
app.include_router(onboarding.router, prefix="/api/onboarding", tags=["onboarding"])
