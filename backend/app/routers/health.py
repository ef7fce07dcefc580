"""Health check endpoints for load balancers and monitoring."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.config import settings
from app.database import engine
from app.utils.cache import get_redis
from app.utils.dates import utcnow

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight health check (no DB/Redis check).

    Returns 200 OK if the service is running.
    """
    return {
        "status": "ok",
        "service": "OpsDesk",
        "timestamp": utcnow().isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness check including the database and Redis.

    Returns 200 only if all dependencies are healthy, else 503.
    """
    checks = {
        "service": "ok",
        "database": "unknown",
        "redis": "unknown",
    }
    overall_healthy = True

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    try:
        redis_client = await get_redis()
        await redis_client.ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if overall_healthy else "unhealthy",
            "service": "OpsDesk",
            "checks": checks,
            "timestamp": utcnow().isoformat(),
        },
    )
