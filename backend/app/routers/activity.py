"""Activity feed router."""

from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.activity import ActivityEntry
from app.schemas.activity import ActivityOut
from app.schemas.common import PaginatedResponse

router = APIRouter()


@router.get("", response_model=PaginatedResponse[ActivityOut])
async def list_activity(
    domain: str | None = None,
    domain_ref_id: str | None = None,
    module: str | None = None,
    activity_type: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Newest first. date_to is inclusive of the whole day."""
    base = select(ActivityEntry)
    if domain:
        base = base.where(ActivityEntry.domain == domain)
    if domain_ref_id:
        base = base.where(ActivityEntry.domain_ref_id == domain_ref_id)
    if module:
        base = base.where(ActivityEntry.module == module)
    if activity_type:
        base = base.where(ActivityEntry.activity_type == activity_type)
    if date_from:
        base = base.where(ActivityEntry.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        end = datetime.combine(date_to, time.min) + timedelta(days=1)
        base = base.where(ActivityEntry.created_at < end)
    if search:
        base = base.where(ActivityEntry.title.ilike(f"%{search}%"))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar()
    result = await db.execute(
        base.order_by(ActivityEntry.created_at.desc()).limit(limit).offset(offset)
    )

    return PaginatedResponse[ActivityOut](
        items=[ActivityOut.model_validate(a) for a in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )
