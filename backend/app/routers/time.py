"""Time tracking router.

Endpoints:
    POST /api/time/heartbeat     Coalesce a page heartbeat into an auto entry
    POST /api/time               Manual entry
    GET  /api/time               List entries (client_id, date range)
    GET  /api/time/summary       Totals by client and module
"""

from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.client import Client
from app.models.time_entry import TimeEntry
from app.schemas.time_entry import (
    Heartbeat,
    HeartbeatResult,
    TimeEntryCreate,
    TimeEntryOut,
    TimeSummary,
)
from app.services.time_tracking import record_heartbeat, summarise
from app.utils.dates import minutes_between

router = APIRouter()


def _range_filter(query, date_from: date | None, date_to: date | None):
    """started_at within [date_from 00:00, date_to 23:59:59]."""
    if date_from:
        query = query.where(TimeEntry.started_at >= datetime.combine(date_from, time.min))
    if date_to:
        end = datetime.combine(date_to, time.min) + timedelta(days=1)
        query = query.where(TimeEntry.started_at < end)
    return query


@router.post("/heartbeat", response_model=HeartbeatResult)
async def heartbeat(body: Heartbeat, db: AsyncSession = Depends(get_db)):
    return await record_heartbeat(db, body)


@router.post("", response_model=TimeEntryOut, status_code=201)
async def create_entry(body: TimeEntryCreate, db: AsyncSession = Depends(get_db)):
    client = None
    if body.client_id:
        client = await db.get(Client, body.client_id)
        if not client:
            raise ResourceNotFoundError("Client", body.client_id)

    entry = TimeEntry(**body.model_dump(), source="manual")
    if entry.ended_at is not None:
        entry.duration_minutes = minutes_between(entry.started_at, entry.ended_at)
    entry.client = client
    db.add(entry)
    await db.flush()
    return TimeEntryOut.model_validate(entry)


@router.get("", response_model=list[TimeEntryOut])
async def list_entries(
    client_id: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: AsyncSession = Depends(get_db),
):
    query = select(TimeEntry).options(selectinload(TimeEntry.client))
    if client_id:
        query = query.where(TimeEntry.client_id == client_id)
    query = _range_filter(query, date_from, date_to)

    result = await db.execute(query.order_by(TimeEntry.started_at.desc()))
    return [TimeEntryOut.model_validate(e) for e in result.scalars().all()]


@router.get("/summary", response_model=TimeSummary)
async def time_summary(
    date_from: date | None = None,
    date_to: date | None = None,
    db: AsyncSession = Depends(get_db),
):
    query = _range_filter(
        select(TimeEntry).options(selectinload(TimeEntry.client)), date_from, date_to
    )
    entries = (await db.execute(query)).scalars().all()
    return TimeSummary(**summarise(entries))
