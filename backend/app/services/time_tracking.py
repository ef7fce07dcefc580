"""Heartbeat coalescing for automatic time tracking.

A heartbeat says "still working on <module> for <client>". Within the
recency window (settings.heartbeat_window_seconds) the latest matching
auto entry is extended; otherwise every entry still open is closed and a
fresh zero-length entry starts. Both branches run in the caller's
transaction with the candidate rows locked, so two tabs racing on the
same context cannot both decide to create.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.time_entry import TimeEntry
from app.schemas.time_entry import Heartbeat, HeartbeatResult
from app.utils.dates import minutes_between, utcnow

logger = logging.getLogger(__name__)


async def record_heartbeat(
    db: AsyncSession,
    heartbeat: Heartbeat,
    now: datetime | None = None,
) -> HeartbeatResult:
    now = now or utcnow()
    window_start = now - timedelta(seconds=settings.heartbeat_window_seconds)
    client_id = heartbeat.client_id or None

    query = select(TimeEntry).where(
        TimeEntry.module == heartbeat.module,
        TimeEntry.source == "auto",
        TimeEntry.ended_at >= window_start,
    )
    if client_id is None:
        query = query.where(TimeEntry.client_id.is_(None))
    else:
        query = query.where(TimeEntry.client_id == client_id)
    query = query.order_by(TimeEntry.ended_at.desc()).limit(1).with_for_update()

    recent = (await db.execute(query)).scalar_one_or_none()
    if recent:
        recent.ended_at = now
        recent.duration_minutes = minutes_between(recent.started_at, now)
        await db.flush()
        return HeartbeatResult(action="extended", id=recent.id)

    # Only one activity is ever open: close the rest before starting anew
    open_entries = (
        await db.execute(
            select(TimeEntry).where(TimeEntry.ended_at.is_(None)).with_for_update()
        )
    ).scalars().all()
    for entry in open_entries:
        entry.ended_at = now
        entry.duration_minutes = minutes_between(entry.started_at, now)
    if open_entries:
        logger.info(f"Closed {len(open_entries)} open time entries")

    entry = TimeEntry(
        domain=heartbeat.domain,
        module=heartbeat.module,
        client_id=client_id,
        project_id=heartbeat.project_id or None,
        activity_description=heartbeat.activity_description,
        started_at=now,
        ended_at=now,
        duration_minutes=0,
        source="auto",
    )
    db.add(entry)
    await db.flush()
    return HeartbeatResult(action="created", id=entry.id)


def summarise(entries: list[TimeEntry]) -> dict:
    """Totals by client and by module. Client-less time is "Personal"."""
    total = 0
    by_client: dict[str, dict] = {}
    by_module: dict[str, int] = {}

    for entry in entries:
        minutes = entry.duration_minutes or 0
        total += minutes

        key = entry.client_id or "personal"
        name = entry.client.name if entry.client else "Personal"
        bucket = by_client.setdefault(key, {"id": key, "name": name, "minutes": 0})
        bucket["minutes"] += minutes

        by_module[entry.module] = by_module.get(entry.module, 0) + minutes

    return {
        "total_minutes": total,
        "by_client": list(by_client.values()),
        "by_module": [{"name": k, "minutes": v} for k, v in by_module.items()],
    }
