"""Dashboard widgets: today's tasks, overdue work, active projects,
recent activity and minutes tracked today.

Day boundaries are UTC midnights; all timestamps are stored naive UTC.
"""

from datetime import datetime, time, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.models.activity import ActivityEntry
from app.models.project import Project, Task
from app.models.time_entry import TimeEntry
from app.schemas.activity import ActivityOut
from app.schemas.dashboard import (
    ActiveProject,
    DashboardWidgets,
    ProjectWidget,
    TaskWidget,
)
from app.schemas.project import ProjectOut, TaskWithProject
from app.utils.dates import minutes_between, utcnow

router = APIRouter()

WIDGET_LIMIT = 10


def _entry_minutes(entry: TimeEntry, now: datetime) -> int:
    if entry.duration_minutes is not None:
        return entry.duration_minutes
    return minutes_between(entry.started_at, entry.ended_at or now)


async def _tasks(db: AsyncSession, *criteria) -> TaskWidget:
    result = await db.execute(
        select(Task)
        .where(Task.status != "done", *criteria)
        .options(selectinload(Task.project))
        .order_by(Task.due_date.asc())
        .limit(WIDGET_LIMIT)
    )
    items = [TaskWithProject.model_validate(t) for t in result.scalars().all()]
    return TaskWidget(count=len(items), items=items)


@router.get("/widgets", response_model=DashboardWidgets)
async def dashboard_widgets(db: AsyncSession = Depends(get_db)):
    now = utcnow()
    today_start = datetime.combine(now.date(), time.min)
    tomorrow_start = today_start + timedelta(days=1)

    due_today = await _tasks(db, Task.due_date >= today_start, Task.due_date < tomorrow_start)
    overdue = await _tasks(db, Task.due_date < today_start)

    projects = (await db.execute(
        select(Project)
        .where(Project.status == "active")
        .order_by(Project.updated_at.desc())
        .limit(WIDGET_LIMIT)
    )).scalars().all()
    task_counts: dict[str, int] = {}
    if projects:
        task_counts = dict((await db.execute(
            select(Task.project_id, func.count(Task.id))
            .where(Task.project_id.in_([p.id for p in projects]))
            .group_by(Task.project_id)
        )).all())
    active = [
        ActiveProject(**ProjectOut.model_validate(p).model_dump(), task_count=task_counts.get(p.id, 0))
        for p in projects
    ]

    recent = (await db.execute(
        select(ActivityEntry).order_by(ActivityEntry.created_at.desc()).limit(WIDGET_LIMIT)
    )).scalars().all()

    entries = (await db.execute(
        select(TimeEntry).where(TimeEntry.started_at >= today_start)
    )).scalars().all()

    return DashboardWidgets(
        tasks_due_today=due_today,
        overdue_tasks=overdue,
        active_projects=ProjectWidget(count=len(active), items=active),
        recent_activity=[ActivityOut.model_validate(a) for a in recent],
        time_tracked_today=sum(_entry_minutes(e, now) for e in entries),
    )
