"""Task router.

Endpoints:
    GET    /api/tasks                 List (project_id/status/priority/due_before)
    POST   /api/tasks                 Create task (appended to its project)
    PUT    /api/tasks/reorder         Move many tasks at once (atomic)
    GET    /api/tasks/{id}            Get task
    PUT    /api/tasks/{id}            Update task
    DELETE /api/tasks/{id}            Delete task
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.project import Project, Task
from app.schemas.common import SuccessResponse
from app.schemas.project import (
    ReorderRequest,
    ReorderResult,
    TaskCreate,
    TaskUpdate,
    TaskWithProject,
)
from app.utils.activity import log_activity
from app.utils.dates import utcnow
from app.utils.numbering import next_sort_order

logger = logging.getLogger(__name__)

router = APIRouter()


def _apply_status(task: Task, new_status: str) -> None:
    """Set status, keeping completed_at in step with "done"."""
    if new_status == "done" and task.status != "done":
        task.completed_at = utcnow()
    elif new_status != "done":
        task.completed_at = None
    task.status = new_status


async def _get_task(db: AsyncSession, task_id: str) -> Task:
    result = await db.execute(
        select(Task).where(Task.id == task_id).options(selectinload(Task.project))
    )
    task = result.scalar_one_or_none()
    if not task:
        raise ResourceNotFoundError("Task", task_id)
    return task


@router.get("", response_model=list[TaskWithProject])
async def list_tasks(
    project_id: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    due_before: datetime | None = None,
    db: AsyncSession = Depends(get_db),
):
    query = select(Task).options(selectinload(Task.project))
    if project_id:
        query = query.where(Task.project_id == project_id)
    if status:
        query = query.where(Task.status == status)
    if priority:
        query = query.where(Task.priority == priority)
    if due_before:
        query = query.where(Task.due_date <= due_before)

    query = query.order_by(Task.sort_order.asc(), Task.created_at.desc())
    result = await db.execute(query)
    return [TaskWithProject.model_validate(t) for t in result.scalars().all()]


@router.post("", response_model=TaskWithProject, status_code=201)
async def create_task(body: TaskCreate, db: AsyncSession = Depends(get_db)):
    project = None
    if body.project_id:
        project = await db.get(Project, body.project_id)
        if not project:
            raise ResourceNotFoundError("Project", body.project_id)

    scope = (
        Task.project_id == body.project_id if body.project_id
        else Task.project_id.is_(None)
    )
    task = Task(**body.model_dump(), sort_order=await next_sort_order(db, Task.sort_order, scope))
    if task.status == "done":
        task.completed_at = utcnow()
    task.project = project
    db.add(task)
    await db.flush()

    await log_activity(
        db,
        domain=project.domain if project else "life",
        domain_ref_id=project.domain_ref_id if project else None,
        module="tasks",
        activity_type="created",
        title=f"Created task '{task.title}'",
        ref_type="task",
        ref_id=task.id,
    )
    return TaskWithProject.model_validate(task)


@router.put("/reorder", response_model=ReorderResult)
async def reorder_tasks(body: ReorderRequest, db: AsyncSession = Depends(get_db)):
    """Apply new positions (and optionally statuses) to many tasks.

    One transaction: an unknown id raises 404 and nothing is applied.
    """
    ids = [item.id for item in body.tasks]
    result = await db.execute(select(Task).where(Task.id.in_(ids)))
    tasks = {t.id: t for t in result.scalars().all()}

    for item in body.tasks:
        task = tasks.get(item.id)
        if task is None:
            raise ResourceNotFoundError("Task", item.id)
        task.sort_order = item.sort_order
        if item.status is not None:
            _apply_status(task, item.status)

    await db.flush()
    logger.info(f"Reordered {len(body.tasks)} tasks")
    return ReorderResult(updated=len(body.tasks))


@router.get("/{task_id}", response_model=TaskWithProject)
async def get_task(task_id: str, db: AsyncSession = Depends(get_db)):
    return TaskWithProject.model_validate(await _get_task(db, task_id))


@router.put("/{task_id}", response_model=TaskWithProject)
async def update_task(
    task_id: str,
    body: TaskUpdate,
    db: AsyncSession = Depends(get_db),
):
    task = await _get_task(db, task_id)

    updates = body.model_dump(exclude_unset=True)
    new_status = updates.pop("status", None)
    for key, value in updates.items():
        setattr(task, key, value)
    if new_status is not None:
        _apply_status(task, new_status)
    await db.flush()

    if "project_id" in updates:
        await db.refresh(task, attribute_names=["project"])
    return TaskWithProject.model_validate(task)


@router.delete("/{task_id}", response_model=SuccessResponse)
async def delete_task(task_id: str, db: AsyncSession = Depends(get_db)):
    task = await _get_task(db, task_id)
    await db.execute(
        update(Task).where(Task.depends_on_task_id == task_id).values(depends_on_task_id=None)
    )
    await db.delete(task)
    await db.flush()
    return SuccessResponse()
