"""Turning accepted note actions into tasks.

Every action type currently executes into a Task. "create_task" maps
its data straight onto the task; any other type becomes a to-do task
whose title is prefixed with the action type.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import InvalidRequestError
from app.models.note import Note, NoteAction
from app.models.project import Task
from app.utils.numbering import next_sort_order

logger = logging.getLogger(__name__)

PRIORITIES = {"low", "medium", "high", "urgent"}


def _parse_due_date(value) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        raise InvalidRequestError(f"Invalid due_date on action: {value}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def build_task(action: NoteAction, note: Note) -> Task:
    data = action.suggested_action_data or {}
    title = data.get("title") or ""

    if action.suggested_action_type == "create_task":
        priority = data.get("priority")
        return Task(
            title=title or action.detected_text[:100],
            description=action.detected_text,
            priority=priority if priority in PRIORITIES else "medium",
            due_date=_parse_due_date(data.get("due_date")),
            status="todo",
        )

    return Task(
        title=f"[{action.suggested_action_type}] {title or action.detected_text[:80]}",
        description=f"From meeting notes: {note.title}\n\n{action.detected_text}",
        priority="medium",
        status="todo",
    )


async def execute_action(db: AsyncSession, action: NoteAction, note: Note) -> Task:
    """Create the task for an accepted action and mark the action completed."""
    if action.status != "accepted":
        raise InvalidRequestError("Action must be accepted before executing")

    task = build_task(action, note)
    task.sort_order = await next_sort_order(db, Task.sort_order, Task.project_id.is_(None))
    db.add(task)
    await db.flush()

    action.status = "completed"
    action.executed_ref_type = "task"
    action.executed_ref_id = task.id
    await db.flush()

    logger.info(
        f"Executed note action {action.id} into task {task.id}",
        extra={"action_type": action.suggested_action_type, "note_id": note.id},
    )
    return task


async def refresh_pending_flag(db: AsyncSession, note: Note) -> None:
    """Recompute note.has_pending_actions from its actions."""
    pending = (
        await db.execute(
            select(func.count(NoteAction.id)).where(
                NoteAction.note_id == note.id,
                NoteAction.status == "pending",
            )
        )
    ).scalar_one()
    note.has_pending_actions = pending > 0
    await db.flush()
