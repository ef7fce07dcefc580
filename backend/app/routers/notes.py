"""Notes router: notes, their follow-up actions, and ClickUp import.

Endpoints:
    GET    /api/notes                          List (domain/ref/type/pinned/search)
    POST   /api/notes                          Create note
    POST   /api/notes/import                   Import a ClickUp CSV/JSON export
    GET    /api/notes/actions                  Pending actions across all notes
    PUT    /api/notes/actions/{id}             Accept / dismiss an action
    POST   /api/notes/actions/{id}/execute     Turn an accepted action into a task
    GET    /api/notes/{id}                     Note with its actions
    PUT    /api/notes/{id}                     Update note
    DELETE /api/notes/{id}                     Delete note (and its actions)
    POST   /api/notes/{id}/actions             Record a follow-up action
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.middleware.exceptions import InvalidRequestError, ResourceNotFoundError
from app.models.note import Note, NoteAction
from app.schemas.common import SuccessResponse
from app.schemas.note import (
    ExecutedAction,
    ImportedNote,
    ImportResult,
    NoteActionCreate,
    NoteActionOut,
    NoteActionUpdate,
    NoteCreate,
    NoteDetail,
    NoteOut,
    NoteSummary,
    NoteUpdate,
    PendingActionOut,
)
from app.services.note_actions import execute_action, refresh_pending_flag
from app.utils.activity import log_activity
from app.utils.csv_import import IMPORT_DOMAIN, UnsupportedImportFile, parse_clickup_export

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_note(db: AsyncSession, note_id: str, with_actions: bool = False) -> Note:
    query = select(Note).where(Note.id == note_id)
    if with_actions:
        query = query.options(selectinload(Note.actions))
    note = (await db.execute(query)).scalar_one_or_none()
    if not note:
        raise ResourceNotFoundError("Note", note_id)
    return note


async def _get_action(db: AsyncSession, action_id: str) -> NoteAction:
    result = await db.execute(
        select(NoteAction)
        .where(NoteAction.id == action_id)
        .options(selectinload(NoteAction.note))
    )
    action = result.scalar_one_or_none()
    if not action:
        raise ResourceNotFoundError("Action", action_id)
    return action


# ── Notes ───────────────────────────────────────────────────

@router.get("", response_model=list[NoteSummary])
async def list_notes(
    domain: str | None = None,
    domain_ref_id: str | None = None,
    note_type: str | None = None,
    pinned: bool = False,
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Pinned notes first, then most recently updated."""
    query = select(Note)
    if domain:
        query = query.where(Note.domain == domain)
    if domain_ref_id:
        query = query.where(Note.domain_ref_id == domain_ref_id)
    if note_type:
        query = query.where(Note.note_type == note_type)
    if pinned:
        query = query.where(Note.is_pinned.is_(True))
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Note.title.ilike(pattern), Note.content.ilike(pattern)))

    query = query.order_by(Note.is_pinned.desc(), Note.updated_at.desc())
    notes = (await db.execute(query)).scalars().all()

    counts: dict[str, int] = {}
    if notes:
        counts = dict((await db.execute(
            select(NoteAction.note_id, func.count(NoteAction.id))
            .where(NoteAction.note_id.in_([n.id for n in notes]))
            .group_by(NoteAction.note_id)
        )).all())

    return [
        NoteSummary(**NoteOut.model_validate(n).model_dump(), action_count=counts.get(n.id, 0))
        for n in notes
    ]


@router.post("", response_model=NoteOut, status_code=201)
async def create_note(body: NoteCreate, db: AsyncSession = Depends(get_db)):
    note = Note(**body.model_dump(), has_pending_actions=False)
    db.add(note)
    await db.flush()

    await log_activity(
        db,
        domain=note.domain,
        domain_ref_id=note.domain_ref_id,
        module="notes",
        activity_type="created",
        title=f"Created note '{note.title}'",
        ref_type="note",
        ref_id=note.id,
    )
    return NoteOut.model_validate(note)


@router.post("/import", response_model=ImportResult)
async def import_clickup(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
):
    """Create one note per ClickUp task/doc in the upload.

    All notes are created in the request transaction, so a failure
    part-way leaves nothing behind.
    """
    content = await file.read()
    try:
        parsed = parse_clickup_export(file.filename or "", content)
    except UnsupportedImportFile as e:
        raise InvalidRequestError(str(e))
    except UnicodeDecodeError:
        raise InvalidRequestError("File is not valid UTF-8 text.")

    if not parsed.rows:
        raise InvalidRequestError("No importable items found in the file.")

    notes = [Note(**row, has_pending_actions=False) for row in parsed.rows]
    db.add_all(notes)
    await db.flush()

    logger.info(
        f"Imported {len(notes)} notes from ClickUp",
        extra={"upload_name": file.filename, "skipped": parsed.skipped, "total_rows": parsed.total_rows},
    )
    await log_activity(
        db,
        domain=IMPORT_DOMAIN,
        module="notes",
        activity_type="created",
        title=f"Imported {len(notes)} note(s) from ClickUp",
    )
    return ImportResult(
        imported=len(notes),
        notes=[ImportedNote(id=n.id, title=n.title) for n in notes],
    )


# ── Actions ─────────────────────────────────────────────────

@router.get("/actions", response_model=list[PendingActionOut])
async def list_pending_actions(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(NoteAction)
        .where(NoteAction.status == "pending")
        .options(selectinload(NoteAction.note))
        .order_by(NoteAction.created_at.desc())
    )
    return [PendingActionOut.model_validate(a) for a in result.scalars().all()]


@router.put("/actions/{action_id}", response_model=NoteActionOut)
async def update_action(
    action_id: str,
    body: NoteActionUpdate,
    db: AsyncSession = Depends(get_db),
):
    action = await _get_action(db, action_id)
    action.status = body.status
    await db.flush()

    await refresh_pending_flag(db, action.note)
    return NoteActionOut.model_validate(action)


@router.post("/actions/{action_id}/execute", response_model=ExecutedAction)
async def execute(action_id: str, db: AsyncSession = Depends(get_db)):
    action = await _get_action(db, action_id)
    task = await execute_action(db, action, action.note)
    return ExecutedAction(type="task", id=task.id)


# ── Single note ─────────────────────────────────────────────

@router.get("/{note_id}", response_model=NoteDetail)
async def get_note(note_id: str, db: AsyncSession = Depends(get_db)):
    return NoteDetail.model_validate(await _get_note(db, note_id, with_actions=True))


@router.put("/{note_id}", response_model=NoteOut)
async def update_note(
    note_id: str,
    body: NoteUpdate,
    db: AsyncSession = Depends(get_db),
):
    note = await _get_note(db, note_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(note, key, value)
    await db.flush()
    return NoteOut.model_validate(note)


@router.delete("/{note_id}", response_model=SuccessResponse)
async def delete_note(note_id: str, db: AsyncSession = Depends(get_db)):
    note = await _get_note(db, note_id, with_actions=True)
    await db.delete(note)
    await db.flush()
    return SuccessResponse()


@router.post("/{note_id}/actions", response_model=NoteActionOut, status_code=201)
async def create_action(
    note_id: str,
    body: NoteActionCreate,
    db: AsyncSession = Depends(get_db),
):
    note = await _get_note(db, note_id)
    action = NoteAction(note_id=note.id, status="pending", **body.model_dump())
    db.add(action)
    note.has_pending_actions = True
    await db.flush()
    return NoteActionOut.model_validate(action)
