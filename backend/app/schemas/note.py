"""Pydantic schemas for notes, note actions and ClickUp import."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

Domain = Literal["life", "mlc", "product"]
NoteType = Literal["general", "meeting_notes", "reference", "checklist"]
ActionStatus = Literal["pending", "accepted", "dismissed", "completed"]


class NoteCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    domain: Domain
    domain_ref_id: str | None = None
    note_type: NoteType = "general"
    is_pinned: bool = False


class NoteUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=500)
    content: str | None = Field(None, min_length=1)
    domain: Domain | None = None
    domain_ref_id: str | None = None
    note_type: NoteType | None = None
    is_pinned: bool | None = None


class NoteOut(BaseModel):
    id: str
    title: str
    content: str
    domain: str
    domain_ref_id: str | None
    note_type: str
    is_pinned: bool
    has_pending_actions: bool
    imported_from: str | None
    imported_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NoteSummary(NoteOut):
    action_count: int = 0


# ── Actions ─────────────────────────────────────────────────

class NoteActionCreate(BaseModel):
    detected_text: str = Field(..., min_length=1)
    suggested_action_type: str = Field("create_task", min_length=1, max_length=50)
    suggested_action_data: dict[str, Any] | None = None


class NoteActionUpdate(BaseModel):
    status: ActionStatus


class NoteRef(BaseModel):
    id: str
    title: str
    domain: str
    domain_ref_id: str | None

    model_config = {"from_attributes": True}


class NoteActionOut(BaseModel):
    id: str
    note_id: str
    detected_text: str
    suggested_action_type: str
    suggested_action_data: dict[str, Any] | None
    status: str
    executed_ref_type: str | None
    executed_ref_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class PendingActionOut(NoteActionOut):
    note: NoteRef | None = None


class NoteDetail(NoteOut):
    actions: list[NoteActionOut] = []


class ExecutedAction(BaseModel):
    type: str
    id: str


# ── Import ──────────────────────────────────────────────────

class ImportedNote(BaseModel):
    id: str
    title: str


class ImportResult(BaseModel):
    imported: int
    notes: list[ImportedNote]
