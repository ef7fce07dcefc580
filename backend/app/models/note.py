"""Note and NoteAction.

NoteActions are follow-ups detected in a note (e.g. "send the proposal
by Friday").  They start pending, get accepted or dismissed, and an
accepted action can be executed into a Task.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.utils.dates import utcnow


class Note(Base):
    __tablename__ = "notes"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    domain_ref_id: Mapped[str | None] = mapped_column(String(36), index=True)
    # general | meeting_notes | reference | checklist
    note_type: Mapped[str] = mapped_column(String(30), default="general")
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    has_pending_actions: Mapped[bool] = mapped_column(Boolean, default=False)
    imported_from: Mapped[str | None] = mapped_column(String(50))
    imported_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    actions = relationship(
        "NoteAction",
        back_populates="note",
        order_by="NoteAction.created_at",
        cascade="all, delete-orphan",
    )


class NoteAction(Base):
    __tablename__ = "note_actions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    note_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("notes.id"), nullable=False, index=True
    )
    detected_text: Mapped[str] = mapped_column(Text, nullable=False)
    # create_task | follow_up | schedule_meeting | ...
    suggested_action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    suggested_action_data: Mapped[dict | None] = mapped_column(JSON)
    # pending | accepted | dismissed | completed
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    executed_ref_type: Mapped[str | None] = mapped_column(String(50))
    executed_ref_id: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    note = relationship("Note", back_populates="actions")
