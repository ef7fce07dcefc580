"""TimeEntry: one interval of tracked work.

Auto entries are produced by the heartbeat coalescer: a continuous
session grows a single row (ended_at moves forward) instead of
producing one row per heartbeat.  ended_at is NULL only for manual
timers that are still running.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.utils.dates import utcnow


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    domain: Mapped[str] = mapped_column(String(20), nullable=False)
    module: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    client_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("clients.id"), index=True
    )
    project_id: Mapped[str | None] = mapped_column(String(36))
    activity_description: Mapped[str | None] = mapped_column(Text)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime, index=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer)
    # auto | manual
    source: Mapped[str] = mapped_column(String(10), default="auto")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    client = relationship("Client")
