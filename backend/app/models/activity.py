"""ActivityEntry: append-only feed of things that happened.

Written through app.utils.activity.log_activity, never directly by
routers.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.utils.dates import utcnow


class ActivityEntry(Base):
    __tablename__ = "activity_entries"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # ── Where ──────────────────────────────────────────────────
    # life | mlc | product
    domain: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    domain_ref_id: Mapped[str | None] = mapped_column(String(36), index=True)
    # clients | projects | tasks | notes | onboarding | ...
    module: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # ── What ───────────────────────────────────────────────────
    # created | updated | archived | completed | ...
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    # ── Target ─────────────────────────────────────────────────
    ref_type: Mapped[str | None] = mapped_column(String(50))
    ref_id: Mapped[str | None] = mapped_column(String(36))

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False, index=True
    )
