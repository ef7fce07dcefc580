"""Onboarding templates and runs.

A template is an ordered list of steps stored as JSON:

    [{"action_type": "enable_service", "label": "Turn on notes",
      "config": {"service_type": "notes"}}, ...]

The JSON shape is only interpreted by app.schemas.onboarding; the
model treats it as opaque.

A run records the outcome of applying one template to one client.
steps_completed holds one StepResult dict per template step, in order.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.utils.dates import utcnow


class OnboardingTemplate(Base):
    __tablename__ = "onboarding_templates"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    steps: Mapped[list] = mapped_column(JSON, default=list)
    # At most one row has is_default = true
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    runs = relationship("OnboardingRun", back_populates="template")


class OnboardingRun(Base):
    __tablename__ = "onboarding_runs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    template_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("onboarding_templates.id"), nullable=False, index=True
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id"), nullable=False, index=True
    )
    # in_progress | completed | failed
    status: Mapped[str] = mapped_column(String(20), default="in_progress")
    steps_completed: Mapped[list] = mapped_column(JSON, default=list)
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    template = relationship("OnboardingTemplate", back_populates="runs")
    client = relationship("Client")
