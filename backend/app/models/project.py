"""Project, ProjectPhase and Task.

A project belongs to a domain:
  life     → personal, no reference
  mlc      → client work, domain_ref_id = clients.id
  product  → product work, domain_ref_id = products.id

domain_ref_id is deliberately not a foreign key since it points at
different tables depending on the domain.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.utils.dates import utcnow


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    domain: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    domain_ref_id: Mapped[str | None] = mapped_column(String(36), index=True)
    project_type: Mapped[str] = mapped_column(String(50), default="general")
    # active | on_hold | completed | archived
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    due_date: Mapped[datetime | None] = mapped_column(DateTime)
    estimated_budget: Mapped[float | None] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    phases = relationship(
        "ProjectPhase",
        back_populates="project",
        order_by="ProjectPhase.sort_order",
        cascade="all, delete-orphan",
    )
    tasks = relationship("Task", back_populates="project")


class ProjectPhase(Base):
    __tablename__ = "project_phases"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    # pending | in_progress | completed
    status: Mapped[str] = mapped_column(String(20), default="pending")
    depends_on_phase_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("project_phases.id")
    )
    estimated_duration_days: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    project = relationship("Project", back_populates="phases")


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    project_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("projects.id"), index=True
    )
    phase_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("project_phases.id")
    )
    # todo | in_progress | done
    status: Mapped[str] = mapped_column(String(20), default="todo", index=True)
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    due_date: Mapped[datetime | None] = mapped_column(DateTime, index=True)
    depends_on_task_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("tasks.id")
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    project = relationship("Project", back_populates="tasks")
