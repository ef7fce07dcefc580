"""Pydantic schemas for projects, phases and tasks."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Domain = Literal["life", "mlc", "product"]
Priority = Literal["low", "medium", "high", "urgent"]
ProjectStatus = Literal["active", "on_hold", "completed", "archived"]
PhaseStatus = Literal["pending", "in_progress", "completed"]
TaskStatus = Literal["todo", "in_progress", "done"]


# ── Projects ────────────────────────────────────────────────

class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    domain: Domain
    domain_ref_id: str | None = None
    project_type: str = "general"
    priority: Priority = "medium"
    due_date: datetime | None = None
    estimated_budget: float | None = None


class ProjectUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    domain: Domain | None = None
    domain_ref_id: str | None = None
    project_type: str | None = None
    status: ProjectStatus | None = None
    priority: Priority | None = None
    due_date: datetime | None = None
    estimated_budget: float | None = None


class ProjectOut(BaseModel):
    id: str
    name: str
    description: str | None
    domain: str
    domain_ref_id: str | None
    project_type: str
    status: str
    priority: str
    due_date: datetime | None
    estimated_budget: float | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectSummary(ProjectOut):
    task_count: int = 0
    phase_count: int = 0


# ── Phases ──────────────────────────────────────────────────

class PhaseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    depends_on_phase_id: str | None = None
    estimated_duration_days: int | None = Field(None, ge=0)


class PhaseUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    sort_order: int | None = None
    status: PhaseStatus | None = None
    depends_on_phase_id: str | None = None
    estimated_duration_days: int | None = Field(None, ge=0)


class PhaseOut(BaseModel):
    id: str
    project_id: str
    name: str
    description: str | None
    sort_order: int
    status: str
    depends_on_phase_id: str | None
    estimated_duration_days: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ── Tasks ───────────────────────────────────────────────────

class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    project_id: str | None = None
    phase_id: str | None = None
    status: TaskStatus = "todo"
    priority: Priority = "medium"
    due_date: datetime | None = None
    depends_on_task_id: str | None = None


class TaskUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    project_id: str | None = None
    phase_id: str | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    due_date: datetime | None = None
    depends_on_task_id: str | None = None
    sort_order: int | None = None


class TaskProjectRef(BaseModel):
    id: str
    name: str
    domain: str
    domain_ref_id: str | None

    model_config = {"from_attributes": True}


class TaskOut(BaseModel):
    id: str
    title: str
    description: str | None
    project_id: str | None
    phase_id: str | None
    status: str
    priority: str
    due_date: datetime | None
    depends_on_task_id: str | None
    sort_order: int
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskWithProject(TaskOut):
    project: TaskProjectRef | None = None


class ReorderItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1)
    sort_order: int
    status: TaskStatus | None = None


class ReorderRequest(BaseModel):
    tasks: list[ReorderItem]


class ReorderResult(BaseModel):
    updated: int


class ProjectDetail(ProjectOut):
    phases: list[PhaseOut] = []
    tasks: list[TaskOut] = []
