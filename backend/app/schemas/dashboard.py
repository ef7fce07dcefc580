from pydantic import BaseModel

from app.schemas.activity import ActivityOut
from app.schemas.project import ProjectOut, TaskWithProject


class TaskWidget(BaseModel):
    count: int
    items: list[TaskWithProject]


class ActiveProject(ProjectOut):
    task_count: int = 0


class ProjectWidget(BaseModel):
    count: int
    items: list[ActiveProject]


class DashboardWidgets(BaseModel):
    tasks_due_today: TaskWidget
    overdue_tasks: TaskWidget
    active_projects: ProjectWidget
    recent_activity: list[ActivityOut]
    time_tracked_today: int
