"""Onboarding executor.

Applies an onboarding template to a client, one step at a time, in
template order:

    run, results = await OnboardingExecutor(db).run(template_id, client_id)

Each step runs inside its own SAVEPOINT. A step that raises has its own
partial writes rolled back, is recorded as "failed", and the next step
still runs. Earlier successful steps are never undone; steps are written
so that running a template twice is safe (enable_service toggles rather
than duplicates).

The run row is inserted as "in_progress" before the first step and
finalised once every step has produced a result:
    completed  - no step failed ("manual" counts as not failed)
    failed     - at least one step failed
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import ResourceNotFoundError
from app.models.client import Client, ClientService
from app.models.onboarding import OnboardingRun, OnboardingTemplate
from app.models.project import Project, Task
from app.schemas.onboarding import (
    CreateProjectStep,
    CreateTasksStep,
    EnableServiceStep,
    OnboardingStep,
    StepResult,
    WelcomeEmailStep,
    parse_step,
)
from app.utils.activity import log_activity
from app.utils.dates import utcnow
from app.utils.numbering import next_sort_order

logger = logging.getLogger(__name__)

CLIENT_DOMAIN = "mlc"


class OnboardingExecutor:
    """Run templates against clients using the caller's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def run(
        self, template_id: str, client_id: str,
    ) -> tuple[OnboardingRun, list[StepResult]]:
        template = await self.db.get(OnboardingTemplate, template_id)
        if not template:
            raise ResourceNotFoundError("Template", template_id)
        client = await self.db.get(Client, client_id)
        if not client:
            raise ResourceNotFoundError("Client", client_id)

        # Read everything needed up front; savepoint rollbacks expire state
        template_name = template.name
        client_name = client.name
        raw_steps = list(template.steps or [])

        run = OnboardingRun(
            template_id=template_id,
            client_id=client_id,
            status="in_progress",
            steps_completed=[],
            started_at=utcnow(),
        )
        self.db.add(run)
        await self.db.flush()

        logger.info(
            f"Running onboarding '{template_name}' for '{client_name}'",
            extra={"template_id": template_id, "client_id": client_id, "steps": len(raw_steps)},
        )

        results = []
        for index, raw in enumerate(raw_steps):
            results.append(await self._run_step(index, raw, client_id, client_name))

        run.status = "failed" if any(r.status == "failed" for r in results) else "completed"
        run.steps_completed = [r.model_dump() for r in results]
        run.completed_at = utcnow()
        await self.db.flush()

        await log_activity(
            self.db,
            domain=CLIENT_DOMAIN,
            domain_ref_id=client_id,
            module="onboarding",
            activity_type="completed",
            title=f"Ran onboarding '{template_name}' for client '{client_name}'",
            ref_type="client",
            ref_id=client_id,
        )
        return run, results

    async def _run_step(
        self, index: int, raw: dict, client_id: str, client_name: str,
    ) -> StepResult:
        raw = raw if isinstance(raw, dict) else {}
        label = str(raw.get("label") or "")
        action_type = str(raw.get("action_type") or raw.get("actionType") or "other")

        try:
            async with self.db.begin_nested():
                step = parse_step(raw)
                return await self._dispatch(index, step, client_id, client_name)
        except Exception as e:
            logger.warning(
                f"Onboarding step {index} failed: {e}",
                extra={"step_index": index, "action_type": action_type},
                exc_info=True,
            )
            return StepResult(
                step_index=index,
                label=label,
                action_type=action_type,
                status="failed",
                message=f"Failed: {e}",
            )

    async def _dispatch(
        self, index: int, step: OnboardingStep, client_id: str, client_name: str,
    ) -> StepResult:
        if isinstance(step, EnableServiceStep):
            status, message, created_id = await self._enable_service(step, client_id)
        elif isinstance(step, CreateProjectStep):
            status, message, created_id = await self._create_project(step, client_id, client_name)
        elif isinstance(step, CreateTasksStep):
            status, message, created_id = await self._create_tasks(step, client_id)
        elif isinstance(step, WelcomeEmailStep):
            status, created_id = "manual", None
            message = "Welcome email step logged as manual to-do (email integration comes later)"
        else:
            status, message, created_id = "manual", f"Manual step: {step.label}", None

        return StepResult(
            step_index=index,
            label=step.label,
            action_type=step.action_type,
            status=status,
            message=message,
            created_id=created_id,
        )

    # ── Step handlers ───────────────────────────────────────

    async def _enable_service(self, step: EnableServiceStep, client_id: str):
        service_type = step.config.service_type

        result = await self.db.execute(
            select(ClientService).where(
                ClientService.client_id == client_id,
                ClientService.service_type == service_type,
            )
        )
        existing = result.scalar_one_or_none()
        if existing:
            if not existing.is_active:
                existing.is_active = True
                await self.db.flush()
            return "success", f"Service '{service_type}' already exists, ensured active", existing.id

        service = ClientService(client_id=client_id, service_type=service_type, is_active=True, config={})
        self.db.add(service)
        await self.db.flush()
        return "success", f"Enabled service '{service_type}'", service.id

    async def _create_project(self, step: CreateProjectStep, client_id: str, client_name: str):
        name = step.config.project_name or f"{client_name} - New Project"

        project = Project(
            name=name,
            domain=CLIENT_DOMAIN,
            domain_ref_id=client_id,
            project_type=step.config.project_type,
            status="active",
            priority="medium",
        )
        self.db.add(project)
        await self.db.flush()

        await log_activity(
            self.db,
            domain=CLIENT_DOMAIN,
            domain_ref_id=client_id,
            module="projects",
            activity_type="created",
            title=f"Created project '{name}' via onboarding",
            ref_type="project",
            ref_id=project.id,
        )
        return "success", f"Created project '{name}'", project.id

    async def _create_tasks(self, step: CreateTasksStep, client_id: str):
        tasks = step.config.tasks
        if not tasks:
            return "success", "No tasks configured, skipped", None

        # Best effort: unmatched project names leave tasks unlinked
        project_id = None
        if step.config.project_name:
            result = await self.db.execute(
                select(Project.id)
                .where(
                    Project.domain_ref_id == client_id,
                    Project.name == step.config.project_name,
                )
                .order_by(Project.created_at)
                .limit(1)
            )
            project_id = result.scalar_one_or_none()

        sort_order = 0
        if project_id:
            sort_order = await next_sort_order(self.db, Task.sort_order, Task.project_id == project_id)
        for offset, task_def in enumerate(tasks):
            self.db.add(Task(
                title=task_def.title,
                project_id=project_id,
                status="todo",
                priority=task_def.priority,
                sort_order=sort_order + offset,
            ))
        await self.db.flush()
        return "success", f"Created {len(tasks)} task(s)", None
