"""Project and phase router.

Endpoints:
    GET    /api/projects                              List (domain/client/product/status)
    POST   /api/projects                              Create project
    GET    /api/projects/{id}                         Project with phases and tasks
    PUT    /api/projects/{id}                         Update project
    DELETE /api/projects/{id}                         Archive project
    GET    /api/projects/{id}/phases                  List phases
    POST   /api/projects/{id}/phases                  Append phase
    PUT    /api/projects/{id}/phases/{phase_id}       Update phase
    DELETE /api/projects/{id}/phases/{phase_id}       Delete phase
"""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.project import Project, ProjectPhase, Task
from app.schemas.common import SuccessResponse
from app.schemas.project import (
    PhaseCreate,
    PhaseOut,
    PhaseUpdate,
    ProjectCreate,
    ProjectDetail,
    ProjectOut,
    ProjectSummary,
    ProjectUpdate,
)
from app.utils.activity import log_activity
from app.utils.numbering import next_sort_order

router = APIRouter()


async def _get_project(db: AsyncSession, project_id: str) -> Project:
    result = await db.execute(select(Project).where(Project.id == project_id))
    project = result.scalar_one_or_none()
    if not project:
        raise ResourceNotFoundError("Project", project_id)
    return project


async def _log_project(db: AsyncSession, project: Project, activity_type: str, title: str):
    await log_activity(
        db,
        domain=project.domain,
        domain_ref_id=project.domain_ref_id,
        module="projects",
        activity_type=activity_type,
        title=title,
        ref_type="project",
        ref_id=project.id,
    )


@router.get("", response_model=list[ProjectSummary])
async def list_projects(
    domain: str | None = None,
    client_id: str | None = None,
    product_id: str | None = None,
    status: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    """List projects, most recently touched first.

    client_id and product_id are shorthands for a domain plus its
    reference; they take precedence over an explicit domain.
    """
    query = select(Project)
    if client_id:
        query = query.where(Project.domain == "mlc", Project.domain_ref_id == client_id)
    elif product_id:
        query = query.where(Project.domain == "product", Project.domain_ref_id == product_id)
    elif domain:
        query = query.where(Project.domain == domain)
    if status:
        query = query.where(Project.status == status)
    projects = (await db.execute(query.order_by(Project.updated_at.desc()))).scalars().all()

    ids = [p.id for p in projects]
    task_counts: dict[str, int] = {}
    phase_counts: dict[str, int] = {}
    if ids:
        task_counts = dict((await db.execute(
            select(Task.project_id, func.count(Task.id))
            .where(Task.project_id.in_(ids))
            .group_by(Task.project_id)
        )).all())
        phase_counts = dict((await db.execute(
            select(ProjectPhase.project_id, func.count(ProjectPhase.id))
            .where(ProjectPhase.project_id.in_(ids))
            .group_by(ProjectPhase.project_id)
        )).all())

    return [
        ProjectSummary(
            **ProjectOut.model_validate(p).model_dump(),
            task_count=task_counts.get(p.id, 0),
            phase_count=phase_counts.get(p.id, 0),
        )
        for p in projects
    ]


@router.post("", response_model=ProjectOut, status_code=201)
async def create_project(body: ProjectCreate, db: AsyncSession = Depends(get_db)):
    project = Project(**body.model_dump(), status="active")
    db.add(project)
    await db.flush()
    return ProjectOut.model_validate(project)


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(project_id: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Project)
        .where(Project.id == project_id)
        .options(selectinload(Project.phases), selectinload(Project.tasks))
    )
    project = result.scalar_one_or_none()
    if not project:
        raise ResourceNotFoundError("Project", project_id)

    detail = ProjectDetail.model_validate(project)
    detail.tasks.sort(key=lambda t: (t.sort_order, t.created_at))
    return detail


@router.put("/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
):
    project = await _get_project(db, project_id)

    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(project, key, value)
    await db.flush()

    await _log_project(db, project, "updated", "Updated project")
    return ProjectOut.model_validate(project)


@router.delete("/{project_id}", response_model=ProjectOut)
async def archive_project(project_id: str, db: AsyncSession = Depends(get_db)):
    """Projects are archived, never removed; their tasks stay linked."""
    project = await _get_project(db, project_id)
    project.status = "archived"
    await db.flush()

    await _log_project(db, project, "archived", "Archived project")
    return ProjectOut.model_validate(project)


# ── Phases ──────────────────────────────────────────────────

@router.get("/{project_id}/phases", response_model=list[PhaseOut])
async def list_phases(project_id: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(ProjectPhase)
        .where(ProjectPhase.project_id == project_id)
        .order_by(ProjectPhase.sort_order)
    )
    return [PhaseOut.model_validate(p) for p in result.scalars().all()]


@router.post("/{project_id}/phases", response_model=PhaseOut, status_code=201)
async def create_phase(
    project_id: str,
    body: PhaseCreate,
    db: AsyncSession = Depends(get_db),
):
    await _get_project(db, project_id)

    sort_order = await next_sort_order(
        db, ProjectPhase.sort_order, ProjectPhase.project_id == project_id
    )
    phase = ProjectPhase(project_id=project_id, sort_order=sort_order, **body.model_dump())
    db.add(phase)
    await db.flush()
    return PhaseOut.model_validate(phase)


async def _get_phase(db: AsyncSession, project_id: str, phase_id: str) -> ProjectPhase:
    result = await db.execute(
        select(ProjectPhase).where(
            ProjectPhase.id == phase_id,
            ProjectPhase.project_id == project_id,
        )
    )
    phase = result.scalar_one_or_none()
    if not phase:
        raise ResourceNotFoundError("Phase", phase_id)
    return phase


@router.put("/{project_id}/phases/{phase_id}", response_model=PhaseOut)
async def update_phase(
    project_id: str,
    phase_id: str,
    body: PhaseUpdate,
    db: AsyncSession = Depends(get_db),
):
    phase = await _get_phase(db, project_id, phase_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(phase, key, value)
    await db.flush()
    return PhaseOut.model_validate(phase)


@router.delete("/{project_id}/phases/{phase_id}", response_model=SuccessResponse)
async def delete_phase(
    project_id: str,
    phase_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a phase. Tasks and phases that pointed at it are detached."""
    phase = await _get_phase(db, project_id, phase_id)

    await db.execute(update(Task).where(Task.phase_id == phase_id).values(phase_id=None))
    await db.execute(
        update(ProjectPhase)
        .where(ProjectPhase.depends_on_phase_id == phase_id)
        .values(depends_on_phase_id=None)
    )
    await db.delete(phase)
    await db.flush()
    return SuccessResponse()
