"""Onboarding router: templates and runs.

Endpoints:
    GET    /api/onboarding/templates          List templates (default first)
    POST   /api/onboarding/templates          Create template
    GET    /api/onboarding/templates/{id}     Template + 10 latest runs
    PUT    /api/onboarding/templates/{id}     Update template
    DELETE /api/onboarding/templates/{id}     Delete unused template
    POST   /api/onboarding/run                Apply a template to a client
    GET    /api/onboarding/runs               All runs, newest first
    GET    /api/onboarding/runs/{id}          One run
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.middleware.exceptions import ConflictError, ResourceNotFoundError
from app.models.onboarding import OnboardingRun, OnboardingTemplate
from app.schemas.common import SuccessResponse
from app.schemas.onboarding import (
    RunOut,
    RunRequest,
    RunResponse,
    RunSummary,
    TemplateCreate,
    TemplateDetail,
    TemplateOut,
    TemplateSummary,
    TemplateUpdate,
)
from app.services.onboarding import OnboardingExecutor

logger = logging.getLogger(__name__)

router = APIRouter()

RECENT_RUNS = 10


def _summarise_run(run: OnboardingRun) -> RunSummary:
    return RunSummary(
        **RunOut.model_validate(run).model_dump(),
        template_name=run.template.name if run.template else None,
        client_name=run.client.name if run.client else None,
    )


async def _get_template(db: AsyncSession, template_id: str) -> OnboardingTemplate:
    result = await db.execute(
        select(OnboardingTemplate).where(OnboardingTemplate.id == template_id)
    )
    template = result.scalar_one_or_none()
    if not template:
        raise ResourceNotFoundError("Template", template_id)
    return template


async def _clear_other_defaults(db: AsyncSession, keep_id: str | None = None) -> None:
    """At most one template is the default."""
    stmt = (
        update(OnboardingTemplate)
        .where(OnboardingTemplate.is_default.is_(True))
        .values(is_default=False)
    )
    if keep_id:
        stmt = stmt.where(OnboardingTemplate.id != keep_id)
    await db.execute(stmt)


# ── Templates ───────────────────────────────────────────────

@router.get("/templates", response_model=list[TemplateSummary])
async def list_templates(db: AsyncSession = Depends(get_db)):
    templates = (await db.execute(
        select(OnboardingTemplate).order_by(
            OnboardingTemplate.is_default.desc(), OnboardingTemplate.name
        )
    )).scalars().all()

    run_counts = dict((await db.execute(
        select(OnboardingRun.template_id, func.count(OnboardingRun.id))
        .group_by(OnboardingRun.template_id)
    )).all())

    return [
        TemplateSummary(
            **TemplateOut.model_validate(t).model_dump(),
            run_count=run_counts.get(t.id, 0),
        )
        for t in templates
    ]


@router.post("/templates", response_model=TemplateOut, status_code=201)
async def create_template(body: TemplateCreate, db: AsyncSession = Depends(get_db)):
    if body.is_default:
        await _clear_other_defaults(db)

    template = OnboardingTemplate(
        name=body.name,
        description=body.description or None,
        steps=[step.stored() for step in body.steps],
        is_default=body.is_default,
    )
    db.add(template)
    await db.flush()

    logger.info(f"Created onboarding template '{template.name}'", extra={"steps": len(body.steps)})
    return TemplateOut.model_validate(template)


@router.get("/templates/{template_id}", response_model=TemplateDetail)
async def get_template(template_id: str, db: AsyncSession = Depends(get_db)):
    template = await _get_template(db, template_id)

    runs = (await db.execute(
        select(OnboardingRun)
        .where(OnboardingRun.template_id == template_id)
        .options(selectinload(OnboardingRun.template), selectinload(OnboardingRun.client))
        .order_by(OnboardingRun.started_at.desc())
        .limit(RECENT_RUNS)
    )).scalars().all()

    return TemplateDetail(
        **TemplateOut.model_validate(template).model_dump(),
        runs=[_summarise_run(r) for r in runs],
    )


@router.put("/templates/{template_id}", response_model=TemplateOut)
async def update_template(
    template_id: str,
    body: TemplateUpdate,
    db: AsyncSession = Depends(get_db),
):
    template = await _get_template(db, template_id)

    updates = body.model_dump(exclude_unset=True, exclude={"steps"})
    if body.is_default:
        await _clear_other_defaults(db, keep_id=template_id)
    for key, value in updates.items():
        if key == "is_default" and value is None:
            continue
        setattr(template, key, value)
    if body.steps is not None:
        template.steps = [step.stored() for step in body.steps]
    await db.flush()

    return TemplateOut.model_validate(template)


@router.delete("/templates/{template_id}", response_model=SuccessResponse)
async def delete_template(template_id: str, db: AsyncSession = Depends(get_db)):
    template = await _get_template(db, template_id)

    run_count = (await db.execute(
        select(func.count(OnboardingRun.id)).where(OnboardingRun.template_id == template_id)
    )).scalar_one()
    if run_count:
        raise ConflictError(
            f"Template has {run_count} run(s) and cannot be deleted"
        )

    await db.delete(template)
    await db.flush()
    return SuccessResponse()


# ── Runs ────────────────────────────────────────────────────

@router.post("/run", response_model=RunResponse, status_code=201)
async def run_onboarding(body: RunRequest, db: AsyncSession = Depends(get_db)):
    run, results = await OnboardingExecutor(db).run(body.template_id, body.client_id)
    return RunResponse(run=RunOut.model_validate(run), results=results)


@router.get("/runs", response_model=list[RunSummary])
async def list_runs(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(OnboardingRun)
        .options(selectinload(OnboardingRun.template), selectinload(OnboardingRun.client))
        .order_by(OnboardingRun.started_at.desc())
    )
    return [_summarise_run(r) for r in result.scalars().all()]


@router.get("/runs/{run_id}", response_model=RunSummary)
async def get_run(run_id: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(OnboardingRun)
        .where(OnboardingRun.id == run_id)
        .options(selectinload(OnboardingRun.template), selectinload(OnboardingRun.client))
    )
    run = result.scalar_one_or_none()
    if not run:
        raise ResourceNotFoundError("Run", run_id)
    return _summarise_run(run)
