"""Pydantic schemas for onboarding templates, steps and runs.

Steps are a tagged union keyed by ``action_type``. Each variant carries
its own typed config; the template's JSON column stores the plain dict
form and is only interpreted here:

    parse_step({"action_type": "enable_service", "label": "Notes",
                "config": {"service_type": "notes"}})
    → EnableServiceStep(...)

Config keys are snake_case; camelCase spellings (serviceType,
projectName, ...) are accepted on input.
"""

from datetime import datetime
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

ActionType = Literal[
    "enable_service",
    "create_project",
    "create_tasks",
    "send_welcome_email",
    "other",
]
Priority = Literal["low", "medium", "high", "urgent"]
StepStatus = Literal["success", "failed", "manual"]
RunStatus = Literal["in_progress", "completed", "failed"]


# ── Step configs ────────────────────────────────────────────

class _Config(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EnableServiceConfig(_Config):
    service_type: str = Field("notes", min_length=1)


class CreateProjectConfig(_Config):
    project_name: str | None = None
    project_type: str = "general"


class TaskSpec(_Config):
    title: str = Field(..., min_length=1)
    priority: Priority = "medium"


class CreateTasksConfig(_Config):
    tasks: list[TaskSpec] = Field(default_factory=list)
    project_name: str | None = None


# ── Steps ───────────────────────────────────────────────────

class _Step(BaseModel):
    label: str = ""


class EnableServiceStep(_Step):
    action_type: Literal["enable_service"] = "enable_service"
    config: EnableServiceConfig = Field(default_factory=EnableServiceConfig)


class CreateProjectStep(_Step):
    action_type: Literal["create_project"] = "create_project"
    config: CreateProjectConfig = Field(default_factory=CreateProjectConfig)


class CreateTasksStep(_Step):
    action_type: Literal["create_tasks"] = "create_tasks"
    config: CreateTasksConfig = Field(default_factory=CreateTasksConfig)


class WelcomeEmailStep(_Step):
    action_type: Literal["send_welcome_email"] = "send_welcome_email"
    config: dict[str, Any] = Field(default_factory=dict)


class OtherStep(_Step):
    """Manual step. Also the landing spot for unrecognised stored types."""
    action_type: str = "other"
    config: dict[str, Any] = Field(default_factory=dict)


OnboardingStep = Union[
    EnableServiceStep, CreateProjectStep, CreateTasksStep, WelcomeEmailStep, OtherStep,
]

STEP_MODELS: dict[str, type[_Step]] = {
    "enable_service": EnableServiceStep,
    "create_project": CreateProjectStep,
    "create_tasks": CreateTasksStep,
    "send_welcome_email": WelcomeEmailStep,
    "other": OtherStep,
}


def _normalise(raw: dict) -> dict:
    data = dict(raw)
    if "action_type" not in data and "actionType" in data:
        data["action_type"] = data.pop("actionType")
    if data.get("config") is None:
        data["config"] = {}
    return data


def parse_step(raw: dict) -> OnboardingStep:
    """Stored dict → typed step. Raises ValidationError on a bad config."""
    data = _normalise(raw)
    model = STEP_MODELS.get(data.get("action_type"), OtherStep)
    return model.model_validate(data)


# ── Template CRUD ───────────────────────────────────────────

class StepIn(BaseModel):
    action_type: ActionType
    label: str = Field(..., min_length=1)
    config: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _accept_camel(cls, data):
        if isinstance(data, dict):
            return _normalise(data)
        return data

    @model_validator(mode="after")
    def _check_config(self):
        # Reject configs the executor could never run
        try:
            STEP_MODELS[self.action_type].model_validate(
                {"action_type": self.action_type, "label": self.label, "config": self.config}
            )
        except ValidationError as e:
            first = e.errors()[0]
            where = ".".join(str(loc) for loc in first["loc"])
            raise ValueError(f"Invalid {self.action_type} config at {where}: {first['msg']}")
        return self

    def stored(self) -> dict:
        """Canonical JSON form for the template's steps column."""
        step = parse_step(self.model_dump())
        return step.model_dump(mode="json")


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    steps: list[StepIn] = Field(..., min_length=1)
    is_default: bool = False


class TemplateUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    steps: list[StepIn] | None = Field(None, min_length=1)
    is_default: bool | None = None


class TemplateOut(BaseModel):
    id: str
    name: str
    description: str | None
    steps: list[dict[str, Any]]
    is_default: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TemplateSummary(TemplateOut):
    run_count: int = 0


# ── Runs ────────────────────────────────────────────────────

class StepResult(BaseModel):
    step_index: int
    label: str
    action_type: str
    status: StepStatus
    message: str
    created_id: str | None = None


class RunRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    template_id: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)


class RunOut(BaseModel):
    id: str
    template_id: str
    client_id: str
    status: RunStatus
    steps_completed: list[dict[str, Any]]
    started_at: datetime
    completed_at: datetime | None

    model_config = {"from_attributes": True}


class RunSummary(RunOut):
    template_name: str | None = None
    client_name: str | None = None


class RunResponse(BaseModel):
    run: RunOut
    results: list[StepResult]


class TemplateDetail(TemplateOut):
    runs: list[RunSummary] = []
