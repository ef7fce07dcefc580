"""Pydantic schemas for time tracking."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class Heartbeat(BaseModel):
    """Sent by the front end roughly every minute while a page is visible."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    route: str
    module: str = Field(..., min_length=1, max_length=50)
    domain: str = Field(..., min_length=1, max_length=20)
    client_id: str | None = None
    project_id: str | None = None
    activity_description: str


class HeartbeatResult(BaseModel):
    action: Literal["extended", "created"]
    id: str


class TimeEntryCreate(BaseModel):
    domain: str = Field(..., min_length=1, max_length=20)
    module: str = Field(..., min_length=1, max_length=50)
    client_id: str | None = None
    project_id: str | None = None
    activity_description: str | None = None
    started_at: datetime
    ended_at: datetime | None = None

    @model_validator(mode="after")
    def _ordered(self):
        if self.ended_at is not None and self.ended_at < self.started_at:
            raise ValueError("ended_at must not be before started_at")
        return self


class TimeEntryClient(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class TimeEntryOut(BaseModel):
    id: str
    domain: str
    module: str
    client_id: str | None
    project_id: str | None
    activity_description: str | None
    started_at: datetime
    ended_at: datetime | None
    duration_minutes: int | None
    source: str
    created_at: datetime
    client: TimeEntryClient | None = None

    model_config = {"from_attributes": True}


class ClientMinutes(BaseModel):
    id: str
    name: str
    minutes: int


class ModuleMinutes(BaseModel):
    name: str
    minutes: int


class TimeSummary(BaseModel):
    total_minutes: int
    by_client: list[ClientMinutes]
    by_module: list[ModuleMinutes]
