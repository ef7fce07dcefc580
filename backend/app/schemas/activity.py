"""Pydantic schemas for the activity feed."""

from datetime import datetime

from pydantic import BaseModel


class ActivityOut(BaseModel):
    id: str
    domain: str
    domain_ref_id: str | None
    module: str
    activity_type: str
    title: str
    description: str | None
    ref_type: str | None
    ref_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
