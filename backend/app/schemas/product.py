"""Pydantic schemas for Product and ProductModule CRUD operations."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import blank_to_none


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    domain: str | None = None
    description: str | None = None
    modules: list[str] = Field(default_factory=list)

    strip_blanks = field_validator("domain", "description", mode="before")(blank_to_none)


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    domain: str | None = None
    description: str | None = None
    is_active: bool | None = None

    strip_blanks = field_validator("domain", "description", mode="before")(blank_to_none)


class ModuleCreate(BaseModel):
    module_type: str = Field(..., min_length=1, max_length=50)
    config: dict[str, Any] | None = None
    is_active: bool | None = None


class ModuleUpdate(BaseModel):
    config: dict[str, Any] | None = None
    is_active: bool | None = None


class ModuleOut(BaseModel):
    id: str
    product_id: str
    module_type: str
    config: dict[str, Any] | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProductOut(BaseModel):
    id: str
    name: str
    domain: str | None
    description: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    modules: list[ModuleOut] = []

    model_config = {"from_attributes": True}


class SeedResult(BaseModel):
    name: str
    status: str  # created | already exists
    id: str
