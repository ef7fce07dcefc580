"""Pydantic schemas for Client and ClientService CRUD operations."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import blank_to_none, validate_optional_email

_OPTIONAL_TEXT = (
    "contact_first_name", "contact_last_name", "contact_phone",
    "domain", "address", "notes",
)


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_first_name: str | None = None
    contact_last_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    domain: str | None = None
    address: str | None = None
    notes: str | None = None
    services: list[str] = Field(default_factory=list)

    strip_blanks = field_validator(*_OPTIONAL_TEXT, mode="before")(blank_to_none)

    @field_validator("contact_email", mode="before")
    @classmethod
    def check_email(cls, v):
        return validate_optional_email(v)


class ClientUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    contact_first_name: str | None = None
    contact_last_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    domain: str | None = None
    address: str | None = None
    notes: str | None = None
    is_active: bool | None = None

    strip_blanks = field_validator(*_OPTIONAL_TEXT, mode="before")(blank_to_none)

    @field_validator("contact_email", mode="before")
    @classmethod
    def check_email(cls, v):
        return validate_optional_email(v)


class ServiceCreate(BaseModel):
    service_type: str = Field(..., min_length=1, max_length=50)
    config: dict[str, Any] | None = None
    is_active: bool | None = None


class ServiceUpdate(BaseModel):
    config: dict[str, Any] | None = None
    is_active: bool | None = None


class ServiceOut(BaseModel):
    id: str
    client_id: str
    service_type: str
    config: dict[str, Any] | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClientOut(BaseModel):
    id: str
    name: str
    contact_first_name: str | None
    contact_last_name: str | None
    contact_email: str | None
    contact_phone: str | None
    domain: str | None
    address: str | None
    notes: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    services: list[ServiceOut] = []

    model_config = {"from_attributes": True}
