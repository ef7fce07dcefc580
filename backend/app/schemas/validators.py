"""Reusable field validators.

Forms post empty strings for untouched optional inputs; those are stored
as NULL rather than "".

Example usage in Pydantic models:

    class ClientCreate(BaseModel):
        contact_email: str | None = None

        strip_blanks = field_validator("contact_phone", mode="before")(blank_to_none)

        @field_validator("contact_email", mode="before")
        @classmethod
        def check_email(cls, v):
            return validate_optional_email(v)
"""

import re
from typing import Any

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def validate_optional_email(value: Any) -> str | None:
    """Blank → None, otherwise a lowercase, well-formed address.

    Raises:
        ValueError: If the address is malformed
    """
    value = blank_to_none(value)
    if value is None:
        return None

    value = str(value).strip().lower()

    if len(value) > 254:  # RFC 5321
        raise ValueError("Email address too long")

    if not EMAIL_REGEX.match(value):
        raise ValueError("Invalid email address format")

    return value
