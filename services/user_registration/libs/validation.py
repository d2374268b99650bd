"""Pydantic-based validation gate for user registration payloads.

The same ``UserPayload`` model is used by the producer endpoint before a
message is enqueued and by the worker before anything is persisted, so the
two sides cannot drift apart. JSON Schema export is kept for producers
written in other languages.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic import ValidationError as PydanticValidationError

from libs.exceptions import ValidationError


# ASCII digits only; \d would also match other Unicode digits
PHONE_PATTERN = r"^[0-9]{9}$"


class UserPayload(BaseModel):
    """Registration data flowing from the API through the queue to the store."""
    # Unknown fields are dropped; surrounding whitespace is trimmed
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(..., min_length=3, max_length=100, description="Full name of the user")
    email: EmailStr = Field(..., description="Unique email address")
    phone: str = Field(..., pattern=PHONE_PATTERN, description="Mobile number, 9 digits")


def _field_name(loc: tuple[Any, ...]) -> str:
    if not loc:
        return "body"
    return ".".join(str(part) for part in loc)


def _describe(exc: PydanticValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": _field_name(tuple(err.get("loc", ()))),
            "message": err.get("msg", "invalid value"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]


def validate_user_payload(raw: Any) -> UserPayload:
    """Validate a raw structured payload and return the normalized model.

    Raises ``libs.exceptions.ValidationError`` describing the first
    violation (field name quoted in the message) and listing all of them.

    Example:
        >>> validate_user_payload({"name": "Ana Lima", "email": "ana@example.com", "phone": "912345678"})
        UserPayload(name='Ana Lima', email='ana@example.com', phone='912345678')
    """
    if not isinstance(raw, dict):
        raise ValidationError(
            '"body" must be a JSON object with name, email and phone',
            field="body",
            errors=[{"field": "body", "message": "must be a JSON object", "type": "model_type"}],
        )
    try:
        return UserPayload.model_validate(raw)
    except PydanticValidationError as exc:
        errors = _describe(exc)
        first = errors[0]
        raise ValidationError(
            f'"{first["field"]}" {first["message"]}',
            field=first["field"],
            errors=errors,
        ) from exc


def export_user_json_schema() -> dict[str, Any]:
    """Return the JSON Schema for ``UserPayload`` (for cross-language producers)."""
    return UserPayload.model_json_schema()
