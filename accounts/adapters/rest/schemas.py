"""Request and error body models for the REST adapter.

Field-level validation happens here so that malformed requests are
rejected with a per-field error map before reaching the core.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from accounts.core.models import EMAIL_PATTERN


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


def _well_formed_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise ValueError("is not a well-formed email address")
    return value


class CreateUserRequest(BaseModel):
    """Body of ``POST /users``."""

    model_config = ConfigDict(extra="ignore")

    username: str
    email: str
    password: str

    @field_validator("username", "email", "password")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject empty or whitespace-only values."""
        return _not_blank(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Reject malformed email addresses."""
        return _well_formed_email(v)


class UpdateUserRequest(BaseModel):
    """Body of ``PUT /users/{id}``. Omitting email leaves it unchanged."""

    model_config = ConfigDict(extra="ignore")

    email: str | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        """Reject malformed email addresses when one is provided."""
        if v is None:
            return v
        return _well_formed_email(_not_blank(v))


class ErrorResponse(BaseModel):
    """Body returned with every 4xx/5xx response."""

    status: int
    message: str
    errors: dict[str, str] = Field(default_factory=dict)
