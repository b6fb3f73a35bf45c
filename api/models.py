"""
API request and response models for Character Vault REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
characters/models.py, which own the internal domain representation. Route
handlers map between the two.

JSON field names are camelCase on the wire (lastName, accessToken); Python
attributes stay snake_case. populate_by_name lets tests and internal callers
build models with either spelling.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import PASSWORD_MIN_LENGTH, Role, User
from characters.models import Character

# bcrypt rejects secrets longer than 72 bytes.
_BCRYPT_MAX_BYTES = 72


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class Credentials(BaseModel):
    """Request body for POST /auth/register and POST /auth/login.

    Email is trimmed and lower-cased before EmailStr validates it, so
    "A@X.com " and "a@x.com" name the same account. The password is taken
    verbatim, whitespace included.
    """

    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=_BCRYPT_MAX_BYTES)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("password")
    @classmethod
    def fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > _BCRYPT_MAX_BYTES:
            raise ValueError(f"password must be at most {_BCRYPT_MAX_BYTES} bytes")
        return value


class UserResponse(BaseModel):
    """Public view of a User. The password digest and refresh token never leave the server."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, email=user.email, role=user.role)


class TokenPairResponse(_CamelModel):
    """Response for POST /auth/login."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class MessageResponse(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Characters
# ---------------------------------------------------------------------------


class CharacterCreate(_CamelModel):
    """Request body for POST /characters."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)


class CharacterPatch(_CamelModel):
    """Request body for PATCH /characters/{id}. Omitted fields are left unchanged."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class CharacterResponse(_CamelModel):
    id: int
    name: str
    last_name: str

    @classmethod
    def from_character(cls, character: Character) -> "CharacterResponse":
        return cls(id=character.id, name=character.name, last_name=character.last_name)
