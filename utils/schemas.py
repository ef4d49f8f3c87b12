"""
Pydantic request / response schemas for the users API.

Wire format uses camelCase keys (``dateOfBirth``); Python attributes stay
snake_case.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Requests ───────────────────────────────────────────────────────────


class RegisterRequest(_CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    date_of_birth: Optional[date] = None
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = Field(None, min_length=1, max_length=64)

    @field_validator("name", "gender")
    @classmethod
    def _not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("must not be empty")
        return value.strip() if value is not None else value

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def _password_bytes(cls, value: str) -> str:
        # bcrypt only looks at the first 72 bytes
        if len(value.encode()) > 72:
            raise ValueError("must be at most 72 bytes long")
        return value


class LoginRequest(_CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return _normalize_email(value)


class UpdateUserRequest(_CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr

    @field_validator("name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return _normalize_email(value)


# ── Responses ──────────────────────────────────────────────────────────


class UserPublic(_CamelModel):
    """Outward-facing view of a user.  Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    date_of_birth: Optional[date] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    token: str


class MessageResponse(BaseModel):
    message: str


class ProtectedResponse(_CamelModel):
    message: str
    user_id: int
