from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from gst_invoicer.core.settings import settings
from gst_invoicer.schemas.base import ORMModel


def _normalise_email(value: str) -> str:
    value = value.strip()
    local, _, domain = value.partition("@")
    if not local or not domain:
        raise ValueError("Invalid email address")
    if "." not in domain and not domain.endswith(".local"):
        raise ValueError("Invalid email domain")
    return value.lower()


class UserBase(ORMModel):
    email: str = Field(..., max_length=255)
    full_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalise_email(value)


class UserCreate(UserBase):
    password: str

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: str) -> str:
        if len(value) < settings.min_password_length:
            raise ValueError(f"Password must be at least {settings.min_password_length} characters long")
        return value


class UserRead(UserBase):
    id: int
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime


class LoginResponse(ORMModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
