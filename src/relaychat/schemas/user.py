"""Pydantic schemas for users and the auth API.

Outgoing models serialize with camelCase aliases (``lastSeen``,
``createdAt``) to match what the chat client reads. The password hash is
never part of any outgoing model.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$"


# ─── Requests ─────────────────────────────────────────────


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=30)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=6)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


# ─── Responses ────────────────────────────────────────────


class UserPublic(BaseModel):
    """A user as seen outside the directory."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: uuid.UUID
    username: str
    email: str
    avatar: str = "default-avatar.png"
    status: str
    last_seen: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthResponse(UserPublic):
    token: str


class LogoutResponse(BaseModel):
    message: str = "Logged out successfully"
