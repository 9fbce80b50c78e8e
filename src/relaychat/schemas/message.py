"""Pydantic schemas for chat messages and realtime payloads."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

_camel = ConfigDict(
    from_attributes=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class MessageCreate(BaseModel):
    """A validated message about to be persisted."""

    user_id: uuid.UUID
    username: str
    content: str
    timestamp: datetime


class MessageRecord(BaseModel):
    """A persisted message: what history replay and ``message:new`` carry."""

    model_config = _camel

    id: uuid.UUID
    user_id: uuid.UUID
    username: str
    content: str
    timestamp: datetime
    created_at: Optional[datetime] = None


class TypingNotice(BaseModel):
    model_config = _camel

    user_id: uuid.UUID
    username: str
    is_typing: bool


class ErrorNotice(BaseModel):
    message: str
