"""SQLAlchemy ORM models — single source of truth for the database schema.

Two tables: users and messages. Messages carry a copy of the author's
username taken at send time, so history renders without a join and keeps
the name the author had when the message was written.

Column types are the dialect-neutral ones (``Uuid``, ``DateTime``) so the
same models run on PostgreSQL in production and SQLite in tests.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class UserStatus(str, enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    AWAY = "away"


class User(Base):
    """A chat participant.

    ``status`` and ``last_seen`` are written by the presence tracker on
    connect/disconnect and by the HTTP login/logout routes.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    username: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[str] = mapped_column(
        String(255), nullable=False, default="default-avatar.png"
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserStatus.OFFLINE.value
    )
    last_seen: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )

    messages: Mapped[list["Message"]] = relationship(back_populates="author")


class Message(Base):
    """One chat message. Append-only: never edited, never deleted."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_user_id", "user_id"),
        Index("ix_messages_timestamp", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    username: Mapped[str] = mapped_column(String(30), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )

    author: Mapped["User"] = relationship(back_populates="messages")
