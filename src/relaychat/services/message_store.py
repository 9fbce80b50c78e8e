"""Message store — append-only message log.

Two operations: ``insert`` a validated message and ``query_recent`` for
history replay. There is no update or delete.
"""

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relaychat.db.models import Message
from relaychat.schemas.message import MessageCreate, MessageRecord
from relaychat.services.errors import StoreUnavailableError


class MessageStore(Protocol):
    async def insert(self, record: MessageCreate) -> MessageRecord: ...

    async def query_recent(self, limit: int) -> list[MessageRecord]: ...


class SqlMessageStore:
    """MessageStore backed by the ``messages`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def insert(self, record: MessageCreate) -> MessageRecord:
        """Persist a message. Returns it with server-assigned id and created_at."""
        message = Message(
            user_id=record.user_id,
            username=record.username,
            content=record.content,
            timestamp=record.timestamp,
        )
        try:
            async with self.session_factory() as db:
                db.add(message)
                await db.commit()
                await db.refresh(message)
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailableError(str(e)) from e
        return MessageRecord.model_validate(message)

    async def query_recent(self, limit: int) -> list[MessageRecord]:
        """The ``limit`` most recent messages, oldest first."""
        q = (
            select(Message)
            .order_by(Message.timestamp.desc(), Message.created_at.desc())
            .limit(limit)
        )
        try:
            async with self.session_factory() as db:
                result = await db.execute(q)
                rows = list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailableError(str(e)) from e
        rows.reverse()
        return [MessageRecord.model_validate(m) for m in rows]
