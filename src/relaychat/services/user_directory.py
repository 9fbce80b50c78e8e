"""User directory — lookups and presence writes for the realtime layer.

Each call opens its own short-lived session, so a WebSocket that stays
open for hours never holds a pooled connection between events.
"""

import uuid
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relaychat.db.models import User, UserStatus
from relaychat.schemas.user import UserPublic
from relaychat.services.errors import StoreUnavailableError


class UserDirectory(Protocol):
    async def find_by_id(self, user_id: str) -> Optional[UserPublic]: ...

    async def update_status(
        self,
        user_id: uuid.UUID,
        status: UserStatus,
        last_seen: Optional[datetime] = None,
    ) -> None: ...


class SqlUserDirectory:
    """UserDirectory backed by the ``users`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_by_id(self, user_id: str) -> Optional[UserPublic]:
        """Return the public projection of a user, or None if unknown."""
        try:
            key = uuid.UUID(str(user_id))
        except ValueError:
            return None

        try:
            async with self.session_factory() as db:
                user = await db.get(User, key)
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailableError(str(e)) from e

        if not user:
            return None
        return UserPublic.model_validate(user)

    async def update_status(
        self,
        user_id: uuid.UUID,
        status: UserStatus,
        last_seen: Optional[datetime] = None,
    ) -> None:
        values = {"status": UserStatus(status).value}
        if last_seen is not None:
            values["last_seen"] = last_seen

        try:
            async with self.session_factory() as db:
                await db.execute(
                    update(User).where(User.id == user_id).values(**values)
                )
                await db.commit()
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailableError(str(e)) from e
