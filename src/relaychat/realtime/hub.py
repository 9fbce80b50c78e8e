"""ChatHub — wires the realtime components together.

One hub per app (``app.state.hub``). It owns the session registry and
routes each inbound event of a session to its handler. ``open_session`` is
the only way to create a Session: it registers, replays history, and on
every exit path unregisters and marks the user offline.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relaychat.auth.jwt import verify_token
from relaychat.realtime.authenticator import ConnectionAuthenticator
from relaychat.realtime.broadcast import MessageBroadcaster
from relaychat.realtime.events import (
    MESSAGE_SEND,
    PING,
    PONG,
    TYPING_START,
    TYPING_STOP,
)
from relaychat.realtime.presence import PresenceTracker
from relaychat.realtime.session import Connection, Session, SessionRegistry
from relaychat.realtime.typing_relay import TypingRelay
from relaychat.schemas.user import UserPublic
from relaychat.services.errors import StoreUnavailableError
from relaychat.services.message_store import MessageStore, SqlMessageStore
from relaychat.services.user_directory import SqlUserDirectory, UserDirectory

logger = structlog.get_logger()

Handler = Callable[[Session, Any], Awaitable[None]]


class ChatHub:
    def __init__(
        self,
        directory: UserDirectory,
        store: MessageStore,
        verify: Callable[[str], dict] = verify_token,
        history_limit: Optional[int] = None,
        max_message_length: Optional[int] = None,
    ):
        self.registry = SessionRegistry()
        self.presence = PresenceTracker(directory)
        self.authenticator = ConnectionAuthenticator(directory, self.presence, verify)
        self.messages = MessageBroadcaster(
            store,
            self.registry,
            history_limit=history_limit,
            max_length=max_message_length,
        )
        self.typing = TypingRelay(self.messages)

        self.handlers: dict[str, Handler] = {
            MESSAGE_SEND: self.messages.send,
            TYPING_START: self._typing_start,
            TYPING_STOP: self._typing_stop,
            PING: self._ping,
        }

    async def authenticate(self, token: Optional[str]) -> UserPublic:
        return await self.authenticator.authenticate(token)

    @asynccontextmanager
    async def open_session(
        self, user: UserPublic, connection: Connection
    ) -> AsyncIterator[Session]:
        session = Session(id=uuid.uuid4().hex, user=user, connection=connection)
        self.registry.add(session)
        logger.info(
            "relaychat.session_opened",
            session_id=session.id,
            user_id=str(user.id),
            username=user.username,
        )
        try:
            await self.messages.replay_history(session)
            yield session
        finally:
            session.close()
            self.registry.remove(session.id)
            try:
                await self.presence.mark_offline(user)
            except StoreUnavailableError as e:
                logger.error(
                    "relaychat.presence_update_failed",
                    user_id=str(user.id),
                    error=str(e),
                )
            logger.info("relaychat.session_closed", session_id=session.id)

    async def dispatch(self, session: Session, event: Any, data: Any = None) -> bool:
        """Run the handler for one inbound event. False if the event is unknown."""
        handler = self.handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            logger.debug("relaychat.unknown_event", session_id=session.id, event=event)
            return False
        await handler(session, data)
        return True

    # ─── Small handlers ───────────────────────────────────

    async def _typing_start(self, session: Session, data: Any) -> None:
        await self.typing.relay(session, True)

    async def _typing_stop(self, session: Session, data: Any) -> None:
        await self.typing.relay(session, False)

    async def _ping(self, session: Session, data: Any) -> None:
        await session.emit(PONG)


def build_hub(session_factory: async_sessionmaker[AsyncSession]) -> ChatHub:
    """A hub backed by the SQL user directory and message store."""
    return ChatHub(
        directory=SqlUserDirectory(session_factory),
        store=SqlMessageStore(session_factory),
    )
