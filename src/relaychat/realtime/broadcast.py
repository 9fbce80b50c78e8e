"""Message broadcast engine — history replay, send, and fan-out.

Send path: validate → persist → broadcast. The broadcast only ever happens
after a successful insert, so a failed write never reaches other clients.
Errors never leave the handler; they become a ``message:error`` event for
the session that caused them.
"""

from typing import Any, Optional

import structlog

from relaychat.config import settings
from relaychat.db.models import utcnow
from relaychat.realtime.events import MESSAGE_ERROR, MESSAGE_HISTORY, MESSAGE_NEW
from relaychat.realtime.session import Session, SessionRegistry
from relaychat.schemas.message import ErrorNotice, MessageCreate
from relaychat.services.errors import StoreUnavailableError
from relaychat.services.message_store import MessageStore

logger = structlog.get_logger()

CONTENT_REQUIRED = "Message content is required"
HISTORY_FAILED = "Failed to load message history"
SEND_FAILED = "Failed to send message"


def content_too_long(limit: int) -> str:
    return f"Message content cannot exceed {limit} characters"


class MessageBroadcaster:
    def __init__(
        self,
        store: MessageStore,
        registry: SessionRegistry,
        history_limit: Optional[int] = None,
        max_length: Optional[int] = None,
    ):
        self.store = store
        self.registry = registry
        self.history_limit = (
            settings.history_limit if history_limit is None else history_limit
        )
        self.max_length = (
            settings.max_message_length if max_length is None else max_length
        )

    # ─── Fan-out ──────────────────────────────────────────

    async def broadcast(
        self,
        event: str,
        payload: Any,
        exclude: Optional[str] = None,
    ) -> int:
        """Deliver an event to every registered session except ``exclude``.

        Best effort: a failed delivery to one session is logged and the
        rest still get the event. Returns the number of sessions reached.
        """
        delivered = 0
        for session in self.registry.snapshot():
            if session.id == exclude:
                continue
            try:
                await session.deliver(event, payload)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "relaychat.delivery_failed",
                    event=event,
                    session_id=session.id,
                    error=str(e),
                )
        return delivered

    async def reject(self, session: Session, message: str) -> None:
        await session.emit(MESSAGE_ERROR, ErrorNotice(message=message))

    # ─── History replay ───────────────────────────────────

    async def replay_history(self, session: Session) -> None:
        """Send the most recent messages to a new session, then activate it."""
        try:
            records = await self.store.query_recent(self.history_limit)
        except StoreUnavailableError as e:
            logger.error("relaychat.history_failed", session_id=session.id, error=str(e))
            await self.reject(session, HISTORY_FAILED)
            await session.activate()
            return

        await session.emit(MESSAGE_HISTORY, records)
        await session.activate(r.id for r in records)

    # ─── Send ─────────────────────────────────────────────

    def validate(self, data: Any) -> tuple[Optional[str], Optional[str]]:
        """Return (trimmed content, None) or (None, error message)."""
        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, str) or not content.strip():
            return None, CONTENT_REQUIRED
        content = content.strip()
        if len(content) > self.max_length:
            return None, content_too_long(self.max_length)
        return content, None

    async def send(self, session: Session, data: Any) -> None:
        """Handle ``message:send`` from one session."""
        content, error = self.validate(data)
        if error:
            await self.reject(session, error)
            return

        # Author fields are copied now; later renames don't touch this record.
        record = MessageCreate(
            user_id=session.user.id,
            username=session.user.username,
            content=content,
            timestamp=utcnow(),
        )
        try:
            saved = await self.store.insert(record)
        except StoreUnavailableError as e:
            logger.error("relaychat.send_failed", session_id=session.id, error=str(e))
            await self.reject(session, SEND_FAILED)
            return

        reached = await self.broadcast(MESSAGE_NEW, saved)
        logger.info(
            "relaychat.message_sent",
            message_id=str(saved.id),
            user_id=str(saved.user_id),
            recipients=reached,
        )
