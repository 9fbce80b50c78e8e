"""Realtime sessions and the in-memory session registry.

A Session binds one live connection to one authenticated user. It exists
only between successful authentication and disconnect, and is never
persisted.

While a new session is still receiving its history batch, broadcasts
addressed to it are held back. Once the batch is out, held events are
flushed in order, minus any ``message:new`` already present in the batch.
This way a message sent during replay is neither lost nor delivered twice.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol

import structlog
from pydantic import BaseModel

from relaychat.realtime.events import MESSAGE_NEW
from relaychat.schemas.user import UserPublic

logger = structlog.get_logger()


class Connection(Protocol):
    """The transport side of a session (a Starlette WebSocket in production)."""

    async def send_json(self, data: Any) -> None: ...


class SessionState(str, enum.Enum):
    REPLAYING = "replaying"
    ACTIVE = "active"
    CLOSED = "closed"


def encode_payload(payload: Any) -> Any:
    """Turn pydantic payloads into JSON-ready data with camelCase keys."""
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", by_alias=True)
    if isinstance(payload, (list, tuple)):
        return [encode_payload(p) for p in payload]
    return payload


@dataclass
class Session:
    id: str
    user: UserPublic
    connection: Connection
    state: SessionState = SessionState.REPLAYING
    _held: list[tuple[str, Any]] = field(default_factory=list, repr=False)

    async def emit(self, event: str, payload: Any = None) -> None:
        """Send one event to this session's client right now."""
        await self.connection.send_json(
            {"type": event, "data": encode_payload(payload)}
        )

    async def deliver(self, event: str, payload: Any = None) -> None:
        """Send a broadcast event, holding it back while history replays."""
        if self.state is SessionState.CLOSED:
            return
        if self.state is SessionState.REPLAYING:
            self._held.append((event, payload))
            return
        await self.emit(event, payload)

    async def activate(self, replayed_ids: Iterable = ()) -> None:
        """Leave the replay state and flush held broadcasts."""
        seen = set(replayed_ids)
        # Stay in REPLAYING until the queue is empty: broadcasts arriving
        # during a flush await must queue behind the held ones.
        while self._held:
            event, payload = self._held.pop(0)
            if event == MESSAGE_NEW and getattr(payload, "id", None) in seen:
                continue
            await self.emit(event, payload)
        if self.state is SessionState.REPLAYING:
            self.state = SessionState.ACTIVE

    def close(self) -> None:
        self.state = SessionState.CLOSED
        self._held.clear()


class SessionRegistry:
    """All live sessions, keyed by session id."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def add(self, session: Session) -> None:
        self._sessions[session.id] = session
        logger.debug(
            "relaychat.session_registered",
            session_id=session.id,
            live=len(self._sessions),
        )

    def remove(self, session_id: str) -> Optional[Session]:
        return self._sessions.pop(session_id, None)

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def snapshot(self) -> list[Session]:
        """A copy of the live sessions, safe to iterate across awaits."""
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions
