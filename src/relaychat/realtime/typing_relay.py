"""Typing signal relay — "user is typing" to everyone but the typist.

Fire-and-forget: nothing is stored, nothing is debounced, and if nobody
else is connected the signal simply goes nowhere.
"""

from relaychat.realtime.broadcast import MessageBroadcaster
from relaychat.realtime.events import USER_TYPING
from relaychat.realtime.session import Session
from relaychat.schemas.message import TypingNotice


class TypingRelay:
    def __init__(self, broadcaster: MessageBroadcaster):
        self.broadcaster = broadcaster

    async def relay(self, session: Session, is_typing: bool) -> None:
        notice = TypingNotice(
            user_id=session.user.id,
            username=session.user.username,
            is_typing=is_typing,
        )
        await self.broadcaster.broadcast(USER_TYPING, notice, exclude=session.id)
