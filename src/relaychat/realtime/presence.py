"""Presence tracker — online/offline status tied to connection lifecycle.

Last writer wins: every connect writes online, every disconnect writes
offline. Concurrent sessions of the same user are not counted, so closing
one tab marks the user offline even while another tab is still open.
"""

import structlog

from relaychat.db.models import UserStatus, utcnow
from relaychat.schemas.user import UserPublic
from relaychat.services.user_directory import UserDirectory

logger = structlog.get_logger()


class PresenceTracker:
    def __init__(self, directory: UserDirectory):
        self.directory = directory

    async def mark_online(self, user: UserPublic) -> None:
        """Set status=online. last_seen is left as it was."""
        await self.directory.update_status(user.id, UserStatus.ONLINE)
        logger.info("relaychat.user_online", user_id=str(user.id), username=user.username)

    async def mark_offline(self, user: UserPublic) -> None:
        """Set status=offline and last_seen=now."""
        await self.directory.update_status(
            user.id, UserStatus.OFFLINE, last_seen=utcnow()
        )
        logger.info("relaychat.user_offline", user_id=str(user.id), username=user.username)
