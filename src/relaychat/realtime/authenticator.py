"""Connection authenticator — the WebSocket handshake check.

Runs before any other per-connection handler. Produces either the resolved
user (already marked online) or an AuthenticationError whose ``reason`` is
the literal string shown to the client.
"""

from typing import Callable, Optional

import structlog

from relaychat.auth.jwt import (
    InvalidTokenError,
    TokenError,
    TokenExpiredError,
    verify_token,
)
from relaychat.realtime.presence import PresenceTracker
from relaychat.schemas.user import UserPublic
from relaychat.services.errors import StoreUnavailableError
from relaychat.services.user_directory import UserDirectory

logger = structlog.get_logger()

TOKEN_REQUIRED = "Authentication token is required"
TOKEN_INVALID = "Invalid token"
TOKEN_EXPIRED = "Token expired"
AUTH_FAILED = "Authentication failed"
USER_NOT_FOUND = "User not found"


class AuthenticationError(Exception):
    """The connection attempt is refused; ``reason`` goes to the client."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ConnectionAuthenticator:
    def __init__(
        self,
        directory: UserDirectory,
        presence: PresenceTracker,
        verify: Callable[[str], dict] = verify_token,
    ):
        self.directory = directory
        self.presence = presence
        self.verify = verify

    async def authenticate(self, token: Optional[str]) -> UserPublic:
        """Resolve a bearer token to a user and mark that user online."""
        if not token:
            raise AuthenticationError(TOKEN_REQUIRED)

        try:
            payload = self.verify(token)
        except TokenExpiredError:
            raise AuthenticationError(TOKEN_EXPIRED)
        except InvalidTokenError:
            raise AuthenticationError(TOKEN_INVALID)
        except TokenError:
            raise AuthenticationError(AUTH_FAILED)

        subject = payload.get("sub")
        if subject is None:
            raise AuthenticationError(TOKEN_INVALID)

        try:
            user = await self.directory.find_by_id(str(subject))
            if user is None:
                raise AuthenticationError(USER_NOT_FOUND)
            await self.presence.mark_online(user)
        except StoreUnavailableError as e:
            logger.error("relaychat.auth_store_error", error=str(e))
            raise AuthenticationError(AUTH_FAILED)

        return user
