"""JWT token creation and verification.

Tokens are HS256-signed and carry the user id as ``sub``. Verification
failures are split into expired vs invalid so callers can report the
right reason to the client.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from relaychat.config import settings


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenExpiredError(TokenError):
    """The token's ``exp`` claim is in the past."""


class InvalidTokenError(TokenError):
    """The token is malformed or its signature does not match."""


def create_access_token(
    user_id: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token for a user."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "sub": user_id,
        "type": "access",
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenExpiredError or InvalidTokenError on failure.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(f"Invalid token: {e}")
    return payload
