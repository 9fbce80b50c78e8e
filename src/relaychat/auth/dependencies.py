"""FastAPI auth dependencies.

``get_current_user`` resolves the bearer token on an HTTP request to the
stored User row, or fails with 401.
"""

import uuid
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from relaychat.auth.jwt import TokenError, verify_token
from relaychat.db.engine import get_db
from relaychat.db.models import User


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extract the authenticated user (required — 401 if missing/invalid)."""
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized("Not authorized, no token")

    token = authorization[7:]
    try:
        payload = verify_token(token)
        user_id = uuid.UUID(str(payload["sub"]))
    except (TokenError, ValueError):
        raise _unauthorized("Not authorized, token failed")

    user = await db.get(User, user_id)
    if not user:
        raise _unauthorized("Not authorized, user not found")
    return user
