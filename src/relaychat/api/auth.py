"""Auth API — registration, login, logout, current user.

- POST /auth/register → create an account, returns user + token
- POST /auth/login → email/password → user + token, marks online
- POST /auth/logout → marks offline, records last seen
- GET /auth/me → current user
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from relaychat.auth.dependencies import get_current_user
from relaychat.auth.jwt import create_access_token
from relaychat.auth.password import hash_password, verify_password
from relaychat.db.engine import get_db
from relaychat.db.models import User, UserStatus, utcnow
from relaychat.schemas.user import (
    AuthResponse,
    LoginRequest,
    LogoutResponse,
    RegisterRequest,
    UserPublic,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/auth")


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        **UserPublic.model_validate(user).model_dump(),
        token=create_access_token(str(user.id)),
    )


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a new user account."""
    q = select(User).where(
        or_(User.email == body.email, User.username == body.username)
    )
    result = await db.execute(q)
    if result.scalars().first():
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("relaychat.user_registered", user_id=str(user.id))
    return _auth_response(user)


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login with email and password → JWT."""
    q = select(User).where(User.email == body.email)
    result = await db.execute(q)
    user = result.scalars().first()

    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user.status = UserStatus.ONLINE.value
    await db.commit()
    await db.refresh(user)

    return _auth_response(user)


# ─── Logout ──────────────────────────────────────────────


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user.status = UserStatus.OFFLINE.value
    user.last_seen = utcnow()
    await db.commit()
    return LogoutResponse()


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserPublic)
async def get_me(user: User = Depends(get_current_user)):
    return user
