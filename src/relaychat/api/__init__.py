"""API route aggregation.

All routers registered here get mounted in main.py under /api/v1.
Protection is per route: register/login/health are open, logout and /me
depend on get_current_user.
"""

from fastapi import APIRouter

from relaychat.api.auth import router as auth_router
from relaychat.api.health import router as health_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
