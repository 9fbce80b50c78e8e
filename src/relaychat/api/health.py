"""Health check endpoints.

``/api/v1/health`` reports server, database and Redis connectivity.
``/ping`` is a bare reachability check outside the API prefix, kept for
clients that poll it before opening the chat socket.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from relaychat import __version__
from relaychat.cache import get_redis
from relaychat.db.engine import engine
from relaychat.db.models import utcnow

router = APIRouter()
ping_router = APIRouter()


@router.get("/health")
async def health_check():
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}


@ping_router.get("/ping", tags=["health"])
async def ping(request: Request):
    return {
        "message": "pong",
        "timestamp": utcnow().isoformat(),
        "path": request.url.path,
    }
