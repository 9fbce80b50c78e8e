"""FastAPI application factory.

create_app() returns a configured FastAPI instance: middleware, CORS, the
HTTP API under /api/v1, the chat WebSocket at /ws, and the ChatHub that
owns the live sessions. Lifespan manages Redis and the database engine.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relaychat import __version__
from relaychat.api import api_router
from relaychat.api.health import ping_router
from relaychat.config import settings
from relaychat.db.engine import async_session_factory, engine
from relaychat.middleware.rate_limit import RateLimitMiddleware
from relaychat.middleware.request_id import RequestIdMiddleware
from relaychat.realtime.hub import build_hub
from relaychat.realtime.websocket import router as ws_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "relaychat.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from relaychat.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("relaychat.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("relaychat.redis_unavailable", error=str(e))
        # Redis is optional; only rate limiting and health use it

    yield

    logger.info("relaychat.shutdown", live_sessions=len(app.state.hub.registry))
    await close_redis()
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="relaychat",
        description="Real-time chat backend: auth API + WebSocket messaging",
        version=__version__,
        lifespan=lifespan,
    )

    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → RateLimit → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(RateLimitMiddleware, auth_rpm=settings.rate_limit_auth_rpm)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    app.include_router(ws_router)
    app.include_router(ping_router)

    app.state.hub = build_hub(async_session_factory)

    return app


# Default app instance (used by uvicorn: relaychat.main:app)
app = create_app()
