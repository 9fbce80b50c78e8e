"""Rate limiting for the credential endpoints — Redis fixed window.

Only ``/auth/login`` and ``/auth/register`` are limited; they are the
brute-force targets. Each client IP gets a counter key like
``relaychat:rl:{ip}:{minute}`` that expires after two minutes.

Skips rate limiting entirely if Redis is unavailable (e.g., in tests).
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from relaychat.cache import get_redis

logger = structlog.get_logger()

LIMITED_PATHS = ("/api/v1/auth/login", "/api/v1/auth/register")


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, auth_rpm: int = 10):
        super().__init__(app)
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        if not request.url.path.startswith(LIMITED_PATHS):
            return await call_next(request)

        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        key = f"relaychat:rl:{client_ip}:{int(time.time() // 60)}"

        try:
            async with redis.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, 120)
                count, _ = await pipe.execute()
        except Exception as e:
            # Redis error, don't block the request
            logger.warning("relaychat.rate_limit_unavailable", error=str(e))
            return await call_next(request)

        if count > self.auth_rpm:
            logger.info("relaychat.rate_limited", client_ip=client_ip)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many attempts. Try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.auth_rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.auth_rpm - count))
        return response
