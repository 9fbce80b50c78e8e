"""Request ID middleware — a correlation id for every HTTP request and
WebSocket connection.

Pure ASGI rather than BaseHTTPMiddleware so it also wraps ``websocket``
scopes. The id (incoming ``X-Request-ID`` or a fresh UUID) is bound into
structlog's contextvars, so every log line of that request or connection
carries it, and echoed back on HTTP responses.
"""

import uuid

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send


class RequestIdMiddleware:
    header_name = "X-Request-ID"

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(self.header_name) or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=scope.get("path", ""),
        )

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers[self.header_name] = request_id
            await send(message)

        await self.app(scope, receive, send_with_id)
