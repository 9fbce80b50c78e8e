"""WebSocket endpoint — the chat channel.

Each client connects to /ws?token=JWT. The handler:
1. Accepts the socket and authenticates the token
2. On failure closes with 4001 and the rejection reason, no session
3. Opens a Session (registers it, replays history)
4. Reads frames one at a time and dispatches them to the hub
5. Leaves the session scope on disconnect, which marks the user offline

Frames are JSON objects: {"type": "message:send", "data": {"content": "hi"}}.
Malformed frames (binary, non-JSON, non-object) are ignored.
"""

import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from relaychat.realtime.authenticator import AuthenticationError
from relaychat.realtime.events import CLOSE_AUTH_FAILED
from relaychat.realtime.hub import ChatHub

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def chat_websocket(websocket: WebSocket):
    """Realtime chat for one authenticated client.

    The socket is accepted before authentication so the rejection reason
    reaches the client as the close reason instead of a bare HTTP 403.
    """
    hub: ChatHub = websocket.app.state.hub

    await websocket.accept()

    # ── Authentication ──────────────────────────────────────
    try:
        user = await hub.authenticate(websocket.query_params.get("token"))
    except AuthenticationError as e:
        logger.info("relaychat.auth_rejected", reason=e.reason)
        await websocket.close(code=CLOSE_AUTH_FAILED, reason=e.reason)
        return

    structlog.contextvars.bind_contextvars(user_id=str(user.id))

    # ── Session ─────────────────────────────────────────────
    try:
        async with hub.open_session(user, websocket) as session:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                raw = message.get("text")
                if raw is None:
                    # binary frames carry no chat events
                    logger.debug("relaychat.bad_frame", session_id=session.id)
                    continue
                try:
                    frame = json.loads(raw)
                except json.JSONDecodeError:
                    logger.debug("relaychat.bad_frame", session_id=session.id)
                    continue
                if not isinstance(frame, dict):
                    continue
                await hub.dispatch(session, frame.get("type"), frame.get("data"))
    except WebSocketDisconnect as e:
        logger.debug("relaychat.client_disconnected", code=e.code)
    finally:
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()
