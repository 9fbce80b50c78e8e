"""Realtime event names.

Centralizing event names as constants keeps the inbound dispatch table and
the outbound emits in sync with what the chat client listens for.
"""

# ─── Client → server ─────────────────────────────────────

MESSAGE_SEND = "message:send"
TYPING_START = "user:typing:start"
TYPING_STOP = "user:typing:stop"
PING = "ping"

# ─── Server → client ─────────────────────────────────────

MESSAGE_HISTORY = "message:history"
MESSAGE_NEW = "message:new"
MESSAGE_ERROR = "message:error"
USER_TYPING = "user:typing"
PONG = "pong"

# ─── Close codes ─────────────────────────────────────────

CLOSE_AUTH_FAILED = 4001
