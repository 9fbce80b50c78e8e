"""relaychat — a small real-time chat backend.

Users register and log in over HTTP, then open one WebSocket per browser
tab. Messages are persisted and fanned out to every live session; typing
indicators and presence ride the same channel.
"""

__version__ = "0.1.0"
