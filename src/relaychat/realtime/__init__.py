"""Real-time chat over WebSocket.

Every browser tab opens one connection to /ws?token=JWT. The handler:
1. Authenticates the token and marks the user online
2. Registers a Session and replays recent history to it
3. Dispatches inbound events (send, typing) one at a time
4. On disconnect unregisters the Session and marks the user offline

Fan-out is in-process: a broadcast walks a snapshot of the live sessions.
There is no cross-instance backplane.
"""
