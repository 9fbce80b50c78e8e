"""Authentication.

Users log in with email/password and receive a signed JWT. The same token
authenticates HTTP requests (``Authorization: Bearer``) and the WebSocket
handshake (``/ws?token=``).
"""
