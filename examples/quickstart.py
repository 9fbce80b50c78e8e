#!/usr/bin/env python3
"""
relaychat Quickstart — two users chatting over the WebSocket channel.

Registers alice and bob, connects both to /ws, shows the history replay,
a typing signal and a message fan-out, then disconnects.
Run with: python examples/quickstart.py

Requires: pip install httpx websockets
Backend must be running: http://localhost:9999
"""

import asyncio
import json
import sys
import uuid

import httpx
import websockets

BASE = "http://localhost:9999/api/v1"
WS_URL = "ws://localhost:9999/ws"


def register(client: httpx.Client, name: str, run_id: str) -> dict:
    resp = client.post("/auth/register", json={
        "username": f"{name}-{run_id}",
        "email": f"{name}-{run_id}@example.com",
        "password": "demo-password-123",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    user = resp.json()
    print(f"   {user['username']} ({user['id'][:8]}...)")
    return user


async def recv(ws) -> dict:
    frame = json.loads(await asyncio.wait_for(ws.recv(), timeout=5))
    print(f"   <- {frame['type']}: {frame['data']}")
    return frame


async def chat(alice: dict, bob: dict) -> None:
    async with websockets.connect(f"{WS_URL}?token={alice['token']}") as wa, \
            websockets.connect(f"{WS_URL}?token={bob['token']}") as wb:
        print("\n2. History replay on connect...")
        await recv(wa)
        await recv(wb)

        print("\n3. Alice starts typing (only bob hears it)...")
        await wa.send(json.dumps({"type": "user:typing:start"}))
        await recv(wb)

        print("\n4. Alice sends a message (everyone gets it)...")
        await wa.send(json.dumps({"type": "message:send", "data": {"content": "hi bob!"}}))
        await recv(wa)
        await recv(wb)

        print("\n5. An empty message is rejected...")
        await wb.send(json.dumps({"type": "message:send", "data": {"content": "   "}}))
        await recv(wb)

    print("\n6. Both disconnected, presence is now offline.")


def main():
    run_id = uuid.uuid4().hex[:6]
    client = httpx.Client(base_url=BASE, timeout=10)

    print("Checking backend health...")
    try:
        health = client.get("/health").json()
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        print("Start it with:  relaychat serve")
        sys.exit(1)
    print(f"  Database: {health['database']}")
    print(f"  Redis:    {health['redis']}")

    print("\n1. Registering users...")
    alice = register(client, "alice", run_id)
    bob = register(client, "bob", run_id)

    asyncio.run(chat(alice, bob))

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {alice['token']}"})
    print(f"\nalice status: {me.json()['status']}, last seen {me.json()['lastSeen']}")


if __name__ == "__main__":
    main()
