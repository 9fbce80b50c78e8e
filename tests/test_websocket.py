"""WebSocket endpoint tests — the /ws channel end to end.

Uses Starlette's TestClient against an app whose hub is backed by the
in-memory fakes, so frames go through the real endpoint, envelope parsing
and close codes without a database.
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from relaychat.main import create_app
from relaychat.realtime.hub import ChatHub


@pytest.fixture
def ws_app(directory, store):
    app = create_app()
    app.state.hub = ChatHub(directory=directory, store=store)
    return app


@pytest.fixture
def tc(ws_app):
    return TestClient(ws_app)


def _rejection(tc, url) -> WebSocketDisconnect:
    with pytest.raises(WebSocketDisconnect) as exc:
        with tc.websocket_connect(url) as ws:
            ws.receive_json()
    return exc.value


def test_connect_without_token_is_rejected(tc, directory):
    exc = _rejection(tc, "/ws")
    assert exc.code == 4001
    assert exc.reason == "Authentication token is required"
    assert directory.updates == []


def test_connect_with_garbage_token_is_rejected(tc, directory):
    exc = _rejection(tc, "/ws?token=abc.def.ghi")
    assert exc.code == 4001
    assert exc.reason == "Invalid token"
    assert directory.updates == []


def test_connect_with_expired_token_is_rejected(tc, directory, alice, make_token):
    exc = _rejection(tc, f"/ws?token={make_token(alice, expires_minutes=-5)}")
    assert exc.reason == "Token expired"
    assert directory.updates == []


def test_send_and_receive(tc, ws_app, directory, store, alice, make_token):
    with tc.websocket_connect(f"/ws?token={make_token(alice)}") as ws:
        first = ws.receive_json()
        assert first == {"type": "message:history", "data": []}
        assert directory.status_of(alice) == "online"

        ws.send_json({"type": "message:send", "data": {"content": "hi"}})
        frame = ws.receive_json()
        assert frame["type"] == "message:new"
        assert frame["data"]["content"] == "hi"
        assert frame["data"]["username"] == "alice"

    assert len(store.records) == 1


def test_history_replayed_on_connect(tc, store, alice, make_token):
    store.seed(3, alice)
    with tc.websocket_connect(f"/ws?token={make_token(alice)}") as ws:
        frame = ws.receive_json()

    assert frame["type"] == "message:history"
    assert [m["content"] for m in frame["data"]] == [
        "message 0", "message 1", "message 2",
    ]


def test_empty_message_gets_error(tc, store, alice, make_token):
    with tc.websocket_connect(f"/ws?token={make_token(alice)}") as ws:
        ws.receive_json()
        ws.send_json({"type": "message:send", "data": {"content": ""}})
        frame = ws.receive_json()

    assert frame == {
        "type": "message:error",
        "data": {"message": "Message content is required"},
    }
    assert store.records == []


def test_malformed_frames_are_ignored(tc, directory, alice, make_token):
    with tc.websocket_connect(f"/ws?token={make_token(alice)}") as ws:
        ws.receive_json()
        ws.send_bytes(b'{"type": "ping"}')
        ws.send_text("{not json")
        ws.send_text("[1, 2, 3]")
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong", "data": None}
        assert directory.status_of(alice) == "online"


def test_two_clients_chat_and_typing(tc, alice, bob, make_token):
    with tc.websocket_connect(f"/ws?token={make_token(alice)}") as wa:
        assert wa.receive_json()["type"] == "message:history"
        with tc.websocket_connect(f"/ws?token={make_token(bob)}") as wb:
            assert wb.receive_json()["type"] == "message:history"

            wa.send_json({"type": "user:typing:start"})
            typing = wb.receive_json()
            assert typing == {
                "type": "user:typing",
                "data": {"userId": str(alice.id), "username": "alice", "isTyping": True},
            }

            wa.send_json({"type": "message:send", "data": {"content": "hey bob"}})
            # alice's next frame is her own message, not her typing signal
            assert wa.receive_json()["type"] == "message:new"
            received = wb.receive_json()
            assert received["type"] == "message:new"
            assert received["data"]["content"] == "hey bob"
