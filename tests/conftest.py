"""Test fixtures.

Two kinds of isolation:

1. The realtime core runs against in-memory fakes of the UserDirectory and
   MessageStore protocols plus a FakeConnection that records every frame
   sent to a client. No database, no sockets.
2. The SQL stores and the HTTP API run against a fresh in-memory SQLite
   database per test (aiosqlite + StaticPool so every session sees the
   same database). get_db is overridden to hand out sessions from it.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from relaychat.auth.jwt import create_access_token
from relaychat.auth.password import hash_password
from relaychat.db.engine import get_db
from relaychat.db.models import Base, User, UserStatus
from relaychat.main import app
from relaychat.realtime.hub import ChatHub
from relaychat.schemas.message import MessageCreate, MessageRecord
from relaychat.schemas.user import UserPublic
from relaychat.services.errors import StoreUnavailableError

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# ═══════════════════════════════════════════════════════════
# Fakes for the realtime core
# ═══════════════════════════════════════════════════════════


class FakeConnection:
    """Records frames instead of writing them to a socket."""

    def __init__(self):
        self.sent: list[dict] = []
        self.broken = False

    async def send_json(self, data):
        if self.broken:
            raise RuntimeError("Cannot call 'send' once a close message has been sent.")
        self.sent.append(data)

    def of_type(self, event: str) -> list:
        return [f["data"] for f in self.sent if f["type"] == event]

    @property
    def types(self) -> list[str]:
        return [f["type"] for f in self.sent]


class FakeUserDirectory:
    def __init__(self, *users: UserPublic):
        self.users = {str(u.id): u for u in users}
        self.updates: list[tuple[str, str, Optional[datetime]]] = []
        self.broken = False

    async def find_by_id(self, user_id):
        if self.broken:
            raise StoreUnavailableError("directory down")
        return self.users.get(str(user_id))

    async def update_status(self, user_id, status, last_seen=None):
        if self.broken:
            raise StoreUnavailableError("directory down")
        self.updates.append((str(user_id), UserStatus(status).value, last_seen))

    def status_of(self, user: UserPublic) -> Optional[str]:
        for uid, status, _ in reversed(self.updates):
            if uid == str(user.id):
                return status
        return None


class FakeMessageStore:
    def __init__(self):
        self.records: list[MessageRecord] = []
        self.fail_insert = False
        self.fail_query = False

    async def insert(self, record: MessageCreate) -> MessageRecord:
        if self.fail_insert:
            raise StoreUnavailableError("store down")
        saved = MessageRecord(
            id=uuid.uuid4(),
            created_at=datetime.now(timezone.utc),
            **record.model_dump(),
        )
        self.records.append(saved)
        return saved

    async def query_recent(self, limit: int) -> list[MessageRecord]:
        if self.fail_query:
            raise StoreUnavailableError("store down")
        ordered = sorted(self.records, key=lambda r: r.timestamp)
        return ordered[-limit:] if limit else []

    def seed(self, count: int, author: UserPublic) -> list[MessageRecord]:
        """Add ``count`` messages one second apart, oldest first."""
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for i in range(count):
            self.records.append(
                MessageRecord(
                    id=uuid.uuid4(),
                    user_id=author.id,
                    username=author.username,
                    content=f"message {i}",
                    timestamp=start + timedelta(seconds=i),
                    created_at=start + timedelta(seconds=i),
                )
            )
        return self.records


def _make_user(username: str) -> UserPublic:
    return UserPublic(
        id=uuid.uuid4(),
        username=username,
        email=f"{username}@example.com",
        status="offline",
    )


@pytest.fixture
def make_user():
    return _make_user


@pytest.fixture
def alice() -> UserPublic:
    return _make_user("alice")


@pytest.fixture
def bob() -> UserPublic:
    return _make_user("bob")


@pytest.fixture
def directory(alice, bob) -> FakeUserDirectory:
    return FakeUserDirectory(alice, bob)


@pytest.fixture
def store() -> FakeMessageStore:
    return FakeMessageStore()


@pytest.fixture
def hub(directory, store) -> ChatHub:
    return ChatHub(directory=directory, store=store)


@pytest.fixture
def make_token():
    def _make(user: UserPublic, **kwargs) -> str:
        return create_access_token(str(user.id), **kwargs)
    return _make


@pytest.fixture
def new_connection():
    return FakeConnection


# ═══════════════════════════════════════════════════════════
# SQLite database + HTTP client
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_user(session_factory) -> User:
    """A stored user: carol / carol@example.com / password123."""
    async with session_factory() as db:
        user = User(
            username="carol",
            email="carol@example.com",
            password_hash=hash_password("password123"),
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with get_db bound to the per-test SQLite database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
