"""
Test fixtures using async SQLite for fast, isolated tests.
No PostgreSQL, Temporal or ssh-keygen required.
"""
import base64
import struct

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.db.base import Base
from app.auth.models import User
from app.keys.models import SshKey  # noqa: F401
from app.deployments.models import RepositoryDeploymentCredential  # noqa: F401
from app.keys.fingerprint import KeyFormatChecker
from app.sync.notifier import SyncNotifier


def make_public_key(seed: int, comment: str | None = "user@workstation", key_format: str = "ssh-ed25519") -> str:
    """A structurally valid ed25519 public key, distinct per seed."""
    body = bytes((seed + i) % 256 for i in range(32))
    blob = struct.pack(">I", 11) + b"ssh-ed25519" + struct.pack(">I", 32) + body
    text = f"{key_format} {base64.b64encode(blob).decode()}"
    return f"{text} {comment}" if comment else text


class FakeChecker(KeyFormatChecker):
    """Stand-in for ssh-keygen: accepts everything unless given an error."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[str] = []

    async def check(self, key: str) -> str:
        self.calls.append(key)
        if self.error is not None:
            raise self.error
        return "256 SHA256:fakefingerprint user@workstation (ED25519)"


class RecordingNotifier(SyncNotifier):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: list = []

    async def notify(self, event) -> None:
        if self.fail:
            raise RuntimeError("resync queue unavailable")
        self.events.append(event)


@pytest_asyncio.fixture
async def db():
    """Create a fresh in-memory SQLite database for each test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def users(db: AsyncSession) -> dict[str, User]:
    """alice and bob are regular users, root is an administrator."""
    alice = User(login="alice", email="alice@example.com", is_admin=False)
    bob = User(login="bob", email="bob@example.com", is_admin=False)
    root = User(login="root", email="root@example.com", is_admin=True)
    db.add_all([alice, bob, root])
    await db.commit()
    return {"alice": alice, "bob": bob, "root": root}


@pytest.fixture
def checker() -> FakeChecker:
    return FakeChecker()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
