"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import itertools
import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of parley.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from parley.config import ParleyConfig  # noqa: E402
from parley.database.models import (  # noqa: E402
    Base,
    Follower,
    Message,
    Thread,
    Topic,
    User,
)

TEST_SECRET = os.environ["JWT_SECRET"]

_slug_seq = itertools.count(1)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Parley tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def cfg() -> ParleyConfig:
    return ParleyConfig(community_name="Parley Test", frontend_url="http://forum.test")


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------
def days_ago(days: float) -> datetime:
    return datetime.now(UTC) - timedelta(days=days)


def make_user(engine: Engine, name: str = "alice", email: str | None = None, role: str = "user") -> int:
    with Session(engine) as s:
        user = User(name=name, email=email, role=role)
        s.add(user)
        s.commit()
        return user.id


def make_topic(
    engine: Engine,
    owner_id: int,
    name: str = "General",
    *,
    created_at: datetime | None = None,
    **fields,
) -> int:
    """Insert a topic directly; *fields* override any column."""
    fields.setdefault("slug", f"{name.lower().replace(' ', '-')}-{next(_slug_seq)}")
    if fields.get("private") and "passcode" not in fields:
        fields["passcode"] = 1234567
    with Session(engine) as s:
        topic = Topic(name=name, owner_id=owner_id, **fields)
        if created_at is not None:
            topic.created_at = created_at
        s.add(topic)
        s.commit()
        return topic.id


def add_thread(
    engine: Engine,
    topic_id: int,
    message_times: list[datetime] = (),
    followers: int = 0,
    name: str = "thread",
) -> int:
    """Add a thread with messages at *message_times* (in order) and N followers."""
    with Session(engine) as s:
        thread = Thread(topic_id=topic_id, name=name)
        s.add(thread)
        s.flush()
        for ts in message_times:
            s.add(Message(thread_id=thread.id, body="hi", created_at=ts))
            s.flush()
        for i in range(followers):
            user = User(name=f"follower-{thread.id}-{i}")
            s.add(user)
            s.flush()
            s.add(Follower(thread_id=thread.id, user_id=user.id))
        s.commit()
        return thread.id


def get_topic(engine: Engine, topic_id: int) -> Topic:
    with Session(engine, expire_on_commit=False) as s:
        return s.get(Topic, topic_id)
