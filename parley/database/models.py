"""
parley.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- users      — Forum members (role drives the access gate)
- topics     — Channels; owned by one user, flagged through their lifecycle
- threads    — Discussions inside a topic
- messages   — Posts inside a thread, appended in creation order
- followers  — Users following a thread
- tokens     — Persisted single-use tokens (archive links)

Topics are never physically removed.  Soft-deletion, archive notification
and archival are boolean flags flipped by :mod:`parley.services.lifecycle_service`.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Parley ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TokenType(enum.StrEnum):
    """Purposes a token can be minted for (the JWT ``type`` claim)."""
    ACCESS = "access"
    ARCHIVE_TOPIC = "archiveTopic"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    topics: Mapped[list[Topic]] = relationship(back_populates="owner")

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} role={self.role!r}>"


# ---------------------------------------------------------------------------
# Topics — top-level channels
# ---------------------------------------------------------------------------
class Topic(Base):
    """A forum channel.

    ``passcode`` is set if and only if the topic is private; the check
    constraint enforces this at the database level as well.
    """
    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    passcode: Mapped[int | None] = mapped_column(Integer, default=None)
    voting_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    archivable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_archive_notified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    owner: Mapped[User] = relationship(back_populates="topics")
    threads: Mapped[list[Thread]] = relationship(
        back_populates="topic", cascade="all, delete-orphan", order_by="Thread.id"
    )

    __table_args__ = (
        CheckConstraint(
            "(private AND passcode IS NOT NULL) OR (NOT private AND passcode IS NULL)",
            name="ck_topics_passcode_iff_private",
        ),
        Index("ix_topics_owner", "owner_id"),
        Index("ix_topics_lifecycle", "is_deleted", "archived", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Topic id={self.id} slug={self.slug!r} deleted={self.is_deleted}>"


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------
class Thread(Base):
    __tablename__ = "threads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    topic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("topics.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    topic: Mapped[Topic] = relationship(back_populates="threads")
    # Ordered by insertion: the last message is always the most recent one.
    messages: Mapped[list[Message]] = relationship(
        back_populates="thread", cascade="all, delete-orphan", order_by="Message.id"
    )
    followers: Mapped[list[Follower]] = relationship(
        back_populates="thread", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_threads_topic", "topic_id"),
    )

    def __repr__(self) -> str:
        return f"<Thread id={self.id} topic={self.topic_id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    thread_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    thread: Mapped[Thread] = relationship(back_populates="messages")

    __table_args__ = (
        Index("ix_messages_thread", "thread_id"),
    )

    def __repr__(self) -> str:
        return f"<Message id={self.id} thread={self.thread_id}>"


# ---------------------------------------------------------------------------
# Followers — user ↔ thread subscriptions
# ---------------------------------------------------------------------------
class Follower(Base):
    __tablename__ = "followers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    thread_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    thread: Mapped[Thread] = relationship(back_populates="followers")

    __table_args__ = (
        UniqueConstraint("thread_id", "user_id", name="uq_followers_thread_user"),
    )

    def __repr__(self) -> str:
        return f"<Follower thread={self.thread_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# Tokens — persisted single-use tokens
# ---------------------------------------------------------------------------
class Token(Base):
    """A signed token that is only valid while its row exists.

    Deleting the row consumes the token.
    """
    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    expires: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    blacklisted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_tokens_user_type", "user_id", "type"),
    )

    def __repr__(self) -> str:
        return f"<Token id={self.id} user={self.user_id} type={self.type!r}>"
