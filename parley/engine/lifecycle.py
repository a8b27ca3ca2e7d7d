"""
parley.engine.lifecycle — Topic Lifecycle Transitions
======================================================

Pure state machine for topic lifecycle flags.  No DB I/O: services load a
topic, take a :class:`TopicState` snapshot, run a transition, and write the
new state back with :meth:`TopicState.apply_to` before committing.

States::

    ACTIVE ──► ARCHIVE_NOTIFIED ──► ARCHIVED
       │               │
       └───────────────┴──────────► DELETED   (soft, flag only)

``ARCHIVED`` and ``DELETED`` are terminal; nothing moves a topic back to
``ACTIVE``.  Every transition only ever sets a flag to ``True``, so
applying one twice is harmless.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Any

__all__ = [
    "LifecycleState",
    "TopicState",
    "archive",
    "as_utc",
    "cutoff_for",
    "is_archive_notifiable",
    "is_deletable",
    "mark_archive_notified",
    "soft_delete",
]


class LifecycleState(enum.StrEnum):
    ACTIVE = "active"
    ARCHIVE_NOTIFIED = "archive_notified"
    ARCHIVED = "archived"
    DELETED = "deleted"


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def cutoff_for(now: datetime, days: int) -> datetime:
    """Creation-time cutoff: topics created at or before it are old enough."""
    return as_utc(now) - timedelta(days=days)


# ---------------------------------------------------------------------------
# TopicState — immutable snapshot of the lifecycle flags
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TopicState:
    topic_id: int
    created_at: datetime
    archivable: bool
    archived: bool = False
    is_deleted: bool = False
    is_archive_notified: bool = False

    @classmethod
    def from_topic(cls, topic: Any) -> TopicState:
        return cls(
            topic_id=topic.id,
            created_at=as_utc(topic.created_at),
            archivable=bool(topic.archivable),
            archived=bool(topic.archived),
            is_deleted=bool(topic.is_deleted),
            is_archive_notified=bool(topic.is_archive_notified),
        )

    @property
    def lifecycle(self) -> LifecycleState:
        if self.is_deleted:
            return LifecycleState.DELETED
        if self.archived:
            return LifecycleState.ARCHIVED
        if self.is_archive_notified:
            return LifecycleState.ARCHIVE_NOTIFIED
        return LifecycleState.ACTIVE

    def apply_to(self, topic: Any) -> None:
        """Copy the lifecycle flags onto a mutable topic row."""
        topic.archived = self.archived
        topic.is_deleted = self.is_deleted
        topic.is_archive_notified = self.is_archive_notified


# ---------------------------------------------------------------------------
# Eligibility predicates (mirror the sweep queries)
# ---------------------------------------------------------------------------
def is_deletable(state: TopicState, cutoff: datetime) -> bool:
    """Not deleted, not archived, created at or before *cutoff*."""
    return (
        not state.is_deleted
        and not state.archived
        and state.created_at <= as_utc(cutoff)
    )


def is_archive_notifiable(state: TopicState, cutoff: datetime) -> bool:
    """Archivable, not yet notified, deleted or archived, and old enough."""
    return (
        state.archivable
        and not state.is_archive_notified
        and not state.is_deleted
        and not state.archived
        and state.created_at <= as_utc(cutoff)
    )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
def soft_delete(state: TopicState) -> TopicState:
    return replace(state, is_deleted=True)


def mark_archive_notified(state: TopicState) -> TopicState:
    return replace(state, is_archive_notified=True)


def archive(state: TopicState) -> TopicState:
    return replace(state, archived=True)
