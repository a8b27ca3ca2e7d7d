"""
parley.engine.scoring — Topic Summary & Default Sort Average
=============================================================

Pure calculation over a fully loaded topic snapshot.
No DB I/O inside the engine: the caller eager-loads
``topic.threads[*].messages`` and ``topic.threads[*].followers`` first.

The ranking value compounds recency and volume::

    default_sort_average = epoch_ms(latest message) * message_count

so a topic with more messages and a more recent last message ranks higher.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

__all__ = [
    "TopicSummary",
    "epoch_millis",
    "rank_topics",
    "score_topic",
]

Timestamp = datetime | int | float

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


# ---------------------------------------------------------------------------
# TopicSummary — derived, never persisted
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TopicSummary:
    """Listing projection of a topic plus its activity aggregates."""

    id: int
    name: str
    slug: str
    private: bool
    voting_allowed: bool
    owner: int | None
    latest_message_created_at: Timestamp | None
    message_count: int
    thread_count: int
    follows: int
    default_sort_average: int | float

    def to_dict(self) -> dict:
        latest = self.latest_message_created_at
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "private": self.private,
            "voting_allowed": self.voting_allowed,
            "owner": self.owner,
            "latest_message_created_at": (
                latest.isoformat() if isinstance(latest, datetime) else latest
            ),
            "message_count": self.message_count,
            "thread_count": self.thread_count,
            "follows": self.follows,
            "default_sort_average": self.default_sort_average,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def epoch_millis(value: Timestamp) -> int | float:
    """Milliseconds since the epoch.

    Numbers are taken to be epoch values already.  Naive datetimes (SQLite
    drops tzinfo) are read as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        # Integer arithmetic; a float round-trip can land 1 ms off.
        return (value - _EPOCH) // _ONE_MS
    return value


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------
def score_topic(topic: Any) -> TopicSummary:
    """Aggregate a topic's threads into a :class:`TopicSummary`.

    *topic* is anything shaped like :class:`parley.database.models.Topic`
    with its threads, messages and followers already loaded.
    """
    thread_msg_times: list[Timestamp] = []
    message_count = 0
    follower_count = 0

    threads = list(topic.threads or [])
    for thread in threads:
        messages = thread.messages or []
        if messages:
            # Messages are appended in creation order
            thread_msg_times.append(messages[-1].created_at)
            message_count += len(messages)
        follower_count += len(thread.followers or [])

    thread_msg_times.sort(key=epoch_millis, reverse=True)
    latest = thread_msg_times[0] if thread_msg_times else None

    default_sort_average: int | float = 0
    if latest is not None and message_count:
        default_sort_average = epoch_millis(latest) * message_count

    return TopicSummary(
        id=topic.id,
        name=topic.name,
        slug=topic.slug,
        private=topic.private,
        voting_allowed=topic.voting_allowed,
        owner=getattr(topic, "owner_id", None),
        latest_message_created_at=latest,
        message_count=message_count,
        thread_count=len(threads),
        follows=follower_count,
        default_sort_average=default_sort_average,
    )


def rank_topics(summaries: Iterable[TopicSummary]) -> list[TopicSummary]:
    """Sort summaries by ``default_sort_average`` descending.

    Equal averages fall back to ascending topic id so the order never
    depends on how the database happened to return rows.
    """
    return sorted(summaries, key=lambda s: (-s.default_sort_average, s.id))
