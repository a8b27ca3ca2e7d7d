"""
parley.services.topic_service — Topics, Ranking & Passcodes
============================================================

Creation and update of topics, the ranked topic listings, the public
single-topic projection and passcode verification for private topics.

Listings load each topic with its threads, their messages (id and
``created_at`` only) and followers in one query via ``selectinload`` and
hand the snapshot to :func:`parley.engine.scoring.score_topic`.
Soft-deleted topics never appear in a listing.
"""

from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Callable
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session, selectinload

from parley.database.engine import get_session
from parley.database.models import Follower, Message, Thread, Topic
from parley.engine.scoring import TopicSummary, rank_topics, score_topic

logger = logging.getLogger(__name__)

# Private topic passcodes are drawn from [PASSCODE_MIN, PASSCODE_MAX)
PASSCODE_MIN = 1_000_000
PASSCODE_MAX = 9_999_999

UPDATABLE_FIELDS: set[str] = {"name", "private", "voting_allowed", "archivable"}

RandomInt = Callable[[int, int], int]


class TopicNotFoundError(ValueError):
    """Raised when a topic id does not match any (live) topic."""

    def __init__(self, topic_id: int) -> None:
        super().__init__(f"Topic not found: {topic_id}")
        self.topic_id = topic_id


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def random_passcode(min_value: int = PASSCODE_MIN, max_value: int = PASSCODE_MAX) -> int:
    """Cryptographically random integer in ``[min_value, max_value)``."""
    return min_value + secrets.randbelow(max_value - min_value)


_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    slug = _SLUG_STRIP.sub("-", name.lower()).strip("-")
    return slug[:100] or "topic"


def _unique_slug(session: Session, name: str) -> str:
    base = slugify(name)
    taken = set(session.scalars(
        select(Topic.slug).where(Topic.slug.like(f"{base}%"))
    ).all())
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def _topic_dict(t: Topic, *, include_passcode: bool = False) -> dict:
    data = {
        "id": t.id,
        "name": t.name,
        "slug": t.slug,
        "private": t.private,
        "voting_allowed": t.voting_allowed,
        "archivable": t.archivable,
        "archived": t.archived,
        "owner": t.owner_id,
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }
    if include_passcode:
        data["passcode"] = t.passcode
    return data


def _live_topic(session: Session, topic_id: int) -> Topic:
    topic = session.get(Topic, topic_id)
    if topic is None or topic.is_deleted:
        raise TopicNotFoundError(topic_id)
    return topic


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------
def create_topic(
    engine: Engine,
    owner_id: int,
    *,
    name: str,
    private: bool = False,
    voting_allowed: bool = True,
    archivable: bool = True,
    random_int: RandomInt = random_passcode,
) -> dict:
    """Create a topic owned by *owner_id*.

    Private topics get a passcode from *random_int*; the passcode is only
    returned here, to the creator.
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Topic name must not be blank")

    with get_session(engine) as session:
        topic = Topic(
            name=name,
            slug=_unique_slug(session, name),
            owner_id=owner_id,
            private=private,
            passcode=random_int(PASSCODE_MIN, PASSCODE_MAX) if private else None,
            voting_allowed=voting_allowed,
            archivable=archivable,
        )
        session.add(topic)
        session.flush()
        session.refresh(topic)
        logger.info(
            "Topic created: id=%d slug=%s owner=%d private=%s",
            topic.id, topic.slug, owner_id, private,
        )
        return _topic_dict(topic, include_passcode=True)


def update_topic(
    engine: Engine,
    topic_id: int,
    updates: dict[str, Any],
    *,
    owner_id: int | None = None,
    random_int: RandomInt = random_passcode,
) -> dict:
    """Apply *updates* (restricted to :data:`UPDATABLE_FIELDS`) to a topic.

    Turning ``private`` on mints a passcode; turning it off clears it.
    When *owner_id* is given the topic must belong to that user, otherwise
    :class:`PermissionError` is raised.
    """
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")

    with get_session(engine) as session:
        topic = _live_topic(session, topic_id)
        if owner_id is not None and topic.owner_id != owner_id:
            raise PermissionError("Only the topic owner can update it")

        if "name" in updates:
            name = (updates["name"] or "").strip()
            if not name:
                raise ValueError("Topic name must not be blank")
            topic.name = name
        if "voting_allowed" in updates:
            topic.voting_allowed = bool(updates["voting_allowed"])
        if "archivable" in updates:
            topic.archivable = bool(updates["archivable"])
        if "private" in updates:
            private = bool(updates["private"])
            if private and not topic.private:
                topic.passcode = random_int(PASSCODE_MIN, PASSCODE_MAX)
            elif not private:
                topic.passcode = None
            topic.private = private

        session.flush()
        logger.info("Topic updated: id=%d fields=%s", topic_id, sorted(updates))
        return _topic_dict(topic, include_passcode=topic.private)


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------
def _scored_topics(engine: Engine, *conditions) -> list[TopicSummary]:
    stmt = (
        select(Topic)
        .where(Topic.is_deleted.is_(False), *conditions)
        .options(
            selectinload(Topic.threads).options(
                selectinload(Thread.messages).load_only(Message.id, Message.created_at),
                selectinload(Thread.followers).load_only(Follower.id),
            )
        )
        .order_by(Topic.id)
    )
    with get_session(engine) as session:
        topics = session.scalars(stmt).all()
        summaries = [score_topic(t) for t in topics]
    return rank_topics(summaries)


def list_user_topics(engine: Engine, user_id: int) -> list[TopicSummary]:
    """Live topics owned by *user_id*, highest default sort average first."""
    return _scored_topics(engine, Topic.owner_id == user_id)


def list_all_topics(engine: Engine) -> list[TopicSummary]:
    """All live topics, highest default sort average first."""
    return _scored_topics(engine)


def find_by_id(engine: Engine, topic_id: int) -> dict | None:
    """Public projection of a single topic, or ``None`` if there is none."""
    with get_session(engine) as session:
        row = session.execute(
            select(
                Topic.id, Topic.name, Topic.slug, Topic.private, Topic.voting_allowed,
            ).where(Topic.id == topic_id)
        ).one_or_none()
    if row is None:
        return None
    return {
        "id": row.id,
        "name": row.name,
        "slug": row.slug,
        "private": row.private,
        "voting_allowed": row.voting_allowed,
    }


# ---------------------------------------------------------------------------
# Passcodes
# ---------------------------------------------------------------------------
def verify_passcode(engine: Engine, topic_id: int, candidate: int | None) -> bool:
    """True iff *candidate* equals the topic's stored passcode exactly."""
    with get_session(engine) as session:
        topic = session.get(Topic, topic_id)
        if topic is None:
            raise TopicNotFoundError(topic_id)
        stored = topic.passcode
    if candidate is None or stored is None:
        return False
    return type(candidate) is int and candidate == stored
