"""
parley.services.lifecycle_service — Topic Lifecycle Sweeps
===========================================================

Three transitions driven by topic age:

- **Soft-delete sweep** — live, unarchived topics older than
  ``delete_after_days`` (97) get ``is_deleted``.
- **Archive-notify sweep** — archivable topics older than
  ``archive_notify_after_days`` (90) whose owner has an email address get an
  archive prompt; ``is_archive_notified`` is set only **after** the token is
  minted and the email sent.  A crash in between means a duplicate email on
  the next run, never a skipped one.
- **Archive action** — a single topic archived via a token from that email.

Sweeps select matching ids once, then handle topics **sequentially**, one
session per topic.  A failure stops the sweep without undoing topics that
were already committed.  Every transition only sets a flag to ``True``, so
overlapping runs are safe.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, select
from sqlalchemy.orm import selectinload

from parley.database.engine import get_session
from parley.database.models import Topic
from parley.engine import lifecycle
from parley.engine.lifecycle import TopicState
from parley.services import token_service
from parley.services.notification_service import ArchiveNotice, NotificationGateway
from parley.services.topic_service import TopicNotFoundError

logger = logging.getLogger(__name__)

DELETE_AFTER_DAYS = 97
ARCHIVE_NOTIFY_AFTER_DAYS = 90


# ---------------------------------------------------------------------------
# Soft-delete sweep
# ---------------------------------------------------------------------------
def delete_old_topics(
    engine: Engine,
    *,
    delete_after_days: int = DELETE_AFTER_DAYS,
    now: datetime | None = None,
) -> list[int]:
    """Soft-delete every live, unarchived topic past the age threshold.

    Returns the ids of the topics flagged in this run.
    """
    cutoff = lifecycle.cutoff_for(now or datetime.now(UTC), delete_after_days)

    with get_session(engine) as session:
        candidate_ids = session.scalars(
            select(Topic.id)
            .where(
                Topic.is_deleted.is_(False),
                Topic.archived.is_(False),
                Topic.created_at <= cutoff,
            )
            .order_by(Topic.id)
        ).all()

    deleted: list[int] = []
    for topic_id in candidate_ids:
        with get_session(engine) as session:
            topic = session.get(Topic, topic_id)
            if topic is None:
                continue
            state = TopicState.from_topic(topic)
            if not lifecycle.is_deletable(state, cutoff):
                # Changed since selection (archived or deleted elsewhere)
                continue
            lifecycle.soft_delete(state).apply_to(topic)
        deleted.append(topic_id)
        logger.info("Topic %d soft-deleted (created %s)", topic_id, state.created_at.isoformat())

    logger.info(
        "Soft-delete sweep complete — %d of %d candidate(s) deleted "
        "(delete_after_days=%d, cutoff=%s)",
        len(deleted), len(candidate_ids), delete_after_days, cutoff.isoformat(),
    )
    return deleted


# ---------------------------------------------------------------------------
# Archive-notify sweep
# ---------------------------------------------------------------------------
def _archive_notices(engine: Engine, cutoff: datetime) -> list[ArchiveNotice]:
    with get_session(engine) as session:
        topics = session.scalars(
            select(Topic)
            .where(
                Topic.is_archive_notified.is_(False),
                Topic.is_deleted.is_(False),
                Topic.archived.is_(False),
                Topic.archivable.is_(True),
                Topic.created_at <= cutoff,
            )
            .options(selectinload(Topic.owner))
            .order_by(Topic.id)
        ).all()

        notices = []
        for t in topics:
            if not t.owner.email:
                logger.info("Topic %d skipped: owner %d has no email", t.id, t.owner_id)
                continue
            notices.append(ArchiveNotice(
                topic_id=t.id,
                topic_name=t.name,
                owner_id=t.owner_id,
                owner_email=t.owner.email,
            ))
        return notices


def email_users_to_archive(
    engine: Engine,
    notifier: NotificationGateway,
    *,
    archive_notify_after_days: int = ARCHIVE_NOTIFY_AFTER_DAYS,
    now: datetime | None = None,
) -> list[int]:
    """Prompt owners of ageing archivable topics to archive them.

    Returns the ids of the topics whose owners were notified in this run.
    Token or email failures propagate; topics notified before the failure
    stay flagged.
    """
    cutoff = lifecycle.cutoff_for(now or datetime.now(UTC), archive_notify_after_days)
    notices = _archive_notices(engine, cutoff)

    notified: list[int] = []
    for notice in notices:
        token = notifier.generate_archive_token(notice.owner_id)
        notifier.send_archive_email(notice.owner_email, notice, token)

        with get_session(engine) as session:
            topic = session.get(Topic, notice.topic_id)
            if topic is None:
                continue
            state = TopicState.from_topic(topic)
            lifecycle.mark_archive_notified(state).apply_to(topic)
        notified.append(notice.topic_id)
        logger.info(
            "Archive prompt sent for topic %d to owner %d",
            notice.topic_id, notice.owner_id,
        )

    logger.info(
        "Archive-notify sweep complete — %d owner(s) notified "
        "(archive_notify_after_days=%d, cutoff=%s)",
        len(notified), archive_notify_after_days, cutoff.isoformat(),
    )
    return notified


# ---------------------------------------------------------------------------
# Archive action
# ---------------------------------------------------------------------------
def archive_topic(engine: Engine, token: str, topic_id: int, *, secret: str) -> None:
    """Archive *topic_id* using a single-use archive token.

    The token must belong to the topic's owner.  It is deleted only after
    ``archived`` has been committed; if that deletion fails the token stays
    usable, which is harmless because archiving again is a no-op.

    Raises
    ------
    ArchiveTokenError
        If the token is invalid, used, or issued to someone else.
    TopicNotFoundError
        If the topic does not exist.
    """
    user_id = token_service.verify_archive_token(engine, token, secret=secret)

    with get_session(engine) as session:
        topic = session.get(Topic, topic_id)
        if topic is None:
            raise TopicNotFoundError(topic_id)
        if topic.owner_id != user_id:
            raise token_service.ArchiveTokenError("Archive token does not match topic owner")
        state = TopicState.from_topic(topic)
        lifecycle.archive(state).apply_to(topic)

    logger.info("Topic %d archived by owner %d", topic_id, user_id)
    token_service.delete_token(engine, token)
