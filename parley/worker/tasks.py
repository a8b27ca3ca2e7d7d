"""
parley.worker.tasks — Periodic Lifecycle Sweeps
================================================

Runs the soft-delete sweep, the archive-notify sweep and the expired
token prune on a fixed interval (``sweep_interval_hours``, default 24).
All three are synchronous and go through ``run_db()`` so the event loop
stays free.

A failed sweep is logged and retried on the next tick; there is no retry
inside a tick.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import Engine

from parley.config import ParleyConfig
from parley.database.engine import run_db
from parley.services.lifecycle_service import delete_old_topics, email_users_to_archive
from parley.services.notification_service import NotificationGateway
from parley.services.token_service import prune_expired_tokens

logger = logging.getLogger(__name__)


class SweepScheduler:
    """Drives the lifecycle sweeps for one engine."""

    def __init__(
        self,
        engine: Engine,
        cfg: ParleyConfig,
        notifier: NotificationGateway,
    ) -> None:
        self.engine = engine
        self.cfg = cfg
        self.notifier = notifier

    # -------------------------------------------------------------------
    # Soft-delete
    # -------------------------------------------------------------------
    async def run_soft_delete(self) -> list[int] | None:
        try:
            deleted = await run_db(
                delete_old_topics,
                self.engine,
                delete_after_days=self.cfg.delete_after_days,
            )
        except Exception:
            logger.exception("Soft-delete sweep failed", extra={"task": "soft_delete"})
            return None
        logger.info("Soft-delete task complete: %d topic(s) deleted", len(deleted))
        return deleted

    # -------------------------------------------------------------------
    # Archive notification
    # -------------------------------------------------------------------
    async def run_archive_notify(self) -> list[int] | None:
        try:
            notified = await run_db(
                email_users_to_archive,
                self.engine,
                self.notifier,
                archive_notify_after_days=self.cfg.archive_notify_after_days,
            )
        except Exception:
            logger.exception("Archive-notify sweep failed", extra={"task": "archive_notify"})
            return None
        logger.info("Archive-notify task complete: %d owner(s) notified", len(notified))
        return notified

    # -------------------------------------------------------------------
    # Token prune
    # -------------------------------------------------------------------
    async def run_token_prune(self) -> int | None:
        try:
            pruned = await run_db(prune_expired_tokens, self.engine)
        except Exception:
            logger.exception("Token prune failed", extra={"task": "token_prune"})
            return None
        return pruned

    async def run_once(self) -> None:
        # Sequential: each sweep finishes before the next one starts.
        await self.run_soft_delete()
        await self.run_archive_notify()
        await self.run_token_prune()

    async def run_forever(self) -> None:
        interval = self.cfg.sweep_interval_hours * 3600
        logger.info("Sweep scheduler started (every %dh)", self.cfg.sweep_interval_hours)
        while True:
            await self.run_once()
            await asyncio.sleep(interval)
