"""
parley.services.notification_service — Archive Notification Gateway
====================================================================

The archive-notify sweep only needs two capabilities: mint an archive
token for a user and send the archive prompt.  :class:`NotificationGateway`
names them; :class:`DefaultNotifier` wires them to the token and email
services.  Tests substitute a mock.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import Engine

from parley.config import ParleyConfig
from parley.services import email_service, token_service


@dataclass(frozen=True, slots=True)
class ArchiveNotice:
    """What the sweep knows about a topic whose owner is being prompted."""

    topic_id: int
    topic_name: str
    owner_id: int
    owner_email: str


class NotificationGateway(Protocol):
    def generate_archive_token(self, user_id: int) -> str: ...

    def send_archive_email(self, address: str, notice: ArchiveNotice, token: str) -> None: ...


class DefaultNotifier:
    """Persisted JWT archive tokens + SMTP email."""

    def __init__(self, engine: Engine, cfg: ParleyConfig, secret: str) -> None:
        self.engine = engine
        self.cfg = cfg
        self._secret = secret

    def generate_archive_token(self, user_id: int) -> str:
        return token_service.generate_archive_token(
            self.engine,
            user_id,
            secret=self._secret,
            ttl_days=self.cfg.archive_token_ttl_days,
        )

    def send_archive_email(self, address: str, notice: ArchiveNotice, token: str) -> None:
        email_service.send_archive_topic_email(
            address,
            notice.topic_name,
            notice.topic_id,
            token,
            frontend_url=self.cfg.frontend_url,
            community_name=self.cfg.community_name,
        )
