"""
parley.services.token_service — Single-Use Archive Tokens
==========================================================

Archive links carry a signed JWT that is also persisted in the ``tokens``
table.  A token is valid only while its signature verifies, it has not
expired, and its row still exists un-blacklisted.  Deleting the row
consumes it.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta

import jwt
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine, delete, select

from parley.database.engine import get_session
from parley.database.models import Token, TokenType

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


class ArchiveTokenError(ValueError):
    """Raised when an archive token is malformed, expired or already used."""


def generate_archive_token(
    engine: Engine,
    user_id: int,
    *,
    secret: str,
    ttl_days: int = 7,
) -> str:
    """Sign and persist an archive token for *user_id*."""
    now = datetime.now(UTC)
    expires = now + timedelta(days=ttl_days)
    token = jwt.encode(
        {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
            "type": TokenType.ARCHIVE_TOPIC.value,
            "jti": secrets.token_urlsafe(16),
        },
        secret,
        algorithm=JWT_ALGORITHM,
    )
    with get_session(engine) as session:
        session.add(Token(
            token=token,
            user_id=user_id,
            type=TokenType.ARCHIVE_TOPIC.value,
            expires=expires,
        ))
    logger.info("Archive token issued for user %d (expires %s)", user_id, expires.isoformat())
    return token


def verify_archive_token(engine: Engine, token: str, *, secret: str) -> int:
    """Return the user id an archive token was issued to.

    Raises
    ------
    ArchiveTokenError
        If the signature, expiry, type or persisted row don't check out.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError as exc:
        raise ArchiveTokenError("Invalid archive token") from exc
    if payload.get("type") != TokenType.ARCHIVE_TOPIC.value:
        raise ArchiveTokenError("Invalid archive token")

    with get_session(engine) as session:
        row = session.scalars(
            select(Token).where(
                Token.token == token,
                Token.type == TokenType.ARCHIVE_TOPIC.value,
                Token.blacklisted.is_(False),
            )
        ).first()
        if row is None:
            raise ArchiveTokenError("Archive token not found or already used")
        return row.user_id


def delete_token(engine: Engine, token: str) -> int:
    """Remove a persisted token; returns the number of rows deleted."""
    with get_session(engine) as session:
        result = session.execute(delete(Token).where(Token.token == token))
        deleted = result.rowcount  # type: ignore[attr-defined]
    logger.info("Token consumed (%d row(s) removed)", deleted)
    return deleted


def prune_expired_tokens(engine: Engine, *, now: datetime | None = None) -> int:
    """Delete every persisted token whose ``expires`` has passed.

    Unused archive links would otherwise accumulate, since only a completed
    archive consumes its token.  Returns the number of rows removed.
    """
    now = now or datetime.now(UTC)
    with get_session(engine) as session:
        result = session.execute(delete(Token).where(Token.expires < now))
        pruned = result.rowcount  # type: ignore[attr-defined]
    logger.info("Token prune complete — %d expired token(s) removed", pruned)
    return pruned
