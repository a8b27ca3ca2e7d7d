"""
tests/test_token_service.py — Archive Token Tests
==================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from conftest import TEST_SECRET, make_user
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from parley.database.models import Token, TokenType
from parley.services import token_service
from parley.services.token_service import JWT_ALGORITHM, ArchiveTokenError


class TestArchiveTokens:
    def test_issue_and_verify(self, db_engine):
        user = make_user(db_engine)
        token = token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET)

        assert token_service.verify_archive_token(db_engine, token, secret=TEST_SECRET) == user
        payload = jwt.decode(token, TEST_SECRET, algorithms=[JWT_ALGORITHM])
        assert payload["sub"] == str(user)
        assert payload["type"] == TokenType.ARCHIVE_TOPIC.value

    def test_token_is_persisted(self, db_engine):
        user = make_user(db_engine)
        token = token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET)
        with Session(db_engine) as s:
            row = s.scalars(select(Token)).one()
        assert row.token == token
        assert row.user_id == user
        assert row.type == "archiveTopic"
        assert row.blacklisted is False

    def test_tokens_are_unique_per_issue(self, db_engine):
        user = make_user(db_engine)
        a = token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET)
        b = token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET)
        assert a != b

    def test_deleted_token_rejected(self, db_engine):
        user = make_user(db_engine)
        token = token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET)

        assert token_service.delete_token(db_engine, token) == 1
        with pytest.raises(ArchiveTokenError):
            token_service.verify_archive_token(db_engine, token, secret=TEST_SECRET)

    def test_blacklisted_token_rejected(self, db_engine):
        user = make_user(db_engine)
        token = token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET)
        with Session(db_engine) as s:
            s.execute(update(Token).values(blacklisted=True))
            s.commit()

        with pytest.raises(ArchiveTokenError):
            token_service.verify_archive_token(db_engine, token, secret=TEST_SECRET)

    def test_expired_token_rejected(self, db_engine):
        user = make_user(db_engine)
        token = token_service.generate_archive_token(
            db_engine, user, secret=TEST_SECRET, ttl_days=-1,
        )
        with pytest.raises(ArchiveTokenError):
            token_service.verify_archive_token(db_engine, token, secret=TEST_SECRET)

    def test_wrong_secret_rejected(self, db_engine):
        user = make_user(db_engine)
        token = token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET)
        with pytest.raises(ArchiveTokenError):
            token_service.verify_archive_token(db_engine, token, secret="y" * 40)

    def test_wrong_type_rejected(self, db_engine):
        forged = jwt.encode(
            {"sub": "1", "type": "resetPassword"}, TEST_SECRET, algorithm=JWT_ALGORITHM,
        )
        with pytest.raises(ArchiveTokenError):
            token_service.verify_archive_token(db_engine, forged, secret=TEST_SECRET)

    def test_garbage_rejected(self, db_engine):
        with pytest.raises(ArchiveTokenError):
            token_service.verify_archive_token(db_engine, "not-a-jwt", secret=TEST_SECRET)

    def test_delete_unknown_token_is_noop(self, db_engine):
        assert token_service.delete_token(db_engine, "nothing-here") == 0


class TestPruneExpiredTokens:
    def test_removes_only_expired(self, db_engine):
        user = make_user(db_engine)
        live = token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET)
        token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET, ttl_days=-1)
        token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET, ttl_days=-3)

        assert token_service.prune_expired_tokens(db_engine) == 2
        with Session(db_engine) as s:
            remaining = s.scalars(select(Token.token)).all()
        assert remaining == [live]
        assert token_service.verify_archive_token(db_engine, live, secret=TEST_SECRET) == user

    def test_explicit_clock(self, db_engine):
        user = make_user(db_engine)
        token_service.generate_archive_token(db_engine, user, secret=TEST_SECRET, ttl_days=7)

        later = datetime.now(UTC) + timedelta(days=8)
        assert token_service.prune_expired_tokens(db_engine, now=later) == 1
        assert token_service.prune_expired_tokens(db_engine, now=later) == 0
