"""
tests/test_lifecycle.py — Unit Tests for Lifecycle Transitions
===============================================================

Pure state machine tests (no database).
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

from parley.engine import lifecycle
from parley.engine.lifecycle import LifecycleState, TopicState

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def _state(age_days: float, **flags) -> TopicState:
    flags.setdefault("archivable", True)
    return TopicState(topic_id=1, created_at=NOW - timedelta(days=age_days), **flags)


class TestLifecycleState:
    def test_fresh_topic_is_active(self):
        assert _state(1).lifecycle is LifecycleState.ACTIVE

    def test_progression(self):
        s = _state(1)
        s = lifecycle.mark_archive_notified(s)
        assert s.lifecycle is LifecycleState.ARCHIVE_NOTIFIED
        s = lifecycle.archive(s)
        assert s.lifecycle is LifecycleState.ARCHIVED

    def test_delete_wins_over_everything(self):
        s = lifecycle.soft_delete(lifecycle.archive(_state(1)))
        assert s.lifecycle is LifecycleState.DELETED

    def test_transitions_return_new_state(self):
        s = _state(1)
        deleted = lifecycle.soft_delete(s)
        assert s.is_deleted is False
        assert deleted.is_deleted is True

    def test_transitions_are_idempotent(self):
        once = lifecycle.soft_delete(_state(1))
        assert lifecycle.soft_delete(once) == once

    def test_from_topic_and_apply_to_roundtrip_flags(self):
        row = SimpleNamespace(
            id=5, created_at=datetime(2026, 1, 1), archivable=True,
            archived=False, is_deleted=False, is_archive_notified=False,
        )
        state = TopicState.from_topic(row)
        assert state.created_at.tzinfo is UTC

        lifecycle.mark_archive_notified(state).apply_to(row)
        assert row.is_archive_notified is True
        assert row.archived is False
        assert row.is_deleted is False


class TestDeletable:
    cutoff = lifecycle.cutoff_for(NOW, 97)

    def test_98_days_old_is_selected(self):
        assert lifecycle.is_deletable(_state(98), self.cutoff)

    def test_96_days_old_is_not(self):
        assert not lifecycle.is_deletable(_state(96), self.cutoff)

    def test_exactly_at_cutoff_is_selected(self):
        assert lifecycle.is_deletable(_state(97), self.cutoff)

    def test_archived_is_never_deleted(self):
        assert not lifecycle.is_deletable(_state(200, archived=True), self.cutoff)

    def test_already_deleted_is_skipped(self):
        assert not lifecycle.is_deletable(_state(200, is_deleted=True), self.cutoff)


class TestArchiveNotifiable:
    cutoff = lifecycle.cutoff_for(NOW, 90)

    def test_old_archivable_topic_is_selected(self):
        assert lifecycle.is_archive_notifiable(_state(91), self.cutoff)

    def test_young_topic_is_not(self):
        assert not lifecycle.is_archive_notifiable(_state(89), self.cutoff)

    def test_non_archivable_never_selected(self):
        for age in (91, 365, 10_000):
            assert not lifecycle.is_archive_notifiable(_state(age, archivable=False), self.cutoff)

    def test_already_notified_skipped(self):
        assert not lifecycle.is_archive_notifiable(
            _state(120, is_archive_notified=True), self.cutoff
        )

    def test_deleted_or_archived_skipped(self):
        assert not lifecycle.is_archive_notifiable(_state(120, is_deleted=True), self.cutoff)
        assert not lifecycle.is_archive_notifiable(_state(120, archived=True), self.cutoff)


def test_cutoff_accepts_naive_now():
    naive = datetime(2026, 10, 18, 12, 0)
    assert lifecycle.cutoff_for(naive, 90) == NOW - timedelta(days=90)
