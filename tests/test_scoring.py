"""
tests/test_scoring.py — Unit Tests for Topic Scoring
=====================================================

Tests the pure scoring engine (no I/O, no database).
"""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from parley.engine.scoring import TopicSummary, epoch_millis, rank_topics, score_topic


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _thread(times=(), followers=0):
    return SimpleNamespace(
        messages=[SimpleNamespace(id=i, created_at=t) for i, t in enumerate(times)],
        followers=[SimpleNamespace(id=i) for i in range(followers)],
    )


def _topic(threads=(), id=1, name="General"):
    return SimpleNamespace(
        id=id,
        name=name,
        slug=name.lower(),
        private=False,
        voting_allowed=True,
        owner_id=7,
        threads=list(threads),
    )


def _summary(id: int, avg: int) -> TopicSummary:
    return TopicSummary(
        id=id, name=f"t{id}", slug=f"t{id}", private=False, voting_allowed=True,
        owner=1, latest_message_created_at=None, message_count=0, thread_count=0,
        follows=0, default_sort_average=avg,
    )


# ---------------------------------------------------------------------------
# score_topic
# ---------------------------------------------------------------------------
class TestScoreTopic:
    def test_two_thread_scenario(self):
        topic = _topic([
            _thread([100, 300]),
            _thread([50, 200, 500], followers=3),
        ])
        s = score_topic(topic)

        assert s.message_count == 5
        assert s.thread_count == 2
        assert s.follows == 3
        assert s.latest_message_created_at == 500
        assert s.default_sort_average == 2500

    def test_no_threads(self):
        s = score_topic(_topic([]))
        assert s.message_count == 0
        assert s.thread_count == 0
        assert s.follows == 0
        assert s.latest_message_created_at is None
        assert s.default_sort_average == 0

    def test_threads_without_messages_still_count_followers(self):
        s = score_topic(_topic([_thread([], followers=4), _thread([], followers=1)]))
        assert s.thread_count == 2
        assert s.follows == 5
        assert s.message_count == 0
        assert s.latest_message_created_at is None
        assert s.default_sort_average == 0

    def test_uses_last_message_of_each_thread(self):
        # The last element is the most recent by the append-order invariant,
        # so an earlier, larger value in the same thread is not consulted.
        s = score_topic(_topic([_thread([900, 100]), _thread([300])]))
        assert s.latest_message_created_at == 300
        assert s.default_sort_average == 300 * 3

    def test_counts_are_sums_over_threads(self):
        threads = [_thread([1] * n, followers=f) for n, f in [(2, 1), (0, 5), (7, 0)]]
        s = score_topic(_topic(threads))
        assert s.message_count == 9
        assert s.follows == 6

    def test_datetime_uses_epoch_millis(self):
        latest = datetime(2026, 1, 1, tzinfo=UTC)
        s = score_topic(_topic([_thread([datetime(2025, 12, 1, tzinfo=UTC), latest])]))
        assert s.latest_message_created_at == latest
        assert s.default_sort_average == epoch_millis(latest) * 2
        assert epoch_millis(latest) == 1_767_225_600_000

    def test_naive_datetime_read_as_utc(self):
        naive = datetime(2026, 1, 1)
        aware = datetime(2026, 1, 1, tzinfo=UTC)
        assert epoch_millis(naive) == epoch_millis(aware)

    @pytest.mark.parametrize("micros", [0, 1, 999, 123_456, 535_999, 999_999])
    def test_sub_millisecond_parts_truncate(self, micros):
        value = datetime(2026, 3, 14, 1, 59, 26, micros, tzinfo=UTC)
        whole_seconds = int(datetime(2026, 3, 14, 1, 59, 26, tzinfo=UTC).timestamp())
        assert epoch_millis(value) == whole_seconds * 1000 + micros // 1000

    def test_does_not_mutate_topic(self):
        topic = _topic([_thread([10, 20], followers=1)])
        before = (len(topic.threads), len(topic.threads[0].messages))
        score_topic(topic)
        assert (len(topic.threads), len(topic.threads[0].messages)) == before
        assert not hasattr(topic, "default_sort_average")

    def test_summary_projection_fields(self):
        d = score_topic(_topic([_thread([5])], id=42, name="News")).to_dict()
        assert d["id"] == 42
        assert d["name"] == "News"
        assert d["slug"] == "news"
        assert d["owner"] == 7
        assert d["private"] is False
        assert d["voting_allowed"] is True
        assert d["latest_message_created_at"] == 5


class TestMonotonicity:
    @pytest.mark.parametrize("count", [1, 2, 5, 10])
    def test_more_messages_never_lowers_average(self, count):
        fewer = score_topic(_topic([_thread([400] * count)]))
        more = score_topic(_topic([_thread([400] * (count + 1))]))
        assert more.default_sort_average >= fewer.default_sort_average

    def test_more_recent_never_lowers_average(self):
        older = score_topic(_topic([_thread([100, 200])]))
        newer = score_topic(_topic([_thread([100, 201])]))
        assert newer.default_sort_average >= older.default_sort_average


# ---------------------------------------------------------------------------
# rank_topics
# ---------------------------------------------------------------------------
class TestRankTopics:
    def test_descending_by_average(self):
        ranked = rank_topics([_summary(1, 1800), _summary(2, 2500)])
        assert [s.default_sort_average for s in ranked] == [2500, 1800]

    def test_output_is_non_increasing(self):
        ranked = rank_topics(_summary(i, avg) for i, avg in enumerate([5, 0, 99, 42, 42, 7]))
        averages = [s.default_sort_average for s in ranked]
        assert all(a >= b for a, b in zip(averages, averages[1:]))

    def test_ties_break_on_ascending_id(self):
        ranked = rank_topics([_summary(9, 100), _summary(3, 100), _summary(5, 100)])
        assert [s.id for s in ranked] == [3, 5, 9]
