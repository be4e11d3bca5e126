"""
Tests for the session memory store and the interview session registry.
"""

import pytest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

from nexus.realtime.memory import InMemorySessionStore, MemoryStatus, QAPair


class TestAppendAndRecent:
    """Tests for append/get_recent ordering and capacity."""

    def test_recent_is_oldest_first(self, memory_store):
        memory_store.append("s1", "q1", "a1")
        memory_store.append("s1", "q2", "a2")
        memory_store.append("s1", "q3", "a3")

        recent = memory_store.get_recent("s1", 2)
        assert recent == [QAPair("q2", "a2"), QAPair("q3", "a3")]

    def test_recent_larger_than_history(self, memory_store):
        memory_store.append("s1", "q1", "a1")
        assert memory_store.get_recent("s1", 10) == [QAPair("q1", "a1")]

    def test_recent_non_positive(self, memory_store):
        memory_store.append("s1", "q1", "a1")
        assert memory_store.get_recent("s1", 0) == []
        assert memory_store.get_recent("s1", -3) == []

    def test_unknown_session(self, memory_store):
        assert memory_store.get_recent("nobody", 3) == []
        assert memory_store.status("nobody") == MemoryStatus(count=0, has_context=False)

    def test_oldest_evicted_beyond_capacity(self, memory_store):
        """Ninth append drops the first pair."""
        for i in range(9):
            memory_store.append("s1", f"q{i}", f"a{i}")

        history = memory_store.get_recent("s1", 100)
        assert len(history) == 8
        assert history[0].question == "q1"
        assert history[-1].question == "q8"

    def test_sessions_are_isolated(self, memory_store):
        memory_store.append("a", "qa", "aa")
        memory_store.append("b", "qb", "ab")

        assert memory_store.get_recent("a", 5) == [QAPair("qa", "aa")]
        assert memory_store.session_count == 2

    def test_returned_list_is_a_snapshot(self, memory_store):
        memory_store.append("s1", "q1", "a1")
        recent = memory_store.get_recent("s1", 5)
        recent.clear()

        assert memory_store.status("s1").count == 1


class TestTruncation:
    """Stored text is hard-cut to 150/200 characters."""

    def test_question_and_answer_cut(self, memory_store):
        pair = memory_store.append("s1", "q" * 151, "a" * 201)

        assert pair.question == "q" * 150
        assert pair.answer == "a" * 200
        assert memory_store.get_recent("s1", 1)[0] == pair

    def test_short_text_untouched(self, memory_store):
        pair = memory_store.append("s1", "q" * 150, "a" * 200)

        assert len(pair.question) == 150
        assert len(pair.answer) == 200


class TestClearAndStatus:
    """Tests for clear/status."""

    def test_status_counts(self, memory_store):
        memory_store.append("s1", "q1", "a1")
        memory_store.append("s1", "q2", "a2")

        status = memory_store.status("s1")
        assert status.count == 2
        assert status.has_context is True
        assert status.to_dict() == {"questions_count": 2, "has_context": True}

    def test_clear_is_idempotent(self, memory_store):
        memory_store.append("s1", "q1", "a1")

        memory_store.clear("s1")
        memory_store.clear("s1")
        memory_store.clear("never-seen")

        assert memory_store.status("s1").count == 0
        assert memory_store.session_count == 0

    def test_history_tuples(self, memory_store):
        memory_store.append("s1", "q1", "a1")
        assert memory_store.history("s1") == [("q1", "a1")]


class TestConcurrency:
    """Appends from many threads never break the capacity invariant."""

    def test_concurrent_appends_same_session(self):
        store = InMemorySessionStore(max_pairs=8)

        def worker(n):
            for i in range(200):
                store.append("shared", f"q{n}-{i}", "a")
                store.get_recent("shared", 3)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(worker, range(8)))

        assert store.status("shared").count == 8

    def test_concurrent_appends_many_sessions(self):
        store = InMemorySessionStore(max_pairs=8)

        def worker(n):
            for i in range(5):
                store.append(f"s{n}", f"q{i}", "a")

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(worker, range(32)))

        assert store.session_count == 32
        assert all(store.status(f"s{n}").count == 5 for n in range(32))
        assert [p.question for p in store.get_recent("s7", 8)] == [f"q{i}" for i in range(5)]


class TestInterviewSessionStore:
    """Request/response interview session lifecycle."""

    def test_start_assigns_unique_ids(self):
        from nexus.core.sessions import InterviewSessionStore

        store = InterviewSessionStore()
        first = store.start("technical", "en")
        second = store.start()

        assert first.session_id != second.session_id
        assert second.interview_type == "mixed"
        assert second.language == "en"
        assert len(store) == 2
        assert store.get(first.session_id) is first

    def test_end_records_duration(self):
        from nexus.core.sessions import InterviewSessionStore

        store = InterviewSessionStore()
        session = store.start(profile={"name": "Ana"})

        with patch("nexus.core.sessions.time.time", return_value=session.started_at + 42):
            ended = store.end(session.session_id)

        assert ended is session
        assert session.is_active is False
        assert session.duration_s == pytest.approx(42)
        assert session.profile == {"name": "Ana"}

    def test_end_twice_keeps_first_end_time(self):
        from nexus.core.sessions import InterviewSessionStore

        store = InterviewSessionStore()
        session = store.start()
        store.end(session.session_id)
        ended_at = session.ended_at

        store.end(session.session_id)

        assert session.ended_at == ended_at

    def test_unknown_session(self):
        from nexus.core.sessions import InterviewSessionStore

        store = InterviewSessionStore()

        assert store.end("missing") is None
        assert store.get("missing") is None
        assert store.get(None) is None
