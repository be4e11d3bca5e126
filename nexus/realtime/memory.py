"""
Interview Session Memory Module

Keeps the most recent question/answer pairs for each interview session so
that streamed answers stay consistent with what the candidate already said.

- Bounded: at most `max_pairs` pairs per session, oldest evicted first
- Truncated: stored question/answer text is hard-cut to fixed lengths
- Thread-safe: one lock guards the session map; reads return snapshots

The SessionMemoryStore interface allows swapping the in-process store for an
external cache without touching callers.
"""

import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Tuple

from nexus.config import settings
from nexus.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class QAPair:
    """One completed question/answer exchange."""
    question: str
    answer: str


@dataclass(frozen=True)
class MemoryStatus:
    """Summary of a session's memory."""
    count: int
    has_context: bool

    def to_dict(self) -> Dict[str, object]:
        return {"questions_count": self.count, "has_context": self.has_context}


class SessionMemoryStore(ABC):
    """
    Abstract per-session store of recent question/answer pairs.

    Implementations must never hand out live references to stored state.
    """

    @abstractmethod
    def get_recent(self, session_id: str, n: int) -> List[QAPair]:
        """Return up to the last n pairs, oldest first. Empty if unknown."""

    @abstractmethod
    def append(self, session_id: str, question: str, answer: str) -> QAPair:
        """Truncate and append one pair, evicting the oldest beyond capacity."""

    @abstractmethod
    def clear(self, session_id: str) -> None:
        """Remove the session entirely. No-op for unknown sessions."""

    @abstractmethod
    def status(self, session_id: str) -> MemoryStatus:
        """Count of stored pairs and whether any context exists."""


class InMemorySessionStore(SessionMemoryStore):
    """
    Process-local session memory.

    A single lock guards the map; every critical section is one dict lookup
    plus either a copy (read) or a deque append (write), so unrelated sessions
    only ever wait for lock acquisition.

    Usage:
        store = InMemorySessionStore()
        store.append("abc", "Tell me about yourself", "Yeah, so I ...")
        recent = store.get_recent("abc", 3)
    """

    def __init__(
        self,
        max_pairs: Optional[int] = None,
        question_chars: Optional[int] = None,
        answer_chars: Optional[int] = None,
    ):
        self._max_pairs = max_pairs or settings.memory.max_pairs
        self._question_chars = question_chars or settings.memory.question_chars
        self._answer_chars = answer_chars or settings.memory.answer_chars
        self._sessions: Dict[str, Deque[QAPair]] = {}
        self._lock = threading.Lock()

    def get_recent(self, session_id: str, n: int) -> List[QAPair]:
        if n <= 0:
            return []
        with self._lock:
            history = self._sessions.get(session_id)
            if not history:
                return []
            snapshot = list(history)
        return snapshot[-n:]

    def append(self, session_id: str, question: str, answer: str) -> QAPair:
        pair = QAPair(
            question=question[:self._question_chars],
            answer=answer[:self._answer_chars],
        )
        with self._lock:
            history = self._sessions.get(session_id)
            if history is None:
                history = deque(maxlen=self._max_pairs)
                self._sessions[session_id] = history
            history.append(pair)
            count = len(history)

        logger.debug(f"Memory append: session={session_id}, pairs={count}")
        return pair

    def clear(self, session_id: str) -> None:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info(f"Cleared memory for session {session_id} ({len(removed)} pairs)")

    def status(self, session_id: str) -> MemoryStatus:
        with self._lock:
            history = self._sessions.get(session_id)
            count = len(history) if history else 0
        return MemoryStatus(count=count, has_context=count > 0)

    def history(self, session_id: str) -> List[Tuple[str, str]]:
        """Full stored history as (question, answer) tuples."""
        return [(p.question, p.answer) for p in self.get_recent(session_id, self._max_pairs)]

    @property
    def session_count(self) -> int:
        """Number of sessions with stored memory."""
        with self._lock:
            return len(self._sessions)

    @property
    def max_pairs(self) -> int:
        return self._max_pairs
