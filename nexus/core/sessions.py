"""
Interview Session Module

Tracks request/response interview sessions started from the UI. A session
records the interview type, response language and an optional candidate
profile; the assistance endpoints fall back to these when a request names
the session but leaves them out.

Sessions are process-local and lost on restart.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from nexus.logger import get_logger

logger = get_logger(__name__)


@dataclass
class InterviewSession:
    session_id: str
    interview_type: str = "mixed"
    language: str = "en"
    profile: Optional[Dict[str, Any]] = None
    started_at: float = field(default_factory=time.time)
    ended_at: Optional[float] = None

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    @property
    def duration_s(self) -> float:
        end = self.ended_at if self.ended_at is not None else time.time()
        return end - self.started_at


class InterviewSessionStore:
    """
    Thread-safe registry of interview sessions keyed by a random id.

    Usage:
        store = InterviewSessionStore()
        session = store.start("technical", "en")
        ...
        store.end(session.session_id)
    """

    def __init__(self):
        self._sessions: Dict[str, InterviewSession] = {}
        self._lock = threading.Lock()

    def start(
        self,
        interview_type: str = "mixed",
        language: str = "en",
        profile: Optional[Dict[str, Any]] = None,
    ) -> InterviewSession:
        session = InterviewSession(
            session_id=str(uuid.uuid4()),
            interview_type=interview_type or "mixed",
            language=language or "en",
            profile=profile,
        )
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info(f"Interview session started: {session.session_id} ({session.interview_type})")
        return session

    def get(self, session_id: Optional[str]) -> Optional[InterviewSession]:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def end(self, session_id: str) -> Optional[InterviewSession]:
        """Mark a session ended. Returns None for an unknown id; ending twice keeps the first end time."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if session.ended_at is None:
                session.ended_at = time.time()
        logger.info(f"Interview session ended: {session_id} after {session.duration_s:.0f}s")
        return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
