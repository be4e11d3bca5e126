"""Message lookup for API responses and stream error events."""

from __future__ import annotations

_MESSAGES: dict[str, str] = {
    "error.question_required": "Question required",
    "error.text_required": "Text required",
    "error.problem_required": "Problem description required",
    "error.session_not_found": "Session not found",
    "error.generation_not_configured": "Answer generation is not configured.",
    "error.generation_failed": "Answer generation failed. Please try again.",
    "error.stream_timeout": "The answer stream timed out. Please try again.",
    "error.service_not_ready": "Service is starting up. Please try again in a moment.",
    "memory.cleared": "Interview memory cleared.",
    "session.started": "Interview session started",
    "session.ended": "Interview session ended",
}


def msg(key: str) -> str:
    """Return a message by key, or the key itself if not found."""
    return _MESSAGES.get(key, key)
