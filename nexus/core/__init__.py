"""
Core Module Package

Backend adapters used by the streaming services and the API:
- LLM: request/response access to the text generation backend
- Audio: ffmpeg transcoding to canonical PCM and silence detection
- Assistant: interview coaching, coding help, feedback and translation over the LLM
- Sessions: request/response interview session lifecycle
"""

from nexus.core.llm import LLMProvider, AnthropicLLMProvider, Message, ChatResponse
from nexus.core.audio import AudioTranscoder, has_sound
from nexus.core.assistant import (
    InterviewAssistant,
    AssistanceResult,
    CodingAssistanceResult,
    FeedbackResult,
)
from nexus.core.sessions import InterviewSession, InterviewSessionStore

__all__ = [
    "LLMProvider",
    "AnthropicLLMProvider",
    "Message",
    "ChatResponse",
    "AudioTranscoder",
    "has_sound",
    "InterviewAssistant",
    "AssistanceResult",
    "CodingAssistanceResult",
    "FeedbackResult",
    "InterviewSession",
    "InterviewSessionStore",
]
