"""
Real-Time Interview Streaming Module

Streaming orchestration for the live interview copilot.

Architecture:
- Events: typed answer/recognition events and a bounded EventStream
- Memory: per-session store of recent question/answer pairs
- LLM Stream: fragment streaming from the generation backend
- Answer Streamer: question in, relayed fragments out, memory commit on success
- STT Stream: duplex PCM streaming to the speech backend
- Transcription: upload -> PCM -> transcript, degrading every failure

Usage:
    from nexus.realtime import AnswerStreamer, AsyncLLMStream, InMemorySessionStore

    streamer = AnswerStreamer(AsyncLLMStream(), InMemorySessionStore())
    async for event in streamer.stream_answer(AnswerRequest(question="...")):
        ...
"""

from .events import (
    Event,
    EventStream,
    FragmentEvent,
    DoneEvent,
    ErrorEvent,
    RecognitionEvent,
)
from .memory import SessionMemoryStore, InMemorySessionStore, QAPair, MemoryStatus
from .prompts import InterviewContext, build_system_prompt, build_history_block
from .llm_stream import AsyncLLMStream, StreamConfig, GenerationState
from .answer_stream import AnswerStreamer, AnswerRequest, PreparedAnswer
from .stt_stream import (
    RecognitionSession,
    AzureRecognitionSession,
    StreamingTranscriber,
    TranscriptAggregator,
)
from .transcription import TranscriptionService, TranscriptionResult

__all__ = [
    # Events
    "Event",
    "EventStream",
    "FragmentEvent",
    "DoneEvent",
    "ErrorEvent",
    "RecognitionEvent",
    # Memory
    "SessionMemoryStore",
    "InMemorySessionStore",
    "QAPair",
    "MemoryStatus",
    # Prompts
    "InterviewContext",
    "build_system_prompt",
    "build_history_block",
    # LLM
    "AsyncLLMStream",
    "StreamConfig",
    "GenerationState",
    # Answers
    "AnswerStreamer",
    "AnswerRequest",
    "PreparedAnswer",
    # STT
    "RecognitionSession",
    "AzureRecognitionSession",
    "StreamingTranscriber",
    "TranscriptAggregator",
    # Transcription
    "TranscriptionService",
    "TranscriptionResult",
]
