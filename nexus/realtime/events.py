"""
Event Types and Event Stream for Real-Time Relays

Typed events flow from a producer (generation backend, speech backend) to a
single consumer through a bounded, closable queue.

Event Types:
- FragmentEvent: one incremental piece of a generated answer
- DoneEvent: the answer stream completed normally
- ErrorEvent: the answer stream failed (terminal)
- RecognitionEvent: a partial or final speech-recognition result

Closing an EventStream is the cancellation signal: the consumer stops
draining and the producer's further puts are dropped.
"""

import asyncio
import json
import time
import uuid
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from nexus.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Event(ABC):
    """Base event class for all real-time events."""
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    timestamp: float = field(default_factory=time.time)
    source: str = ""

    @property
    def is_terminal(self) -> bool:
        """Terminal events end an answer stream."""
        return False

    def to_payload(self) -> Dict[str, Any]:
        """Caller-facing JSON object for this event."""
        raise NotImplementedError

    def to_sse(self) -> str:
        """Format as one server-sent-events frame."""
        return f"data: {json.dumps(self.to_payload())}\n\n"


# ============================================================================
# Answer Events
# ============================================================================

@dataclass
class FragmentEvent(Event):
    """Incremental text produced by the generation backend."""
    text: str = ""
    index: int = 0
    source: str = "llm"

    def to_payload(self) -> Dict[str, Any]:
        return {"text": self.text}


@dataclass
class DoneEvent(Event):
    """Answer stream completed; the full answer has been committed."""
    fragment_count: int = 0
    source: str = "llm"

    @property
    def is_terminal(self) -> bool:
        return True

    def to_payload(self) -> Dict[str, Any]:
        return {"done": True}


@dataclass
class ErrorEvent(Event):
    """Answer stream failed; nothing was committed."""
    error: str = ""
    source: str = "llm"

    @property
    def is_terminal(self) -> bool:
        return True

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.error}


# ============================================================================
# Speech Recognition Events
# ============================================================================

@dataclass
class RecognitionEvent(Event):
    """Speech recognition result with one or more alternatives."""
    alternatives: List[str] = field(default_factory=list)
    is_partial: bool = True
    source: str = "stt"

    @property
    def text(self) -> str:
        """Best alternative, or an empty string."""
        return self.alternatives[0] if self.alternatives else ""

    @property
    def is_final(self) -> bool:
        return not self.is_partial

    def to_payload(self) -> Dict[str, Any]:
        return {"text": self.text, "is_partial": self.is_partial}


# ============================================================================
# Event Stream
# ============================================================================

class EventStream:
    """
    Bounded, ordered, closable channel between one producer and one consumer.

    - put() waits while the queue is full (backpressure on the producer)
    - events are delivered in put order
    - iteration stops after a terminal event or once the stream is closed
      and drained

    Usage:
        stream = EventStream(max_size=100, timeout=60.0)
        # producer task
        await stream.put(FragmentEvent(text="Hel"))
        await stream.put(DoneEvent())
        # consumer
        async for event in stream:
            ...
    """

    def __init__(self, max_size: int = 100, timeout: Optional[float] = None):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_size)
        self._timeout = timeout
        self._closed = False
        self._finished = False

    async def put(self, event: Event) -> bool:
        """Queue an event. Returns False if the stream is already closed."""
        if self._closed:
            logger.debug(f"Dropping {type(event).__name__} on closed stream")
            return False
        await self._queue.put(event)
        return True

    async def next(self, timeout: Optional[float] = None) -> Optional[Event]:
        """
        Wait for the next event.

        Returns None once the stream is closed and drained.

        Raises:
            asyncio.TimeoutError: if no event arrives within the timeout
        """
        if self._closed and self._queue.empty():
            return None
        return await asyncio.wait_for(self._queue.get(), timeout=timeout)

    def close(self) -> None:
        """Close the stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            # Wake a consumer blocked on an empty queue
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # Full queue: no consumer is blocked, next() sees the flag once drained
            pass

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def size(self) -> int:
        return self._queue.qsize()

    def __aiter__(self) -> AsyncIterator[Event]:
        return self

    async def __anext__(self) -> Event:
        if self._finished:
            raise StopAsyncIteration
        event = await self.next(self._timeout)
        if event is None:
            self._finished = True
            raise StopAsyncIteration
        if event.is_terminal:
            self._finished = True
        return event
