"""
Live Answer Streaming Module

Turns an interviewer's question into a streamed answer:

1. Validate the question and resolve session/model defaults
2. Build the system prompt, including up to the last few exchanges
3. Run the generation stream in a producer task feeding an EventStream
4. Relay each fragment to the caller as it arrives
5. On completion, commit the exchange to session memory, then emit done
6. On failure, emit a single error event and commit nothing

The consumer side is an async generator: closing it (client disconnect)
cancels the producer, which releases the backend stream.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from nexus.config import settings
from nexus.core.llm import Message
from nexus.exceptions import BackendUnavailable, InvalidRequest, NexusError
from nexus.logger import get_logger
from nexus.messages import msg
from .events import DoneEvent, ErrorEvent, Event, EventStream, FragmentEvent
from .llm_stream import AsyncLLMStream
from .memory import SessionMemoryStore
from .prompts import (
    InterviewContext,
    build_history_block,
    build_system_prompt,
    build_user_turn,
)

logger = get_logger(__name__)


@dataclass
class AnswerRequest:
    """Caller input for one live answer."""
    question: str
    session_id: Optional[str] = None
    context: Optional[InterviewContext] = None
    profile: Optional[Dict[str, Any]] = None


@dataclass
class PreparedAnswer:
    """Validated request with everything needed to call the backend."""
    question: str
    session_id: str
    model: str
    system_prompt: str
    messages: List[Message] = field(default_factory=list)
    history_pairs: int = 0


class AnswerStreamer:
    """
    Orchestrates live answer streaming with session memory.

    Usage:
        streamer = AnswerStreamer(AsyncLLMStream(), InMemorySessionStore())
        prepared = streamer.prepare(AnswerRequest(question="Why this role?"))
        async for event in streamer.stream(prepared):
            send(event.to_sse())
    """

    def __init__(
        self,
        llm: AsyncLLMStream,
        memory: SessionMemoryStore,
        default_session_id: Optional[str] = None,
        default_model: Optional[str] = None,
        context_pairs: Optional[int] = None,
        queue_size: Optional[int] = None,
        fragment_timeout_s: Optional[float] = None,
    ):
        self._llm = llm
        self._memory = memory
        self._default_session_id = default_session_id or settings.memory.default_session_id
        self._default_model = default_model or settings.anthropic.live_model
        self._context_pairs = (
            context_pairs if context_pairs is not None else settings.memory.context_pairs
        )
        self._queue_size = queue_size or settings.memory.event_queue_size
        self._fragment_timeout_s = fragment_timeout_s or settings.memory.fragment_timeout_s

    def prepare(self, request: AnswerRequest) -> PreparedAnswer:
        """
        Validate a request and build the backend call.

        Raises:
            InvalidRequest: If the question is empty after trimming
        """
        question = (request.question or "").strip()
        if not question:
            raise InvalidRequest(msg("error.question_required"))

        session_id = request.session_id or self._default_session_id

        system_prompt = build_system_prompt(request.context, request.profile)
        recent = self._memory.get_recent(session_id, self._context_pairs)
        system_prompt += build_history_block(recent)

        model = self._default_model
        if request.context is not None and request.context.model:
            model = request.context.model

        return PreparedAnswer(
            question=question,
            session_id=session_id,
            model=model,
            system_prompt=system_prompt,
            messages=[Message(role="user", content=build_user_turn(question))],
            history_pairs=len(recent),
        )

    async def stream_answer(self, request: AnswerRequest) -> AsyncIterator[Event]:
        """Prepare and stream in one call."""
        prepared = self.prepare(request)
        async for event in self.stream(prepared):
            yield event

    async def stream(self, prepared: PreparedAnswer) -> AsyncIterator[Event]:
        """
        Relay fragments for a prepared answer.

        Yields FragmentEvents in generation order, then exactly one DoneEvent
        or ErrorEvent.
        """
        events = EventStream(max_size=self._queue_size)
        producer = asyncio.create_task(self._produce(prepared, events))
        fragments: List[str] = []
        start_time = time.time()

        logger.info(
            f"Answer stream started: session={prepared.session_id}, "
            f"model={prepared.model}, history={prepared.history_pairs}"
        )

        try:
            while True:
                try:
                    event = await events.next(self._fragment_timeout_s)
                except asyncio.TimeoutError:
                    logger.warning(
                        f"No fragment in {self._fragment_timeout_s:.0f}s, "
                        f"aborting session={prepared.session_id}"
                    )
                    yield ErrorEvent(error=msg("error.stream_timeout"))
                    return

                if event is None:
                    yield ErrorEvent(error=msg("error.generation_failed"))
                    return

                if isinstance(event, FragmentEvent):
                    fragments.append(event.text)
                    yield event
                elif isinstance(event, DoneEvent):
                    answer = "".join(fragments)
                    self._memory.append(prepared.session_id, prepared.question, answer)
                    logger.info(
                        f"Answer stream done: session={prepared.session_id}, "
                        f"fragments={len(fragments)}, chars={len(answer)}, "
                        f"{(time.time() - start_time) * 1000:.0f}ms"
                    )
                    yield DoneEvent(fragment_count=len(fragments))
                    return
                else:
                    yield event
                    return
        finally:
            events.close()
            if not producer.done():
                logger.debug(f"Cancelling answer producer for session={prepared.session_id}")
                producer.cancel()
            try:
                await producer
            except asyncio.CancelledError:
                pass

    async def _produce(self, prepared: PreparedAnswer, events: EventStream) -> None:
        """Producer task: push backend fragments onto the event stream."""
        index = 0
        try:
            async for text in self._llm.generate_stream(
                prepared.messages,
                system=prepared.system_prompt,
                model=prepared.model,
            ):
                index += 1
                if not await events.put(FragmentEvent(text=text, index=index)):
                    return
            await events.put(DoneEvent(fragment_count=index))
        except BackendUnavailable as e:
            logger.error(f"Answer generation unavailable: {e}")
            await events.put(ErrorEvent(error=msg("error.generation_not_configured")))
        except NexusError as e:
            # Backend detail stays in the log
            logger.error(f"Answer stream failed after {index} fragments: {e}")
            await events.put(ErrorEvent(error=msg("error.generation_failed")))
        except Exception as e:
            logger.exception(f"Unexpected answer stream failure: {e}")
            await events.put(ErrorEvent(error=msg("error.generation_failed")))

    @property
    def default_session_id(self) -> str:
        return self._default_session_id

    @property
    def default_model(self) -> str:
        return self._default_model
