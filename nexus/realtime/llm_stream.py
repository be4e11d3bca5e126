"""
Async Streaming LLM Module

Streams answer fragments from the Anthropic Messages API:
- Server-sent events parsed line by line with aiohttp
- Fragments yielded as soon as they arrive, in backend order
- One retry when the stream fails before the first fragment
- Cancelling the consuming task closes the HTTP response
"""

import asyncio
import json
import time
import uuid
from dataclasses import dataclass
from enum import Enum, auto
from typing import AsyncIterator, List, Optional

import aiohttp

from nexus.config import settings
from nexus.core.llm import Message, build_headers, build_request_body
from nexus.exceptions import BackendUnavailable, StreamError
from nexus.logger import get_logger

logger = get_logger(__name__)


class GenerationState(Enum):
    """State of LLM generation."""
    IDLE = auto()
    GENERATING = auto()
    COMPLETED = auto()
    CANCELLED = auto()
    ERROR = auto()


class SSEKind(Enum):
    """What a single SSE data line means to the stream."""
    FRAGMENT = auto()
    STOP = auto()
    ERROR = auto()
    IGNORE = auto()


@dataclass
class SSEItem:
    kind: SSEKind
    text: str = ""


@dataclass
class StreamConfig:
    """Configuration for streamed generation."""
    max_tokens: int = 500
    connect_timeout_s: float = 10.0
    read_timeout_s: float = 120.0
    retry_delay_s: float = 0.3


def parse_sse_line(raw: bytes) -> SSEItem:
    """
    Interpret one line of the Messages API event stream.

    Only `data:` lines carry payloads; anything unparseable is ignored.
    """
    line = raw.decode("utf-8", errors="replace").strip()
    if not line.startswith("data:"):
        return SSEItem(SSEKind.IGNORE)

    data_str = line[5:].strip()
    if data_str == "[DONE]":
        return SSEItem(SSEKind.STOP)

    try:
        data = json.loads(data_str)
    except json.JSONDecodeError:
        return SSEItem(SSEKind.IGNORE)
    if not isinstance(data, dict):
        return SSEItem(SSEKind.IGNORE)

    event_type = data.get("type")
    if event_type == "content_block_delta":
        delta = data.get("delta") or {}
        text = delta.get("text", "") if isinstance(delta, dict) else ""
        if text:
            return SSEItem(SSEKind.FRAGMENT, text)
    elif event_type == "message_stop":
        return SSEItem(SSEKind.STOP)
    elif event_type == "error":
        error = data.get("error") or {}
        message = error.get("message", "") if isinstance(error, dict) else str(error)
        return SSEItem(SSEKind.ERROR, message or "stream error")

    return SSEItem(SSEKind.IGNORE)


class AsyncLLMStream:
    """
    Async streaming client for the Messages API.

    Usage:
        llm = AsyncLLMStream()
        async for fragment in llm.generate_stream(messages, system=prompt):
            print(fragment, end="", flush=True)
    """

    def __init__(
        self,
        config: Optional[StreamConfig] = None,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        default_model: Optional[str] = None,
    ):
        self._config = config or StreamConfig(
            max_tokens=settings.anthropic.live_max_tokens,
            connect_timeout_s=settings.anthropic.connect_timeout_s,
            read_timeout_s=settings.anthropic.read_timeout_s,
        )

        self._api_key = api_key if api_key is not None else settings.anthropic.api_key
        self._url = url or settings.anthropic.messages_url
        self._api_version = settings.anthropic.api_version
        self._default_model = default_model or settings.anthropic.live_model

        self._state = GenerationState.IDLE
        self._current_generation_id = ""

    async def generate_stream(
        self,
        messages: List[Message],
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[str]:
        """
        Stream a response.

        Args:
            messages: Ordered user/assistant turns
            system: System prompt
            model: Model override
            max_tokens: Output cap override

        Yields:
            Text fragments in generation order

        Raises:
            BackendUnavailable: If no API key is configured
            StreamError: On backend-reported or transport faults
        """
        if not self._api_key:
            raise BackendUnavailable("ANTHROPIC_API_KEY is not configured")

        for attempt in range(2):
            yielded = False
            stream = self._generate_stream_impl(messages, system, model, max_tokens)
            try:
                async for fragment in stream:
                    yielded = True
                    yield fragment
                return
            except asyncio.CancelledError:
                self._state = GenerationState.CANCELLED
                raise
            except Exception as e:
                self._state = GenerationState.ERROR
                # Only retry while nothing has been relayed
                if attempt == 0 and not yielded:
                    logger.warning(f"LLM stream error (attempt 1/2): {e}, retrying...")
                    await asyncio.sleep(self._config.retry_delay_s)
                    continue
                logger.error(f"LLM stream error: {e}")
                if isinstance(e, StreamError):
                    raise
                raise StreamError(str(e) or type(e).__name__) from e
            finally:
                await stream.aclose()

    async def _generate_stream_impl(
        self,
        messages: List[Message],
        system: Optional[str],
        model: Optional[str],
        max_tokens: Optional[int],
    ) -> AsyncIterator[str]:
        """Internal streaming implementation."""
        self._current_generation_id = f"gen_{uuid.uuid4().hex[:8]}"
        self._state = GenerationState.GENERATING

        body = build_request_body(
            messages,
            system,
            model or self._default_model,
            max_tokens or self._config.max_tokens,
            stream=True,
        )
        headers = build_headers(self._api_key, self._api_version)

        start_time = time.time()
        fragment_count = 0

        timeout = aiohttp.ClientTimeout(
            total=self._config.read_timeout_s,
            connect=self._config.connect_timeout_s,
        )

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self._url, headers=headers, json=body) as response:
                    if response.status != 200:
                        detail = await response.text()
                        raise StreamError(f"API error {response.status}: {detail[:300]}")

                    async for line in response.content:
                        item = parse_sse_line(line)
                        if item.kind is SSEKind.FRAGMENT:
                            fragment_count += 1
                            yield item.text
                        elif item.kind is SSEKind.STOP:
                            break
                        elif item.kind is SSEKind.ERROR:
                            raise StreamError(item.text)

            self._state = GenerationState.COMPLETED

        finally:
            generation_time = (time.time() - start_time) * 1000
            logger.debug(
                f"{self._current_generation_id}: {fragment_count} fragments "
                f"in {generation_time:.0f}ms"
            )

    @property
    def state(self) -> GenerationState:
        """Get current state."""
        return self._state

    @property
    def default_model(self) -> str:
        return self._default_model
