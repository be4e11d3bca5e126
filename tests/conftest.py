"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
Backends are replaced by scripted fakes; no test touches the network,
ffmpeg or the Azure Speech runtime.
"""

import asyncio
import os
import sys
import pytest
from pathlib import Path
from typing import Iterable, List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set test environment
os.environ["APP_ENV"] = "test"
os.environ["ANTHROPIC_API_KEY"] = "test-key"
os.environ["AZURE_SPEECH_API_KEY"] = "test-speech-key"
os.environ["AZURE_SPEECH_REGION"] = "testregion"
os.environ["LOG_LEVEL"] = "WARNING"


class ScriptedLLM:
    """Generation stream that replays fixed fragments."""

    def __init__(
        self,
        fragments: Iterable[str] = (),
        error: Optional[Exception] = None,
        hang: bool = False,
    ):
        self.fragments = list(fragments)
        self.error = error
        self.hang = hang
        self.calls: List[dict] = []
        self.cancelled = False
        self.closed = False

    async def generate_stream(self, messages, system=None, model=None, max_tokens=None):
        self.calls.append({"messages": messages, "system": system, "model": model})
        try:
            for fragment in self.fragments:
                await asyncio.sleep(0)
                yield fragment
            if self.error is not None:
                raise self.error
            if self.hang:
                await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        finally:
            self.closed = True


class ScriptedRecognitionSession:
    """
    Recognition session that replays scripted events.

    The event channel stays open until the input side is closed, like a real
    backend that flushes its last result after end of audio.
    """

    def __init__(self, events=(), error: Optional[str] = None, fail_on_send: bool = False):
        self.script = list(events)
        self.error_message = error
        self.fail_on_send = fail_on_send
        self.sent: List[bytes] = []
        self.started = False
        self.input_closed = False
        self.stopped = False
        self._input_done: Optional[asyncio.Event] = None

    async def start(self):
        self.started = True
        self._input_done = asyncio.Event()

    async def send(self, chunk: bytes):
        if self.fail_on_send:
            raise ConnectionError("socket closed")
        self.sent.append(chunk)

    async def close_input(self):
        self.input_closed = True
        self._input_done.set()

    async def events(self):
        for event in self.script:
            await asyncio.sleep(0)
            yield event
        await self._input_done.wait()

    async def stop(self):
        self.stopped = True

    @property
    def error(self):
        return self.error_message


@pytest.fixture
def memory_store():
    """Fresh memory store with the default limits."""
    from nexus.realtime.memory import InMemorySessionStore

    return InMemorySessionStore(max_pairs=8, question_chars=150, answer_chars=200)


@pytest.fixture
def scripted_llm():
    """Factory for scripted generation streams."""
    return ScriptedLLM


@pytest.fixture
def scripted_session():
    """Factory for scripted recognition sessions."""
    return ScriptedRecognitionSession


@pytest.fixture
def partial():
    from nexus.realtime.events import RecognitionEvent

    return lambda text: RecognitionEvent(alternatives=[text], is_partial=True)


@pytest.fixture
def final():
    from nexus.realtime.events import RecognitionEvent

    return lambda text: RecognitionEvent(alternatives=[text], is_partial=False)


@pytest.fixture
def pcm_second():
    """One second of 16 kHz mono PCM with a loud sample."""
    samples = bytearray(32000)
    samples[100:102] = (5000).to_bytes(2, "little", signed=True)
    return bytes(samples)
