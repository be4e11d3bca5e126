"""
Tests for answer events and the EventStream channel.
"""

import asyncio
import json
import pytest

from nexus.realtime.events import (
    DoneEvent,
    ErrorEvent,
    EventStream,
    FragmentEvent,
    RecognitionEvent,
)


class TestEventPayloads:
    """Wire objects seen by callers."""

    def test_fragment_sse(self):
        event = FragmentEvent(text="Hel")
        assert event.to_sse() == 'data: {"text": "Hel"}\n\n'
        assert event.is_terminal is False

    def test_done_sse(self):
        event = DoneEvent(fragment_count=3)
        assert json.loads(event.to_sse()[len("data: "):]) == {"done": True}
        assert event.is_terminal is True

    def test_error_sse(self):
        event = ErrorEvent(error="boom")
        assert event.to_payload() == {"error": "boom"}
        assert event.is_terminal is True

    def test_recognition_text(self):
        assert RecognitionEvent(alternatives=["a", "b"]).text == "a"
        assert RecognitionEvent(alternatives=[]).text == ""
        assert RecognitionEvent(is_partial=False).is_final is True


class TestEventStream:
    """Ordering, backpressure and close semantics."""

    @pytest.mark.asyncio
    async def test_order_and_terminal_stop(self):
        stream = EventStream(max_size=10)
        await stream.put(FragmentEvent(text="a"))
        await stream.put(FragmentEvent(text="b"))
        await stream.put(DoneEvent())
        await stream.put(FragmentEvent(text="after"))

        received = [event async for event in stream]

        assert [type(e).__name__ for e in received] == ["FragmentEvent", "FragmentEvent", "DoneEvent"]
        assert [e.text for e in received[:2]] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_put_after_close_is_dropped(self):
        stream = EventStream()
        stream.close()
        stream.close()

        assert await stream.put(FragmentEvent(text="x")) is False
        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_consumer(self):
        stream = EventStream()

        async def close_soon():
            await asyncio.sleep(0.01)
            stream.close()

        closer = asyncio.create_task(close_soon())
        assert await stream.next(timeout=1.0) is None
        await closer

    @pytest.mark.asyncio
    async def test_next_timeout(self):
        stream = EventStream()

        with pytest.raises(asyncio.TimeoutError):
            await stream.next(timeout=0.01)

    @pytest.mark.asyncio
    async def test_backpressure(self):
        """A full stream makes the producer wait until the consumer drains."""
        stream = EventStream(max_size=1)
        await stream.put(FragmentEvent(text="1"))

        blocked = asyncio.create_task(stream.put(FragmentEvent(text="2")))
        await asyncio.sleep(0.01)
        assert blocked.done() is False

        first = await stream.next(timeout=1.0)
        assert first.text == "1"
        assert await blocked is True
        assert stream.size == 1
