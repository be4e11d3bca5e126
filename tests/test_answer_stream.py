"""
Tests for the answer streaming orchestrator.

Generation is replaced by ScriptedLLM (see conftest.py).
"""

import asyncio
import pytest

from nexus.exceptions import BackendUnavailable, InvalidRequest, StreamError
from nexus.messages import msg
from nexus.realtime.answer_stream import AnswerRequest, AnswerStreamer
from nexus.realtime.events import DoneEvent, ErrorEvent, FragmentEvent
from nexus.realtime.prompts import InterviewContext


def make_streamer(llm, memory, **kwargs):
    return AnswerStreamer(
        llm,
        memory,
        default_session_id="default",
        default_model="live-model",
        **kwargs,
    )


async def collect(streamer, request):
    return [event async for event in streamer.stream_answer(request)]


class TestRelay:
    """Fragments are relayed in order and committed on success."""

    @pytest.mark.asyncio
    async def test_fragments_then_done(self, scripted_llm, memory_store):
        llm = scripted_llm(["Hel", "lo", " world"])
        streamer = make_streamer(llm, memory_store)

        events = await collect(streamer, AnswerRequest(question="Why us?", session_id="s1"))

        assert [type(e) for e in events] == [FragmentEvent] * 3 + [DoneEvent]
        assert [e.text for e in events[:3]] == ["Hel", "lo", " world"]
        assert events[-1].fragment_count == 3
        assert memory_store.get_recent("s1", 1)[0].answer == "Hello world"
        assert memory_store.get_recent("s1", 1)[0].question == "Why us?"

    @pytest.mark.asyncio
    async def test_question_is_trimmed(self, scripted_llm, memory_store):
        streamer = make_streamer(scripted_llm(["ok"]), memory_store)

        await collect(streamer, AnswerRequest(question="  Why us?  ", session_id="s1"))

        assert memory_store.get_recent("s1", 1)[0].question == "Why us?"

    @pytest.mark.asyncio
    async def test_default_session_and_model(self, scripted_llm, memory_store):
        llm = scripted_llm(["ok"])
        streamer = make_streamer(llm, memory_store)

        await collect(streamer, AnswerRequest(question="Hi"))

        assert memory_store.status("default").count == 1
        assert llm.calls[0]["model"] == "live-model"

    @pytest.mark.asyncio
    async def test_model_override(self, scripted_llm, memory_store):
        llm = scripted_llm(["ok"])
        streamer = make_streamer(llm, memory_store)
        context = InterviewContext(role="SRE", model="other-model")

        await collect(streamer, AnswerRequest(question="Hi", context=context))

        assert llm.calls[0]["model"] == "other-model"
        assert "ROLE YOU'RE INTERVIEWING FOR: SRE" in llm.calls[0]["system"]

    @pytest.mark.asyncio
    async def test_user_turn_wraps_question(self, scripted_llm, memory_store):
        llm = scripted_llm(["ok"])
        streamer = make_streamer(llm, memory_store)

        await collect(streamer, AnswerRequest(question="Tell me about yourself"))

        message = llm.calls[0]["messages"][0]
        assert message.role == "user"
        assert 'Interviewer asks: "Tell me about yourself"' in message.content


class TestFailures:
    """Exactly one terminal error event and no commit."""

    @pytest.mark.asyncio
    async def test_error_after_fragments(self, scripted_llm, memory_store):
        llm = scripted_llm(["Hel"], error=StreamError('API error 401: {"type": "authentication_error"}'))
        streamer = make_streamer(llm, memory_store)

        events = await collect(streamer, AnswerRequest(question="Q", session_id="s1"))

        assert isinstance(events[0], FragmentEvent)
        assert isinstance(events[-1], ErrorEvent)
        assert events[-1].error == msg("error.generation_failed")
        assert "authentication_error" not in events[-1].to_sse()
        assert sum(1 for e in events if e.is_terminal) == 1
        assert memory_store.status("s1").count == 0

    @pytest.mark.asyncio
    async def test_backend_not_configured(self, scripted_llm, memory_store):
        llm = scripted_llm(error=BackendUnavailable("no key"))
        streamer = make_streamer(llm, memory_store)

        events = await collect(streamer, AnswerRequest(question="Q", session_id="s1"))

        assert len(events) == 1
        assert events[0].error == msg("error.generation_not_configured")
        assert memory_store.status("s1").count == 0

    @pytest.mark.asyncio
    async def test_unexpected_exception(self, scripted_llm, memory_store):
        llm = scripted_llm(["x"], error=RuntimeError("bug"))
        streamer = make_streamer(llm, memory_store)

        events = await collect(streamer, AnswerRequest(question="Q", session_id="s1"))

        assert events[-1].error == msg("error.generation_failed")
        assert memory_store.status("s1").count == 0

    @pytest.mark.asyncio
    async def test_fragment_timeout(self, scripted_llm, memory_store):
        llm = scripted_llm(["first"], hang=True)
        streamer = make_streamer(llm, memory_store, fragment_timeout_s=0.05)

        events = await collect(streamer, AnswerRequest(question="Q", session_id="s1"))

        assert events[0].text == "first"
        assert events[-1].error == msg("error.stream_timeout")
        assert llm.cancelled is True
        assert memory_store.status("s1").count == 0

    @pytest.mark.parametrize("question", ["", "   ", None])
    def test_empty_question_rejected(self, scripted_llm, memory_store, question):
        llm = scripted_llm(["never"])
        streamer = make_streamer(llm, memory_store)

        with pytest.raises(InvalidRequest):
            streamer.prepare(AnswerRequest(question=question))
        assert llm.calls == []


class TestCancellation:
    """Closing the consumer cancels the producer and commits nothing."""

    @pytest.mark.asyncio
    async def test_consumer_close_cancels_generation(self, scripted_llm, memory_store):
        llm = scripted_llm(["Hel"], hang=True)
        streamer = make_streamer(llm, memory_store)
        prepared = streamer.prepare(AnswerRequest(question="Q", session_id="s1"))

        events = streamer.stream(prepared)
        first = await events.__anext__()
        await events.aclose()

        assert first.text == "Hel"
        assert llm.cancelled is True
        assert llm.closed is True
        assert memory_store.status("s1").count == 0


class TestHistoryContext:
    """Prompt history uses the last 3 pairs with 80/100 character limits."""

    def test_last_three_pairs_only(self, scripted_llm, memory_store):
        for name in ["first", "second", "third", "fourth"]:
            memory_store.append("s1", f"{name} question", f"{name} answer")
        streamer = make_streamer(scripted_llm(), memory_store)

        prepared = streamer.prepare(AnswerRequest(question="Next?", session_id="s1"))

        assert prepared.history_pairs == 3
        assert "EARLIER IN THIS INTERVIEW" in prepared.system_prompt
        assert "first question" not in prepared.system_prompt
        for name in ["second", "third", "fourth"]:
            assert f"Q: {name} question" in prepared.system_prompt

    def test_prompt_limits_differ_from_storage(self, scripted_llm, memory_store):
        memory_store.append("s1", "q" * 150, "a" * 200)
        stored = memory_store.get_recent("s1", 1)[0]
        streamer = make_streamer(scripted_llm(), memory_store)

        prepared = streamer.prepare(AnswerRequest(question="Next?", session_id="s1"))

        assert len(stored.question) == 150
        assert f"Q: {'q' * 80}\n" in prepared.system_prompt
        assert "q" * 81 not in prepared.system_prompt
        assert f"Your answer: {'a' * 100}...\n" in prepared.system_prompt

    def test_no_history_block_for_new_session(self, scripted_llm, memory_store):
        streamer = make_streamer(scripted_llm(), memory_store)

        prepared = streamer.prepare(AnswerRequest(question="Hi", session_id="new"))

        assert prepared.history_pairs == 0
        assert "EARLIER IN THIS INTERVIEW" not in prepared.system_prompt

    @pytest.mark.asyncio
    async def test_answer_feeds_next_prompt(self, scripted_llm, memory_store):
        streamer = make_streamer(scripted_llm(["I led the migration."]), memory_store)
        await collect(streamer, AnswerRequest(question="Biggest win?", session_id="s1"))

        prepared = streamer.prepare(AnswerRequest(question="And then?", session_id="s1"))

        assert "Q: Biggest win?" in prepared.system_prompt
        assert "Your answer: I led the migration." in prepared.system_prompt


class TestSystemPrompt:
    """Prompt framing from context and profile."""

    def test_job_description_capped(self):
        from nexus.realtime.prompts import build_system_prompt

        prompt = build_system_prompt(InterviewContext(job_description="x" * 1000))
        assert "x" * 800 in prompt
        assert "x" * 801 not in prompt

    def test_profile_limits(self):
        from nexus.realtime.prompts import build_system_prompt

        profile = {
            "name": "Ana",
            "skills": [f"skill{i}" for i in range(20)],
            "experience": [
                {"title": "Engineer", "company": "Acme"},
                "e" * 150,
                {"title": "Intern", "company": "Old"},
            ],
        }
        prompt = build_system_prompt(profile=profile)

        assert "Name: Ana" in prompt
        assert "skill11" in prompt
        assert "skill12" not in prompt
        assert "- Engineer at Acme" in prompt
        assert "- " + "e" * 100 + "\n" in prompt
        assert "Intern" not in prompt
