"""Tests for single-flight sessions, cancellation and persistence."""

import asyncio

import pytest

from conftest import make_tool_call
from pocket_agent.inference import CallableEngine
from pocket_agent.models import AppConfig, Role, Turn
from pocket_agent.orchestration import ConversationSession, LoopState
from pocket_agent.runtime import build_runtime


class TestSerialization:
    """Concurrent submits to one conversation queue instead of interleaving."""

    @pytest.mark.asyncio
    async def test_submits_are_serialized(self, fixed_clock):
        replies = iter(["one", "two"])

        async def model(prompt):
            await asyncio.sleep(0.02)
            return next(replies)

        runtime = build_runtime(AppConfig(), engine=CallableEngine(model), clock=fixed_clock)
        session = runtime.create_session()

        first, second = await asyncio.gather(session.submit("first"), session.submit("second"))

        assert (first.answer, second.answer) == ("one", "two")
        contents = [(t.role, t.content) for t in session.conversation.turns[1:]]
        assert contents == [
            (Role.USER, "first"),
            (Role.ASSISTANT, "one"),
            (Role.USER, "second"),
            (Role.ASSISTANT, "two"),
        ]
        assert not session.busy

    @pytest.mark.asyncio
    async def test_distinct_conversations_run_concurrently(self, fixed_clock):
        running = 0
        peak = 0

        async def model(prompt):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.02)
            running -= 1
            return "ok"

        runtime = build_runtime(AppConfig(), engine=CallableEngine(model), clock=fixed_clock)
        a, b = runtime.create_session(), runtime.create_session()

        await asyncio.gather(a.submit("hi"), b.submit("hi"))

        assert peak == 2


class TestCancellation:
    """Cancelling unwinds the loop to FAILED with reason Cancelled."""

    @pytest.mark.asyncio
    async def test_cancel_in_flight_model_call(self, fixed_clock):
        started = asyncio.Event()

        async def model(prompt):
            started.set()
            await asyncio.sleep(10)
            return "never"

        runtime = build_runtime(AppConfig(), engine=CallableEngine(model), clock=fixed_clock)
        session = runtime.create_session()

        pending = asyncio.create_task(session.submit("play some jazz"))
        await started.wait()
        assert session.busy
        assert session.cancel() is True

        outcome = await pending

        assert outcome.state is LoopState.FAILED
        assert outcome.failure_reason == "Cancelled"
        assert outcome.transitions[-1] is LoopState.FAILED
        roles = [t.role for t in session.conversation.turns]
        assert roles == [Role.SYSTEM, Role.USER]
        assert not session.busy

    @pytest.mark.asyncio
    async def test_cancel_during_tool_keeps_completed_turns(self, fixed_clock):
        started = asyncio.Event()
        outputs = iter([
            "Checking. " + make_tool_call("general_query", {"query": "why is the sky blue"}),
        ])

        async def model(prompt):
            if "Answer the question accurately" in prompt:
                started.set()
                await asyncio.sleep(10)
            return next(outputs)

        runtime = build_runtime(AppConfig(), engine=CallableEngine(model), clock=fixed_clock)
        session = runtime.create_session()

        pending = asyncio.create_task(session.submit("why is the sky blue"))
        await started.wait()
        session.cancel()
        outcome = await pending

        assert outcome.failure_reason == "Cancelled"
        assert outcome.answer == "Checking."
        roles = [t.role for t in session.conversation.turns]
        # The assistant turn completed; the in-flight tool response was never appended.
        assert roles == [Role.SYSTEM, Role.USER, Role.ASSISTANT]

    @pytest.mark.asyncio
    async def test_cancel_when_idle(self, make_runtime):
        runtime, _ = make_runtime([])
        assert runtime.create_session().cancel() is False

    @pytest.mark.asyncio
    async def test_session_usable_after_cancel(self, fixed_clock):
        calls = 0

        async def model(prompt):
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(10)
            return "back again"

        runtime = build_runtime(AppConfig(), engine=CallableEngine(model), clock=fixed_clock)
        session = runtime.create_session()
        pending = asyncio.create_task(session.submit("first"))
        while calls == 0:
            await asyncio.sleep(0)
        session.cancel()
        await pending

        outcome = await session.submit("second")
        assert outcome.answer == "back again"


class TestPersistence:
    """New turns reach the store after every submit."""

    @pytest.mark.asyncio
    async def test_turns_persisted(self, make_runtime):
        runtime, _ = make_runtime([make_tool_call("play_media", {"query": "jazz"}), "Enjoy!"])
        session = runtime.create_session()
        await session.submit("play some jazz")

        stored = runtime.store.read(session.conversation_id)
        assert stored == list(session.conversation.turns)
        assert stored[0].role is Role.SYSTEM

    @pytest.mark.asyncio
    async def test_failed_run_still_persisted(self, make_runtime):
        runtime, _ = make_runtime([RuntimeError("down")])
        session = runtime.create_session()
        outcome = await session.submit("hello")
        assert outcome.failure_reason == "InferenceFailure"
        assert [t.role for t in runtime.store.read(session.conversation_id)] == [
            Role.SYSTEM,
            Role.USER,
        ]

    @pytest.mark.asyncio
    async def test_resume_continues_call_ids(self, make_runtime):
        runtime, _ = make_runtime([
            make_tool_call("play_media", {"query": "jazz"}),
            "Enjoy!",
        ])
        session = runtime.create_session()
        await session.submit("play some jazz")

        resumed = ConversationSession.resume(runtime.loop, session.conversation_id, runtime.store)

        assert resumed.conversation.turns == session.conversation.turns
        assert resumed.conversation.next_call_id() == "call_2"

    def test_resume_skips_ids_of_unanswered_calls(self, make_runtime):
        """Ids handed out to calls whose responses never landed are not reused."""
        runtime, _ = make_runtime([])
        conversation_id = "conv-cancelled"
        for turn in (
            Turn.system("You are Pocket."),
            Turn.user("play jazz and queue blues"),
            Turn.assistant(
                make_tool_call("play_media", {"query": "jazz"})
                + make_tool_call("queue_media", {"query": "blues"})
            ),
            Turn.tool("Now playing jazz", tool_call_id="call_1", name="play_media"),
        ):
            runtime.store.append(conversation_id, turn)

        resumed = ConversationSession.resume(runtime.loop, conversation_id, runtime.store)

        assert resumed.conversation.next_call_id() == "call_3"

    def test_resume_unknown_conversation(self, make_runtime):
        runtime, _ = make_runtime([])
        with pytest.raises(KeyError):
            ConversationSession.resume(runtime.loop, "conv-missing", runtime.store)


class TestRuntimeSessions:
    """Session table management on AgentRuntime."""

    def test_get_session_resumes_from_store(self, make_runtime):
        runtime, _ = make_runtime([])
        session = runtime.create_session()
        # Only persisted after a submit; force it for the resume path.
        session._persist()
        runtime._sessions.clear()

        resumed = runtime.get_session(session.conversation_id)
        assert resumed.conversation_id == session.conversation_id
        assert runtime.session_ids() == [session.conversation_id]

    def test_get_unknown_session(self, make_runtime):
        runtime, _ = make_runtime([])
        with pytest.raises(KeyError):
            runtime.get_session("conv-missing")

    @pytest.mark.asyncio
    async def test_delete_session(self, make_runtime):
        runtime, _ = make_runtime(["hi"])
        session = runtime.create_session()
        await runtime.submit(session.conversation_id, "hello")

        assert runtime.delete_session(session.conversation_id) is True
        assert runtime.store.read(session.conversation_id) == []
        assert runtime.delete_session(session.conversation_id) is False

    def test_system_prompt_includes_notes(self, make_runtime):
        runtime, _ = make_runtime([])
        runtime.backends.notes.save("favorite_music", "jazz")
        session = runtime.create_session()
        assert "- favorite_music: jazz" in session.conversation.system_turn.content
