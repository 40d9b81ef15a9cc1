"""Tests for the conversation loop state machine."""

import asyncio

import pytest

from conftest import ScriptedModel, make_tool_call
from pocket_agent.inference import CallableEngine
from pocket_agent.models import (
    AgentConfig,
    AppConfig,
    ArgumentSpec,
    Conversation,
    ModelFamily,
    ModelProfile,
    PrivacyConfig,
    PrivacyTier,
    PromptFormat,
    Role,
    ToolDescriptor,
    ToolResult,
    Turn,
)
from pocket_agent.orchestration import ConversationLoop, LoopState
from pocket_agent.privacy import PrivacyRouter
from pocket_agent.tools import ToolDispatcher, ToolRegistry


def _loop(model, descriptors=(), profile=None, **kwargs) -> ConversationLoop:
    registry = ToolRegistry(descriptors)
    return ConversationLoop(
        engine=CallableEngine(model),
        registry=registry,
        dispatcher=ToolDispatcher(registry),
        router=PrivacyRouter(registry),
        profile=profile or ModelProfile.for_family(ModelFamily.QWEN25),
        **kwargs,
    )


def _conversation() -> Conversation:
    conversation = Conversation(conversation_id="conv-loop")
    conversation.append(Turn.system("You are a test assistant."))
    return conversation


class TestPlayJazz:
    """End-to-end: a tool call, its response, then a final answer."""

    @pytest.mark.asyncio
    async def test_play_some_jazz(self, make_runtime):
        runtime, model = make_runtime([
            make_tool_call("play_media", {"query": "jazz"}),
            "Enjoy the jazz!",
        ])
        session = runtime.create_session()

        outcome = await session.submit("play some jazz")

        assert outcome.state is LoopState.DONE
        assert outcome.succeeded
        assert outcome.answer == "Enjoy the jazz!"
        assert outcome.transitions == [
            LoopState.AWAITING_MODEL,
            LoopState.PARSING,
            LoopState.DISPATCHING,
            LoopState.AWAITING_MODEL,
            LoopState.PARSING,
            LoopState.DONE,
        ]
        first = outcome.steps[0]
        assert first.tiers == {"call_1": "LOCAL"}
        assert first.results[0].output == "Now playing jazz"
        assert (
            '<tool_response>\n{"name": "play_media", "content": "Now playing jazz"}\n</tool_response>'
            in model.prompts[1]
        )
        assert runtime.backends.media.status() == "Playing: jazz"

        roles = [turn.role for turn in session.conversation.turns]
        assert roles == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.TOOL, Role.ASSISTANT]
        tool_turn = session.conversation.turns[3]
        assert tool_turn.tool_call_id == "call_1"
        assert tool_turn.name == "play_media"
        assert outcome.tools_used() == ["play_media"]

    @pytest.mark.asyncio
    async def test_answer_without_tools(self, make_runtime):
        runtime, model = make_runtime(["Paris is the capital of France."])
        outcome = await runtime.create_session().submit("capital of France?")
        assert outcome.answer == "Paris is the capital of France."
        assert outcome.iterations == 1
        assert outcome.transitions == [LoopState.AWAITING_MODEL, LoopState.PARSING, LoopState.DONE]

    @pytest.mark.asyncio
    async def test_final_answer_is_stripped_text(self, make_runtime):
        runtime, _ = make_runtime(["  Sure thing. <tool_call>{broken</tool_call>  "])
        outcome = await runtime.create_session().submit("hello")
        assert outcome.state is LoopState.DONE
        assert outcome.answer == "Sure thing."


class TestToolFailures:
    """Tool-level failures are fed back to the model, not raised."""

    @pytest.mark.asyncio
    async def test_unknown_tool_reported_to_model(self, make_runtime):
        runtime, model = make_runtime([
            make_tool_call("teleport", {"to": "Mars"}),
            "I can't do that.",
        ])
        outcome = await runtime.create_session().submit("beam me up")
        assert outcome.succeeded
        assert outcome.steps[0].results[0].error_kind == "UnknownTool"
        assert "Unknown tool: teleport" in model.prompts[1]

    @pytest.mark.asyncio
    async def test_invalid_arguments_reported_to_model(self, make_runtime):
        runtime, model = make_runtime([
            make_tool_call("send_message", {"recipient": "Mom"}),
            "What should the message say?",
        ])
        outcome = await runtime.create_session().submit("message mom")
        result = outcome.steps[0].results[0]
        assert result.error_kind == "InvalidArguments"
        assert "content" in result.error
        assert runtime.backends.messenger.sent == []

    @pytest.mark.asyncio
    async def test_denied_tool_never_runs(self, make_runtime):
        """general_query at CLOUD is above the ANONYMIZED general ceiling."""
        config = AppConfig(privacy=PrivacyConfig(query_tool_tier=PrivacyTier.CLOUD))
        runtime, model = make_runtime(
            [
                make_tool_call("general_query", {"query": "what is the capital of France"}),
                "I'm not allowed to look that up.",
            ],
            config=config,
        )
        outcome = await runtime.create_session().submit("what is the capital of France")

        step = outcome.steps[0]
        assert step.tiers == {"call_1": "DENIED"}
        assert step.results[0].error_kind == "Denied"
        # A run of the handler would have cost an extra model call.
        assert len(model.prompts) == 2
        assert outcome.succeeded

    @pytest.mark.asyncio
    async def test_unmapped_tool_needs_routing(self, make_runtime):
        runtime, _ = make_runtime([make_tool_call("get_time", {}), "Not sure."])
        outcome = await runtime.create_session().submit("what time is it")
        assert outcome.steps[0].results[0].error_kind == "UnknownTool"

    @pytest.mark.asyncio
    async def test_unroutable_tools_hidden_from_catalog(self, make_runtime):
        """With routing off, tools without an intent mapping are not offered."""
        runtime, model = make_runtime(["Hello."])
        await runtime.create_session().submit("hi")

        assert "get_time" in runtime.registry
        assert '"name":"get_time"' not in model.prompts[0]
        assert '"name":"save_note"' not in model.prompts[0]
        assert '"name":"play_media"' in model.prompts[0]

    @pytest.mark.asyncio
    async def test_routed_unmapped_tools_offered(self, make_runtime):
        config = AppConfig(agent=AgentConfig(route_unmapped_as_general_query=True))
        runtime, model = make_runtime(["Hello."], config=config)
        await runtime.create_session().submit("hi")
        assert '"name":"get_time"' in model.prompts[0]

    @pytest.mark.asyncio
    async def test_unmapped_tool_routed_as_general_query(self, make_runtime):
        config = AppConfig(agent=AgentConfig(route_unmapped_as_general_query=True))
        runtime, _ = make_runtime([make_tool_call("get_time", {}), "It's morning."], config=config)
        outcome = await runtime.create_session().submit("what time is it")
        result = outcome.steps[0].results[0]
        assert result.success
        assert result.output == "Saturday, March 14, 2026 09:30 AM"


class TestTermination:
    """Every run ends in DONE or FAILED."""

    @pytest.mark.asyncio
    async def test_iteration_cap_counts_model_calls(self):
        model = ScriptedModel(
            ["Let me try. " + make_tool_call("play_media", {"query": "jazz"})] * 3
        )
        loop = _loop(model, [_media_tool()], max_iterations=3)
        conversation = _conversation()

        outcome = await loop.run(conversation, "play some jazz")

        assert outcome.state is LoopState.FAILED
        assert outcome.failure_reason == "IterationLimitExceeded"
        assert len(model.prompts) == 3
        assert outcome.iterations == 3
        assert outcome.answer == "Let me try."
        # The calls from the last iteration were still dispatched.
        assert conversation.turns[-1].role is Role.TOOL
        assert conversation.iteration == 3

    @pytest.mark.asyncio
    async def test_inference_failure(self):
        model = ScriptedModel([RuntimeError("connection refused")])
        loop = _loop(model)
        conversation = _conversation()

        outcome = await loop.run(conversation, "hello")

        assert outcome.state is LoopState.FAILED
        assert outcome.failure_reason == "InferenceFailure"
        assert "connection refused" in outcome.error
        assert outcome.answer == ""
        assert [t.role for t in conversation.turns] == [Role.SYSTEM, Role.USER]

    @pytest.mark.asyncio
    async def test_inference_failure_after_tool_call_keeps_plain_text(self):
        model = ScriptedModel([
            "One moment. " + make_tool_call("play_media", {"query": "jazz"}),
            RuntimeError("server crashed"),
        ])
        loop = _loop(model, [_media_tool()])
        outcome = await loop.run(_conversation(), "play some jazz")
        assert outcome.failure_reason == "InferenceFailure"
        assert outcome.answer == "One moment."

    @pytest.mark.asyncio
    async def test_prompt_too_large(self):
        model = ScriptedModel(["never"])
        profile = ModelProfile(ModelFamily.QWEN25, PromptFormat.CHATML, context_length=10)
        loop = _loop(model, profile=profile)

        outcome = await loop.run(_conversation(), "hello")

        assert outcome.failure_reason == "PromptTooLarge"
        assert model.prompts == []

    def test_max_iterations_must_be_positive(self):
        with pytest.raises(ValueError):
            _loop(ScriptedModel([]), max_iterations=0)


class TestTruncation:
    @pytest.mark.asyncio
    async def test_truncation_recorded_on_conversation(self):
        model = ScriptedModel(["ok"])
        profile = ModelProfile(ModelFamily.QWEN25, PromptFormat.CHATML, context_length=150)
        loop = _loop(model, profile=profile)
        conversation = _conversation()
        conversation.append(Turn.user("a" * 400))
        conversation.append(Turn.assistant("b" * 400))

        outcome = await loop.run(conversation, "hi")

        assert outcome.succeeded
        assert conversation.truncated
        assert conversation.dropped_turns >= 1
        assert "a" * 400 not in model.prompts[0]
        assert len(conversation) == 5


def _media_tool(name="play_media", handler=None) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description="media",
        parameters={"query": ArgumentSpec()},
        handler=handler or (lambda args: ToolResult.ok(f"{name}: {args['query']}")),
    )


class TestDispatchOrder:
    """Results are appended in call order regardless of completion order."""

    @staticmethod
    def _tools(events):
        async def slow(args):
            events.append("slow start")
            await asyncio.sleep(0.05)
            events.append("slow end")
            return ToolResult.ok("slow done")

        async def fast(args):
            events.append("fast start")
            events.append("fast end")
            return ToolResult.ok("fast done")

        return [_media_tool("play_media", slow), _media_tool("queue_media", fast)]

    @staticmethod
    def _output():
        return (
            make_tool_call("play_media", {"query": "a"})
            + make_tool_call("queue_media", {"query": "b"})
        )

    @pytest.mark.asyncio
    async def test_concurrent_dispatch(self):
        events = []
        model = ScriptedModel([self._output(), "done"])
        loop = _loop(model, self._tools(events))
        conversation = _conversation()

        outcome = await loop.run(conversation, "play a then queue b")

        assert events.index("fast end") < events.index("slow end")
        tool_turns = [t for t in conversation.turns if t.role is Role.TOOL]
        assert [t.tool_call_id for t in tool_turns] == ["call_1", "call_2"]
        assert [t.name for t in tool_turns] == ["play_media", "queue_media"]
        assert [r.output for r in outcome.steps[0].results] == ["slow done", "fast done"]

    @pytest.mark.asyncio
    async def test_sequential_dispatch(self):
        events = []
        model = ScriptedModel([self._output(), "done"])
        loop = _loop(model, self._tools(events), concurrent_dispatch=False)

        await loop.run(_conversation(), "play a then queue b")

        assert events == ["slow start", "slow end", "fast start", "fast end"]


class TestTrace:
    @pytest.mark.asyncio
    async def test_trace_shape(self):
        model = ScriptedModel([make_tool_call("play_media", {"query": "jazz"}), "Playing."])
        loop = _loop(model, [_media_tool()])
        outcome = await loop.run(_conversation(), "play some jazz")

        trace = outcome.get_trace()
        assert len(trace) == 2
        call = trace[0]["tool_calls"][0]
        assert call == {
            "id": "call_1",
            "name": "play_media",
            "arguments": {"query": "jazz"},
            "tier": "LOCAL",
            "success": True,
            "output": "play_media: jazz",
            "error_kind": None,
        }
        assert trace[1] == {"iteration": 2, "plain_text": "Playing.", "tool_calls": []}
