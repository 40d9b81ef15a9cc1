"""
Conversation loop.

Drives one user message through the generate -> parse -> dispatch cycle:

    AWAITING_MODEL -> PARSING -> DONE
                      PARSING -> DISPATCHING -> AWAITING_MODEL

with terminal states DONE and FAILED. The model emits ``<tool_call>``
blocks in plain text; results go back as ``<tool_response>`` turns and the
model is asked again, until it answers without calling a tool or the
iteration cap is reached. Failures never escape as exceptions: they end
the loop in FAILED with a reason and the last plain text seen.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..errors import (
    AgentError,
    Cancelled,
    InferenceFailure,
    IterationLimitExceeded,
    PrivacyDenied,
    PromptTooLarge,
)
from ..inference.engine import InferenceEngine
from ..models.conversation import Conversation, Turn
from ..models.profile import ModelProfile
from ..models.tool import ToolCall, ToolResult
from ..privacy.router import Denied, PrivacyRouter
from ..prompts.formatter import PromptFormatter
from ..tools.dispatcher import ToolDispatcher
from ..tools.registry import ToolRegistry
from ..tracing import TracingContext
from . import protocol

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 5


class LoopState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    PARSING = "parsing"
    DISPATCHING = "dispatching"
    DONE = "done"
    FAILED = "failed"


@dataclass
class LoopStep:
    """One model call and the tool calls it produced."""

    iteration: int
    raw_output: str = ""
    plain_text: str = ""
    calls: list[ToolCall] = field(default_factory=list)
    results: list[ToolResult] = field(default_factory=list)
    tiers: dict[str, str] = field(default_factory=dict)  # call_id -> tier name

    def to_dict(self) -> dict:
        return {
            "iteration": self.iteration,
            "plain_text": self.plain_text,
            "tool_calls": [
                {
                    "id": call.call_id,
                    "name": call.name,
                    "arguments": call.arguments,
                    "tier": self.tiers.get(call.call_id),
                    "success": result.success,
                    "output": result.content,
                    "error_kind": result.error_kind,
                }
                for call, result in zip(self.calls, self.results)
            ],
        }


@dataclass
class LoopOutcome:
    """
    Result of one submitted user message.

    ``answer`` is the final answer when DONE, otherwise the last plain
    text the model produced (possibly empty).
    """

    state: LoopState
    answer: str = ""
    failure_reason: Optional[str] = None
    error: Optional[str] = None
    steps: list[LoopStep] = field(default_factory=list)
    transitions: list[LoopState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is LoopState.DONE

    @property
    def iterations(self) -> int:
        return len(self.steps)

    def tools_used(self) -> list[str]:
        seen: list[str] = []
        for step in self.steps:
            for call in step.calls:
                if call.name not in seen:
                    seen.append(call.name)
        return seen

    def get_trace(self) -> list[dict]:
        return [step.to_dict() for step in self.steps]


class _Run:
    """Mutable bookkeeping for a single ``ConversationLoop.run``."""

    def __init__(self):
        self.steps: list[LoopStep] = []
        self.transitions: list[LoopState] = []
        self.last_plain = ""

    def enter(self, state: LoopState) -> None:
        self.transitions.append(state)

    def finish(self, answer: str) -> LoopOutcome:
        self.enter(LoopState.DONE)
        return LoopOutcome(
            state=LoopState.DONE,
            answer=answer,
            steps=self.steps,
            transitions=self.transitions,
        )

    def fail(self, error: AgentError) -> LoopOutcome:
        self.enter(LoopState.FAILED)
        return LoopOutcome(
            state=LoopState.FAILED,
            answer=self.last_plain,
            failure_reason=error.kind,
            error=str(error),
            steps=self.steps,
            transitions=self.transitions,
        )


class ConversationLoop:
    """
    The agent's state machine.

    Stateless between runs: one loop instance can serve many
    conversations, provided each conversation is driven by one run at a
    time (``ConversationSession`` guarantees that).

    Per iteration:
        1. Render the conversation and tool catalog for the model profile
        2. Call the inference engine; append its raw output as an assistant turn
        3. Parse ``<tool_call>`` blocks; none means the stripped text is the answer
        4. Map each call to an intent, resolve its privacy tier, dispatch it
        5. Append every result as a tool-response turn, in call order
    """

    def __init__(
        self,
        engine: InferenceEngine,
        registry: ToolRegistry,
        dispatcher: ToolDispatcher,
        router: PrivacyRouter,
        profile: ModelProfile,
        formatter: Optional[PromptFormatter] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        concurrent_dispatch: bool = True,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.engine = engine
        self.registry = registry
        self.dispatcher = dispatcher
        self.router = router
        self.profile = profile
        self.formatter = formatter or PromptFormatter()
        self.max_iterations = max_iterations
        self.concurrent_dispatch = concurrent_dispatch

    async def run(
        self,
        conversation: Conversation,
        user_text: str,
        tracing: Optional[TracingContext] = None,
    ) -> LoopOutcome:
        """
        Append ``user_text`` and drive the loop to DONE or FAILED.

        Cancellation of the awaiting task ends the run in FAILED with
        reason ``Cancelled``; turns appended before the cancellation stay.
        """
        tracing = tracing or TracingContext(conversation_id=conversation.conversation_id)
        run = _Run()
        conversation.append(Turn.user(user_text))
        logger.debug("[%s] Starting loop: %s", conversation.conversation_id, user_text[:200])

        tracing.start_trace(user_text=user_text)
        try:
            outcome = await self._run_loop(conversation, user_text, tracing, run)
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None:
                task.uncancel()
            logger.info("[%s] Loop cancelled", conversation.conversation_id)
            outcome = run.fail(Cancelled("Request cancelled"))

        tracing.end_trace(
            output=outcome.answer[:500],
            status="success" if outcome.succeeded else "error",
        )
        self._log_trace_summary(conversation.conversation_id, outcome)
        return outcome

    async def _run_loop(
        self,
        conversation: Conversation,
        user_text: str,
        tracing: TracingContext,
        run: _Run,
    ) -> LoopOutcome:
        for _ in range(self.max_iterations):
            iteration = conversation.begin_iteration()
            step = LoopStep(iteration=iteration)

            # AWAITING_MODEL
            run.enter(LoopState.AWAITING_MODEL)
            try:
                rendered = self.formatter.render(
                    conversation,
                    self.registry.catalog(exclude_tools=self._unroutable_tools()),
                    self.profile,
                )
            except PromptTooLarge as e:
                logger.error("[%s] %s", conversation.conversation_id, e)
                return run.fail(e)
            if rendered.truncated:
                conversation.mark_truncated(rendered.dropped_turns)

            try:
                raw = await self._generate(rendered.text, iteration, tracing)
            except Exception as e:
                logger.error(
                    "[%s] Inference failed at iteration %d: %s",
                    conversation.conversation_id,
                    iteration,
                    e,
                )
                return run.fail(InferenceFailure(str(e)[:500] or type(e).__name__))

            conversation.append(Turn.assistant(raw))
            run.steps.append(step)
            step.raw_output = raw

            # PARSING
            run.enter(LoopState.PARSING)
            calls = protocol.parse(raw, conversation.next_call_id)
            step.plain_text = protocol.strip_tool_calls(raw)
            if step.plain_text:
                run.last_plain = step.plain_text
            if not calls:
                return run.finish(step.plain_text)

            # DISPATCHING
            run.enter(LoopState.DISPATCHING)
            step.calls = calls
            step.results = await self._dispatch_all(calls, user_text, step, tracing)
            for call, result in zip(calls, step.results):
                conversation.append(
                    Turn.tool(
                        protocol.format_tool_response(call, result),
                        tool_call_id=call.call_id,
                        name=call.name,
                    )
                )

        logger.warning(
            "[%s] Iteration limit (%d) reached",
            conversation.conversation_id,
            self.max_iterations,
        )
        return run.fail(
            IterationLimitExceeded(f"No final answer after {self.max_iterations} iterations")
        )

    async def _generate(self, prompt: str, iteration: int, tracing: TracingContext) -> str:
        model = getattr(self.engine, "model", "unknown")
        with tracing.generation(
            name=f"model_call_{iteration}",
            model=model,
            input=prompt,
        ) as gen:
            raw = await self.engine.generate(prompt)
            gen.set_output(raw[:2000])
            usage = getattr(self.engine, "last_usage", None)
            if isinstance(usage, dict):
                gen.set_usage(
                    prompt_tokens=usage.get("prompt_tokens"),
                    completion_tokens=usage.get("completion_tokens"),
                )
        return raw

    def _unroutable_tools(self) -> set[str]:
        """Registered tools that would fail as UnknownTool; kept out of the catalog."""
        mapper = self.dispatcher.intent_mapper
        return {tool.name for tool in self.registry.all_tools() if not mapper.routes(tool.name)}

    async def _dispatch_all(
        self,
        calls: list[ToolCall],
        user_text: str,
        step: LoopStep,
        tracing: TracingContext,
    ) -> list[ToolResult]:
        """Run every call; results come back in call order."""
        if self.concurrent_dispatch and len(calls) > 1:
            return list(
                await asyncio.gather(
                    *(self._handle_call(call, user_text, step, tracing) for call in calls)
                )
            )
        return [await self._handle_call(call, user_text, step, tracing) for call in calls]

    async def _handle_call(
        self,
        call: ToolCall,
        user_text: str,
        step: LoopStep,
        tracing: TracingContext,
    ) -> ToolResult:
        try:
            intent = self.dispatcher.to_intent(call)
            ceiling = self.router.request_ceiling(intent, user_text)
            resolution = self.router.resolve_tier(intent, ceiling, tool_name=call.name)
            if isinstance(resolution, Denied):
                step.tiers[call.call_id] = "DENIED"
                raise PrivacyDenied(resolution)
        except AgentError as e:
            logger.warning("Rejected tool call %s '%s': %s", call.call_id, call.name, e)
            return ToolResult.failure(
                str(e), call_id=call.call_id, tool_name=call.name, error_kind=e.kind
            )
        step.tiers[call.call_id] = resolution.name

        with tracing.span(
            name=f"tool:{call.name}",
            input={"arguments": call.arguments, "tier": resolution.name},
        ) as span:
            result = await self.dispatcher.dispatch(call, resolution, ceiling)
            span.set_output({"success": result.success, "content": result.content[:500]})
            if not result.success:
                span.set_status("error")
        return result

    @staticmethod
    def _log_trace_summary(conversation_id: str, outcome: LoopOutcome) -> None:
        prefix = f"[{conversation_id}] "
        logger.info("%s%s", prefix, "─" * 50)
        logger.info("%sTRACE SUMMARY (%s)", prefix, outcome.state.value.upper())
        logger.info("%s%s", prefix, "─" * 50)
        for step in outcome.steps:
            if not step.calls:
                logger.info("%sIteration %d [FINAL]", prefix, step.iteration)
                continue
            for call, result in zip(step.calls, step.results):
                preview = result.content
                if len(preview) > 80:
                    preview = preview[:80] + "..."
                level = logging.INFO if result.success else logging.WARNING
                logger.log(
                    level,
                    "%sIteration %d: %s [%s] -> %s",
                    prefix,
                    step.iteration,
                    call.name,
                    step.tiers.get(call.call_id, "-"),
                    preview,
                )
        if outcome.failure_reason:
            logger.info("%sFailed: %s (%s)", prefix, outcome.failure_reason, outcome.error)
