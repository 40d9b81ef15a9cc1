"""
Tool Dispatcher.

Validates tool calls against the registry and runs their handlers. Every
failure inside the dispatch boundary comes back as a failed ``ToolResult``
so one broken tool never aborts the conversation loop. The dispatcher does
not retry; the model decides what to do with a failure.
"""

import asyncio
import inspect
import logging
from typing import Any, Optional

from ..errors import AgentError, InvalidArguments, PrivacyViolation, UnknownTool
from ..models.intent import AgentIntent
from ..models.privacy import PrivacyTier
from ..models.tool import ToolCall, ToolDescriptor, ToolResult
from ..privacy.classifier import PrivacyClassifier
from .intents import IntentMapper
from .registry import ToolRegistry

logger = logging.getLogger(__name__)

MAX_ERROR_CHARS = 500


def _truncate(message: str) -> str:
    if len(message) > MAX_ERROR_CHARS:
        return message[:MAX_ERROR_CHARS] + "..."
    return message


class ToolDispatcher:
    """
    Executes tool calls against registered handlers.

    Checks, in order:
        1. The tool exists and is available (``UnknownTool``)
        2. Required arguments are present and type-compatible
           (``InvalidArguments``)
        3. The active tier meets the tool's floor and stays within the
           ceiling (``PrivacyViolation``)
    """

    def __init__(
        self,
        registry: ToolRegistry,
        intent_mapper: Optional[IntentMapper] = None,
        classifier: Optional[PrivacyClassifier] = None,
        tool_timeout: Optional[float] = 30.0,
    ):
        self.registry = registry
        self.intent_mapper = intent_mapper or IntentMapper()
        self.classifier = classifier or PrivacyClassifier()
        self.tool_timeout = tool_timeout

    def validate(self, call: ToolCall) -> ToolDescriptor:
        """
        Look up and validate ``call``.

        Raises:
            UnknownTool: Not registered, or currently unavailable.
            InvalidArguments: Missing or type-incompatible arguments.
        """
        descriptor = self.registry.get(call.name)
        if descriptor is None:
            raise UnknownTool(call.name)
        if not descriptor.available():
            raise UnknownTool(call.name, f"Tool '{call.name}' is currently unavailable")

        bad_keys: list[str] = []
        for arg_name, spec in descriptor.parameters.items():
            value = call.arguments.get(arg_name)
            if value is None:
                if spec.required:
                    bad_keys.append(arg_name)
                continue
            if not spec.accepts(value):
                bad_keys.append(arg_name)
        if bad_keys:
            raise InvalidArguments(call.name, bad_keys)
        return descriptor

    def to_intent(self, call: ToolCall) -> AgentIntent:
        """Validate ``call`` and map it onto its intent."""
        self.validate(call)
        return self.intent_mapper.to_intent(call)

    @staticmethod
    def check_privacy(
        descriptor: ToolDescriptor,
        tier: PrivacyTier,
        ceiling: Optional[PrivacyTier] = None,
    ) -> None:
        if tier < descriptor.min_privacy_tier:
            raise PrivacyViolation(
                f"Tool '{descriptor.name}' requires {descriptor.min_privacy_tier.name} "
                f"processing, active tier is {tier.name}"
            )
        if ceiling is not None and tier > ceiling:
            raise PrivacyViolation(
                f"Active tier {tier.name} exceeds the privacy ceiling {ceiling.name}"
            )

    async def dispatch(
        self,
        call: ToolCall,
        tier: PrivacyTier,
        ceiling: Optional[PrivacyTier] = None,
    ) -> ToolResult:
        """
        Validate and execute one tool call at ``tier``.

        Never raises for tool-level problems; cancellation propagates.
        """
        try:
            descriptor = self.validate(call)
            self.check_privacy(descriptor, tier, ceiling)
        except AgentError as e:
            logger.warning("Rejected tool call %s '%s': %s", call.call_id, call.name, e)
            return ToolResult.failure(
                str(e), call_id=call.call_id, tool_name=call.name, error_kind=e.kind
            )

        arguments = call.arguments
        if tier is PrivacyTier.ANONYMIZED:
            arguments = self._redact_arguments(arguments)

        try:
            result = await self._invoke(descriptor, arguments)
        except asyncio.TimeoutError:
            logger.error("Tool '%s' timed out after %ss", call.name, self.tool_timeout)
            return ToolResult.failure(
                f"Tool '{call.name}' timed out after {self.tool_timeout}s",
                call_id=call.call_id,
                tool_name=call.name,
                error_kind="Timeout",
            )
        except Exception as e:
            error_msg = _truncate(str(e))
            logger.error("Tool '%s' execution failed: %s", call.name, error_msg)
            return ToolResult.failure(
                f"Tool '{call.name}' execution error: {error_msg}",
                call_id=call.call_id,
                tool_name=call.name,
            )

        if not isinstance(result, ToolResult):
            logger.error("Tool '%s' returned %s, expected ToolResult", call.name, type(result).__name__)
            return ToolResult.failure(
                f"Tool '{call.name}' returned an invalid result",
                call_id=call.call_id,
                tool_name=call.name,
            )
        return result.for_call(call)

    async def _invoke(self, descriptor: ToolDescriptor, arguments: dict) -> Any:
        handler = descriptor.handler
        if inspect.iscoroutinefunction(handler):
            pending = handler(arguments)
        else:
            pending = asyncio.to_thread(handler, arguments)
        result = await asyncio.wait_for(pending, timeout=self.tool_timeout)
        if inspect.isawaitable(result):
            result = await asyncio.wait_for(result, timeout=self.tool_timeout)
        return result

    def _redact_arguments(self, arguments: dict) -> dict:
        return {
            key: self.classifier.redact(value) if isinstance(value, str) else value
            for key, value in arguments.items()
        }
