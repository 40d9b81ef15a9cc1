"""
General knowledge query tool.

Answers free-form questions through a delegate ``answer`` callable,
normally a tool-less completion against the same local model. Deployments
that route general queries to a remote model raise the tool's tier.
"""

import inspect
import logging
from typing import Awaitable, Callable, Union

from ..models.privacy import PrivacyTier
from ..models.tool import ArgumentSpec, ToolDescriptor, ToolResult
from .registry import ToolRegistry

logger = logging.getLogger(__name__)

AnswerFn = Callable[[str], Union[str, Awaitable[str]]]


def register_query_tool(
    registry: ToolRegistry,
    answer: AnswerFn,
    min_privacy_tier: PrivacyTier = PrivacyTier.LOCAL,
) -> None:
    async def general_query(args: dict) -> ToolResult:
        query = args["query"].strip()
        if not query:
            return ToolResult.failure(
                'Query is empty. Please provide a query in format: {"query": "your question"}'
            )
        response = answer(query)
        if inspect.isawaitable(response):
            response = await response
        logger.debug("general_query answered %d chars", len(response))
        return ToolResult.ok(response.strip() or "No answer available")

    registry.register(ToolDescriptor(
        name="general_query",
        description=(
            "Answer a general knowledge question that needs no personal data, "
            "such as facts, definitions, or explanations."
        ),
        parameters={"query": ArgumentSpec(description="The question to answer")},
        handler=general_query,
        min_privacy_tier=min_privacy_tier,
        toolset="general",
    ))
