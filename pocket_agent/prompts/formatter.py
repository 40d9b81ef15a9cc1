"""
Prompt formatter.

Renders a conversation plus the tool catalog into the single prompt
string a model family expects, keeping the result inside the model's
context budget. Rendering is a pure function of its inputs; truncation
is reported on the result, never applied to the conversation.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ..errors import PromptTooLarge
from ..models.conversation import Conversation, Role, Turn
from ..models.profile import ModelProfile
from .templates import PromptTemplate, get_template
from .tool_defs import build_tools_prompt_block

logger = logging.getLogger(__name__)

# Rough approximation: 1 token ~ 4 characters.
CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Deterministic size estimate used for context budgeting."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass(frozen=True)
class RenderedPrompt:
    """A rendered prompt and what had to be left out to fit it."""

    text: str
    estimated_tokens: int
    dropped_turns: int = 0

    @property
    def truncated(self) -> bool:
        return self.dropped_turns > 0


class PromptFormatter:
    """
    Renders conversations for a model profile.

    Per render:
        1. Select the delimiter table for ``profile.prompt_format``
        2. Append the ``<tools>`` catalog block to the system turn
        3. Wrap every turn in its role's markers, in order
        4. Open the assistant turn for generation
        5. While over budget, drop the oldest non-system turn
    """

    def __init__(self, size_fn: Optional[Callable[[str], int]] = None):
        self._size = size_fn or estimate_tokens

    def render(
        self,
        conversation: Conversation,
        tool_catalog: Sequence[dict],
        profile: ModelProfile,
    ) -> RenderedPrompt:
        """
        Render ``conversation`` with ``tool_catalog`` for ``profile``.

        Raises:
            PromptTooLarge: If the system turn plus the most recent turn
                cannot fit in the budget.
        """
        template = get_template(profile.prompt_format)
        budget = profile.prompt_budget
        system_turn, history = self._split(conversation.turns, tool_catalog, template)

        system_only = self._render_turns(template, system_turn, [])
        if self._size(system_only) > budget:
            raise PromptTooLarge(
                f"System prompt needs {self._size(system_only)} tokens, "
                f"budget is {budget}"
            )

        dropped = 0
        while True:
            text = self._render_turns(template, system_turn, history[dropped:])
            size = self._size(text)
            if size <= budget:
                break
            if len(history) - dropped <= 1:
                raise PromptTooLarge(
                    f"Latest turn does not fit: {size} tokens, budget is {budget}"
                )
            dropped += 1

        if dropped:
            logger.info(
                "Prompt over budget, dropped %d oldest turn(s) (%d/%d tokens)",
                dropped,
                size,
                budget,
            )
        return RenderedPrompt(text=text, estimated_tokens=size, dropped_turns=dropped)

    @staticmethod
    def _split(
        turns: Sequence[Turn],
        tool_catalog: Sequence[dict],
        template: PromptTemplate,
    ) -> tuple[Optional[Turn], list[Turn]]:
        """Separate the system turn (with the catalog folded in) from history."""
        tools_block = build_tools_prompt_block(list(tool_catalog), template.tools_heading)
        system_turn: Optional[Turn] = None
        history: list[Turn] = []
        for turn in turns:
            if turn.role is Role.SYSTEM and system_turn is None:
                system_turn = turn
            elif turn.role is not Role.SYSTEM:
                history.append(turn)

        if tools_block:
            base = system_turn.content if system_turn is not None else ""
            system_turn = Turn.system(base + tools_block)
        return system_turn, history

    @staticmethod
    def _render_turns(
        template: PromptTemplate,
        system_turn: Optional[Turn],
        history: Sequence[Turn],
    ) -> str:
        parts = [template.bos]
        if system_turn is not None:
            parts.append(template.wrap(Role.SYSTEM, system_turn.content))
        for turn in history:
            parts.append(template.wrap(turn.role, turn.content))
        parts.append(template.generation_prefix)
        return "".join(parts)
