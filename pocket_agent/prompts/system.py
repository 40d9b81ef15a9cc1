"""
Layered system prompt.

Layers, in order: identity, current date and time, remembered notes,
behavioural instructions. The ``<tools>`` block is appended separately by
the prompt formatter.
"""

from datetime import datetime
from typing import Callable, Optional

IDENTITY = """You are {name}, an assistant running entirely on the user's device.
All computation and data stays on-device unless a request is explicitly allowed to leave it.
You help the user with messaging, media playback, reminders, notes, and general questions."""

INSTRUCTIONS = """
# Instructions
- Use tools when the user asks you to take an action (play music, send a message, set a reminder, save a note).
- Answer directly WITHOUT tools when you can answer from knowledge or the conversation.
- When you use a tool, wait for the result before responding to the user.
- If you learn something important about the user (preferences, habits, names), use save_note to remember it.
- Be concise. One or two sentences is usually enough.
- Never fabricate tool results. If a tool fails, tell the user honestly."""

DATE_FORMAT = "%A, %B %d, %Y at %I:%M %p"


class SystemPromptBuilder:
    """
    Builds the system turn content.

    Args:
        assistant_name: Name the assistant introduces itself with.
        clock: Returns the current time; injectable for deterministic prompts.
        memory: Returns the remembered-notes block (may be empty).
    """

    def __init__(
        self,
        assistant_name: str = "Pocket",
        clock: Optional[Callable[[], datetime]] = None,
        memory: Optional[Callable[[], str]] = None,
    ):
        self.assistant_name = assistant_name
        self._clock = clock or datetime.now
        self._memory = memory

    def build(self) -> str:
        parts = [IDENTITY.format(name=self.assistant_name), ""]
        parts.append(f"Current date and time: {self._clock().strftime(DATE_FORMAT)}")

        memory = self._memory() if self._memory else ""
        if memory.strip():
            parts.append("")
            parts.append("# What you remember about the user")
            parts.append(memory.strip())

        parts.append(INSTRUCTIONS)
        return "\n".join(parts)
