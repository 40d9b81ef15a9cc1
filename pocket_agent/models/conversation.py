"""
Conversation data model.

A conversation is an append-only sequence of immutable turns plus a
monotonically increasing iteration counter. Tool-call identifiers come
from a per-conversation counter so identical inputs produce identical
traces.
"""

import itertools
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Author of a turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class Turn:
    """A single message unit in a conversation."""

    role: Role
    content: str
    tool_call_id: Optional[str] = None
    name: Optional[str] = None  # tool name, for TOOL turns

    def __post_init__(self):
        if self.role is Role.TOOL and not self.tool_call_id:
            raise ValueError("Tool response turns require a tool_call_id")

    @classmethod
    def system(cls, content: str) -> "Turn":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Turn":
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def tool(cls, content: str, tool_call_id: str, name: Optional[str] = None) -> "Turn":
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id, name=name)

    def to_dict(self) -> dict:
        data = {"role": self.role.value, "content": self.content}
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        if self.name:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Turn":
        return cls(
            role=Role(data["role"]),
            content=data.get("content", ""),
            tool_call_id=data.get("tool_call_id"),
            name=data.get("name"),
        )


@dataclass
class Conversation:
    """
    Ordered, append-only sequence of turns.

    Owned by exactly one session; turns are never removed. Context-budget
    truncation is a view computed by the prompt formatter, recorded here
    only for diagnostics via ``mark_truncated``.
    """

    conversation_id: str = field(default_factory=lambda: f"conv-{uuid.uuid4().hex[:12]}")
    _turns: list[Turn] = field(default_factory=list, repr=False)
    iteration: int = 0
    truncated: bool = False
    dropped_turns: int = 0
    _call_counter: "itertools.count[int]" = field(
        default_factory=lambda: itertools.count(1), repr=False
    )

    @classmethod
    def from_turns(
        cls, conversation_id: str, turns: list[Turn], issued_calls: int = 0
    ) -> "Conversation":
        """
        Rebuild a conversation from persisted turns, resuming the call counter.

        Args:
            conversation_id: Identifier of the persisted conversation.
            turns: Persisted turns, in order.
            issued_calls: Call identifiers already handed out, including
                calls whose responses were never appended (a cancelled
                dispatch). The counter resumes past both this and the
                highest ``call_N`` seen on a tool turn.
        """
        conversation = cls(conversation_id=conversation_id)
        highest = issued_calls
        for turn in turns:
            conversation.append(turn)
            if turn.role is Role.TOOL and turn.tool_call_id:
                prefix, _, number = turn.tool_call_id.partition("_")
                if prefix == "call" and number.isdigit():
                    highest = max(highest, int(number))
        conversation._call_counter = itertools.count(highest + 1)
        return conversation

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def system_turn(self) -> Optional[Turn]:
        for turn in self._turns:
            if turn.role is Role.SYSTEM:
                return turn
        return None

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)

    def next_call_id(self) -> str:
        """Next tool-call identifier, unique within this conversation."""
        return f"call_{next(self._call_counter)}"

    def begin_iteration(self) -> int:
        self.iteration += 1
        return self.iteration

    def mark_truncated(self, dropped: int) -> None:
        self.truncated = True
        self.dropped_turns = max(self.dropped_turns, dropped)

    def __len__(self) -> int:
        return len(self._turns)
