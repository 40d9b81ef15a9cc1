"""
Error taxonomy for the agent core.

Every error carries a ``kind`` equal to its taxonomy name; the dispatcher
copies it into ``ToolResult.error_kind`` and the loop into
``LoopOutcome.failure_reason``.
"""

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .privacy.router import Denied


class AgentError(Exception):
    """Base class for all agent core errors."""

    kind = "AgentError"


class PromptTooLarge(AgentError):
    """The system turn alone (or with the latest turn) exceeds the context budget."""

    kind = "PromptTooLarge"


class InferenceFailure(AgentError):
    """The inference collaborator raised."""

    kind = "InferenceFailure"


class UnknownTool(AgentError):
    """No registered (or available) tool with that name."""

    kind = "UnknownTool"

    def __init__(self, name: str, message: str = ""):
        self.name = name
        super().__init__(message or f"Unknown tool: {name}")


class InvalidArguments(AgentError):
    """Required arguments missing or not type-compatible."""

    kind = "InvalidArguments"

    def __init__(self, name: str, keys: Iterable[str]):
        self.name = name
        self.keys = sorted(keys)
        super().__init__(
            f"Invalid arguments for tool '{name}': {', '.join(self.keys)}"
        )


class PrivacyViolation(AgentError):
    """The active tier does not satisfy a tool's floor or exceeds the ceiling."""

    kind = "PrivacyViolation"


class PrivacyDenied(AgentError):
    """The privacy router refused the request (ceiling below floor)."""

    kind = "Denied"

    def __init__(self, denied: "Denied"):
        self.denied = denied
        super().__init__(denied.reason)


class DuplicateTool(AgentError):
    """A tool with that name is already registered."""

    kind = "DuplicateTool"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool '{name}' is already registered")


class IterationLimitExceeded(AgentError):
    kind = "IterationLimitExceeded"


class Cancelled(AgentError):
    kind = "Cancelled"
