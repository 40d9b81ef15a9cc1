"""
Tool call, result and descriptor types shared by the protocol, the
registry and the dispatcher.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Optional, Union

from .privacy import PrivacyTier

# JSON schema type name -> accepted Python types.
ARGUMENT_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
}


@dataclass(frozen=True)
class ToolCall:
    """A function-invocation request extracted from model output."""

    call_id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    """
    Outcome of a tool invocation.

    ``output`` is present iff ``success``; ``error`` is present iff not.
    ``error_kind`` names the failure class (``UnknownTool``,
    ``InvalidArguments``, ``PrivacyViolation``, ``Denied``,
    ``HandlerError``, ``Timeout``).
    """

    success: bool
    output: Optional[str] = None
    error: Optional[str] = None
    call_id: str = ""
    tool_name: str = ""
    error_kind: Optional[str] = None

    def __post_init__(self):
        if self.success and (self.output is None or self.error is not None):
            raise ValueError("Successful results carry output and no error")
        if not self.success and (self.error is None or self.output is not None):
            raise ValueError("Failed results carry an error and no output")

    @classmethod
    def ok(cls, output: str, call_id: str = "", tool_name: str = "") -> "ToolResult":
        return cls(success=True, output=output, call_id=call_id, tool_name=tool_name)

    @classmethod
    def failure(
        cls,
        error: str,
        call_id: str = "",
        tool_name: str = "",
        error_kind: str = "HandlerError",
    ) -> "ToolResult":
        return cls(
            success=False,
            error=error,
            call_id=call_id,
            tool_name=tool_name,
            error_kind=error_kind,
        )

    def for_call(self, call: ToolCall) -> "ToolResult":
        """Return a copy stamped with the identifier and name of ``call``."""
        return replace(self, call_id=call.call_id, tool_name=call.name)

    @property
    def content(self) -> str:
        """Text fed back to the model."""
        if self.success:
            return self.output or ""
        return self.error or "Tool failed"


@dataclass(frozen=True)
class ArgumentSpec:
    """Schema entry for one tool argument."""

    type: str = "string"
    required: bool = True
    description: str = ""
    enum: Optional[tuple[str, ...]] = None

    def __post_init__(self):
        if self.type not in ARGUMENT_TYPES:
            raise ValueError(f"Unsupported argument type: {self.type}")

    def accepts(self, value: Any) -> bool:
        """Whether ``value`` is type-compatible with this spec."""
        if isinstance(value, bool) and self.type in ("integer", "number"):
            return False
        if not isinstance(value, ARGUMENT_TYPES[self.type]):
            return False
        if self.enum is not None and value not in self.enum:
            return False
        return True


ToolHandler = Callable[[dict], Union[ToolResult, Awaitable[ToolResult]]]


@dataclass(frozen=True)
class ToolDescriptor:
    """Everything the registry knows about a tool."""

    name: str
    description: str
    parameters: dict[str, ArgumentSpec]
    handler: ToolHandler
    min_privacy_tier: PrivacyTier = PrivacyTier.LOCAL
    toolset: str = "general"
    is_available: Optional[Callable[[], bool]] = None

    @property
    def required_arguments(self) -> list[str]:
        return [name for name, spec in self.parameters.items() if spec.required]

    def available(self) -> bool:
        if self.is_available is None:
            return True
        return bool(self.is_available())
