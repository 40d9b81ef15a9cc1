"""
System tools.
"""

from datetime import datetime
from typing import Callable, Optional

from ..models.tool import ToolDescriptor, ToolResult
from .registry import ToolRegistry


def register_system_tools(
    registry: ToolRegistry,
    clock: Optional[Callable[[], datetime]] = None,
) -> None:
    now = clock or datetime.now

    def get_time(args: dict) -> ToolResult:
        return ToolResult.ok(now().strftime("%A, %B %d, %Y %I:%M %p"))

    registry.register(ToolDescriptor(
        name="get_time",
        description="Get the current date and time. Use when the user asks what time or day it is.",
        parameters={},
        handler=get_time,
        toolset="system",
    ))
