"""
Tool Registry - Single source of truth for tool descriptors.

One registry is owned by the runtime and handed to the dispatcher by
reference. It is read-mostly after startup registration, so concurrent
dispatch across conversations needs no further coordination.
"""

import logging
import threading
from typing import Iterable, Optional

from ..errors import DuplicateTool
from ..models.tool import ToolDescriptor
from ..prompts.tool_defs import build_tool_definitions

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry of tool descriptors keyed by name, in registration order."""

    def __init__(self, descriptors: Optional[Iterable[ToolDescriptor]] = None):
        self._tools: dict[str, ToolDescriptor] = {}
        self._lock = threading.Lock()
        for descriptor in descriptors or ():
            self.register(descriptor)

    def register(self, descriptor: ToolDescriptor) -> None:
        """
        Register a tool.

        Raises:
            DuplicateTool: If a tool with the same name is already registered.
        """
        with self._lock:
            if descriptor.name in self._tools:
                raise DuplicateTool(descriptor.name)
            self._tools[descriptor.name] = descriptor
        logger.debug(
            "Registered tool '%s' (toolset=%s, min tier=%s)",
            descriptor.name,
            descriptor.toolset,
            descriptor.min_privacy_tier.name,
        )

    def unregister(self, name: str) -> bool:
        """Remove a tool. Returns False if it was not registered."""
        with self._lock:
            return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Optional[ToolDescriptor]:
        """Get a tool by name."""
        return self._tools.get(name)

    def all_tools(self) -> list[ToolDescriptor]:
        """All registered tools, available or not."""
        return list(self._tools.values())

    def available_tools(self) -> list[ToolDescriptor]:
        return [tool for tool in self._tools.values() if tool.available()]

    def by_toolset(self, toolset: str) -> list[ToolDescriptor]:
        return [tool for tool in self._tools.values() if tool.toolset == toolset]

    def catalog(self, exclude_tools: Optional[set[str]] = None) -> list[dict]:
        """Tool definitions for the prompt's ``<tools>`` block."""
        return build_tool_definitions(self._tools.values(), exclude_tools=exclude_tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
