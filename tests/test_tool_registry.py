"""Tests for the tool registry and catalog serialisation."""

import json

import pytest

from pocket_agent.errors import DuplicateTool
from pocket_agent.models import ArgumentSpec, PrivacyTier, ToolDescriptor, ToolResult
from pocket_agent.prompts import build_tool_definition, build_tools_prompt_block
from pocket_agent.tools import ToolRegistry


def _tool(name: str, toolset: str = "general", available: bool = True, **params) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description=f"{name} tool",
        parameters=params,
        handler=lambda args: ToolResult.ok(name),
        toolset=toolset,
        is_available=lambda: available,
    )


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_register_and_get(self, registry):
        registry.register(_tool("get_time"))
        assert "get_time" in registry
        assert registry.get("get_time").name == "get_time"
        assert len(registry) == 1

    def test_get_unknown_returns_none(self, registry):
        assert registry.get("nope") is None

    def test_duplicate_rejected(self, registry):
        """A second registration under the same name fails and keeps the first."""
        first = _tool("get_time")
        registry.register(first)
        with pytest.raises(DuplicateTool):
            registry.register(_tool("get_time"))
        assert registry.get("get_time") is first

    def test_registration_order_preserved(self, registry):
        for name in ("c", "a", "b"):
            registry.register(_tool(name))
        assert [t.name for t in registry.all_tools()] == ["c", "a", "b"]

    def test_unregister(self, registry):
        registry.register(_tool("a"))
        assert registry.unregister("a") is True
        assert registry.unregister("a") is False
        assert "a" not in registry

    def test_by_toolset(self, registry):
        registry.register(_tool("play", toolset="media"))
        registry.register(_tool("send", toolset="messaging"))
        assert [t.name for t in registry.by_toolset("media")] == ["play"]

    def test_available_tools_filters(self, registry):
        registry.register(_tool("on"))
        registry.register(_tool("off", available=False))
        assert [t.name for t in registry.available_tools()] == ["on"]

    def test_constructor_registers_descriptors(self):
        registry = ToolRegistry([_tool("a"), _tool("b")])
        assert len(registry) == 2


class TestCatalog:
    """Tests for the tool catalog fed to the prompt."""

    def test_catalog_skips_unavailable_and_excluded(self, registry):
        registry.register(_tool("a"))
        registry.register(_tool("b", available=False))
        registry.register(_tool("c"))
        names = [d["function"]["name"] for d in registry.catalog(exclude_tools={"c"})]
        assert names == ["a"]

    def test_definition_shape(self):
        descriptor = _tool(
            "play_media",
            query=ArgumentSpec(description="What to play"),
            source=ArgumentSpec(required=False, description="Source", enum=("spotify", "youtube")),
        )
        definition = build_tool_definition(descriptor)
        assert definition["type"] == "function"
        function = definition["function"]
        assert function["name"] == "play_media"
        assert function["parameters"]["required"] == ["query"]
        assert function["parameters"]["properties"]["source"]["enum"] == ["spotify", "youtube"]
        assert "enum" not in function["parameters"]["properties"]["query"]

    def test_prompt_block_one_compact_line_per_tool(self):
        tools = [build_tool_definition(_tool("a")), build_tool_definition(_tool("b"))]
        block = build_tools_prompt_block(tools)
        lines = block.split("\n")
        start = lines.index("<tools>")
        end = lines.index("</tools>")
        assert end - start - 1 == 2
        for line in lines[start + 1:end]:
            assert ": " not in line
            json.loads(line)

    def test_prompt_block_empty_catalog(self):
        assert build_tools_prompt_block([]) == ""

    def test_min_privacy_tier_defaults_to_local(self):
        assert _tool("a").min_privacy_tier is PrivacyTier.LOCAL
