"""
Tool catalog serialisation.

Converts tool descriptors into OpenAI-style JSON function definitions and
formats them into the ``<tools>`` prompt block that tool-calling chat
models were trained to understand. Output is deterministic: the same
catalog always renders to the same text.
"""

import json
import logging
from typing import Iterable, Optional

from ..models.tool import ToolDescriptor

logger = logging.getLogger(__name__)


def build_tool_definition(descriptor: ToolDescriptor) -> dict:
    """Build one OpenAI function-calling definition from a descriptor."""
    properties: dict = {}
    for param_name, spec in descriptor.parameters.items():
        prop: dict = {"type": spec.type, "description": spec.description}
        if spec.enum is not None:
            prop["enum"] = list(spec.enum)
        properties[param_name] = prop

    return {
        "type": "function",
        "function": {
            "name": descriptor.name,
            "description": descriptor.description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": descriptor.required_arguments,
            },
        },
    }


def build_tool_definitions(
    descriptors: Iterable[ToolDescriptor],
    exclude_tools: Optional[set[str]] = None,
) -> list[dict]:
    """
    Build definitions for every available descriptor.

    Args:
        descriptors: Registered tool descriptors, in registration order.
        exclude_tools: Tool names to leave out of the catalog.

    Returns:
        List of OpenAI-format tool definitions.
    """
    exclude = exclude_tools or set()
    tools: list[dict] = []
    for descriptor in descriptors:
        if descriptor.name in exclude:
            logger.debug("Excluding tool '%s' from catalog", descriptor.name)
            continue
        if not descriptor.available():
            logger.debug("Tool '%s' unavailable, omitted from catalog", descriptor.name)
            continue
        tools.append(build_tool_definition(descriptor))
    return tools


def build_tools_prompt_block(tools: list[dict], heading: str = "# Tools") -> str:
    """
    Format tool definitions into the ``<tools>`` prompt block.

    One compact, key-sorted JSON object per line, followed by the
    ``<tool_call>`` usage example. Returns an empty string for an empty
    catalog.
    """
    if not tools:
        return ""
    lines = [
        "",
        heading,
        "",
        "You may call one or more functions to assist with the user query.",
        "",
        "You are provided with function signatures within <tools></tools> XML tags:",
        "<tools>",
    ]
    for tool in tools:
        lines.append(json.dumps(tool, separators=(",", ":"), sort_keys=True, ensure_ascii=False))
    lines.append("</tools>")
    lines.append("")
    lines.append(
        "For each function call, return a json object with function name and arguments "
        "within <tool_call></tool_call> XML tags:"
    )
    lines.append("<tool_call>")
    lines.append('{"name": <function-name>, "arguments": <args-json-object>}')
    lines.append("</tool_call>")
    return "\n".join(lines)
