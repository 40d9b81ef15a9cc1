"""
Prompt rendering for local model families.
"""

from .formatter import PromptFormatter, RenderedPrompt, estimate_tokens
from .system import SystemPromptBuilder
from .templates import TEMPLATES, PromptTemplate, get_template
from .tool_defs import build_tool_definition, build_tool_definitions, build_tools_prompt_block

__all__ = [
    "PromptFormatter",
    "PromptTemplate",
    "RenderedPrompt",
    "SystemPromptBuilder",
    "TEMPLATES",
    "build_tool_definition",
    "build_tool_definitions",
    "build_tools_prompt_block",
    "estimate_tokens",
    "get_template",
]
