"""
Delimiter tables for each supported prompt format.

Each table holds begin/end markers for the system, user and assistant
roles, an optional tool role, the turn separator and the stop sequences
the inference server should use. Formats without a tool role fold tool
responses into the assistant role.
"""

from dataclasses import dataclass
from typing import Optional

from ..models.conversation import Role
from ..models.profile import PromptFormat


@dataclass(frozen=True)
class PromptTemplate:
    """Role markers for one prompt format."""

    format: PromptFormat
    system: tuple[str, str]
    user: tuple[str, str]
    assistant: tuple[str, str]
    tool: Optional[tuple[str, str]] = None
    separator: str = "\n"
    bos: str = ""
    stop: tuple[str, ...] = ()
    tools_heading: str = "# Tools"

    def markers(self, role: Role) -> tuple[str, str]:
        if role is Role.SYSTEM:
            return self.system
        if role is Role.USER:
            return self.user
        if role is Role.TOOL:
            return self.tool if self.tool is not None else self.assistant
        return self.assistant

    def wrap(self, role: Role, content: str) -> str:
        start, end = self.markers(role)
        return f"{start}{content}{end}{self.separator}"

    @property
    def generation_prefix(self) -> str:
        """Opening of the assistant turn the model completes."""
        return self.assistant[0]


TEMPLATES: dict[PromptFormat, PromptTemplate] = {
    # Qwen renders tool responses inside a user turn.
    PromptFormat.CHATML: PromptTemplate(
        format=PromptFormat.CHATML,
        system=("<|im_start|>system\n", "<|im_end|>"),
        user=("<|im_start|>user\n", "<|im_end|>"),
        assistant=("<|im_start|>assistant\n", "<|im_end|>"),
        tool=("<|im_start|>user\n", "<|im_end|>"),
        stop=("<|im_end|>", "<|im_start|>"),
    ),
    PromptFormat.PHI3: PromptTemplate(
        format=PromptFormat.PHI3,
        system=("<|system|>\n", "<|end|>"),
        user=("<|user|>\n", "<|end|>"),
        assistant=("<|assistant|>\n", "<|end|>"),
        stop=("<|end|>", "<|user|>"),
    ),
    PromptFormat.LLAMA3: PromptTemplate(
        format=PromptFormat.LLAMA3,
        bos="<|begin_of_text|>",
        system=("<|start_header_id|>system<|end_header_id|>\n\n", "<|eot_id|>"),
        user=("<|start_header_id|>user<|end_header_id|>\n\n", "<|eot_id|>"),
        assistant=("<|start_header_id|>assistant<|end_header_id|>\n\n", "<|eot_id|>"),
        tool=("<|start_header_id|>ipython<|end_header_id|>\n\n", "<|eot_id|>"),
        separator="",
        stop=("<|eot_id|>",),
    ),
    # Gemma has no system role; system text goes in a leading user turn.
    PromptFormat.GEMMA: PromptTemplate(
        format=PromptFormat.GEMMA,
        bos="<bos>",
        system=("<start_of_turn>user\n", "<end_of_turn>"),
        user=("<start_of_turn>user\n", "<end_of_turn>"),
        assistant=("<start_of_turn>model\n", "<end_of_turn>"),
        stop=("<end_of_turn>",),
    ),
    PromptFormat.ALPACA: PromptTemplate(
        format=PromptFormat.ALPACA,
        system=("", ""),
        user=("### Instruction:\n", ""),
        assistant=("### Response:\n", ""),
        separator="\n\n",
        stop=("### Instruction:",),
        tools_heading="### Tools",
    ),
}


def get_template(prompt_format: PromptFormat) -> PromptTemplate:
    return TEMPLATES[prompt_format]
