"""
Model families and the prompt conventions they expect.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PromptFormat(str, Enum):
    """Delimiter convention a model family was trained on."""

    CHATML = "chatml"  # Qwen2.5, Yi
    PHI3 = "phi3"
    LLAMA3 = "llama3"
    GEMMA = "gemma"
    ALPACA = "alpaca"  # ### Instruction / ### Response


class ModelFamily(str, Enum):
    """Model family identifier with its default format and context length."""

    QWEN25 = "qwen25"
    PHI3 = "phi3"
    LLAMA3 = "llama3"
    GEMMA = "gemma"
    GENERIC = "generic"

    @property
    def display_name(self) -> str:
        return _FAMILY_DEFAULTS[self][0]

    @property
    def default_prompt_format(self) -> PromptFormat:
        return _FAMILY_DEFAULTS[self][1]

    @property
    def default_context_length(self) -> int:
        return _FAMILY_DEFAULTS[self][2]


_FAMILY_DEFAULTS: dict[ModelFamily, tuple[str, PromptFormat, int]] = {
    ModelFamily.QWEN25: ("Qwen 2.5", PromptFormat.CHATML, 32768),
    ModelFamily.PHI3: ("Phi-3", PromptFormat.PHI3, 4096),
    ModelFamily.LLAMA3: ("Llama 3", PromptFormat.LLAMA3, 8192),
    ModelFamily.GEMMA: ("Gemma", PromptFormat.GEMMA, 8192),
    ModelFamily.GENERIC: ("Generic", PromptFormat.ALPACA, 4096),
}


@dataclass(frozen=True)
class ModelProfile:
    """
    Prompting parameters for the loaded model.

    ``context_length`` is in estimated tokens; ``reserved_output_tokens``
    is kept free for the model's reply.
    """

    family: ModelFamily
    prompt_format: PromptFormat
    context_length: int
    reserved_output_tokens: int = 0

    def __post_init__(self):
        if self.context_length <= 0:
            raise ValueError("context_length must be positive")
        if not 0 <= self.reserved_output_tokens < self.context_length:
            raise ValueError("reserved_output_tokens must be within the context length")

    @classmethod
    def for_family(
        cls,
        family: ModelFamily,
        prompt_format: Optional[PromptFormat] = None,
        context_length: Optional[int] = None,
        reserved_output_tokens: int = 0,
    ) -> "ModelProfile":
        return cls(
            family=family,
            prompt_format=prompt_format or family.default_prompt_format,
            context_length=context_length or family.default_context_length,
            reserved_output_tokens=reserved_output_tokens,
        )

    @property
    def prompt_budget(self) -> int:
        """Tokens available for the rendered prompt."""
        return self.context_length - self.reserved_output_tokens
