"""
Inference collaborators.

The agent core only needs ``generate(prompt) -> text``. The prompt is
already fully rendered in the model family's format, so engines use raw
text completion rather than a chat endpoint that would re-apply a
template.
"""

import inspect
import logging
from typing import Awaitable, Callable, Optional, Protocol, Sequence, Union, runtime_checkable

from openai import AsyncOpenAI

from ..models.config import InferenceConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class InferenceEngine(Protocol):
    """Anything that turns a rendered prompt into raw model output."""

    model: str

    async def generate(self, prompt: str) -> str:
        ...


class OpenAICompletionEngine:
    """
    Text completion against an OpenAI-compatible local server
    (llama.cpp server, vLLM, Ollama).
    """

    def __init__(
        self,
        inference: Optional[InferenceConfig] = None,
        stop: Optional[Sequence[str]] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.config = inference or InferenceConfig()
        self.model = self.config.model
        self.stop = list(stop) if stop else None
        self.last_usage: Optional[dict] = None
        self._client = client or AsyncOpenAI(
            base_url=self.config.base_url,
            api_key=self.config.api_key,  # local servers ignore the key
            timeout=self.config.timeout,
            max_retries=0,
        )

    async def generate(self, prompt: str) -> str:
        create_kwargs: dict = {
            "model": self.model,
            "prompt": prompt,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        if self.stop:
            create_kwargs["stop"] = self.stop

        logger.debug("Calling %s (%d prompt chars)", self.model, len(prompt))
        response = await self._client.completions.create(**create_kwargs)
        if response.usage:
            self.last_usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
            }
        if not response.choices:
            return ""
        return response.choices[0].text or ""

    async def close(self) -> None:
        try:
            await self._client.close()
        except Exception as e:
            logger.debug("Error closing OpenAI client: %s", e)


class CallableEngine:
    """Adapts a plain ``prompt -> text`` callable (sync or async)."""

    def __init__(
        self,
        fn: Callable[[str], Union[str, Awaitable[str]]],
        model: str = "callable",
    ):
        self._fn = fn
        self.model = model

    async def generate(self, prompt: str) -> str:
        result = self._fn(prompt)
        if inspect.isawaitable(result):
            result = await result
        return result
