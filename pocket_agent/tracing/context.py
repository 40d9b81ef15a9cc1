"""
Conversation-scoped tracing context.

One ``TracingContext`` covers one submitted user message. Model calls are
recorded as generations and tool dispatches as spans, all children of a
root span for the turn. When tracing is disabled every context manager
yields an inert observation, so call sites never branch on it.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from langfuse.types import TraceContext

from .client import get_tracing_client

logger = logging.getLogger(__name__)


def _langfuse():
    client = get_tracing_client()
    if client is None or not client.enabled:
        return None
    return client.client


@dataclass
class Observation:
    """A started Langfuse span or generation; inert when tracing is off."""

    name: str
    as_type: str = "span"
    attributes: dict = field(default_factory=dict)
    trace_context: Optional[TraceContext] = None
    _manager: Any = field(default=None, repr=False)
    _handle: Any = field(default=None, repr=False)
    _start_time: float = field(default=0.0, repr=False)
    _update: dict = field(default_factory=dict, repr=False)
    _status: str = field(default="success", repr=False)

    def start(self) -> None:
        client = _langfuse()
        if client is None:
            return
        self._start_time = time.time()
        try:
            self._manager = client.start_as_current_observation(
                trace_context=self.trace_context,
                as_type=self.as_type,
                name=self.name,
                **{k: v for k, v in self.attributes.items() if v is not None},
            )
            self._handle = self._manager.__enter__()
        except Exception as e:
            logger.warning("Failed to start %s '%s': %s", self.as_type, self.name, e)
            self._handle = None

    def end(self) -> None:
        if self._handle is None:
            return
        try:
            metadata = {
                "status": self._status,
                "duration_ms": round((time.time() - self._start_time) * 1000, 2),
            }
            self._handle.update(metadata=metadata, **self._update)
            self._manager.__exit__(None, None, None)
        except Exception as e:
            logger.warning("Failed to end %s '%s': %s", self.as_type, self.name, e)

    @property
    def observation_id(self) -> Optional[str]:
        return getattr(self._handle, "id", None)

    def set_output(self, output: Any) -> None:
        self._update["output"] = output

    def set_status(self, status: str) -> None:
        self._status = status

    def set_usage(
        self,
        prompt_tokens: Optional[int] = None,
        completion_tokens: Optional[int] = None,
    ) -> None:
        usage = {}
        if prompt_tokens is not None:
            usage["input"] = prompt_tokens
        if completion_tokens is not None:
            usage["output"] = completion_tokens
        if usage:
            self._update["usage_details"] = usage


@dataclass
class TracingContext:
    """Tracing scope for one submitted user message."""

    conversation_id: str
    user_id: Optional[str] = None
    _root: Optional[Observation] = field(default=None, repr=False)

    @property
    def enabled(self) -> bool:
        return _langfuse() is not None

    def start_trace(self, name: str = "conversation_turn", user_text: Optional[str] = None) -> None:
        if not self.enabled:
            return
        self._root = Observation(
            name=name,
            attributes={
                "input": {"message": user_text} if user_text else None,
                "metadata": {"conversation_id": self.conversation_id},
            },
        )
        self._root.start()
        if self._root._handle is not None:
            try:
                self._root._handle.update_trace(
                    user_id=self.user_id, session_id=self.conversation_id
                )
            except Exception as e:
                logger.warning("Failed to set trace attributes: %s", e)

    def end_trace(self, output: Optional[str] = None, status: str = "success") -> None:
        if self._root is None:
            return
        if output is not None:
            self._root.set_output(output)
        self._root.set_status(status)
        self._root.end()
        self._root = None

    def _child_context(self) -> Optional[TraceContext]:
        if self._root is None or self._root._handle is None:
            return None
        trace_id = getattr(self._root._handle, "trace_id", None)
        span_id = self._root.observation_id
        if not trace_id or not span_id:
            return None
        return TraceContext(trace_id=trace_id, parent_span_id=span_id)

    @contextmanager
    def _observe(self, name: str, as_type: str, **attributes: Any) -> Iterator[Observation]:
        observation = Observation(
            name=name,
            as_type=as_type,
            attributes=attributes,
            trace_context=self._child_context(),
        )
        observation.start()
        try:
            yield observation
        except BaseException:
            observation.set_status("error")
            raise
        finally:
            observation.end()

    def span(
        self,
        name: str,
        input: Optional[dict] = None,
        metadata: Optional[dict] = None,
    ):
        """Context manager recording a span (tool dispatch)."""
        return self._observe(name, "span", input=input, metadata=metadata)

    def generation(
        self,
        name: str,
        model: str,
        input: Optional[Any] = None,
        model_parameters: Optional[dict] = None,
        metadata: Optional[dict] = None,
    ):
        """Context manager recording a generation (model call)."""
        return self._observe(
            name,
            "generation",
            model=model,
            input=input,
            model_parameters=model_parameters,
            metadata=metadata,
        )
