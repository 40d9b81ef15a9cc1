"""
Langfuse tracing integration.

Provides observability for model calls, tool dispatches and the
per-message conversation lifecycle.
"""

from .client import (
    TracingClient,
    get_tracing_client,
    init_tracing_client,
    shutdown_tracing,
)
from .context import Observation, TracingContext

__all__ = [
    "Observation",
    "TracingClient",
    "TracingContext",
    "get_tracing_client",
    "init_tracing_client",
    "shutdown_tracing",
]
