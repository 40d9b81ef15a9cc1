"""
Pytest configuration and fixtures for pocket agent tests.
"""

import json
from datetime import datetime

import pytest

from pocket_agent.inference import CallableEngine
from pocket_agent.models import AppConfig
from pocket_agent.runtime import build_runtime
from pocket_agent.tools import ToolRegistry

FIXED_NOW = datetime(2026, 3, 14, 9, 30)


def make_tool_call(name: str, arguments: dict) -> str:
    """Build a <tool_call> block as a model would emit it."""
    return "<tool_call>\n" + json.dumps({"name": name, "arguments": arguments}) + "\n</tool_call>"


class ScriptedModel:
    """Returns canned outputs in order and records every prompt it saw."""

    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.outputs:
            raise RuntimeError("ScriptedModel ran out of outputs")
        output = self.outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return output


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def registry():
    return ToolRegistry()


@pytest.fixture
def make_runtime(fixed_clock):
    """Factory for a fully wired runtime driven by a scripted model."""

    def _make(outputs, config=None):
        model = ScriptedModel(outputs)
        runtime = build_runtime(
            config or AppConfig(),
            engine=CallableEngine(model, model="scripted"),
            clock=fixed_clock,
        )
        return runtime, model

    return _make


@pytest.fixture(autouse=True)
def reset_tracing():
    """Keep tracing disabled between tests."""
    from pocket_agent.tracing import client as client_module

    client_module._tracing_client = None
    yield
    client_module._tracing_client = None
