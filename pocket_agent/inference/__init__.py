"""
Inference engine adapters.
"""

from .engine import CallableEngine, InferenceEngine, OpenAICompletionEngine

__all__ = ["CallableEngine", "InferenceEngine", "OpenAICompletionEngine"]
