"""
Conversation orchestration: tool-call protocol, loop state machine and
single-flight sessions.
"""

from . import protocol
from .loop import ConversationLoop, LoopOutcome, LoopState, LoopStep
from .session import ConversationSession

__all__ = [
    "ConversationLoop",
    "ConversationSession",
    "LoopOutcome",
    "LoopState",
    "LoopStep",
    "protocol",
]
