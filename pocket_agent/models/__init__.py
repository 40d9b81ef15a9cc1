"""
Data models for the agent core.
"""

from .config import (
    AgentConfig,
    AppConfig,
    InferenceConfig,
    LangfuseConfig,
    LoggingConfig,
    ModelConfig,
    PrivacyConfig,
    ServerConfig,
)
from .conversation import Conversation, Role, Turn
from .intent import (
    AgentIntent,
    GeneralQuery,
    MediaSource,
    MessageSource,
    PlayMedia,
    QueueMedia,
    SendMessage,
    SetReminder,
    Summarize,
)
from .privacy import PrivacyTier
from .profile import ModelFamily, ModelProfile, PromptFormat
from .tool import ArgumentSpec, ToolCall, ToolDescriptor, ToolHandler, ToolResult

__all__ = [
    # Conversation
    "Conversation",
    "Role",
    "Turn",
    # Tools
    "ArgumentSpec",
    "ToolCall",
    "ToolDescriptor",
    "ToolHandler",
    "ToolResult",
    # Intents
    "AgentIntent",
    "GeneralQuery",
    "MediaSource",
    "MessageSource",
    "PlayMedia",
    "QueueMedia",
    "SendMessage",
    "SetReminder",
    "Summarize",
    # Privacy / model
    "PrivacyTier",
    "ModelFamily",
    "ModelProfile",
    "PromptFormat",
    # Config
    "AgentConfig",
    "AppConfig",
    "InferenceConfig",
    "LangfuseConfig",
    "LoggingConfig",
    "ModelConfig",
    "PrivacyConfig",
    "ServerConfig",
]
