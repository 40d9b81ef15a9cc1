"""
Configuration models for the agent.

Defines dataclasses for the unified YAML configuration file.
"""

from dataclasses import dataclass, field
from typing import Optional

from .privacy import PrivacyTier
from .profile import ModelFamily, ModelProfile, PromptFormat


@dataclass
class InferenceConfig:
    """Configuration for the local model server (OpenAI-compatible)."""
    base_url: str = "http://localhost:8080/v1"
    model: str = "qwen2.5-3b-instruct"
    api_key: str = "not-needed"
    temperature: float = 0.4
    max_tokens: int = 512
    timeout: float = 120.0


@dataclass
class ModelConfig:
    """Model family and prompt-format overrides."""
    family: ModelFamily = ModelFamily.QWEN25
    prompt_format: Optional[PromptFormat] = None
    context_length: Optional[int] = None
    reserved_output_tokens: int = 512

    def to_profile(self) -> ModelProfile:
        return ModelProfile.for_family(
            self.family,
            prompt_format=self.prompt_format,
            context_length=self.context_length,
            reserved_output_tokens=self.reserved_output_tokens,
        )


@dataclass
class AgentConfig:
    """Conversation loop settings."""
    max_iterations: int = 5
    concurrent_dispatch: bool = True
    tool_timeout: float = 30.0
    route_unmapped_as_general_query: bool = False
    assistant_name: str = "Pocket"


@dataclass
class PrivacyConfig:
    """Per-category privacy ceilings and request classification."""
    default_ceiling: PrivacyTier = PrivacyTier.LOCAL
    messaging_ceiling: PrivacyTier = PrivacyTier.LOCAL
    media_ceiling: PrivacyTier = PrivacyTier.ANONYMIZED
    general_ceiling: PrivacyTier = PrivacyTier.ANONYMIZED
    classify_requests: bool = True
    query_tool_tier: PrivacyTier = PrivacyTier.LOCAL


@dataclass
class ServerConfig:
    """Configuration for the FastAPI server."""
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1
    reload: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse observability.

    Tracing auto-enables when both public_key and secret_key are provided.
    """
    public_key: str = ""
    secret_key: str = ""
    host: str = ""
    debug: bool = False

    @property
    def is_configured(self) -> bool:
        """Check if Langfuse is configured (both keys present)."""
        return bool(self.public_key and self.secret_key)


@dataclass
class AppConfig:
    """
    Unified application configuration container.

    Holds all configuration sections loaded from config/config.yaml.
    """
    version: str = "1.0"
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    privacy: PrivacyConfig = field(default_factory=PrivacyConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)

    @property
    def log_level(self) -> str:
        return self.logging.level
