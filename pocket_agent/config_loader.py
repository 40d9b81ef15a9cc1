"""
Configuration loader for Pocket Agent.

Loads configuration from a YAML file with support for
environment variable interpolation.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from .models import (
    AgentConfig,
    AppConfig,
    InferenceConfig,
    LangfuseConfig,
    LoggingConfig,
    ModelConfig,
    ModelFamily,
    PrivacyConfig,
    PrivacyTier,
    PromptFormat,
    ServerConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"

# Regex for environment variable interpolation: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

# Singleton cache for app config
_app_config: Optional[AppConfig] = None


def resolve_env_vars(value: str) -> str:
    """
    Resolve environment variable references in a string.

    Supports ${VAR} and ${VAR:-default} syntax.
    """

    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _substitute_env_vars_recursive(data: Any) -> Any:
    """Recursively substitute environment variables in a data structure."""
    if isinstance(data, dict):
        return {k: _substitute_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    return data


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _parse_tier(value: Any, default: PrivacyTier) -> PrivacyTier:
    if value is None or value == "":
        return default
    return PrivacyTier.parse(value)


def _parse_inference_config(data: dict) -> InferenceConfig:
    defaults = InferenceConfig()
    return InferenceConfig(
        base_url=data.get("base_url", defaults.base_url),
        model=data.get("model", defaults.model),
        api_key=data.get("api_key") or defaults.api_key,
        temperature=float(data.get("temperature", defaults.temperature)),
        max_tokens=int(data.get("max_tokens", defaults.max_tokens)),
        timeout=float(data.get("timeout", defaults.timeout)),
    )


def _parse_model_config(data: dict) -> ModelConfig:
    family_value = str(data.get("family", ModelFamily.QWEN25.value)).lower()
    try:
        family = ModelFamily(family_value)
    except ValueError:
        raise ValueError(f"Unknown model family: {family_value}") from None

    prompt_format = None
    if data.get("prompt_format"):
        format_value = str(data["prompt_format"]).lower()
        try:
            prompt_format = PromptFormat(format_value)
        except ValueError:
            raise ValueError(f"Unknown prompt format: {format_value}") from None

    return ModelConfig(
        family=family,
        prompt_format=prompt_format,
        context_length=_optional_int(data.get("context_length")),
        reserved_output_tokens=int(data.get("reserved_output_tokens", 512)),
    )


def _parse_agent_config(data: dict) -> AgentConfig:
    defaults = AgentConfig()
    return AgentConfig(
        max_iterations=int(data.get("max_iterations", defaults.max_iterations)),
        concurrent_dispatch=_as_bool(data.get("concurrent_dispatch"), defaults.concurrent_dispatch),
        tool_timeout=float(data.get("tool_timeout", defaults.tool_timeout)),
        route_unmapped_as_general_query=_as_bool(
            data.get("route_unmapped_as_general_query"),
            defaults.route_unmapped_as_general_query,
        ),
        assistant_name=data.get("assistant_name", defaults.assistant_name),
    )


def _parse_privacy_config(data: dict) -> PrivacyConfig:
    defaults = PrivacyConfig()
    ceilings = data.get("ceilings", {}) or {}
    return PrivacyConfig(
        default_ceiling=_parse_tier(ceilings.get("default"), defaults.default_ceiling),
        messaging_ceiling=_parse_tier(ceilings.get("messaging"), defaults.messaging_ceiling),
        media_ceiling=_parse_tier(ceilings.get("media"), defaults.media_ceiling),
        general_ceiling=_parse_tier(ceilings.get("general"), defaults.general_ceiling),
        classify_requests=_as_bool(data.get("classify_requests"), defaults.classify_requests),
        query_tool_tier=_parse_tier(data.get("query_tool_tier"), defaults.query_tool_tier),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    return ServerConfig(
        host=data.get("host", "0.0.0.0"),
        port=int(data.get("port", 8000)),
        workers=int(data.get("workers", 1)),
        reload=_as_bool(data.get("reload"), False),
    )


def _parse_logging_config(data: dict) -> LoggingConfig:
    return LoggingConfig(level=str(data.get("level", "INFO")).upper())


def _parse_langfuse_config(data: dict) -> LangfuseConfig:
    return LangfuseConfig(
        public_key=data.get("public_key", ""),
        secret_key=data.get("secret_key", ""),
        host=data.get("host", ""),
        debug=_as_bool(data.get("debug"), False),
    )


def parse_app_config(raw_config: dict) -> AppConfig:
    """Build an AppConfig from an already-loaded mapping."""
    raw_config = _substitute_env_vars_recursive(raw_config)
    return AppConfig(
        version=str(raw_config.get("version", "1.0")),
        inference=_parse_inference_config(raw_config.get("inference", {}) or {}),
        model=_parse_model_config(raw_config.get("model", {}) or {}),
        agent=_parse_agent_config(raw_config.get("agent", {}) or {}),
        privacy=_parse_privacy_config(raw_config.get("privacy", {}) or {}),
        server=_parse_server_config(raw_config.get("server", {}) or {}),
        logging=_parse_logging_config(raw_config.get("logging", {}) or {}),
        langfuse=_parse_langfuse_config(raw_config.get("langfuse", {}) or {}),
    )


def load_app_config(path: Optional[str] = None, reload: bool = False) -> AppConfig:
    """
    Load unified application configuration from a YAML file.

    Subsequent calls return the cached config unless ``reload=True``.

    Args:
        path: Path to the YAML configuration file. If None, uses
              CONFIG_PATH env var or the default path (config/config.yaml).
        reload: If True, force reload from disk instead of using cache.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config is empty or invalid
    """
    global _app_config

    if _app_config is not None and not reload:
        return _app_config

    if path is None:
        path = os.environ.get("CONFIG_PATH", str(DEFAULT_CONFIG_PATH))

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found at {config_path}. "
            f"Set CONFIG_PATH or create config/config.yaml."
        )

    logger.info("Loading configuration from %s", config_path)
    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raise ValueError(f"Configuration file {config_path} is empty")

    _app_config = parse_app_config(raw_config)
    logger.debug(
        "Configuration loaded: model=%s family=%s",
        _app_config.inference.model,
        _app_config.model.family.value,
    )
    return _app_config


def reset_config_cache() -> None:
    """Reset the configuration cache, forcing a reload on next access."""
    global _app_config
    _app_config = None
    logger.debug("Configuration cache reset")
