"""Tests for YAML configuration loading."""

import pytest

from pocket_agent.config_loader import (
    load_app_config,
    parse_app_config,
    reset_config_cache,
    resolve_env_vars,
)
from pocket_agent.models import ModelFamily, PrivacyTier, PromptFormat


@pytest.fixture(autouse=True)
def clear_cache():
    reset_config_cache()
    yield
    reset_config_cache()


class TestEnvInterpolation:
    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("POCKET_TEST_VAR", raising=False)
        assert resolve_env_vars("${POCKET_TEST_VAR:-fallback}") == "fallback"

    def test_env_value_wins(self, monkeypatch):
        monkeypatch.setenv("POCKET_TEST_VAR", "set")
        assert resolve_env_vars("x-${POCKET_TEST_VAR:-fallback}") == "x-set"

    def test_missing_without_default_is_empty(self, monkeypatch):
        monkeypatch.delenv("POCKET_TEST_VAR", raising=False)
        assert resolve_env_vars("${POCKET_TEST_VAR}") == ""


class TestParseAppConfig:
    """Tests for parse_app_config."""

    def test_empty_mapping_gives_defaults(self):
        config = parse_app_config({})
        assert config.model.family is ModelFamily.QWEN25
        assert config.agent.max_iterations == 5
        assert config.agent.route_unmapped_as_general_query is False
        assert config.privacy.media_ceiling is PrivacyTier.ANONYMIZED

    def test_sections_parsed(self, monkeypatch):
        monkeypatch.setenv("MODEL_FAMILY", "gemma")
        config = parse_app_config({
            "inference": {"base_url": "http://phone:8080/v1", "temperature": "0.1"},
            "model": {"family": "${MODEL_FAMILY:-qwen25}", "context_length": "2048"},
            "agent": {"max_iterations": "3", "concurrent_dispatch": "false"},
            "privacy": {"ceilings": {"general": "cloud"}, "query_tool_tier": "anonymized"},
            "server": {"port": "9000"},
            "logging": {"level": "debug"},
        })
        assert config.inference.base_url == "http://phone:8080/v1"
        assert config.inference.temperature == 0.1
        assert config.model.family is ModelFamily.GEMMA
        assert config.model.context_length == 2048
        assert config.agent.max_iterations == 3
        assert config.agent.concurrent_dispatch is False
        assert config.privacy.general_ceiling is PrivacyTier.CLOUD
        assert config.privacy.messaging_ceiling is PrivacyTier.LOCAL
        assert config.privacy.query_tool_tier is PrivacyTier.ANONYMIZED
        assert config.server.port == 9000
        assert config.log_level == "DEBUG"

    def test_profile_from_model_section(self):
        config = parse_app_config({
            "model": {"family": "phi3", "prompt_format": "chatml", "reserved_output_tokens": 256}
        })
        profile = config.model.to_profile()
        assert profile.prompt_format is PromptFormat.CHATML
        assert profile.context_length == 4096
        assert profile.prompt_budget == 4096 - 256

    def test_unknown_family_rejected(self):
        with pytest.raises(ValueError, match="Unknown model family"):
            parse_app_config({"model": {"family": "gpt9"}})

    def test_unknown_tier_rejected(self):
        with pytest.raises(ValueError, match="Unknown privacy tier"):
            parse_app_config({"privacy": {"ceilings": {"media": "public"}}})

    def test_langfuse_configured(self):
        config = parse_app_config({"langfuse": {"public_key": "pk", "secret_key": "sk"}})
        assert config.langfuse.is_configured


class TestLoadAppConfig:
    """Tests for load_app_config."""

    def test_loads_shipped_config(self):
        config = load_app_config()
        assert config.agent.route_unmapped_as_general_query is True
        assert config.privacy.default_ceiling is PrivacyTier.LOCAL

    def test_cached_until_reload(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("agent:\n  max_iterations: 2\n")
        first = load_app_config(str(path))
        path.write_text("agent:\n  max_iterations: 7\n")
        assert load_app_config(str(path)) is first
        assert load_app_config(str(path), reload=True).agent.max_iterations == 7

    def test_config_path_env(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("agent:\n  assistant_name: Juno\n")
        monkeypatch.setenv("CONFIG_PATH", str(path))
        assert load_app_config().agent.assistant_name == "Juno"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_app_config(str(tmp_path / "nope.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ValueError, match="empty"):
            load_app_config(str(path))
