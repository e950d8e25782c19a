"""Tests for configuration loading and router construction."""

import pytest
import yaml

from sidekick.config import _ENV_MAP, SidekickConfig, load_config
from sidekick.llm.factory import build_provider, build_router
from sidekick.llm.providers.anthropic import AnthropicProvider
from sidekick.llm.providers.openai_compat import OpenAICompatProvider


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(_ENV_MAP) + ["OPENAI_API_KEY", "ANTHROPIC_API_KEY", "CUSTOM_KEY"]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "sidekick.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "llm": {"name": "Anthropic", "temperature": 0.1, "bogus": 1},
                "chat": {"max_rounds": 4},
                "tasks": {"server_url": "http://tasks.local:3000"},
                "profiles": {"fast": {"llm": {"model": "claude-tiny"}}},
            }
        )
    )
    return path


class TestLoadConfig:
    def test_defaults(self):
        cfg = load_config()
        assert isinstance(cfg, SidekickConfig)
        assert cfg.llm.name == "openai"
        assert cfg.llm.effective_model == "gpt-5-mini"
        assert cfg.llm.effective_api_key_env == "OPENAI_API_KEY"
        assert cfg.chat.max_rounds == 10
        assert cfg.chat.max_context_chars == 4000
        assert cfg.tasks.server_url == "http://localhost:3000"
        assert cfg.plugins.enabled is False

    def test_missing_file_is_ignored(self, tmp_path):
        cfg = load_config(tmp_path / "absent.yaml")
        assert cfg.llm.name == "openai"

    def test_file_values_and_unknown_keys(self, config_file):
        cfg = load_config(config_file)
        assert cfg.llm.name == "anthropic"
        assert cfg.llm.temperature == 0.1
        assert cfg.llm.effective_model == "claude-haiku-4-5-20251001"
        assert cfg.llm.effective_api_base == "https://api.anthropic.com/v1"
        assert cfg.chat.max_rounds == 4
        assert cfg.tasks.server_url == "http://tasks.local:3000"

    def test_profile_overlay(self, config_file):
        cfg = load_config(config_file, profile="fast")
        assert cfg.llm.model == "claude-tiny"
        assert cfg.llm.temperature == 0.1

    def test_env_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "OPENAI")
        monkeypatch.setenv("SIDEKICK_CHAT_MAX_ROUNDS", "7")
        monkeypatch.setenv("SIDEKICK_TASKS_ENABLED", "no")
        monkeypatch.setenv("SIDEKICK_TOOLS_DISABLED", "delete_scheduled_task, echo")
        cfg = load_config(config_file)
        assert cfg.llm.name == "openai"
        assert cfg.chat.max_rounds == 7
        assert cfg.tasks.enabled is False
        assert cfg.tools.disabled == ["delete_scheduled_task", "echo"]

    def test_prefixed_env_wins_over_bare(self, monkeypatch):
        monkeypatch.setenv("LLM_MODEL", "bare")
        monkeypatch.setenv("SIDEKICK_LLM_MODEL", "prefixed")
        assert load_config().llm.model == "prefixed"

    def test_cli_overrides_env(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        cfg = load_config(cli_overrides={"llm.name": "openai", "chat.max_rounds": 2})
        assert cfg.llm.name == "openai"
        assert cfg.chat.max_rounds == 2

    def test_to_dict(self):
        data = load_config().to_dict()
        assert data["llm"]["name"] == "openai"
        assert data["tasks"]["enabled"] is True


class TestBuildRouter:
    def test_missing_key_gives_unconfigured_router(self):
        router = build_router(load_config().llm)
        assert router.is_configured is False

    def test_openai_router(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-1")
        router = build_router(load_config().llm)
        assert router.active_name == "openai"
        assert isinstance(router.active_provider, OpenAICompatProvider)
        assert router.active_provider.model == "gpt-5-mini"

    def test_anthropic_router_with_custom_key_env(self, monkeypatch):
        monkeypatch.setenv("CUSTOM_KEY", "ak-1")
        cfg = load_config(
            cli_overrides={"llm.name": "anthropic", "llm.api_key_env": "CUSTOM_KEY"}
        ).llm
        router = build_router(cfg)
        assert isinstance(router.active_provider, AnthropicProvider)

    def test_unknown_provider_falls_back_to_openai(self, monkeypatch, caplog):
        monkeypatch.setenv("LLM_PROVIDER", "mystery")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-1")
        cfg = load_config().llm

        with caplog.at_level("WARNING", logger="sidekick.llm.factory"):
            router = build_router(cfg)

        assert router.active_name == "openai"
        provider = router.active_provider
        assert isinstance(provider, OpenAICompatProvider)
        assert provider.model == "gpt-5-mini"
        assert "mystery" in caplog.text

    def test_build_provider_passes_settings(self):
        cfg = load_config(
            cli_overrides={"llm.name": "anthropic", "llm.model": "claude-x"}
        ).llm
        provider = build_provider(cfg, "key")
        assert isinstance(provider, AnthropicProvider)
        assert provider.model == "claude-x"
