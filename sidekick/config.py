"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < env vars < CLI flags
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any

import yaml


DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-5-mini",
    "anthropic": "claude-haiku-4-5-20251001",
}

DEFAULT_API_KEY_ENVS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

DEFAULT_API_BASES: dict[str, str] = {
    "openai": "https://api.openai.com/v1",
    "anthropic": "https://api.anthropic.com/v1",
}


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMProviderConfig:
    name: str = "openai"
    # Empty strings mean "the provider's default".
    model: str = ""
    api_base: str = ""
    api_key_env: str = ""
    temperature: float = 0.7
    max_output_tokens: int = 4_096
    timeout_seconds: int = 120
    max_retries: int = 3

    @property
    def effective_model(self) -> str:
        return self.model or DEFAULT_MODELS.get(self.name, DEFAULT_MODELS["openai"])

    @property
    def effective_api_key_env(self) -> str:
        return self.api_key_env or DEFAULT_API_KEY_ENVS.get(self.name, "OPENAI_API_KEY")

    @property
    def effective_api_base(self) -> str:
        return self.api_base or DEFAULT_API_BASES.get(self.name, DEFAULT_API_BASES["openai"])

    def api_key(self) -> str | None:
        return os.environ.get(self.effective_api_key_env) or None


@dataclass
class ChatConfig:
    max_rounds: int = 10
    max_context_chars: int = 4_000
    tool_timeout_seconds: int = 60


@dataclass
class TasksConfig:
    enabled: bool = True
    server_url: str = "http://localhost:3000"
    user_id: str = ""
    timeout_seconds: int = 15


@dataclass
class ToolsConfig:
    disabled: list[str] = field(default_factory=list)


@dataclass
class PluginsConfig:
    enabled: bool = False
    allow_distributions: list[str] = field(default_factory=list)
    allow_tools: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class SidekickConfig:
    llm: LLMProviderConfig = field(default_factory=LLMProviderConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    tasks: TasksConfig = field(default_factory=TasksConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    plugins: PluginsConfig = field(default_factory=PluginsConfig)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay into base, returning a new dict."""
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    if target_type is list:
        return [s.strip() for s in value.split(",") if s.strip()]
    return value


def _build_section(cls: type, raw: dict) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

# Later entries win, so the SIDEKICK_* names override the bare ones.
_ENV_MAP: dict[str, tuple[str, type]] = {
    "LLM_PROVIDER":                   ("llm.name", str),
    "LLM_MODEL":                      ("llm.model", str),
    "SYNC_SERVER_URL":                ("tasks.server_url", str),
    "SIDEKICK_LLM_NAME":              ("llm.name", str),
    "SIDEKICK_LLM_MODEL":             ("llm.model", str),
    "SIDEKICK_LLM_API_BASE":          ("llm.api_base", str),
    "SIDEKICK_LLM_API_KEY_ENV":       ("llm.api_key_env", str),
    "SIDEKICK_LLM_TEMPERATURE":       ("llm.temperature", float),
    "SIDEKICK_LLM_MAX_OUTPUT":        ("llm.max_output_tokens", int),
    "SIDEKICK_LLM_TIMEOUT":           ("llm.timeout_seconds", int),
    "SIDEKICK_LLM_MAX_RETRIES":       ("llm.max_retries", int),
    "SIDEKICK_CHAT_MAX_ROUNDS":       ("chat.max_rounds", int),
    "SIDEKICK_CHAT_MAX_CONTEXT":      ("chat.max_context_chars", int),
    "SIDEKICK_CHAT_TOOL_TIMEOUT":     ("chat.tool_timeout_seconds", int),
    "SIDEKICK_TASKS_ENABLED":         ("tasks.enabled", bool),
    "SIDEKICK_TASKS_SERVER_URL":      ("tasks.server_url", str),
    "SIDEKICK_TASKS_USER_ID":         ("tasks.user_id", str),
    "SIDEKICK_TOOLS_DISABLED":        ("tools.disabled", list),
    "SIDEKICK_PLUGINS_ENABLED":       ("plugins.enabled", bool),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> SidekickConfig:
    """
    Build a SidekickConfig by layering sources in precedence order:

        defaults  <  config file  <  env vars  <  CLI flags

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    profile : name of a profile to apply from the config file
    cli_overrides : dict of dotpath -> value CLI flag overrides
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            raw = _deep_merge(raw, file_data)

    # --- 2. Profile overlay ---
    if profile and "profiles" in raw:
        profile_data = raw.get("profiles", {}).get(profile, {})
        if profile_data:
            raw = _deep_merge(raw, profile_data)

    # --- Build sections from raw ---
    cfg = SidekickConfig(
        llm=_build_section(LLMProviderConfig, raw.get("llm", {})),
        chat=_build_section(ChatConfig, raw.get("chat", {})),
        tasks=_build_section(TasksConfig, raw.get("tasks", {})),
        tools=_build_section(ToolsConfig, raw.get("tools", {})),
        plugins=_build_section(PluginsConfig, raw.get("plugins", {})),
        profiles=raw.get("profiles", {}),
    )

    # --- 3. Env var overrides ---
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None:
            _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    cfg.llm.name = cfg.llm.name.lower()

    # --- 4. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            _apply_dotpath(cfg, dotpath, value)

    return cfg
