"""Configuration loading for bumpwise (.bumpwise.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigError
from .llm import PROVIDERS
from .llm.retry import RetryPolicy
from .models import Strategy

CONFIG_FILENAME = ".bumpwise.yml"

ENV_API_KEY = "BUMPWISE_AI_API_KEY"
ENV_MODEL = "BUMPWISE_AI_MODEL"
ENV_BASE_URL = "BUMPWISE_AI_BASE_URL"
PROVIDER_API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


@dataclass
class RetryConfig:
    """Backoff settings for provider calls."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: Optional[float] = None

    def policy(self) -> RetryPolicy:
        max_delay = self.max_delay if self.max_delay is not None else self.base_delay * 8
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=max_delay,
        )


@dataclass
class AIConfig:
    """AI provider settings from the ``ai`` section."""

    enabled: bool = True
    provider: str = "openai"
    model: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    confidence_threshold: float = 0.7
    temperature: float = 0.1
    max_tokens: int = 2000
    request_timeout: float = 60.0
    cost_per_1k_input: float = 0.00015
    cost_per_1k_output: float = 0.0006


@dataclass
class EngineConfig:
    """Everything one engine run needs."""

    main_branch: str = "main"
    feature_branch: Optional[str] = None
    strategy: Strategy = Strategy.CONVENTIONAL
    repo_path: Path = field(default_factory=lambda: Path("."))
    ai: AIConfig = field(default_factory=AIConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    prerelease: bool = False
    prerelease_identifier: str = "alpha"
    tag_prefix: str = "v"
    max_commits: int = 0
    current_version: Optional[str] = None

    @property
    def effective_strategy(self) -> Strategy:
        """``ai.enabled: false`` pins every run to conventional analysis."""
        if self.strategy.uses_ai and not self.ai.enabled:
            return Strategy.CONVENTIONAL
        return self.strategy

    def validate(self) -> "EngineConfig":
        if not self.main_branch or not self.main_branch.strip():
            raise ConfigError("main branch is required")
        if not self.feature_branch or not self.feature_branch.strip():
            raise ConfigError("feature branch is required")
        if not 0.0 <= self.ai.confidence_threshold <= 1.0:
            raise ConfigError("ai confidence threshold must be between 0.0 and 1.0")
        if self.ai.provider not in PROVIDERS:
            choices = ", ".join(sorted(PROVIDERS))
            raise ConfigError(f"ai provider must be one of: {choices}")
        if self.retry.max_attempts < 1:
            raise ConfigError("retry max_attempts must be at least 1")
        if self.retry.base_delay < 0 or (self.retry.max_delay is not None and self.retry.max_delay < 0):
            raise ConfigError("retry delays cannot be negative")
        if self.max_commits < 0:
            raise ConfigError("max_commits cannot be negative")
        if self.effective_strategy.uses_ai and not self.ai.api_key:
            raise ConfigError(
                f"{self.strategy.value} strategy requires an API key for {self.ai.provider}"
            )
        return self


def load_config(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> EngineConfig:
    """Load configuration from disk and apply environment overrides.

    A missing file yields defaults. Validation is left to the caller because
    the feature branch usually arrives from the command line.
    """
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path or Path("."))
    data = _read_config(config_file) if config_file.exists() else {}

    ai_data = _as_dict(data.get("ai"))
    provider = (_as_str(ai_data.get("provider")) or "openai").lower()
    ai = AIConfig(
        enabled=_as_bool(ai_data.get("enabled"), default=True),
        provider=provider,
        model=_as_str(ai_data.get("model")),
        api_key=_as_str(ai_data.get("api_key")),
        base_url=_as_str(ai_data.get("base_url")),
        confidence_threshold=_as_float(ai_data.get("confidence_threshold"), default=0.7),
        temperature=_as_float(ai_data.get("temperature"), default=0.1),
        max_tokens=_as_int(ai_data.get("max_tokens"), default=2000),
        request_timeout=_as_float(ai_data.get("request_timeout"), default=60.0),
        cost_per_1k_input=_as_float(ai_data.get("cost_per_1k_input"), default=0.00015),
        cost_per_1k_output=_as_float(ai_data.get("cost_per_1k_output"), default=0.0006),
    )
    _apply_env_overrides(ai, env)

    retry_data = _as_dict(data.get("retry"))
    max_delay = retry_data.get("max_delay")
    retry = RetryConfig(
        max_attempts=_as_int(retry_data.get("max_attempts"), default=3),
        base_delay=_as_float(retry_data.get("base_delay"), default=1.0),
        max_delay=_as_float(max_delay, default=0.0) if max_delay is not None else None,
    )

    repo_path = _as_str(data.get("repo_path"))
    return EngineConfig(
        main_branch=_as_str(data.get("main_branch")) or "main",
        feature_branch=_as_str(data.get("feature_branch")),
        strategy=parse_strategy(_as_str(data.get("strategy")) or Strategy.CONVENTIONAL.value),
        repo_path=(config_file.parent / repo_path).resolve() if repo_path else config_file.parent,
        ai=ai,
        retry=retry,
        prerelease=_as_bool(data.get("prerelease"), default=False),
        prerelease_identifier=_as_str(data.get("prerelease_identifier")) or "alpha",
        tag_prefix=_as_str(data.get("tag_prefix")) or "v",
        max_commits=_as_int(data.get("max_commits"), default=0),
        current_version=_as_str(data.get("current_version")),
    )


def parse_strategy(value: str) -> Strategy:
    try:
        return Strategy(value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(strategy.value for strategy in Strategy)
        raise ConfigError(f"strategy must be one of: {choices}") from exc


def _apply_env_overrides(ai: AIConfig, env: Mapping[str, str]) -> None:
    api_key = env.get(ENV_API_KEY)
    if api_key:
        ai.api_key = api_key
    elif not ai.api_key:
        provider_key = PROVIDER_API_KEY_ENV.get(ai.provider)
        if provider_key and env.get(provider_key):
            ai.api_key = env[provider_key]
    if env.get(ENV_MODEL):
        ai.model = env[ENV_MODEL]
    if env.get(ENV_BASE_URL):
        ai.base_url = env[ENV_BASE_URL]


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"expected a number, got {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError as exc:
            raise ConfigError(f"expected a number, got {value!r}") from exc
    return default


def _as_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigError(f"expected an integer, got {value!r}") from exc
    return default


def _as_bool(value: Any, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return default


__all__ = [
    "AIConfig",
    "CONFIG_FILENAME",
    "EngineConfig",
    "RetryConfig",
    "load_config",
    "parse_strategy",
]
