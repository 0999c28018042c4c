"""Language-model provider adapters and retry policy."""

from __future__ import annotations

from typing import Optional

from ..errors import ConfigError
from .anthropic import AnthropicRunner
from .retry import RetryPolicy, is_retryable
from .runner import Completion, CompletionProvider, LLMRequest, OpenAIRunner

PROVIDERS = {
    "openai": OpenAIRunner,
    "anthropic": AnthropicRunner,
}


def create_provider(
    provider: str,
    *,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    request_timeout: Optional[float] = None,
) -> CompletionProvider:
    """Build the runner registered under ``provider``; unset options keep runner defaults."""
    try:
        runner_cls = PROVIDERS[provider.lower()]
    except KeyError as exc:
        choices = ", ".join(sorted(PROVIDERS))
        raise ConfigError(f"ai provider must be one of: {choices}") from exc

    kwargs: dict[str, object] = {}
    if model:
        kwargs["model"] = model
    if api_key is not None:
        kwargs["api_key"] = api_key
    if base_url:
        kwargs["base_url"] = base_url
    if temperature is not None:
        kwargs["temperature"] = temperature
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    if request_timeout is not None:
        kwargs["request_timeout"] = request_timeout
    return runner_cls(**kwargs)  # type: ignore[arg-type]


__all__ = [
    "AnthropicRunner",
    "Completion",
    "CompletionProvider",
    "LLMRequest",
    "OpenAIRunner",
    "PROVIDERS",
    "RetryPolicy",
    "create_provider",
    "is_retryable",
]
