"""Adapters around hosted chat-completion providers."""

from __future__ import annotations

import asyncio
import functools
import json
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import ProviderError
from ..logging import get_logger

_AUTO_API_KEY = object()

logger = get_logger("llm")


@dataclass(frozen=True)
class LLMRequest:
    """Represents one completion request for a provider."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: str
    api_key: Optional[str]
    request_timeout: Optional[float]


@dataclass(frozen=True)
class Completion:
    text: str
    tokens_used: int = 0


Transport = Callable[[LLMRequest], Completion]


class CompletionProvider(Protocol):
    model: str
    temperature: Optional[float]

    async def complete(self, prompt: str, *, system: str | None = None) -> Completion:
        """Return the provider's text for ``prompt``."""


class _HTTPRunner:
    """Shared plumbing: env-driven API key, injectable transport, async wrapper."""

    DEFAULT_MODEL = ""
    DEFAULT_BASE_URL = ""
    ENV_API_KEY_KEYS: Sequence[str] = ("BUMPWISE_AI_API_KEY",)

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None = None,
        api_key: str | None | object = _AUTO_API_KEY,
        temperature: Optional[float] = 0.1,
        max_tokens: Optional[int] = 2000,
        request_timeout: Optional[float] = 60.0,
        transport: Transport | None = None,
    ) -> None:
        self.model = model or self.DEFAULT_MODEL
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.api_key = self._resolve_api_key(api_key)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.request_timeout = request_timeout
        self._transport = transport or self._http_transport

    def run(self, prompt: str, *, system: str | None = None) -> Completion:
        """Blocking call to the provider."""
        request = LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )
        completion = self._transport(request)
        if not completion.text or not completion.text.strip():
            raise ProviderError("Provider returned an empty response", retryable=False)
        logger.debug("%s response received (%d tokens)", self.model, completion.tokens_used)
        return completion

    async def complete(self, prompt: str, *, system: str | None = None) -> Completion:
        """Run the blocking HTTP call in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self.run, prompt, system=system))

    def _http_transport(self, request: LLMRequest) -> Completion:  # pragma: no cover - overridden
        raise NotImplementedError

    def _resolve_api_key(self, api_key: str | None | object) -> str | None:
        if api_key is _AUTO_API_KEY:
            return _first_env_value(self.ENV_API_KEY_KEYS)
        return api_key  # type: ignore[return-value]


class OpenAIRunner(_HTTPRunner):
    """OpenAI-compatible ``/chat/completions`` endpoint."""

    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    ENV_API_KEY_KEYS = ("BUMPWISE_AI_API_KEY", "OPENAI_API_KEY")

    def _http_transport(self, request: LLMRequest) -> Completion:
        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": _build_messages(request.system, request.prompt),
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if supports_json_mode(request.model):
            payload["response_format"] = {"type": "json_object"}

        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"

        body = post_json(
            f"{request.base_url}/chat/completions",
            payload,
            headers=headers,
            timeout=request.request_timeout,
        )
        usage = body.get("usage")
        tokens = usage.get("total_tokens", 0) if isinstance(usage, dict) else 0
        return Completion(text=_extract_chat_content(body), tokens_used=int(tokens or 0))


def supports_json_mode(model: str) -> bool:
    """gpt-4o, gpt-4-turbo and chat gpt-3.5-turbo accept ``response_format``."""
    return (
        model.startswith("gpt-4o")
        or "gpt-4-turbo" in model
        or (model.startswith("gpt-3.5-turbo") and "instruct" not in model)
    )


def post_json(
    url: str,
    payload: Mapping[str, Any],
    *,
    headers: Mapping[str, str],
    timeout: Optional[float],
) -> Dict[str, Any]:
    """POST ``payload`` as JSON and decode the JSON reply.

    HTTP failures become :class:`ProviderError` carrying the status so the
    retry policy can classify them; network failures carry no status.
    """
    data = json.dumps(payload).encode("utf-8")
    http_request = Request(url, data=data, headers=dict(headers), method="POST")
    try:
        with urlopen(http_request, timeout=timeout or 60.0) as response:  # type: ignore[arg-type]
            raw = response.read()
    except HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
        message = detail.strip() or str(exc.reason)
        raise ProviderError(
            f"Provider API error ({exc.code}): {message}",
            status=exc.code,
        ) from exc
    except URLError as exc:
        raise ProviderError(f"Failed to reach provider: {exc.reason}") from exc
    except TimeoutError as exc:
        raise ProviderError("Provider request timed out") from exc

    try:
        decoded = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProviderError("Provider returned an invalid JSON envelope") from exc
    if not isinstance(decoded, dict):
        raise ProviderError("Provider returned an unexpected payload")
    return decoded


def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages


def _extract_chat_content(payload: Mapping[str, Any]) -> str:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str):
            return content
    text = first.get("text")
    return text if isinstance(text, str) else ""


def _first_env_value(keys: Sequence[str]) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


__all__ = [
    "Completion",
    "CompletionProvider",
    "LLMRequest",
    "OpenAIRunner",
    "Transport",
    "post_json",
    "supports_json_mode",
]
