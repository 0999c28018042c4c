"""Adapter for the Anthropic Messages API."""

from __future__ import annotations

from typing import Any, Dict

from .runner import Completion, LLMRequest, _HTTPRunner, post_json

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicRunner(_HTTPRunner):
    """Calls ``/v1/messages``; the system prompt travels in the top-level ``system`` field."""

    DEFAULT_MODEL = "claude-3-5-haiku-latest"
    DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
    ENV_API_KEY_KEYS = ("BUMPWISE_AI_API_KEY", "ANTHROPIC_API_KEY")

    def _http_transport(self, request: LLMRequest) -> Completion:
        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
            # max_tokens is mandatory for this API.
            "max_tokens": request.max_tokens or 2000,
        }
        if request.system:
            payload["system"] = request.system
        if request.temperature is not None:
            payload["temperature"] = request.temperature

        headers = {
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_VERSION,
        }
        if request.api_key:
            headers["x-api-key"] = request.api_key

        body = post_json(
            f"{request.base_url}/messages",
            payload,
            headers=headers,
            timeout=request.request_timeout,
        )
        return Completion(text=_extract_text(body), tokens_used=_count_tokens(body))


def _extract_text(payload: Dict[str, Any]) -> str:
    blocks = payload.get("content")
    if not isinstance(blocks, list):
        return ""
    parts = [
        block.get("text", "")
        for block in blocks
        if isinstance(block, dict) and block.get("type", "text") == "text"
    ]
    return "".join(part for part in parts if isinstance(part, str))


def _count_tokens(payload: Dict[str, Any]) -> int:
    usage = payload.get("usage")
    if not isinstance(usage, dict):
        return 0
    return int(usage.get("input_tokens", 0) or 0) + int(usage.get("output_tokens", 0) or 0)


__all__ = ["ANTHROPIC_VERSION", "AnthropicRunner"]
