from __future__ import annotations

import logging

import pytest

_ENV_KEYS = (
    "BUMPWISE_AI_API_KEY",
    "BUMPWISE_AI_MODEL",
    "BUMPWISE_AI_BASE_URL",
    "BUMPWISE_LOG_LEVEL",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's API keys and log level out of every test."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_bumpwise_logger():
    """Undo configure_logging so caplog keeps seeing bumpwise records."""
    yield
    logger = logging.getLogger("bumpwise")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True

