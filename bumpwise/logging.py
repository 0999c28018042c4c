"""Logging helpers shared by the engine, the CLI and the service."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

_ROOT = "bumpwise"
_CONSOLE_FORMAT = "[bumpwise] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
ENV_LOG_LEVEL = "BUMPWISE_LOG_LEVEL"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``bumpwise.<name>`` (or the root ``bumpwise`` logger)."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Install console (and optional file) handlers on the ``bumpwise`` logger.

    ``verbose`` wins over ``quiet``; ``BUMPWISE_LOG_LEVEL`` wins over both when
    it names a valid level. Calling this twice replaces the previous handlers.
    """
    level = _resolve_level(verbose=verbose, quiet=quiet)
    logger = logging.getLogger(_ROOT)
    # The file sink records DEBUG regardless of the console level.
    logger.setLevel(logging.DEBUG if log_file is not None else level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(logging.DEBUG)
        sink.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(sink)

    return logger


@contextmanager
def log_duration(logger: logging.Logger, stage: str) -> Iterator[dict[str, float]]:
    """Log how long a pipeline stage took; the yielded dict receives ``elapsed_ms``."""
    timing: dict[str, float] = {}
    started = time.perf_counter()
    logger.debug("%s started", stage)
    try:
        yield timing
    finally:
        timing["elapsed_ms"] = (time.perf_counter() - started) * 1000.0
        logger.debug("%s finished in %.1fms", stage, timing["elapsed_ms"])


def _resolve_level(*, verbose: bool, quiet: bool) -> int:
    override = os.getenv(ENV_LOG_LEVEL, "").strip().upper()
    if override:
        candidate = logging.getLevelName(override)
        if isinstance(candidate, int):
            return candidate
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


__all__ = ["ENV_LOG_LEVEL", "configure_logging", "get_logger", "log_duration"]
