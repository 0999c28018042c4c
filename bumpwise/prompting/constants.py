"""Shared constants for AI classification prompts."""

from __future__ import annotations

from ..models import ChangeCategory

SYSTEM_PROMPT = (
    "You are an expert software release manager. Always respond with valid JSON "
    "that matches the requested format exactly."
)

CATEGORY_NAMES: tuple[str, ...] = tuple(category.value for category in ChangeCategory)

ALLOWED_BUMPS: tuple[str, ...] = ("major", "minor", "patch")

SHORT_SHA_LENGTH = 7

DEFAULT_TEMPLATE = "analysis.j2"


__all__ = [
    "ALLOWED_BUMPS",
    "CATEGORY_NAMES",
    "DEFAULT_TEMPLATE",
    "SHORT_SHA_LENGTH",
    "SYSTEM_PROMPT",
]
