"""Prompt construction for AI classification."""

from .builder import AnalysisPrompt, PromptBuilder
from .constants import ALLOWED_BUMPS, CATEGORY_NAMES, SYSTEM_PROMPT

__all__ = ["ALLOWED_BUMPS", "AnalysisPrompt", "CATEGORY_NAMES", "PromptBuilder", "SYSTEM_PROMPT"]
