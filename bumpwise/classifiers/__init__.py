"""Commit classifiers: deterministic conventional commits and AI-assisted."""

from .ai import AIClassification, AIClassifier, adjust_confidence, parse_response
from .conventional import ConventionalClassifier, ConventionalCommit

__all__ = [
    "AIClassification",
    "AIClassifier",
    "ConventionalClassifier",
    "ConventionalCommit",
    "adjust_confidence",
    "parse_response",
]
