"""Builds the analysis prompt sent to the language model."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..models import CommitInfo, GitDiff
from .constants import (
    ALLOWED_BUMPS,
    CATEGORY_NAMES,
    DEFAULT_TEMPLATE,
    SHORT_SHA_LENGTH,
    SYSTEM_PROMPT,
)

_DEFAULT_TEMPLATES_DIR = Path(__file__).with_name("templates")


@dataclass(frozen=True)
class AnalysisPrompt:
    system: str
    prompt: str


class PromptBuilder:
    """Renders a diff into a deterministic prompt.

    Every commit and every aggregated file change is listed; nothing is
    sampled or truncated apart from commit SHAs. A custom ``templates_dir`` is
    searched before the bundled templates, so a project can override
    ``analysis.j2`` without copying the rest.
    """

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        template_name: str = DEFAULT_TEMPLATE,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self.templates_dir = templates_dir
        self.template_name = template_name
        self.system_prompt = system_prompt
        self._env = self._create_env(templates_dir)

    def build(self, diff: GitDiff) -> AnalysisPrompt:
        template = self._env.get_template(self.template_name)
        rendered = template.render(**self._context(diff))
        return AnalysisPrompt(system=self.system_prompt, prompt=rendered.strip() + "\n")

    def _context(self, diff: GitDiff) -> Dict[str, Any]:
        return {
            "commits": [self._commit_view(commit) for commit in diff.commits],
            "file_changes": [
                {
                    "path": change.path,
                    "status": change.status.value,
                    "additions": change.additions,
                    "deletions": change.deletions,
                }
                for change in diff.file_changes
            ],
            "total_additions": diff.total_additions,
            "total_deletions": diff.total_deletions,
            "contributors": len(diff.contributors),
            "categories": CATEGORY_NAMES,
            "bumps": ALLOWED_BUMPS,
        }

    @staticmethod
    def _commit_view(commit: CommitInfo) -> Dict[str, str]:
        if commit.files:
            files: List[str] = [f"{change.path} ({change.status.value})" for change in commit.files]
            summary = "Files: " + ", ".join(files)
        else:
            summary = "No file changes"
        return {
            "message": commit.message,
            "short_sha": commit.sha[:SHORT_SHA_LENGTH],
            "files_summary": summary,
        }

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        search_path = [str(_DEFAULT_TEMPLATES_DIR)]
        if templates_dir is not None:
            search_path.insert(0, str(templates_dir))
        return Environment(
            loader=FileSystemLoader(search_path),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )


__all__ = ["AnalysisPrompt", "PromptBuilder"]
