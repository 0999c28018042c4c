"""AI-assisted classification of a diff.

The classifier renders the diff into a prompt, asks a completion provider for
a JSON verdict, validates that verdict with pydantic and returns an
:class:`AIClassification`. Provider calls go through a :class:`RetryPolicy`;
everything it raises to callers is an :class:`AIAnalysisError`.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import AIAnalysisError, ProviderError, RetryExhaustedError
from ..llm.retry import RetryPolicy, Sleep
from ..llm.runner import Completion, CompletionProvider
from ..logging import get_logger
from ..models import (
    AnalysisMetadata,
    BreakingChange,
    Bump,
    ChangeCategory,
    ChangelogEntry,
    GitDiff,
)
from ..prompting import CATEGORY_NAMES, PromptBuilder

logger = get_logger("classifiers.ai")

DEFAULT_COST_PER_1K_INPUT = 0.00015
DEFAULT_COST_PER_1K_OUTPUT = 0.0006
INPUT_TOKEN_SHARE = 0.7

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ResponseChange(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True, str_strip_whitespace=True)

    category: str = Field(min_length=1)
    description: str = Field(min_length=1)
    commit_sha: str = Field(default="", alias="commitSha")
    author: str = "Unknown"
    is_breaking: bool = Field(default=False, alias="isBreaking")
    scope: Optional[str] = None
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in CATEGORY_NAMES:
            raise ValueError(f"unknown change category: {value}")
        return normalized

    @field_validator("scope")
    @classmethod
    def _blank_scope(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class ResponseBreakingChange(BaseModel):
    model_config = ConfigDict(strict=True, str_strip_whitespace=True)

    description: str = Field(min_length=1)
    migration: str = ""
    affected: List[str] = Field(default_factory=list)


class AIResponse(BaseModel):
    """Shape the provider must answer with."""

    model_config = ConfigDict(strict=True, populate_by_name=True)

    version_bump: Literal["major", "minor", "patch"] = Field(alias="versionBump")
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: List[str]
    changes: List[ResponseChange]
    breaking_changes: List[ResponseBreakingChange] = Field(default_factory=list, alias="breakingChanges")


@dataclass(frozen=True)
class AIClassification:
    bump: Bump
    confidence: float
    reasoning: Tuple[str, ...]
    entries: Tuple[ChangelogEntry, ...]
    breaking_changes: Tuple[BreakingChange, ...]
    model: str
    prompt: str
    raw_response: str
    tokens_used: int
    estimated_cost: float
    temperature: Optional[float]
    execution_time_ms: float

    @property
    def breaking(self) -> bool:
        return any(entry.is_breaking for entry in self.entries)

    def metadata_for(self, diff: GitDiff) -> AnalysisMetadata:
        return AnalysisMetadata.for_diff(
            diff,
            execution_time_ms=self.execution_time_ms,
            model=self.model,
            tokens_used=self.tokens_used,
            estimated_cost=self.estimated_cost,
        )


class AIClassifier:
    """Classifies a diff with a completion provider.

    Holds configuration only; each :meth:`classify` call is independent.
    """

    def __init__(
        self,
        provider: CompletionProvider,
        *,
        retry_policy: RetryPolicy | None = None,
        prompt_builder: PromptBuilder | None = None,
        cost_per_1k_input: float = DEFAULT_COST_PER_1K_INPUT,
        cost_per_1k_output: float = DEFAULT_COST_PER_1K_OUTPUT,
        sleep: Sleep | None = None,
    ) -> None:
        self.provider = provider
        self.retry_policy = retry_policy or RetryPolicy()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.cost_per_1k_input = cost_per_1k_input
        self.cost_per_1k_output = cost_per_1k_output
        self._sleep = sleep

    async def classify(self, diff: GitDiff) -> AIClassification:
        if not diff.commits:
            raise AIAnalysisError("No commits found to analyze", retryable=False)

        started = time.perf_counter()
        prompt = self.prompt_builder.build(diff)
        logger.info("Starting AI analysis of %d commits with %s", len(diff.commits), self.provider.model)

        async def attempt() -> Tuple[Completion, AIResponse]:
            completion = await self.provider.complete(prompt.prompt, system=prompt.system)
            return completion, parse_response(completion.text, tokens_used=completion.tokens_used)

        try:
            completion, response = await self.retry_policy.run(attempt, sleep=self._sleep)
        except RetryExhaustedError as exc:
            raise AIAnalysisError(
                f"AI analysis failed: {exc}", cause=exc.last_error, retryable=False
            ) from exc.last_error
        except ProviderError as exc:
            raise AIAnalysisError(f"AI analysis failed: {exc}", cause=exc, retryable=False) from exc

        confidence = adjust_confidence(
            response.confidence,
            reasoning=response.reasoning,
            change_count=len(response.changes),
            commit_count=len(diff.commits),
        )
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug("AI analysis used %d tokens", completion.tokens_used)
        logger.info(
            "AI analysis completed: %s bump with %.2f confidence", response.version_bump, confidence
        )
        return AIClassification(
            bump=Bump(response.version_bump),
            confidence=confidence,
            reasoning=tuple(response.reasoning),
            entries=tuple(_to_entry(change) for change in response.changes),
            breaking_changes=tuple(
                BreakingChange(
                    description=item.description,
                    migration=item.migration,
                    affected=tuple(item.affected),
                )
                for item in response.breaking_changes
            ),
            model=self.provider.model,
            prompt=prompt.prompt,
            raw_response=completion.text,
            tokens_used=completion.tokens_used,
            estimated_cost=self.estimate_cost(completion.tokens_used),
            temperature=self.provider.temperature,
            execution_time_ms=elapsed_ms,
        )

    def estimate_cost(self, tokens_used: int) -> float:
        """Rough USD cost assuming 70% of tokens are input."""
        input_tokens = tokens_used * INPUT_TOKEN_SHARE
        output_tokens = tokens_used - input_tokens
        return (input_tokens / 1000) * self.cost_per_1k_input + (output_tokens / 1000) * self.cost_per_1k_output


def parse_response(text: str, *, tokens_used: int = 0) -> AIResponse:
    """Validate the provider text; any problem is a non-retryable :class:`AIAnalysisError`."""
    payload = text.strip()
    fenced = _FENCE_PATTERN.match(payload)
    if fenced:
        payload = fenced.group(1)
    try:
        return AIResponse.model_validate_json(payload)
    except ValidationError as exc:
        raise AIAnalysisError(
            f"Invalid AI response: {_summarize(exc)}",
            cause=exc,
            retryable=False,
            tokens_used=tokens_used,
        ) from exc


def adjust_confidence(
    confidence: float,
    *,
    reasoning: List[str],
    change_count: int,
    commit_count: int,
) -> float:
    """Discount the provider's confidence for thin or lopsided answers."""
    if not reasoning:
        confidence *= 0.8
    if commit_count > 0 and change_count == 0:
        confidence *= 0.7
    ratio = change_count / commit_count if commit_count > 0 else 0.0
    if ratio < 0.5 or ratio > 2.0:
        confidence *= 0.9
    return max(0.0, min(1.0, confidence))


def _to_entry(change: ResponseChange) -> ChangelogEntry:
    return ChangelogEntry(
        category=ChangeCategory(change.category),
        description=change.description,
        commit_sha=change.commit_sha,
        author=change.author,
        is_breaking=change.is_breaking,
        scope=change.scope,
        confidence=change.confidence,
    )


def _summarize(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "response"
    return f"{location}: {first.get('msg', 'invalid value')}"


__all__ = [
    "AIClassification",
    "AIClassifier",
    "AIResponse",
    "adjust_confidence",
    "parse_response",
]
