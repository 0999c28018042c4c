"""Pipeline orchestration: diff collection, classification and arbitration."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, assert_never

from .classifiers import AIClassification, AIClassifier, ConventionalClassifier
from .config import EngineConfig
from .errors import ConfigError, EngineError, GitOperationError, VersionError
from .git import DiffCollector
from .llm import create_provider
from .logging import get_logger, log_duration
from .models import AnalysisMetadata, AnalysisResult, Bump, GitDiff, Strategy
from .versioning import SemanticVersion, git_tag, increment, increment_prerelease, parse_version

CONVENTIONAL_REASON = "Using conventional commits analysis"
AI_FAILED_REASON = "AI analysis failed, using conventional fallback"
LOW_CONFIDENCE_REASON = "Confidence below threshold, using conventional analysis"

GIT_ANALYSIS_ERROR = "GIT_ANALYSIS_ERROR"
VERSION_ANALYSIS_ERROR = "VERSION_ANALYSIS_ERROR"
AI_ANALYSIS_ERROR = "AI_ANALYSIS_ERROR"

CollectorFactory = Callable[[EngineConfig], DiffCollector]
AIClassifierFactory = Callable[[EngineConfig], AIClassifier]

logger = get_logger("orchestrator")


class StrategyArbiter:
    """Turns a diff into exactly one :class:`AnalysisResult` for a strategy."""

    def __init__(
        self,
        conventional: ConventionalClassifier,
        ai: AIClassifier | None = None,
        *,
        threshold: float = 0.7,
    ) -> None:
        self.conventional = conventional
        self.ai = ai
        self.threshold = threshold

    async def decide(self, strategy: Strategy, diff: GitDiff) -> AnalysisResult:
        match strategy:
            case Strategy.CONVENTIONAL:
                return self._conventional_result(diff, reasoning=(CONVENTIONAL_REASON,), confidence=None)
            case Strategy.AI:
                classification = await self._require_ai().classify(diff)
                return self._ai_result(diff, classification)
            case Strategy.HYBRID:
                return await self._hybrid(diff)
            case _:
                assert_never(strategy)

    async def _hybrid(self, diff: GitDiff) -> AnalysisResult:
        try:
            classification = await self._require_ai().classify(diff)
        except Exception as exc:
            logger.warning("AI analysis failed, falling back to conventional commits: %s", exc)
            return self._conventional_result(diff, reasoning=(AI_FAILED_REASON,), confidence=0.0)

        if classification.confidence >= self.threshold:
            return self._ai_result(diff, classification)

        logger.warning(
            "AI confidence %.2f below threshold %.2f, using conventional analysis",
            classification.confidence,
            self.threshold,
        )
        return self._conventional_result(
            diff,
            reasoning=(*classification.reasoning, LOW_CONFIDENCE_REASON),
            confidence=classification.confidence,
            metadata=classification.metadata_for(diff),
        )

    def _conventional_result(
        self,
        diff: GitDiff,
        *,
        reasoning: tuple[str, ...],
        confidence: Optional[float],
        metadata: AnalysisMetadata | None = None,
    ) -> AnalysisResult:
        bump = self.conventional.determine_bump(diff.commits)
        return AnalysisResult(
            bump=bump,
            confidence=confidence,
            reasoning=reasoning,
            entries=tuple(self.conventional.entries_for(diff.commits)),
            strategy=Strategy.CONVENTIONAL,
            breaking=bump is Bump.MAJOR,
            metadata=metadata or AnalysisMetadata.for_diff(diff),
        )

    @staticmethod
    def _ai_result(diff: GitDiff, classification: AIClassification) -> AnalysisResult:
        return AnalysisResult(
            bump=classification.bump,
            confidence=classification.confidence,
            reasoning=classification.reasoning,
            entries=classification.entries,
            strategy=Strategy.AI,
            breaking=classification.breaking,
            metadata=classification.metadata_for(diff),
            breaking_changes=classification.breaking_changes,
        )

    def _require_ai(self) -> AIClassifier:
        if self.ai is None:
            raise ConfigError("AI strategies require an AI classifier")
        return self.ai


@dataclass(frozen=True)
class ReleaseDecision:
    """An analysis combined with the version it leads to."""

    current: SemanticVersion
    next: SemanticVersion
    bump: Bump
    analysis: AnalysisResult
    tag: Optional[str]

    @property
    def should_release(self) -> bool:
        return self.bump is not Bump.NONE

    def to_dict(self) -> dict[str, object]:
        return {
            "current_version": str(self.current),
            "next_version": str(self.next),
            "bump": self.bump.value,
            "tag": self.tag,
            "should_release": self.should_release,
            "analysis": self.analysis.to_dict(),
        }


class DecisionEngine:
    """Runs one release analysis per call.

    Collectors and classifiers are built fresh for every run from the given
    config; the factories exist so tests can substitute fakes.
    """

    def __init__(
        self,
        *,
        collector_factory: CollectorFactory | None = None,
        ai_factory: AIClassifierFactory | None = None,
        conventional_factory: Callable[[], ConventionalClassifier] = ConventionalClassifier,
    ) -> None:
        self.collector_factory = collector_factory or _default_collector
        self.ai_factory = ai_factory or _default_ai_classifier
        self.conventional_factory = conventional_factory

    async def run(self, config: EngineConfig) -> AnalysisResult:
        config.validate()
        strategy = config.effective_strategy
        logger.info(
            "Analyzing %s..%s using %s strategy",
            config.main_branch,
            config.feature_branch,
            strategy.value,
        )

        with log_duration(logger, "analysis") as timing:
            diff = await self._collect(config)
            warnings: List[str] = []
            if config.max_commits and len(diff.commits) > config.max_commits:
                warnings.append(
                    f"Analyzed the newest {config.max_commits} of {len(diff.commits)} commits"
                )
                diff = diff.limited(config.max_commits)

            arbiter = StrategyArbiter(
                self.conventional_factory(),
                self.ai_factory(config) if strategy.uses_ai else None,
                threshold=config.ai.confidence_threshold,
            )
            try:
                result = await arbiter.decide(strategy, diff)
            except Exception as exc:
                if not strategy.uses_ai:
                    raise
                raise EngineError(
                    f"AI analysis failed: {exc}",
                    AI_ANALYSIS_ERROR,
                    {"strategy": strategy.value, "commits": len(diff.commits)},
                ) from exc

        metadata = replace(
            result.metadata,
            execution_time_ms=timing["elapsed_ms"],
            warnings=(*result.metadata.warnings, *warnings),
        )
        logger.info(
            "Decided %s bump via %s strategy (%d commits, %d files)",
            result.bump.value,
            result.strategy.value,
            metadata.commits_analyzed,
            metadata.files_changed,
        )
        return replace(result, metadata=metadata)

    def run_sync(self, config: EngineConfig) -> AnalysisResult:
        return asyncio.run(self.run(config))

    async def decide(self, config: EngineConfig, current_version: str | None = None) -> ReleaseDecision:
        """Analyze the branches and derive the next version from ``current_version``."""
        raw_version = current_version or config.current_version
        if not raw_version:
            raise ConfigError("current version is required to decide a release")
        try:
            current = parse_version(raw_version)
        except VersionError as exc:
            raise EngineError(
                f"Version analysis failed: {exc}",
                VERSION_ANALYSIS_ERROR,
                {"version": raw_version},
            ) from exc

        analysis = await self.run(config)
        return _release_decision(config, current, analysis)

    def decide_sync(self, config: EngineConfig, current_version: str | None = None) -> ReleaseDecision:
        return asyncio.run(self.decide(config, current_version))

    async def _collect(self, config: EngineConfig) -> GitDiff:
        collector = self.collector_factory(config)
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, collector.collect, config.main_branch, config.feature_branch
            )
        except GitOperationError as exc:
            raise EngineError(
                f"Git analysis failed: {exc}",
                GIT_ANALYSIS_ERROR,
                {"base": config.main_branch, "head": config.feature_branch},
            ) from exc


def _release_decision(config: EngineConfig, current: SemanticVersion, analysis: AnalysisResult) -> ReleaseDecision:
    if analysis.bump is Bump.NONE:
        return ReleaseDecision(current=current, next=current, bump=Bump.NONE, analysis=analysis, tag=None)
    try:
        if config.prerelease:
            next_version = increment_prerelease(current, config.prerelease_identifier)
        else:
            next_version = increment(current, analysis.bump)
    except VersionError as exc:
        raise EngineError(
            f"Version analysis failed: {exc}",
            VERSION_ANALYSIS_ERROR,
            {"version": str(current), "bump": analysis.bump.value},
        ) from exc
    logger.info("Next version: %s -> %s", current, next_version)
    return ReleaseDecision(
        current=current,
        next=next_version,
        bump=analysis.bump,
        analysis=analysis,
        tag=git_tag(next_version, config.tag_prefix),
    )


def _default_collector(config: EngineConfig) -> DiffCollector:
    return DiffCollector(config.repo_path)


def _default_ai_classifier(config: EngineConfig) -> AIClassifier:
    ai = config.ai
    provider = create_provider(
        ai.provider,
        model=ai.model,
        api_key=ai.api_key,
        base_url=ai.base_url,
        temperature=ai.temperature,
        max_tokens=ai.max_tokens,
        request_timeout=ai.request_timeout,
    )
    return AIClassifier(
        provider,
        retry_policy=config.retry.policy(),
        cost_per_1k_input=ai.cost_per_1k_input,
        cost_per_1k_output=ai.cost_per_1k_output,
    )


__all__ = [
    "AI_ANALYSIS_ERROR",
    "DecisionEngine",
    "GIT_ANALYSIS_ERROR",
    "ReleaseDecision",
    "StrategyArbiter",
    "VERSION_ANALYSIS_ERROR",
]
