"""Tests for the AI classifier: response validation, retries and confidence."""

from __future__ import annotations

import asyncio
import json

import pytest

from bumpwise.classifiers.ai import AIClassifier, adjust_confidence, parse_response
from bumpwise.errors import AIAnalysisError, ProviderError
from bumpwise.llm.retry import RetryPolicy
from bumpwise.llm.runner import Completion
from bumpwise.models import Bump, ChangeCategory, GitDiff
from tests._fixtures.git_fakes import FakeProvider, ai_payload, make_diff, no_sleep


def _classifier(provider: FakeProvider, *, attempts: int = 3) -> AIClassifier:
    return AIClassifier(
        provider,
        retry_policy=RetryPolicy(max_attempts=attempts, base_delay=0.01, max_delay=0.05),
        sleep=no_sleep,
    )


def test_classify_returns_validated_result() -> None:
    provider = FakeProvider(ai_payload())
    result = asyncio.run(_classifier(provider).classify(make_diff("feat(auth): add login")))

    assert result.bump is Bump.MINOR
    assert result.confidence == pytest.approx(0.9)
    assert result.reasoning == ("Adds a new feature",)
    assert result.entries[0].category is ChangeCategory.FEAT
    assert result.entries[0].scope == "auth"
    assert result.entries[0].commit_sha == "abc1234"
    assert result.breaking is False
    assert result.model == "fake-model"
    assert result.tokens_used == 1000
    assert result.temperature == pytest.approx(0.1)
    assert "feat(auth): add login" in result.prompt
    assert json.loads(result.raw_response)["versionBump"] == "minor"


def test_classify_sends_system_prompt_and_commit_context() -> None:
    provider = FakeProvider(ai_payload())
    asyncio.run(_classifier(provider).classify(make_diff("fix: handle empty input")))

    prompt, system = provider.prompts[0]
    assert system is not None and "valid JSON" in system
    assert "fix: handle empty input (0000000)" in prompt
    assert "src/module_1.py: modified (+3/-1)" in prompt


def test_cost_estimate_uses_seventy_thirty_split() -> None:
    classifier = _classifier(FakeProvider())
    # 700 input tokens at 0.00015/1k plus 300 output tokens at 0.0006/1k
    assert classifier.estimate_cost(1000) == pytest.approx(0.000105 + 0.00018)


def test_breaking_entries_mark_result_breaking() -> None:
    payload = ai_payload(
        versionBump="major",
        changes=[
            {
                "category": "breaking",
                "description": "Remove legacy API",
                "commitSha": "abc",
                "author": "Ada",
                "isBreaking": True,
            }
        ],
        breakingChanges=[{"description": "Legacy API removed", "migration": "Use v2", "affected": ["api"]}],
    )
    result = asyncio.run(_classifier(FakeProvider(payload)).classify(make_diff("feat!: drop legacy")))

    assert result.bump is Bump.MAJOR
    assert result.breaking is True
    assert result.breaking_changes[0].affected == ("api",)


def test_empty_diff_fails_before_calling_provider() -> None:
    provider = FakeProvider()
    with pytest.raises(AIAnalysisError) as excinfo:
        asyncio.run(_classifier(provider).classify(GitDiff.build([], [])))

    assert excinfo.value.retryable is False
    assert provider.prompts == []


def test_missing_changes_is_not_retried() -> None:
    payload = ai_payload()
    del payload["changes"]
    provider = FakeProvider(payload, ai_payload())

    with pytest.raises(AIAnalysisError) as excinfo:
        asyncio.run(_classifier(provider).classify(make_diff("feat: x")))

    assert excinfo.value.retryable is False
    assert "changes" in str(excinfo.value)
    assert len(provider.prompts) == 1


def test_retryable_provider_errors_are_retried() -> None:
    provider = FakeProvider(
        ProviderError("rate limited", status=429),
        ProviderError("bad gateway", status=502),
        ai_payload(),
    )
    result = asyncio.run(_classifier(provider).classify(make_diff("feat: x")))

    assert result.bump is Bump.MINOR
    assert len(provider.prompts) == 3


def test_non_retryable_provider_error_aborts_immediately() -> None:
    provider = FakeProvider(ProviderError("unauthorized", status=401), ai_payload())

    with pytest.raises(AIAnalysisError) as excinfo:
        asyncio.run(_classifier(provider).classify(make_diff("feat: x")))

    assert excinfo.value.retryable is False
    assert isinstance(excinfo.value.__cause__, ProviderError)
    assert len(provider.prompts) == 1


def test_exhausted_retries_wrap_last_error() -> None:
    provider = FakeProvider(*(ProviderError("unavailable", status=503) for _ in range(2)))

    with pytest.raises(AIAnalysisError) as excinfo:
        asyncio.run(_classifier(provider, attempts=2).classify(make_diff("feat: x")))

    assert excinfo.value.retryable is False
    assert "after 2 attempts" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, ProviderError)


@pytest.mark.parametrize(
    "text",
    [
        "definitely not json",
        json.dumps(ai_payload(versionBump="huge")),
        json.dumps(ai_payload(confidence=1.5)),
        json.dumps(ai_payload(reasoning="one string")),
        json.dumps(ai_payload(changes=[{"category": "feat", "description": "   "}])),
        json.dumps(ai_payload(changes=[{"category": "wizardry", "description": "Magic"}])),
        json.dumps(ai_payload(changes=[{"category": "", "description": "Nothing"}])),
        json.dumps(ai_payload(confidence="0.9")),
        json.dumps(ai_payload(changes=[{"category": "feat", "description": "Login", "isBreaking": "yes"}])),
        json.dumps(ai_payload(changes=[{"category": "feat", "description": 42}])),
        json.dumps(ai_payload(reasoning=[1, 2])),
    ],
)
def test_parse_response_rejects_invalid_payloads(text: str) -> None:
    with pytest.raises(AIAnalysisError) as excinfo:
        parse_response(text, tokens_used=12)

    assert excinfo.value.retryable is False
    assert excinfo.value.tokens_used == 12


def test_parse_response_accepts_fenced_json_and_normalizes_category() -> None:
    payload = ai_payload(changes=[{"category": "FIX", "description": "Patch", "scope": ""}])
    response = parse_response(f"```json\n{json.dumps(payload)}\n```")

    assert response.changes[0].category == "fix"
    assert response.changes[0].scope is None
    assert response.breaking_changes == []


def test_parse_response_defaults_missing_change_fields() -> None:
    payload = ai_payload(changes=[{"category": "feat", "description": "Add export", "confidence": 1}])
    payload["changes"].append({"category": "fix", "description": "Handle timeout"})
    response = parse_response(json.dumps(payload))

    assert response.changes[0].confidence == 1.0
    assert response.changes[1].author == "Unknown"
    assert response.changes[1].confidence == 0.5
    assert response.changes[1].is_breaking is False


def test_adjust_confidence_penalties() -> None:
    assert adjust_confidence(0.9, reasoning=["ok"], change_count=2, commit_count=2) == pytest.approx(0.9)
    assert adjust_confidence(1.0, reasoning=[], change_count=1, commit_count=1) == pytest.approx(0.8)
    # Zero changes for some commits: both the empty-changes and ratio penalties apply.
    assert adjust_confidence(1.0, reasoning=["ok"], change_count=0, commit_count=3) == pytest.approx(0.63)
    assert adjust_confidence(1.0, reasoning=["ok"], change_count=5, commit_count=2) == pytest.approx(0.9)
    assert adjust_confidence(1.0, reasoning=[], change_count=0, commit_count=1) == pytest.approx(0.504)


def test_low_reasoning_lowers_reported_confidence() -> None:
    provider = FakeProvider(ai_payload(reasoning=[], confidence=0.8))
    result = asyncio.run(_classifier(provider).classify(make_diff("feat: x")))

    assert result.confidence == pytest.approx(0.64)


def test_classifier_keeps_no_state_between_runs() -> None:
    provider = FakeProvider(ai_payload(confidence=0.9), ai_payload(confidence=0.2))
    classifier = _classifier(provider)

    first = asyncio.run(classifier.classify(make_diff("feat: x")))
    second = asyncio.run(classifier.classify(make_diff("feat: y")))

    assert first.confidence == pytest.approx(0.9)
    assert second.confidence == pytest.approx(0.2)
    assert not hasattr(classifier, "confidence")


def test_empty_provider_text_is_not_retried() -> None:
    provider = FakeProvider(Completion(text="", tokens_used=0), ai_payload())

    with pytest.raises(AIAnalysisError):
        asyncio.run(_classifier(provider).classify(make_diff("feat: x")))

    assert len(provider.prompts) == 1
