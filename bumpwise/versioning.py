"""Semantic version parsing, comparison and increment logic.

Versions follow ``MAJOR.MINOR.PATCH[-prerelease][+build]`` with an optional
leading ``v``. Comparison and range checks are intentionally simpler than the
full SemVer 2.0 rules:

- prerelease strings are compared as plain strings, not identifier by identifier;
- ``^`` requires the same major, ``~`` the same major and minor.
"""

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass, field, replace
from functools import total_ordering
from typing import Any, Dict, Iterable, List, Optional

from .errors import VersionError
from .models import Bump, Strategy

_IDENTIFIERS = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_VERSION_PATTERN = re.compile(
    rf"^(\d+)\.(\d+)\.(\d+)(?:-({_IDENTIFIERS}))?(?:\+({_IDENTIFIERS}))?$"
)
_IDENTIFIERS_PATTERN = re.compile(rf"^{_IDENTIFIERS}$")
_LABELLED_PRERELEASE = re.compile(r"^([a-zA-Z]+)\.(\d+)$")

MAJOR_WARNING_THRESHOLD = 999
MINOR_WARNING_THRESHOLD = 99
PATCH_WARNING_THRESHOLD = 999


@total_ordering
@dataclass(frozen=True)
class SemanticVersion:
    """Immutable semantic version value.

    Equality is structural (build metadata included); ordering goes through
    :func:`compare`, which ignores build metadata.
    """

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build: Optional[str] = None

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.patch) < 0:
            raise VersionError(
                f"Version numbers cannot be negative: {self.major}.{self.minor}.{self.patch}"
            )
        # Normalise "" to None so "no prerelease" has a single representation.
        if self.prerelease == "":
            object.__setattr__(self, "prerelease", None)
        if self.build == "":
            object.__setattr__(self, "build", None)
        if self.prerelease is not None and not _IDENTIFIERS_PATTERN.match(self.prerelease):
            raise VersionError(f"Invalid prerelease format: {self.prerelease}")
        if self.build is not None and not _IDENTIFIERS_PATTERN.match(self.build):
            raise VersionError(f"Invalid build metadata format: {self.build}")

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    def __str__(self) -> str:
        return format_version(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return compare(self, other) < 0


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class VersionInfo:
    """Current and next version for a bump decision."""

    current: SemanticVersion
    next: SemanticVersion
    bump: Bump
    confidence: float = 1.0
    strategy: Strategy = Strategy.CONVENTIONAL


def parse_version(text: str) -> SemanticVersion:
    """Parse ``1.2.3``, ``v1.2.3``, ``1.2.3-alpha.1`` or ``1.2.3+build.5``."""
    if text is None or not str(text).strip():
        raise VersionError("Version string cannot be empty")
    raw = str(text).strip()
    candidate = raw[1:] if raw.startswith("v") else raw
    match = _VERSION_PATTERN.match(candidate)
    if match is None:
        raise VersionError(f"Invalid semantic version format: {raw}", raw)
    major, minor, patch, prerelease, build = match.groups()
    return SemanticVersion(
        major=int(major),
        minor=int(minor),
        patch=int(patch),
        prerelease=prerelease,
        build=build,
    )


def format_version(version: SemanticVersion, include_prefix: bool = False) -> str:
    text = f"{version.major}.{version.minor}.{version.patch}"
    if version.prerelease:
        text += f"-{version.prerelease}"
    if version.build:
        text += f"+{version.build}"
    return f"v{text}" if include_prefix else text


def increment(version: SemanticVersion, bump: Bump | str) -> SemanticVersion:
    """Apply ``bump``; every real increment drops prerelease and build metadata."""
    kind = _coerce_bump(bump)
    if kind is Bump.NONE:
        return replace(version)
    if kind is Bump.MAJOR:
        return SemanticVersion(version.major + 1, 0, 0)
    if kind is Bump.MINOR:
        return SemanticVersion(version.major, version.minor + 1, 0)
    return SemanticVersion(version.major, version.minor, version.patch + 1)


def increment_prerelease(version: SemanticVersion, label: str = "alpha") -> SemanticVersion:
    """Move to the next ``<label>.<n>`` prerelease; build metadata is dropped."""
    if not label or not _IDENTIFIERS_PATTERN.match(label):
        raise VersionError(f"Invalid prerelease label: {label!r}")

    if not version.prerelease:
        return SemanticVersion(version.major, version.minor, version.patch + 1, f"{label}.1")

    match = _LABELLED_PRERELEASE.match(version.prerelease)
    if match is not None and match.group(1) == label:
        prerelease = f"{label}.{int(match.group(2)) + 1}"
    else:
        prerelease = f"{label}.1"
    return SemanticVersion(version.major, version.minor, version.patch, prerelease)


def promote_to_stable(version: SemanticVersion) -> SemanticVersion:
    if not version.prerelease:
        raise VersionError("Cannot promote stable version to stable", format_version(version))
    return SemanticVersion(version.major, version.minor, version.patch)


def compare(a: SemanticVersion, b: SemanticVersion) -> int:
    """Return -1, 0 or 1. A stable version outranks a prerelease of the same core."""
    core_a = (a.major, a.minor, a.patch)
    core_b = (b.major, b.minor, b.patch)
    if core_a != core_b:
        return -1 if core_a < core_b else 1
    if not a.prerelease and not b.prerelease:
        return 0
    if not a.prerelease:
        return 1
    if not b.prerelease:
        return -1
    if a.prerelease == b.prerelease:
        return 0
    return -1 if a.prerelease < b.prerelease else 1


def is_greater_than(a: SemanticVersion, b: SemanticVersion) -> bool:
    return compare(a, b) > 0


def validate(version: Any) -> ValidationResult:
    """Check any object exposing ``major/minor/patch/prerelease/build``.

    Accepts raw records as well as :class:`SemanticVersion`, so values that
    never went through the constructor can be inspected.
    """
    errors: List[str] = []
    warnings: List[str] = []

    major = getattr(version, "major", 0)
    minor = getattr(version, "minor", 0)
    patch = getattr(version, "patch", 0)
    prerelease = getattr(version, "prerelease", None)
    build = getattr(version, "build", None)

    if major < 0:
        errors.append("Major version cannot be negative")
    if minor < 0:
        errors.append("Minor version cannot be negative")
    if patch < 0:
        errors.append("Patch version cannot be negative")
    if prerelease and not _IDENTIFIERS_PATTERN.match(prerelease):
        errors.append("Invalid prerelease format")
    if build and not _IDENTIFIERS_PATTERN.match(build):
        errors.append("Invalid build metadata format")

    if major > MAJOR_WARNING_THRESHOLD:
        warnings.append("Major version is unusually high")
    if minor > MINOR_WARNING_THRESHOLD:
        warnings.append("Minor version is unusually high")
    if patch > PATCH_WARNING_THRESHOLD:
        warnings.append("Patch version is unusually high")

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def satisfies(version: SemanticVersion, range_spec: str) -> bool:
    """Simplified range check supporting ``^``, ``~`` and exact versions."""
    spec = range_spec.strip()
    if spec.startswith("^"):
        target = parse_version(spec[1:])
        return version.major == target.major and compare(version, target) >= 0
    if spec.startswith("~"):
        target = parse_version(spec[1:])
        return (
            version.major == target.major
            and version.minor == target.minor
            and compare(version, target) >= 0
        )
    return compare(version, parse_version(spec)) == 0


def next_versions(version: SemanticVersion) -> Dict[Bump, SemanticVersion]:
    return {bump: increment(version, bump) for bump in Bump}


def create_version_info(
    current: SemanticVersion,
    bump: Bump | str,
    confidence: float = 1.0,
    strategy: Strategy = Strategy.CONVENTIONAL,
) -> VersionInfo:
    kind = _coerce_bump(bump)
    return VersionInfo(
        current=current,
        next=increment(current, kind),
        bump=kind,
        confidence=confidence,
        strategy=strategy,
    )


def is_valid_version(text: str) -> bool:
    try:
        parse_version(text)
    except VersionError:
        return False
    return True


def highest_version(versions: Iterable[SemanticVersion]) -> Optional[SemanticVersion]:
    highest: Optional[SemanticVersion] = None
    for candidate in versions:
        if highest is None or is_greater_than(candidate, highest):
            highest = candidate
    return highest


def git_tag(version: SemanticVersion, prefix: str = "v") -> str:
    return f"{prefix}{format_version(version)}"


def parse_from_package_json(content: str) -> SemanticVersion:
    """Read the ``version`` field of a package.json document."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise VersionError("Failed to parse package.json", content) from exc
    if not isinstance(data, dict):
        raise VersionError("Invalid package.json format")
    value = data.get("version")
    if not isinstance(value, str) or not value:
        raise VersionError("No valid version field found in package.json")
    return parse_version(value)


def parse_from_pyproject(content: str) -> SemanticVersion:
    """Read ``[project].version`` (or ``[tool.poetry].version``) from pyproject.toml."""
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        raise VersionError("Failed to parse pyproject.toml") from exc
    value = _lookup(data, "project", "version")
    if value is None:
        value = _lookup(data, "tool", "poetry", "version")
    if not isinstance(value, str) or not value:
        raise VersionError(
            "Could not find version in pyproject.toml. "
            "Expected [project].version or [tool.poetry].version."
        )
    return parse_version(value)


def _lookup(data: object, *keys: str) -> object:
    # A scalar where a table is expected counts as missing.
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _coerce_bump(bump: Bump | str) -> Bump:
    if isinstance(bump, Bump):
        return bump
    try:
        return Bump(str(bump).lower())
    except ValueError as exc:
        raise VersionError(f"Invalid bump type: {bump}") from exc


__all__ = [
    "SemanticVersion",
    "ValidationResult",
    "VersionInfo",
    "compare",
    "create_version_info",
    "format_version",
    "git_tag",
    "highest_version",
    "increment",
    "increment_prerelease",
    "is_greater_than",
    "is_valid_version",
    "next_versions",
    "parse_from_package_json",
    "parse_from_pyproject",
    "parse_version",
    "promote_to_stable",
    "satisfies",
    "validate",
]
