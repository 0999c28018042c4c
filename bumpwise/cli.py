"""CLI entrypoints for bumpwise commands."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from .config import EngineConfig, load_config, parse_strategy
from .errors import BumpwiseError
from .logging import configure_logging
from .models import AnalysisResult, Bump, Strategy
from .orchestrator import DecisionEngine, ReleaseDecision
from .versioning import (
    compare,
    format_version,
    increment,
    increment_prerelease,
    parse_version,
    promote_to_stable,
)


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bumpwise",
        description="Decide semantic version bumps from the commits between two branches.",
    )
    _add_verbose_option(parser)
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    parser.add_argument("--log-file", type=Path, help="Also write DEBUG logs to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser(
        "analyze",
        help="Analyze the commits a feature branch adds on top of the base branch.",
    )
    _add_verbose_option(analyze, suppress_default=True)
    analyze.add_argument("--base", help="Base branch (defaults to main_branch from config).")
    analyze.add_argument("--head", help="Feature branch to analyze.")
    analyze.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in Strategy],
        help="Classification strategy for this run.",
    )
    analyze.add_argument("--threshold", type=float, help="Minimum AI confidence for hybrid runs.")
    analyze.add_argument("--config", type=Path, help="Path to .bumpwise.yml or its directory.")
    analyze.add_argument("--repo", type=Path, help="Repository root (defaults to the config directory).")
    analyze.add_argument("--current-version", help="Also compute the next version from this one.")
    analyze.add_argument("--prerelease", action="store_true", help="Produce a prerelease version.")
    analyze.add_argument("--max-commits", type=int, help="Only analyze the newest N commits.")
    analyze.add_argument("--json", action="store_true", help="Print the result as JSON.")

    version = subparsers.add_parser("version", help="Semantic version utilities.")
    version_commands = version.add_subparsers(dest="version_command", required=True)

    parse_cmd = version_commands.add_parser("parse", help="Parse and normalize a version.")
    parse_cmd.add_argument("version")

    bump_cmd = version_commands.add_parser("bump", help="Apply a bump to a version.")
    bump_cmd.add_argument("version")
    bump_cmd.add_argument("bump", choices=[bump.value for bump in Bump])
    bump_cmd.add_argument(
        "--prerelease",
        metavar="LABEL",
        help="Produce the next LABEL.N prerelease instead of a stable version.",
    )

    promote_cmd = version_commands.add_parser("promote", help="Strip the prerelease suffix.")
    promote_cmd.add_argument("version")

    compare_cmd = version_commands.add_parser("compare", help="Print -1, 0 or 1.")
    compare_cmd.add_argument("left")
    compare_cmd.add_argument("right")

    serve = subparsers.add_parser("serve", help="Run the HTTP service.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None, *, engine: DecisionEngine | None = None) -> None:
    """CLI entrypoint for bumpwise commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        quiet=bool(args.quiet),
        log_file=args.log_file,
    )

    if args.command == "analyze":
        _run_analyze(parser, args, engine or DecisionEngine())
    elif args.command == "version":
        _run_version(parser, args)
    elif args.command == "serve":  # pragma: no cover - integration path
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_analyze(parser: argparse.ArgumentParser, args: argparse.Namespace, engine: DecisionEngine) -> None:
    try:
        config = _config_from_args(args)
        if args.current_version or config.current_version:
            decision = engine.decide_sync(config, args.current_version)
            payload: dict[str, Any] = decision.to_dict()
            text = _render_decision(decision)
        else:
            result = engine.run_sync(config)
            payload = result.to_dict()
            text = _render_analysis(result)
    except BumpwiseError as exc:
        parser.exit(1, f"bumpwise analyze failed: {exc}\nRun with --verbose for more details.\n")

    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        print(text)


def _config_from_args(args: argparse.Namespace) -> EngineConfig:
    source = args.config or args.repo or Path(".")
    config = load_config(source)
    updates: dict[str, Any] = {}
    if args.base:
        updates["main_branch"] = args.base
    if args.head:
        updates["feature_branch"] = args.head
    if args.strategy:
        updates["strategy"] = parse_strategy(args.strategy)
    if args.repo:
        updates["repo_path"] = args.repo.expanduser().resolve()
    if args.prerelease:
        updates["prerelease"] = True
    if args.max_commits is not None:
        updates["max_commits"] = args.max_commits
    if args.threshold is not None:
        updates["ai"] = replace(config.ai, confidence_threshold=args.threshold)
    return replace(config, **updates)


def _run_version(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    try:
        if args.version_command == "parse":
            print(format_version(parse_version(args.version)))
        elif args.version_command == "bump":
            current = parse_version(args.version)
            if args.prerelease:
                print(format_version(increment_prerelease(current, args.prerelease)))
            else:
                print(format_version(increment(current, args.bump)))
        elif args.version_command == "promote":
            print(format_version(promote_to_stable(parse_version(args.version))))
        elif args.version_command == "compare":
            print(compare(parse_version(args.left), parse_version(args.right)))
    except BumpwiseError as exc:
        parser.exit(1, f"bumpwise version failed: {exc}\n")


def _render_analysis(result: AnalysisResult) -> str:
    confidence = "n/a" if result.confidence is None else f"{result.confidence:.2f}"
    lines = [
        f"Bump: {result.bump.value} (strategy: {result.strategy.value}, confidence: {confidence})",
        f"Commits: {result.commit_count}, files changed: {result.file_count}",
    ]
    if result.breaking:
        lines.append("Breaking changes detected")
    lines.append("Reasoning:")
    lines.extend(f"  - {reason}" for reason in result.reasoning)
    if result.entries:
        lines.append("Changes:")
        for entry in result.entries:
            scope = f"({entry.scope})" if entry.scope else ""
            sha = f" ({entry.commit_sha[:7]})" if entry.commit_sha else ""
            lines.append(f"  - {entry.category.value}{scope}: {entry.description}{sha}")
    for warning in result.metadata.warnings:
        lines.append(f"Warning: {warning}")
    return "\n".join(lines)


def _render_decision(decision: ReleaseDecision) -> str:
    text = _render_analysis(decision.analysis)
    if not decision.should_release:
        return f"{text}\nNo release needed; version stays {decision.current}"
    return f"{text}\nNext version: {decision.current} -> {decision.next} (tag {decision.tag})"


if __name__ == "__main__":
    main(sys.argv[1:])
