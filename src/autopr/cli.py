from __future__ import annotations

import argparse
from pathlib import Path
import sys

from autopr.body import MarkdownBodyRenderer
from autopr.config import AppConfig, load_config
from autopr.git_ops import GitBranches
from autopr.github_gateway import (
    AutoMergeNotAllowedError,
    CleanStatusAutoMergeError,
    GitHubGateway,
    RepositoryNotFoundError,
)
from autopr.graphql_client import GhGraphQLClient
from autopr.observability import configure_logging
from autopr.pull_request import PullRequestAction
from autopr.reports import ActionReport, load_report


_DIAGNOSTICS: tuple[tuple[type[Exception], str], ...] = (
    (
        AutoMergeNotAllowedError,
        "Auto-merge can't be enabled. Allow auto-merge in the repository settings.",
    ),
    (
        CleanStatusAutoMergeError,
        "Auto-merge can't be enabled. Enable branch protection rules on the target branch.",
    ),
    (
        RepositoryNotFoundError,
        "Repository not found. Check scm.owner, scm.repository and the parent setting.",
    ),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="autopr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser(
        "create", help="Create or update the pull request for the working branch"
    )
    create_parser.add_argument("--config", type=Path, default=Path("autopr.toml"))
    create_parser.add_argument("--report", type=Path, required=True, help="JSON report file")
    create_parser.add_argument(
        "--reset-description",
        action="store_true",
        help="Replace the pull request body instead of merging the new report into it",
    )
    create_parser.add_argument(
        "-v",
        "--verbose",
        nargs="?",
        const="high",
        default=None,
        choices=("low", "high"),
        help="Log to stderr; 'low' keeps only pull request lifecycle events",
    )

    clean_parser = subparsers.add_parser(
        "clean", help="Close the pull request when its branch has no changed file"
    )
    clean_parser.add_argument("--config", type=Path, default=Path("autopr.toml"))
    clean_parser.add_argument("--report", type=Path, help="Optional JSON report file")
    clean_parser.add_argument(
        "-v",
        "--verbose",
        nargs="?",
        const="high",
        default=None,
        choices=("low", "high"),
        help="Log to stderr; 'low' keeps only pull request lifecycle events",
    )

    return parser


def main() -> None:
    args = build_parser().parse_args()
    configure_logging(getattr(args, "verbose", None))
    config = load_config(args.config)

    try:
        if args.command == "create":
            _cmd_create(
                config,
                report=load_report(args.report),
                reset=bool(args.reset_description),
            )
            return
        if args.command == "clean":
            report = load_report(args.report) if args.report is not None else None
            _cmd_clean(config, report=report)
            return
    except (AutoMergeNotAllowedError, CleanStatusAutoMergeError, RepositoryNotFoundError) as exc:
        print(_diagnostic_for(exc), file=sys.stderr)
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    raise RuntimeError(f"Unknown command: {args.command}")


def build_action(config: AppConfig) -> PullRequestAction:
    return PullRequestAction(
        config.action,
        scm=config.scm,
        github=GitHubGateway(GhGraphQLClient(hostname=config.scm.hostname)),
        vcs=GitBranches(config.scm),
        renderer=MarkdownBodyRenderer(),
    )


def _cmd_create(config: AppConfig, *, report: ActionReport, reset: bool) -> None:
    build_action(config).create_action(report, reset_description=reset)


def _cmd_clean(config: AppConfig, *, report: ActionReport | None) -> None:
    build_action(config).clean_action(report)


def _diagnostic_for(exc: Exception) -> str:
    for error_type, message in _DIAGNOSTICS:
        if isinstance(exc, error_type):
            return message
    return str(exc)
