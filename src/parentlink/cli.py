"""parentlink CLI.

Subcommands:
  discover  -> print the tracked field and its resolved parent candidates
  plan      -> dry-run the pipeline and print the plan as JSON
  reconcile -> link every board issue to the parent its option names

Exit codes: 0 on success (including partial mutation failures), 1 on fatal
errors (organization, project or field missing; transport failure while
paging), 2 on configuration errors.
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import requests

from .concurrency import ConcurrencyConfig
from .config import CONFIG_DEFAULT, ConfigError, ParentLinkConfig
from .env_auth import EnvAuthConfig, resolve_token
from .errors import ParentLinkError, redact
from .fields import discover_parent_field
from .github_graphql import GitHubAPIError, GitHubGraphQLClient
from .identity import resolve_candidates
from .logging import configure_logging
from .models import ReconciliationReport
from .orchestrator import ReconcileSettings, reconcile_project
from .retry import RetryConfig, run_with_retries
from .runtime import execute_command, is_quiet, prepare_config

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_target_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", help=f"YAML configuration file (default: {CONFIG_DEFAULT} if present)"
    )
    parser.add_argument("--org", help="Organization owning the project")
    parser.add_argument("--project-number", type=int, help="Project (v2) number")
    parser.add_argument("--field", help="Name of the single-select field naming parents")
    parser.add_argument("--token", help="GitHub token (default: environment)")
    parser.add_argument("--max-workers", type=int, help="Concurrent requests (default 8)")


def _build_parser() -> argparse.ArgumentParser:
    """Construct top-level CLI parser with subcommands."""
    p = _FormatterArgumentParser(
        prog="parentlink",
        description="Link project board issues to the parent issue their field selects",
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational logging (env: PARENTLINK_QUIET=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pd = sub.add_parser("discover", help="Show the tracked field and its parent candidates")
    _add_target_args(pd)

    pp = sub.add_parser("plan", help="Compute the reconciliation plan without mutating")
    _add_target_args(pp)

    pr = sub.add_parser("reconcile", help="Apply sub-issue links for every planned pair")
    _add_target_args(pr)
    pr.add_argument("--dry-run", action="store_true", help="Plan only; send no mutations")
    pr.add_argument("--summary-json", help="Write the run report to this path")
    return p


def _build_client(cfg: ParentLinkConfig) -> GitHubGraphQLClient:
    auth = EnvAuthConfig(
        load_dotenv=cfg.env_auth_load_dotenv, dotenv_path=cfg.env_auth_dotenv_path
    )
    token = resolve_token(cfg.token, auth)
    if not token:
        raise ConfigError(
            "No GitHub token found; pass --token or set PARENTLINK_GITHUB_TOKEN / GITHUB_TOKEN"
        )
    retry_cfg = RetryConfig(attempts=cfg.retry_attempts, base_sleep=cfg.retry_base_sleep)
    return GitHubGraphQLClient(
        token=token,
        graphql_url=cfg.graphql_url,
        retrier=lambda fn: run_with_retries(fn, cfg=retry_cfg),
    )


def _run_guarded(tag: str, body: Callable[[], int]) -> int:
    """Map configuration and fatal pipeline errors to exit codes."""
    try:
        return body()
    except ConfigError as exc:
        print(f"[{tag}] configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG
    except (ParentLinkError, GitHubAPIError, requests.RequestException) as exc:
        print(f"[{tag}] {redact(str(exc))}", file=sys.stderr)
        return EXIT_FATAL


def _cmd_discover(cfg: ParentLinkConfig, args: argparse.Namespace) -> int:
    def body() -> int:
        settings = ReconcileSettings.from_config(cfg)
        client = _build_client(cfg)
        try:
            discovery = discover_parent_field(
                client,
                settings.org,
                settings.project_number,
                settings.field_name,
                page_size=settings.field_page_size,
            )
            if not discovery.found:
                print(
                    f"[discover] field '{settings.field_name}' not found in project "
                    f"{settings.org}/{settings.project_number}",
                    file=sys.stderr,
                )
                return EXIT_FATAL
            candidates = resolve_candidates(
                client,
                discovery.candidates,
                concurrency=ConcurrencyConfig(max_workers=settings.max_workers),
            )
        finally:
            client.close()
        payload = {
            "field": {"id": discovery.field_id, "name": discovery.field_name},
            "pages_fetched": discovery.pages_fetched,
            "dropped_options": discovery.dropped_options,
            "candidates": [c.to_dict() for c in candidates],
        }
        print(json.dumps(payload, indent=2))
        return EXIT_OK

    return _run_guarded("discover", body)


def _run_pipeline(cfg: ParentLinkConfig, *, dry_run: bool) -> ReconciliationReport:
    settings = ReconcileSettings.from_config(cfg)
    client = _build_client(cfg)
    try:
        return reconcile_project(client, settings, dry_run=dry_run)
    finally:
        client.close()


def _cmd_plan(cfg: ParentLinkConfig, args: argparse.Namespace) -> int:
    def body() -> int:
        report = _run_pipeline(cfg, dry_run=True)
        print(json.dumps(report.to_dict(), indent=2))
        return EXIT_OK

    return _run_guarded("plan", body)


def _write_summary_json(path: str | None, report: ReconciliationReport) -> None:
    if not path:
        return
    try:
        Path(path).write_text(json.dumps(report.to_dict(), indent=2) + "\n")
        print(f"[reconcile] summary -> {path}")
    except OSError as exc:  # pragma: no cover - filesystem edge
        print(f"[reconcile] failed to write summary json: {exc}", file=sys.stderr)


def _cmd_reconcile(cfg: ParentLinkConfig, args: argparse.Namespace) -> int:
    dry_run = bool(getattr(args, "dry_run", False)) or cfg.dry_run_default

    def body() -> int:
        report = _run_pipeline(cfg, dry_run=dry_run)
        _write_summary_json(cfg.summary_json, report)
        skipped = report.plan.skipped
        mode = "dry-run" if dry_run else "applied"
        line = (
            f"[reconcile] {mode}: scanned={report.board_issues_scanned} "
            f"planned={report.plan.operation_count} "
            f"already_parented={skipped.get('already_parented', 0)} "
            f"unmatched={skipped.get('unmatched', 0)}"
        )
        if report.result is not None:
            line += f" succeeded={report.result.succeeded} failed={report.result.failed}"
        print(line)
        if report.candidates_unresolved:
            print(
                f"[reconcile] {report.candidates_unresolved} parent reference(s) "
                "could not be resolved",
                file=sys.stderr,
            )
        return EXIT_OK

    return _run_guarded("reconcile", body)


def _build_handlers(args: argparse.Namespace, cfg: ParentLinkConfig) -> dict[str, Any]:
    return {
        "discover": lambda: _cmd_discover(cfg, args),
        "plan": lambda: _cmd_plan(cfg, args),
        "reconcile": lambda: _cmd_reconcile(cfg, args),
    }


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        cfg = prepare_config(args)
    except ConfigError as exc:
        print(f"[config] {exc}", file=sys.stderr)
        return EXIT_CONFIG
    logger = configure_logging(json_logging=cfg.logging_json_enabled, level=cfg.logging_level)
    if is_quiet(args):
        logger.set_level("WARNING")
    handlers = _build_handlers(args, cfg)
    handler = handlers.get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return EXIT_FATAL
    return execute_command(handler, args, cfg, args.cmd)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
