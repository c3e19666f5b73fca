"""High-level reconciliation pipeline.

Runs one pass over a project board: discover the tracked field, resolve the
parent issues its options point at, scan the board while planning, then
(unless dry-running) apply the plan. Nothing is kept between runs; a rerun
skips every issue the previous run linked.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from dataclasses import dataclass

from .applier import TokenFactory, apply_plan, new_token
from .concurrency import DEFAULT_MAX_WORKERS, ConcurrencyConfig
from .config import ParentLinkConfig
from .errors import FieldNotFoundError
from .fields import DEFAULT_FIELD_PAGE_SIZE, discover_parent_field
from .github_graphql import GraphQLExecutor
from .identity import resolve_candidates
from .logging import get_logger
from .models import BoardIssue, ReconciliationReport
from .planner import build_plan
from .scanner import DEFAULT_ITEM_PAGE_SIZE, iter_board_issues


@dataclass(frozen=True)
class ReconcileSettings:
    org: str
    project_number: int
    field_name: str
    field_page_size: int = DEFAULT_FIELD_PAGE_SIZE
    item_page_size: int = DEFAULT_ITEM_PAGE_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS

    @classmethod
    def from_config(cls, cfg: ParentLinkConfig) -> ReconcileSettings:
        org, project_number, field_name = cfg.require_target()
        return cls(
            org=org,
            project_number=project_number,
            field_name=field_name,
            field_page_size=cfg.field_page_size,
            item_page_size=cfg.item_page_size,
            max_workers=cfg.max_workers,
        )


class _CountingScan:
    """Wrap the board scan so the report can say how many issues were seen."""

    def __init__(self, issues: Iterator[BoardIssue]):
        self._issues = issues
        self.count = 0

    def __iter__(self) -> Iterator[BoardIssue]:
        for issue in self._issues:
            self.count += 1
            yield issue


def reconcile_project(
    client: GraphQLExecutor,
    settings: ReconcileSettings,
    *,
    dry_run: bool = False,
    token_factory: TokenFactory = new_token,
) -> ReconciliationReport:
    logger = get_logger()
    start = time.perf_counter()
    concurrency = ConcurrencyConfig(max_workers=settings.max_workers)

    discovery = discover_parent_field(
        client,
        settings.org,
        settings.project_number,
        settings.field_name,
        page_size=settings.field_page_size,
    )
    if not discovery.found:
        raise FieldNotFoundError(
            f"Field '{settings.field_name}' not found in project "
            f"{settings.org}/{settings.project_number}"
        )

    candidates = resolve_candidates(client, discovery.candidates, concurrency=concurrency)

    scan = _CountingScan(
        iter_board_issues(
            client,
            settings.org,
            settings.project_number,
            discovery.field_name or settings.field_name,
            page_size=settings.item_page_size,
        )
    )
    plan = build_plan(candidates, scan)

    report = ReconciliationReport(
        org=settings.org,
        project_number=settings.project_number,
        field_id=discovery.field_id,
        field_name=discovery.field_name,
        candidates_found=len(candidates),
        candidates_resolved=sum(1 for c in candidates if c.is_resolved),
        dropped_options=discovery.dropped_options,
        board_issues_scanned=scan.count,
        plan=plan,
        dry_run=dry_run,
    )

    if dry_run:
        for parent, child in plan.pairs():
            logger.log_link_action(
                "planned", parent.resolved_id, child.id, dry_run=True, title=child.title
            )
    else:
        report.result = apply_plan(
            client, plan, concurrency=concurrency, token_factory=token_factory
        )

    report.duration_ms = (time.perf_counter() - start) * 1000
    logger.log_operation(
        "reconcile_complete",
        org=settings.org,
        project_number=settings.project_number,
        dry_run=dry_run,
        planned=plan.operation_count,
        succeeded=report.result.succeeded if report.result else 0,
        failed=report.result.failed if report.result else 0,
        duration_ms=round(report.duration_ms, 2),
    )
    return report


__all__ = ["ReconcileSettings", "reconcile_project"]
