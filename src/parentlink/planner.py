from __future__ import annotations

from collections.abc import Iterable

from .logging import get_logger
from .models import BoardIssue, ParentCandidate, ReconciliationPlan


def index_resolved(candidates: Iterable[ParentCandidate]) -> dict[str, ParentCandidate]:
    """Map option id -> candidate, leaving out candidates without a node id."""
    return {c.field_option_id: c for c in candidates if c.is_resolved}


def build_plan(
    candidates: Iterable[ParentCandidate], board_issues: Iterable[BoardIssue]
) -> ReconciliationPlan:
    """Diff each board issue's parent against the one its option points at.

    ``board_issues`` is consumed once, in order, so the scan generator can be
    passed straight in.
    """
    by_option = index_resolved(candidates)
    plan = ReconciliationPlan()
    for issue in board_issues:
        candidate = by_option.get(issue.selected_option_id or "")
        if candidate is None:
            plan.skip("unmatched")
            continue
        if issue.parent_id == candidate.resolved_id:
            plan.skip("already_parented")
            continue
        if issue.id == candidate.resolved_id:
            plan.skip("self_parent")
            continue
        plan.add(candidate, issue)
    get_logger().log_operation(
        "plan_built",
        operation_count=plan.operation_count,
        parent_count=len(plan.buckets),
        **{f"skipped_{k}": v for k, v in plan.skipped.items()},
    )
    return plan


__all__ = ["build_plan", "index_resolved"]
