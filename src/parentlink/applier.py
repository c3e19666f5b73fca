"""Apply a reconciliation plan with one ``addSubIssue`` mutation per pair.

Each mutation carries a fresh ``clientMutationId`` that the reply must echo.
Pairs run concurrently and fail independently; there is no rollback, since
rerunning the pipeline skips anything already linked.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping

from .concurrency import ConcurrencyConfig, run_fan_out
from .errors import IdempotencyMismatchError, ResponseShapeError, classify_error
from .github_graphql import GraphQLExecutor
from .logging import get_logger
from .models import ApplyResult, BoardIssue, LinkOutcome, ParentCandidate, ReconciliationPlan
from .queries import ADD_SUB_ISSUE_MUTATION

TokenFactory = Callable[[], str]


def new_token() -> str:
    return uuid.uuid4().hex


def link_sub_issue(client: GraphQLExecutor, parent_id: str, child_id: str, token: str) -> None:
    data = client.execute(
        ADD_SUB_ISSUE_MUTATION,
        {"parentId": parent_id, "childId": child_id, "clientMutationId": token},
    )
    payload = data.get("addSubIssue")
    if not isinstance(payload, Mapping):
        raise ResponseShapeError("addSubIssue reply missing payload")
    echoed = payload.get("clientMutationId")
    if echoed != token:
        raise IdempotencyMismatchError(token, echoed)


def apply_plan(
    client: GraphQLExecutor,
    plan: ReconciliationPlan,
    *,
    concurrency: ConcurrencyConfig | None = None,
    token_factory: TokenFactory = new_token,
) -> ApplyResult:
    logger = get_logger()
    # tokens are minted up front so every slot knows its own token
    jobs: list[tuple[ParentCandidate, BoardIssue, str]] = [
        (parent, child, token_factory()) for parent, child in plan.pairs()
    ]

    def _link(job: tuple[ParentCandidate, BoardIssue, str]) -> None:
        parent, child, token = job
        if not parent.resolved_id:
            raise ResponseShapeError(f"Parent {parent.reference.slug} has no resolved id")
        link_sub_issue(client, parent.resolved_id, child.id, token)

    outcomes = run_fan_out(jobs, _link, config=concurrency, operation="apply_plan")

    result = ApplyResult()
    for outcome in outcomes:
        parent, child, token = outcome.item
        if outcome.error is None:
            result.succeeded += 1
            result.outcomes.append(LinkOutcome(parent, child, token, ok=True))
            logger.log_link_action("applied", parent.resolved_id, child.id, title=child.title)
            continue
        info = classify_error(outcome.error)
        result.failed += 1
        result.outcomes.append(
            LinkOutcome(
                parent, child, token, ok=False, error=info.message, error_category=info.category
            )
        )
        logger.log_link_action(
            "failed",
            parent.resolved_id,
            child.id,
            title=child.title,
            error=info.message,
            category=info.category,
        )
    return result


__all__ = ["apply_plan", "link_sub_issue", "new_token"]
