"""Resolve parent issue references to GraphQL node ids."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import requests

from .concurrency import ConcurrencyConfig, run_fan_out
from .errors import ResponseShapeError, classify_error
from .github_graphql import GitHubAPIError, GraphQLExecutor
from .logging import get_logger
from .models import IssueIdentity, ParentCandidate
from .queries import ISSUE_BY_NUMBER_QUERY
from .references import IssueReference


def _identity_from_data(data: Mapping[str, object], reference: IssueReference) -> IssueIdentity:
    repository = data.get("repository")
    if not isinstance(repository, Mapping):
        raise ResponseShapeError(f"Repository {reference.owner}/{reference.repository} not found")
    issue = repository.get("issue")
    if not isinstance(issue, Mapping):
        raise ResponseShapeError(f"Issue {reference.slug} not found")
    issue_id = issue.get("id")
    title = issue.get("title")
    if not isinstance(issue_id, str) or not issue_id:
        raise ResponseShapeError(f"Issue {reference.slug} reply missing id")
    return IssueIdentity(id=issue_id, title=title if isinstance(title, str) else "")


def resolve_issue_identity(
    client: GraphQLExecutor, reference: IssueReference
) -> IssueIdentity | None:
    """Look up one issue; ``None`` when it cannot be found or read.

    A missing, deleted or inaccessible issue is a local problem of the option
    pointing at it, so it is logged and swallowed here.
    """
    try:
        data = client.execute(
            ISSUE_BY_NUMBER_QUERY,
            {"owner": reference.owner, "name": reference.repository, "number": reference.number},
        )
        return _identity_from_data(data, reference)
    except (GitHubAPIError, ResponseShapeError, requests.RequestException) as exc:
        info = classify_error(exc)
        get_logger().warning(
            f"Could not resolve parent issue {reference.slug}",
            url=reference.url,
            error=info.message,
            category=info.category,
        )
        return None


def resolve_candidates(
    client: GraphQLExecutor,
    candidates: Sequence[ParentCandidate],
    *,
    concurrency: ConcurrencyConfig | None = None,
) -> list[ParentCandidate]:
    """Resolve every distinct reference concurrently and enrich the candidates.

    Options sharing a URL share a single lookup. The returned list matches
    the input order; unresolved candidates come back unchanged.
    """
    distinct: list[IssueReference] = []
    for candidate in candidates:
        if candidate.reference not in distinct:
            distinct.append(candidate.reference)

    outcomes = run_fan_out(
        distinct,
        lambda ref: resolve_issue_identity(client, ref),
        config=concurrency,
        operation="resolve_candidates",
    )
    identities: dict[IssueReference, IssueIdentity | None] = {}
    for outcome in outcomes:
        if outcome.error is not None:
            info = classify_error(outcome.error)
            get_logger().warning(
                f"Parent issue lookup crashed for {outcome.item.slug}",
                error=info.message,
                category=info.category,
            )
        identities[outcome.item] = outcome.value

    enriched = [c.with_identity(identities.get(c.reference)) for c in candidates]
    resolved = sum(1 for c in enriched if c.is_resolved)
    get_logger().log_operation(
        "candidates_resolved",
        candidate_count=len(enriched),
        distinct_references=len(distinct),
        resolved=resolved,
        unresolved=len(enriched) - resolved,
    )
    return enriched


__all__ = ["resolve_candidates", "resolve_issue_identity"]
