from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from .errors import ResponseShapeError
from .references import IssueReference


@dataclass(frozen=True)
class IssueIdentity:
    id: str
    title: str


@dataclass(frozen=True)
class ParentCandidate:
    """A tracked-field option whose description points at a parent issue.

    Candidates are immutable; enrichment with the resolved node id returns a
    new instance so anything keyed by ``field_option_id`` stays valid.
    """

    field_id: str
    field_option_id: str
    reference: IssueReference
    resolved_id: str | None = None
    resolved_title: str | None = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.resolved_id)

    def with_identity(self, identity: IssueIdentity | None) -> ParentCandidate:
        if identity is None:
            return self
        return replace(self, resolved_id=identity.id, resolved_title=identity.title)

    def to_dict(self) -> dict[str, Any]:
        return {
            "field_option_id": self.field_option_id,
            "url": self.reference.url,
            "reference": self.reference.slug,
            "resolved_id": self.resolved_id,
            "resolved_title": self.resolved_title,
        }


@dataclass(frozen=True)
class BoardIssue:
    id: str
    title: str
    parent_id: str | None
    selected_option_id: str | None


@dataclass(frozen=True)
class PageInfo:
    has_next_page: bool
    end_cursor: str | None

    @property
    def next_cursor(self) -> str | None:
        # None terminates every paging loop
        if self.has_next_page and self.end_cursor:
            return self.end_cursor
        return None

    @classmethod
    def from_connection(cls, connection: Mapping[str, Any]) -> PageInfo:
        raw = connection.get("pageInfo")
        if not isinstance(raw, Mapping):
            raise ResponseShapeError("Connection reply missing 'pageInfo'")
        cursor = raw.get("endCursor")
        return cls(
            has_next_page=bool(raw.get("hasNextPage")),
            end_cursor=cursor if isinstance(cursor, str) else None,
        )


@dataclass(frozen=True)
class FieldDiscovery:
    field_id: str | None
    field_name: str | None
    candidates: list[ParentCandidate] = field(default_factory=list)
    pages_fetched: int = 0
    dropped_options: int = 0

    @property
    def found(self) -> bool:
        return self.field_id is not None


SKIP_REASONS = ("unmatched", "already_parented", "self_parent", "duplicate")


class ReconciliationPlan:
    """Board issues needing a new parent, grouped by tracked-field option.

    Buckets are keyed by ``field_option_id``; the candidate for each key is
    kept in a side table. Each board issue is planned at most once and
    buckets keep first-seen order.
    """

    def __init__(self) -> None:
        self.parents: dict[str, ParentCandidate] = {}
        self.buckets: dict[str, list[BoardIssue]] = {}
        self.skipped: dict[str, int] = dict.fromkeys(SKIP_REASONS, 0)
        self._seen: set[str] = set()

    def add(self, candidate: ParentCandidate, issue: BoardIssue) -> bool:
        if issue.id in self._seen:
            self.skip("duplicate")
            return False
        key = candidate.field_option_id
        self.parents.setdefault(key, candidate)
        self.buckets.setdefault(key, []).append(issue)
        self._seen.add(issue.id)
        return True

    def skip(self, reason: str) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1

    @property
    def operation_count(self) -> int:
        return len(self._seen)

    @property
    def is_empty(self) -> bool:
        return not self._seen

    def __len__(self) -> int:
        return self.operation_count

    def pairs(self) -> Iterator[tuple[ParentCandidate, BoardIssue]]:
        for key, children in self.buckets.items():
            parent = self.parents[key]
            for child in children:
                yield parent, child

    def to_dict(self) -> dict[str, Any]:
        groups: list[dict[str, Any]] = []
        for key, children in self.buckets.items():
            parent = self.parents[key]
            groups.append(
                {
                    "parent": parent.to_dict(),
                    "children": [
                        {"id": c.id, "title": c.title, "current_parent_id": c.parent_id}
                        for c in children
                    ],
                }
            )
        return {
            "operation_count": self.operation_count,
            "skipped": dict(self.skipped),
            "groups": groups,
        }


@dataclass
class LinkOutcome:
    parent: ParentCandidate
    child: BoardIssue
    token: str
    ok: bool
    error: str | None = None
    error_category: str | None = None


@dataclass
class ApplyResult:
    succeeded: int = 0
    failed: int = 0
    outcomes: list[LinkOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failures": [
                {
                    "parent_id": o.parent.resolved_id,
                    "child_id": o.child.id,
                    "error": o.error,
                    "category": o.error_category,
                }
                for o in self.outcomes
                if not o.ok
            ],
        }


@dataclass
class ReconciliationReport:
    org: str
    project_number: int
    field_id: str | None
    field_name: str | None
    candidates_found: int
    candidates_resolved: int
    dropped_options: int
    board_issues_scanned: int
    plan: ReconciliationPlan
    dry_run: bool
    result: ApplyResult | None = None
    duration_ms: float = 0.0

    @property
    def candidates_unresolved(self) -> int:
        return self.candidates_found - self.candidates_resolved

    def to_dict(self) -> dict[str, Any]:
        return {
            "org": self.org,
            "project_number": self.project_number,
            "field": {"id": self.field_id, "name": self.field_name},
            "candidates": {
                "found": self.candidates_found,
                "resolved": self.candidates_resolved,
                "unresolved": self.candidates_unresolved,
                "dropped_options": self.dropped_options,
            },
            "board_issues_scanned": self.board_issues_scanned,
            "dry_run": self.dry_run,
            "plan": self.plan.to_dict(),
            "result": self.result.to_dict() if self.result is not None else None,
            "duration_ms": round(self.duration_ms, 2),
        }


__all__ = [
    "ApplyResult",
    "BoardIssue",
    "FieldDiscovery",
    "IssueIdentity",
    "LinkOutcome",
    "PageInfo",
    "ParentCandidate",
    "ReconciliationPlan",
    "ReconciliationReport",
]
