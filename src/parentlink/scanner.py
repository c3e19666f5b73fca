"""Board scan: lazily page through project items.

``iter_board_issues`` is a generator. It reflects the board at the moment
each page is fetched, cannot be resumed part-way, and restarts from the first
page on every call.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from .errors import NotFoundError, ResponseShapeError
from .github_graphql import GraphQLError, GraphQLExecutor
from .logging import get_logger
from .models import BoardIssue, PageInfo
from .queries import PROJECT_ITEMS_QUERY

DEFAULT_ITEM_PAGE_SIZE = 100
ISSUE_ITEM_TYPE = "issue"


@dataclass(frozen=True)
class _ItemNode:
    id: str
    type: str
    content: Mapping[str, Any] | None
    field_value: Mapping[str, Any] | None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> _ItemNode:
        content = payload.get("content")
        value = payload.get("fieldValueByName")
        return cls(
            id=str(payload.get("id") or ""),
            type=str(payload.get("type") or ""),
            content=content if isinstance(content, Mapping) else None,
            field_value=value if isinstance(value, Mapping) else None,
        )

    def to_board_issue(self) -> BoardIssue | None:
        if self.type.casefold() != ISSUE_ITEM_TYPE or self.content is None:
            return None
        option_id = self.field_value.get("optionId") if self.field_value else None
        if not isinstance(option_id, str) or not option_id:
            return None
        issue_id = self.content.get("id")
        if not isinstance(issue_id, str) or not issue_id:
            raise ResponseShapeError(f"Project item {self.id} has issue content without id")
        parent = self.content.get("parent")
        parent_id = parent.get("id") if isinstance(parent, Mapping) else None
        title = self.content.get("title")
        return BoardIssue(
            id=issue_id,
            title=title if isinstance(title, str) else "",
            parent_id=parent_id if isinstance(parent_id, str) else None,
            selected_option_id=option_id,
        )


@dataclass(frozen=True)
class _ItemsPage:
    nodes: list[_ItemNode]
    page_info: PageInfo

    @classmethod
    def from_data(cls, data: Mapping[str, Any], org: str, project_number: int) -> _ItemsPage:
        organization = data.get("organization")
        if not isinstance(organization, Mapping):
            raise NotFoundError(f"Organization '{org}' not found")
        project = organization.get("projectV2")
        if not isinstance(project, Mapping):
            raise NotFoundError(f"Project {org}/{project_number} not found or not accessible")
        connection = project.get("items")
        if not isinstance(connection, Mapping):
            raise ResponseShapeError("Project items reply missing 'items'")
        nodes = connection.get("nodes")
        if not isinstance(nodes, list):
            raise ResponseShapeError("Project items reply missing 'nodes'")
        return cls(
            nodes=[_ItemNode.from_payload(n) for n in nodes if isinstance(n, Mapping)],
            page_info=PageInfo.from_connection(connection),
        )


def iter_board_issues(
    client: GraphQLExecutor,
    org: str,
    project_number: int,
    field_name: str,
    *,
    page_size: int = DEFAULT_ITEM_PAGE_SIZE,
) -> Iterator[BoardIssue]:
    logger = get_logger()
    cursor: str | None = None
    page_number = 0
    while True:
        variables = {
            "org": org,
            "number": project_number,
            "first": page_size,
            "after": cursor,
            "fieldName": field_name,
        }
        try:
            data = client.execute(PROJECT_ITEMS_QUERY, variables)
        except GraphQLError as exc:
            if exc.not_found:
                raise NotFoundError(f"Project {org}/{project_number} not found: {exc}") from exc
            raise
        page_number += 1
        page = _ItemsPage.from_data(data, org, project_number)
        yielded = 0
        for node in page.nodes:
            issue = node.to_board_issue()
            if issue is None:
                continue
            yielded += 1
            yield issue
        logger.debug(
            "Scanned project items page",
            page=page_number,
            item_count=len(page.nodes),
            board_issues=yielded,
        )
        cursor = page.page_info.next_cursor
        if cursor is None:
            return


__all__ = ["DEFAULT_ITEM_PAGE_SIZE", "iter_board_issues"]
