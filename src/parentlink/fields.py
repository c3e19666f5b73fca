"""Tracked-field discovery.

Pages through a project's fields looking for the single-select field whose
name matches (case-insensitively) the configured one, then turns every option
whose description is an issue URL into a :class:`ParentCandidate`.

Field names are assumed unique within a project: the first matching field
wins and later pages are never fetched.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import NotFoundError, ResponseShapeError
from .github_graphql import GraphQLError, GraphQLExecutor
from .logging import get_logger
from .models import FieldDiscovery, PageInfo, ParentCandidate
from .queries import PROJECT_FIELDS_QUERY
from .references import parse_issue_url

SINGLE_SELECT_TYPENAME = "ProjectV2SingleSelectField"
DEFAULT_FIELD_PAGE_SIZE = 50


@dataclass(frozen=True)
class _FieldOption:
    id: str
    name: str
    description: str


@dataclass(frozen=True)
class _ProjectField:
    id: str | None
    name: str
    typename: str
    options: tuple[_FieldOption, ...] = ()

    @property
    def is_single_select(self) -> bool:
        return self.typename == SINGLE_SELECT_TYPENAME

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> _ProjectField:
        options: list[_FieldOption] = []
        raw_options = payload.get("options")
        if isinstance(raw_options, list):
            for node in raw_options:
                if not isinstance(node, Mapping):
                    continue
                option_id = node.get("id")
                if not isinstance(option_id, str):
                    continue
                options.append(
                    _FieldOption(
                        id=option_id,
                        name=str(node.get("name") or ""),
                        description=str(node.get("description") or ""),
                    )
                )
        field_id = payload.get("id")
        return cls(
            id=field_id if isinstance(field_id, str) and field_id else None,
            name=str(payload.get("name") or ""),
            typename=str(payload.get("__typename") or ""),
            options=tuple(options),
        )


@dataclass(frozen=True)
class _FieldsPage:
    fields: list[_ProjectField]
    page_info: PageInfo

    @classmethod
    def from_data(cls, data: Mapping[str, Any], org: str, project_number: int) -> _FieldsPage:
        organization = data.get("organization")
        if not isinstance(organization, Mapping):
            raise NotFoundError(f"Organization '{org}' not found")
        project = organization.get("projectV2")
        if not isinstance(project, Mapping):
            raise NotFoundError(f"Project {org}/{project_number} not found or not accessible")
        connection = project.get("fields")
        if not isinstance(connection, Mapping):
            raise ResponseShapeError("Project fields reply missing 'fields'")
        nodes = connection.get("nodes")
        fields = [
            _ProjectField.from_payload(node)
            for node in (nodes if isinstance(nodes, list) else [])
            if isinstance(node, Mapping)
        ]
        return cls(fields=fields, page_info=PageInfo.from_connection(connection))


def _candidates_for(field: _ProjectField, field_id: str) -> tuple[list[ParentCandidate], int]:
    logger = get_logger()
    candidates: list[ParentCandidate] = []
    seen: set[str] = set()
    dropped = 0
    for option in field.options:
        reference = parse_issue_url(option.description)
        if reference is None:
            dropped += 1
            logger.debug(
                "Option description is not an issue URL; skipping",
                field_option_id=option.id,
                option_name=option.name,
            )
            continue
        if option.id in seen:
            continue
        seen.add(option.id)
        candidates.append(
            ParentCandidate(field_id=field_id, field_option_id=option.id, reference=reference)
        )
    return candidates, dropped


def discover_parent_field(
    client: GraphQLExecutor,
    org: str,
    project_number: int,
    field_name: str,
    *,
    page_size: int = DEFAULT_FIELD_PAGE_SIZE,
) -> FieldDiscovery:
    logger = get_logger()
    wanted = field_name.casefold()
    cursor: str | None = None
    pages = 0
    while True:
        try:
            data = client.execute(
                PROJECT_FIELDS_QUERY,
                {"org": org, "number": project_number, "first": page_size, "after": cursor},
            )
        except GraphQLError as exc:
            if exc.not_found:
                raise NotFoundError(f"Project {org}/{project_number} not found: {exc}") from exc
            raise
        pages += 1
        page = _FieldsPage.from_data(data, org, project_number)
        for field in page.fields:
            if not field.is_single_select or field.name.casefold() != wanted:
                continue
            if field.id is None:
                raise ResponseShapeError(f"Project field '{field.name}' has no id")
            field_id = field.id
            candidates, dropped = _candidates_for(field, field_id)
            logger.log_operation(
                "field_discovered",
                field_id=field_id,
                field_name=field.name,
                option_count=len(field.options),
                candidate_count=len(candidates),
                pages_fetched=pages,
            )
            return FieldDiscovery(
                field_id=field_id,
                field_name=field.name,
                candidates=candidates,
                pages_fetched=pages,
                dropped_options=dropped,
            )
        cursor = page.page_info.next_cursor
        logger.debug("Tracked field not on page", page=pages, cursor=cursor)
        if cursor is None:
            break
    logger.warning(f"Field '{field_name}' not found in project", pages_fetched=pages)
    return FieldDiscovery(field_id=None, field_name=None, candidates=[], pages_fetched=pages)


__all__ = ["DEFAULT_FIELD_PAGE_SIZE", "discover_parent_field"]
