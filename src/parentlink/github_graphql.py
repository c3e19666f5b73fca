from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from .retry import run_with_retries

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
USER_AGENT = "parentlink-graphql/0.1.0"
HTTP_OK = 200

Retrier = Callable[[Callable[[], Any]], Any]


class GraphQLExecutor(Protocol):  # pragma: no cover - interface only
    def execute(
        self, query: str, variables: Mapping[str, Any] | None = None
    ) -> dict[str, Any]: ...


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub GraphQL endpoint returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
        retry_after: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text
        self.retry_after = retry_after


class GraphQLError(GitHubAPIError):
    """HTTP 200 reply carrying a GraphQL ``errors`` array."""

    def __init__(self, errors: list[Any], data: Any = None):
        super().__init__(f"GraphQL query failed: {errors}", status=HTTP_OK)
        self.errors = errors
        self.data = data

    @property
    def not_found(self) -> bool:
        return any(
            isinstance(err, Mapping) and err.get("type") == "NOT_FOUND" for err in self.errors
        )


@dataclass
class GitHubGraphQLClient:
    """Minimal GraphQL client shared read-only by all concurrent tasks.

    Every request goes through ``retrier`` (``run_with_retries`` unless one
    is injected); the reconciliation code never retries on its own.
    """

    token: str
    graphql_url: str = DEFAULT_GRAPHQL_URL
    timeout: float = 30
    session: requests.Session | None = None
    retrier: Retrier | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)
        # sub-issue mutations were gated behind a preview header
        self._session.headers.setdefault("GraphQL-Features", "sub_issues")

    def _request(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = self._session.request(
            "POST",
            self.graphql_url,
            json=payload,
            headers=self._session.headers,
            timeout=self.timeout,
        )
        if response.status_code != HTTP_OK:
            headers = getattr(response, "headers", None) or {}
            raise GitHubAPIError(
                f"GitHub GraphQL POST failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
                retry_after=headers.get("Retry-After"),
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise GitHubAPIError(
                "GitHub GraphQL reply was not JSON",
                status=response.status_code,
                response_text=response.text,
            ) from exc
        if not isinstance(body, Mapping):
            raise GitHubAPIError(
                "GitHub GraphQL reply was not an object", status=response.status_code
            )
        errors = body.get("errors")
        if errors:
            raise GraphQLError(list(errors), data=body.get("data"))
        data = body.get("data")
        return dict(data) if isinstance(data, Mapping) else {}

    def execute(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run ``query`` and return its ``data`` object.

        Raises :class:`GitHubAPIError` on non-200 replies and
        :class:`GraphQLError` when the reply carries ``errors``.
        """
        payload = {"query": query, "variables": dict(variables or {})}
        retrier = self.retrier or run_with_retries
        result: dict[str, Any] = retrier(lambda: self._request(payload))
        return result

    def close(self) -> None:
        self._session.close()


__all__ = [
    "DEFAULT_GRAPHQL_URL",
    "GitHubAPIError",
    "GitHubGraphQLClient",
    "GraphQLError",
    "GraphQLExecutor",
]
