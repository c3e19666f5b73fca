import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from parentlink.github_graphql import GitHubAPIError, GitHubGraphQLClient, GraphQLError
from parentlink.retry import RetryConfig, run_with_retries


@dataclass
class _DummyResponse:
    status_code: int
    payload: Any
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    @property
    def text(self) -> str:
        if isinstance(self.payload, (dict, list)):
            return json.dumps(self.payload)
        return str(self.payload)


class _DummySession:
    def __init__(self, responses: list[_DummyResponse]):
        self._responses = responses
        self.request_log: list[tuple[str, str, dict[str, Any]]] = []
        self.headers: dict[str, str] = {}
        self.closed = False

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        json: Any | None = None,
        timeout: float | None = None,
    ) -> _DummyResponse:
        self.request_log.append((method, url, {"headers": dict(headers), "json": json}))
        if not self._responses:
            raise AssertionError("No response queued for request")
        return self._responses.pop(0)

    def close(self) -> None:
        self.closed = True


def _no_retry(fn):
    return fn()


def test_execute_posts_query_and_returns_data():
    session = _DummySession([_DummyResponse(200, {"data": {"viewer": {"login": "octo"}}})])
    client = GitHubGraphQLClient(token="tkn", session=session, retrier=_no_retry)

    data = client.execute("query { viewer { login } }", {"a": 1})

    assert data == {"viewer": {"login": "octo"}}
    method, url, payload = session.request_log[0]
    assert method == "POST"
    assert url == "https://api.github.com/graphql"
    assert payload["json"] == {"query": "query { viewer { login } }", "variables": {"a": 1}}
    assert payload["headers"]["Authorization"] == "Bearer tkn"
    assert payload["headers"]["GraphQL-Features"] == "sub_issues"


def test_non_200_raises_api_error_with_status():
    session = _DummySession(
        [_DummyResponse(502, {"message": "bad gateway"}, headers={"Retry-After": "3"})]
    )
    client = GitHubGraphQLClient(token="tkn", session=session, retrier=_no_retry)

    with pytest.raises(GitHubAPIError) as excinfo:
        client.execute("query { x }")
    assert excinfo.value.status == 502
    assert excinfo.value.retry_after == "3"
    assert "bad gateway" in (excinfo.value.response_text or "")


def test_errors_array_raises_graphql_error():
    errors = [{"type": "NOT_FOUND", "message": "Could not resolve to an Organization"}]
    reply = {"data": {"organization": None}, "errors": errors}
    session = _DummySession([_DummyResponse(200, reply)])
    client = GitHubGraphQLClient(token="tkn", session=session, retrier=_no_retry)

    with pytest.raises(GraphQLError) as excinfo:
        client.execute("query { x }")
    assert excinfo.value.not_found
    assert excinfo.value.data == {"organization": None}


def test_graphql_error_without_not_found_type():
    err = GraphQLError([{"type": "FORBIDDEN", "message": "nope"}])
    assert not err.not_found
    assert err.status == 200


def test_non_json_reply_raises_api_error():
    session = _DummySession([_DummyResponse(200, ValueError("no json"))])
    client = GitHubGraphQLClient(token="tkn", session=session, retrier=_no_retry)
    with pytest.raises(GitHubAPIError):
        client.execute("query { x }")


def test_missing_data_returns_empty_mapping():
    session = _DummySession([_DummyResponse(200, {})])
    client = GitHubGraphQLClient(token="tkn", session=session, retrier=_no_retry)
    assert client.execute("query { x }") == {}


def test_transient_status_is_retried_through_retrier(monkeypatch):
    monkeypatch.setattr("parentlink.retry.time.sleep", lambda _s: None)
    session = _DummySession(
        [
            _DummyResponse(503, {"message": "unavailable"}),
            _DummyResponse(200, {"data": {"ok": True}}),
        ]
    )
    cfg = RetryConfig(attempts=3, base_sleep=0.0)
    client = GitHubGraphQLClient(
        token="tkn", session=session, retrier=lambda fn: run_with_retries(fn, cfg=cfg)
    )

    assert client.execute("query { ok }") == {"ok": True}
    assert len(session.request_log) == 2


def test_client_error_is_not_retried(monkeypatch):
    monkeypatch.setattr("parentlink.retry.time.sleep", lambda _s: None)
    session = _DummySession([_DummyResponse(401, {"message": "Bad credentials"})])
    cfg = RetryConfig(attempts=3, base_sleep=0.0)
    client = GitHubGraphQLClient(
        token="tkn", session=session, retrier=lambda fn: run_with_retries(fn, cfg=cfg)
    )
    with pytest.raises(GitHubAPIError):
        client.execute("query { x }")
    assert len(session.request_log) == 1


def test_close_closes_session():
    session = _DummySession([])
    client = GitHubGraphQLClient(token="tkn", session=session)
    client.close()
    assert session.closed
