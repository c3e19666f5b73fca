"""Pytest configuration for parentlink tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`), and provides a
scripted GraphQL client shared by the pipeline tests.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from parentlink.logging import configure_logging  # noqa: E402

Responder = Callable[[str, dict[str, Any]], dict[str, Any]]


class FakeGraphQLClient:
    """Route each query to a responder by the operation name it contains.

    Responders receive the variables and return the ``data`` object, or raise
    to simulate a failed request. Every call is recorded; the lock keeps the
    log consistent when concurrent phases call in from worker threads.
    """

    def __init__(self, responders: Mapping[str, Responder] | None = None):
        self.responders: dict[str, Responder] = dict(responders or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()
        self.closed = False

    def on(self, operation: str, responder: Responder) -> None:
        self.responders[operation] = responder

    def execute(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        variables = dict(variables or {})
        for operation, responder in self.responders.items():
            if operation in query:
                with self._lock:
                    self.calls.append((operation, variables))
                return responder(operation, variables)
        raise AssertionError(f"No responder for query: {query[:60]!r}")

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client() -> FakeGraphQLClient:
    return FakeGraphQLClient()


@pytest.fixture(autouse=True)
def _fresh_logger():
    # reset the process-global logger so level changes do not leak between tests
    configure_logging(json_logging=False, level="INFO")
    yield
