"""Error taxonomy & redaction.

Fatal conditions (organization, project or tracked field missing; transport
failures while paging) surface as exceptions that abort the run. Per-item
failures during identity resolution and mutation application are caught at
the task boundary and classified with :func:`classify_error` so they can be
logged and counted without leaking credentials.

Public API:
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"gh[osu]_[A-Za-z0-9]{20,40}"),  # OAuth / app tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"Bearer\s+[A-Za-z0-9_.-]{8,}"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class ParentLinkError(RuntimeError):
    """Base class for reconciliation failures."""


class NotFoundError(ParentLinkError):
    """Organization or project could not be resolved."""


class FieldNotFoundError(NotFoundError):
    """The tracked single-select field does not exist on the project."""


class ResponseShapeError(ParentLinkError):
    """A GraphQL reply did not have the expected structure."""


class IdempotencyMismatchError(ParentLinkError):
    """A mutation reply echoed a different client mutation id."""

    def __init__(self, expected: str, received: object):
        super().__init__(f"expected clientMutationId {expected!r}, got {received!r}")
        self.expected = expected
        self.received = received


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Replace token-like substrings with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    Typed errors win; otherwise fall back to keyword matching on the message
    (rate limits, abuse detection, network trouble).
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__

    if isinstance(exc, IdempotencyMismatchError):
        return ErrorInfo("idempotency", redact(msg), name)
    if isinstance(exc, NotFoundError):
        return ErrorInfo("not_found", redact(msg), name)
    if isinstance(exc, ResponseShapeError):
        return ErrorInfo("shape", redact(msg), name)
    if getattr(exc, "not_found", False):
        return ErrorInfo("not_found", redact(msg), name)
    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if "abuse" in low:
        return ErrorInfo("github.abuse", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "ErrorInfo",
    "FieldNotFoundError",
    "IdempotencyMismatchError",
    "NotFoundError",
    "ParentLinkError",
    "ResponseShapeError",
    "classify_error",
    "redact",
]
