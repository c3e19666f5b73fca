"""Issue URL parsing.

Parent issues are referenced from project field option descriptions by their
HTML URL (``https://github.com/<owner>/<repo>/issues/<number>``). Input is
trimmed and lowercased before matching so differently-cased spellings of the
same URL normalize to an equal :class:`IssueReference`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_ISSUE_URL = re.compile(
    r"https?://github\.com/(?P<owner>[a-z0-9][a-z0-9-]*)/(?P<repo>[a-z0-9._-]+)"
    r"/issues/(?P<number>\d+)"
)


@dataclass(frozen=True)
class IssueReference:
    owner: str
    repository: str
    number: int
    url: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repository}#{self.number}"


def parse_issue_url(url: object) -> IssueReference | None:
    if not isinstance(url, str):
        return None
    normalized = url.strip().lower()
    match = _ISSUE_URL.fullmatch(normalized)
    if match is None:
        return None
    number = int(match.group("number"))
    if number <= 0:
        return None
    return IssueReference(
        owner=match.group("owner"),
        repository=match.group("repo"),
        number=number,
        url=normalized,
    )


__all__ = ["IssueReference", "parse_issue_url"]
