"""parentlink - keep GitHub sub-issue links in step with a project field.

A single-select field on an organization project (v2) names, through each
option's description, the parent issue of every board item set to that
option. ``reconcile_project`` links each such item as a sub-issue of its
parent, skipping items that are already linked.

from parentlink import GitHubGraphQLClient, ReconcileSettings, reconcile_project

client = GitHubGraphQLClient(token=os.environ['GITHUB_TOKEN'])
report = reconcile_project(
    client, ReconcileSettings(org='acme', project_number=7, field_name='Initiative'),
    dry_run=True,
)
print(report.plan.operation_count)

The ``parentlink`` CLI wraps the same pipeline.
"""

from __future__ import annotations

from .applier import apply_plan
from .config import ConfigError, ParentLinkConfig, load_config
from .errors import FieldNotFoundError, NotFoundError, ParentLinkError
from .fields import discover_parent_field
from .github_graphql import GitHubAPIError, GitHubGraphQLClient, GraphQLError
from .identity import resolve_candidates, resolve_issue_identity
from .models import BoardIssue, ParentCandidate, ReconciliationPlan, ReconciliationReport
from .orchestrator import ReconcileSettings, reconcile_project
from .planner import build_plan
from .references import IssueReference, parse_issue_url
from .scanner import iter_board_issues

# Version constant (keep in sync with pyproject)
__version__ = "0.1.0"

__all__ = [
    "BoardIssue",
    "ConfigError",
    "FieldNotFoundError",
    "GitHubAPIError",
    "GitHubGraphQLClient",
    "GraphQLError",
    "IssueReference",
    "NotFoundError",
    "ParentCandidate",
    "ParentLinkConfig",
    "ParentLinkError",
    "ReconcileSettings",
    "ReconciliationPlan",
    "ReconciliationReport",
    "apply_plan",
    "build_plan",
    "discover_parent_field",
    "iter_board_issues",
    "load_config",
    "parse_issue_url",
    "reconcile_project",
    "resolve_candidates",
    "resolve_issue_identity",
    "__version__",
]
