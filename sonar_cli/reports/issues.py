"""Issue search and reporting.

Functions:
    search_issues(client, project_key, filters, branch, limit) -> list[Issue]
    build_issue_report(project_key, issues, branch)            -> dict
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sonar_cli.client import SonarClient
from sonar_cli.models import Issue, Severity, severities_at_least

ISSUES_ENDPOINT = "/api/issues/search"

# ACCEPTED / WONTFIX / CLOSED excluded - only genuinely open issues
DEFAULT_STATUSES = "OPEN,CONFIRMED,REOPENED"

_TYPES = ("BUG", "VULNERABILITY", "CODE_SMELL", "SECURITY_HOTSPOT")


@dataclass(frozen=True)
class IssueFilters:
    """Optional filters for ``/api/issues/search``.

    ``min_severity`` expands to every severity at or above it. The other
    fields are passed through as comma-separated lists.
    """

    min_severity: str | None = None
    types: str | None = None
    statuses: str | None = None
    resolutions: str | None = None
    tags: str | None = None
    rules: str | None = None
    languages: str | None = None
    author: str | None = None
    assignees: str | None = None
    created_after: str | None = None
    created_before: str | None = None

    def to_params(self) -> dict[str, str]:
        params = {
            "statuses":      self.statuses or DEFAULT_STATUSES,
            "severities":    severity_filter(self.min_severity),
            "types":         self.types,
            "resolutions":   self.resolutions,
            "tags":          self.tags,
            "rules":         self.rules,
            "languages":     self.languages,
            "author":        self.author,
            "assignees":     self.assignees,
            "createdAfter":  self.created_after,
            "createdBefore": self.created_before,
        }
        return {k: v for k, v in params.items() if v}


def severity_filter(min_severity: str | None) -> str | None:
    """Comma-join every severity at or above *min_severity*, or None if unset."""
    if not min_severity:
        return None
    return ",".join(s.name for s in severities_at_least(min_severity))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def search_issues(
    client: SonarClient,
    project_key: str,
    filters: IssueFilters | None = None,
    branch: str | None = None,
    limit: int | None = None,
) -> list[Issue]:
    """Return every issue of *project_key* matching *filters*.

    Stops paging as soon as *limit* issues are collected.
    """
    params: dict[str, Any] = {
        "componentKeys": project_key,
        **(filters or IssueFilters()).to_params(),
    }
    if branch:
        params["branch"] = branch
    return client.get_paginated(
        ISSUES_ENDPOINT, params, results_key="issues", model=Issue.from_json, limit=limit,
    )


def build_issue_report(
    project_key: str,
    issues: list[Issue],
    branch: str | None = None,
) -> dict:
    report: dict[str, Any] = {
        "report_type":  "issues",
        "project_key":  project_key,
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
    if branch:
        report["branch"] = branch
    report["summary"] = _build_summary(issues)
    report["issues"] = [i.to_json() for i in issues]
    return report


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _build_summary(issues: list[Issue]) -> dict:
    by_severity = {s.name: 0 for s in reversed(Severity)}
    by_type     = {t: 0 for t in _TYPES}

    for issue in issues:
        by_severity[issue.severity.name] += 1
        if issue.type in by_type:
            by_type[issue.type] += 1

    return {
        "total":       len(issues),
        "by_severity": by_severity,
        "by_type":     by_type,
    }
