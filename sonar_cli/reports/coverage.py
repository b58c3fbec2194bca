"""Per-file coverage report.

Functions:
    get_files_coverage(client, project_key, branch)                  -> list[dict]
    get_coverage(client, project_key, branch, min_coverage, sort_by) -> list[FileCoverage]

Queries ``/api/measures/component_tree`` for every file (qualifier ``FIL``)
of the project and reshapes the measures into :class:`FileCoverage` records.
"""

from typing import Any

from sonar_cli.client import SonarClient
from sonar_cli.models import FileCoverage

TREE_ENDPOINT = "/api/measures/component_tree"

COVERAGE_METRICS: list[str] = ["coverage", "uncovered_lines", "lines_to_cover"]

SORT_KEYS = ("coverage", "uncovered", "file")


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #

def get_files_coverage(
    client: SonarClient,
    project_key: str,
    branch: str | None = None,
) -> list[dict]:
    """Return the raw component_tree entries of every file, all pages."""
    params: dict[str, Any] = {
        "component": project_key,
        "metricKeys": ",".join(COVERAGE_METRICS),
        "qualifiers": "FIL",
    }
    if branch:
        params["branch"] = branch
    return client.get_paginated(TREE_ENDPOINT, params, results_key="components")


def get_coverage(
    client: SonarClient,
    project_key: str,
    branch: str | None = None,
    min_coverage: float | None = None,
    sort_by: str = "coverage",
) -> list[FileCoverage]:
    """Coverage per file, optionally only files below *min_coverage* percent.

    *sort_by* is ``coverage`` (lowest first), ``uncovered`` (most uncovered
    lines first) or ``file`` (path order).
    """
    files = [
        to_file_coverage(comp, project_key)
        for comp in get_files_coverage(client, project_key, branch)
    ]
    if min_coverage is not None:
        files = [f for f in files if f.coverage_percent < min_coverage]
    return sort_coverage(files, sort_by)


def to_file_coverage(comp: dict, project_key: str) -> FileCoverage:
    return FileCoverage(
        file=extract_path(comp["key"], project_key),
        # Files without a coverage measure have nothing to cover.
        coverage_percent=component_float(comp, "coverage", default=100.0),
        uncovered_lines=component_metric(comp, "uncovered_lines"),
        lines_to_cover=component_metric(comp, "lines_to_cover"),
    )


def sort_coverage(files: list[FileCoverage], sort_by: str = "coverage") -> list[FileCoverage]:
    if sort_by == "uncovered":
        return sorted(files, key=lambda f: f.uncovered_lines, reverse=True)
    if sort_by == "file":
        return sorted(files, key=lambda f: f.file)
    return sorted(files, key=lambda f: f.coverage_percent)


# --------------------------------------------------------------------------- #
# Component helpers, shared with the duplications report
# --------------------------------------------------------------------------- #

def extract_path(component: str, project_key: str) -> str:
    """Strip the ``project:`` prefix from a component key."""
    prefix = f"{project_key}:"
    return component[len(prefix):] if component.startswith(prefix) else component


def _measure_value(comp: dict, metric: str) -> str | None:
    for m in comp.get("measures", []):
        if m.get("metric") == metric:
            return m.get("value")
    return None


def component_metric(comp: dict, metric: str) -> int:
    """Return an integer metric value from a component_tree component."""
    try:
        return int(float(_measure_value(comp, metric)))
    except (TypeError, ValueError):
        return 0


def component_float(comp: dict, metric: str, default: float = 0.0) -> float:
    try:
        return float(_measure_value(comp, metric))
    except (TypeError, ValueError):
        return default
