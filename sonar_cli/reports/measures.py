"""Project measures and measure history.

Functions:
    get_measures(client, project_key, metrics, branch)           -> dict
    get_history(client, project_key, metrics, branch, from_, to) -> list[MeasureHistory]
    merge_history(accumulated, page_measures)                    -> tuple
"""

from dataclasses import replace
from typing import Any, Sequence

from sonar_cli.client import SonarClient
from sonar_cli.models import MeasureHistory
from sonar_cli.pagination import Page, StopRule, collect_pages

MEASURES_ENDPOINT = "/api/measures/component"
HISTORY_ENDPOINT = "/api/measures/search_history"

DEFAULT_METRICS: list[str] = [
    "ncloc",
    "coverage",
    "duplicated_lines_density",
    "bugs",
    "vulnerabilities",
    "code_smells",
    "sqale_debt_ratio",
    "reliability_rating",
    "security_rating",
    "sqale_rating",
]


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #

def parse_value(raw: dict):
    """Return a numeric value from a SonarQube measure dict, or None if absent.

    SonarQube stores current-code values under ``"value"`` and (in older
    versions) new-code / leak-period values under ``"period": {"value": ...}``.
    Newer versions expose both; we prefer ``"value"`` when present.
    """
    val = raw.get("value")
    if val is None:
        period = raw.get("period")
        val = period.get("value") if isinstance(period, dict) else None
    if val is None:
        return None
    try:
        f = float(val)
        # Return int when the float is a whole number (e.g. 88.0 → 88)
        return int(f) if f == int(f) else f
    except (ValueError, TypeError, OverflowError):
        return val


def measures_to_dict(measures: list[dict]) -> dict:
    """Convert a list of SonarQube measure dicts to ``{metric_key: value}``."""
    return {m["metric"]: parse_value(m) for m in measures}


def split_metrics(metrics: str | Sequence[str] | None) -> list[str]:
    if metrics is None:
        return list(DEFAULT_METRICS)
    if isinstance(metrics, str):
        metrics = metrics.split(",")
    return [m.strip() for m in metrics if m.strip()]


def merge_history(
    accumulated: tuple[MeasureHistory, ...],
    page_measures: Sequence[MeasureHistory],
) -> tuple[MeasureHistory, ...]:
    """Merge one page of history into what was collected so far.

    The server pages history points, not metrics, so the same metric comes
    back on every page with more points. Known metrics get the new points
    appended; unknown ones are added at the end.
    """
    merged = list(accumulated)
    index = {m.metric: i for i, m in enumerate(merged)}
    for measure in page_measures:
        if measure.metric in index:
            i = index[measure.metric]
            merged[i] = replace(merged[i], history=merged[i].history + measure.history)
        else:
            index[measure.metric] = len(merged)
            merged.append(measure)
    return tuple(merged)


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #

def get_measures(
    client: SonarClient,
    project_key: str,
    metrics: str | Sequence[str] | None = None,
    branch: str | None = None,
) -> dict:
    """Return ``{metric: value}`` for the project component."""
    params: dict[str, Any] = {
        "component": project_key,
        "metricKeys": ",".join(split_metrics(metrics)),
    }
    if branch:
        params["branch"] = branch
    data = client.get(MEASURES_ENDPOINT, params=params)
    return measures_to_dict(data.get("component", {}).get("measures", []))


def get_history(
    client: SonarClient,
    project_key: str,
    metrics: str | Sequence[str],
    branch: str | None = None,
    from_: str | None = None,
    to: str | None = None,
) -> list[MeasureHistory]:
    """Return the full history of *metrics*, merged across pages."""
    params: dict[str, Any] = {
        "component": project_key,
        "metrics": ",".join(split_metrics(metrics)),
    }
    if from_:
        params["from"] = from_
    if to:
        params["to"] = to
    if branch:
        params["branch"] = branch

    def fetch(page: int, size: int) -> Page:
        return client.get(
            HISTORY_ENDPOINT,
            {**params, "p": page, "ps": size},
            model=_history_page,
        )

    return collect_pages(fetch, stop=StopRule.PAGE_ARITHMETIC, merge=merge_history)


def _history_page(data: dict) -> Page:
    measures = [MeasureHistory.from_json(m) for m in data.get("measures", [])]
    fetched = max((len(m.history) for m in measures), default=0)
    return Page(items=measures, total=int(data["paging"]["total"]), fetched=fetched)
