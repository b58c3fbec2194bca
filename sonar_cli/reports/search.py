"""Paged searches that return API records unchanged.

Functions:
    get_hotspots(client, project_key, status, branch)                     -> list[Hotspot]
    get_projects(client, search, qualifier)                               -> list[Project]
    get_rules(client, search, language, severity, rule_type, status)      -> list[Rule]
"""

from typing import Any

from sonar_cli.client import SonarClient
from sonar_cli.models import Hotspot, Project, Rule

HOTSPOTS_ENDPOINT = "/api/hotspots/search"
PROJECTS_ENDPOINT = "/api/components/search"
RULES_ENDPOINT = "/api/rules/search"

DEFAULT_HOTSPOT_STATUS = "TO_REVIEW"
DEFAULT_QUALIFIER = "TRK"


def _drop_empty(params: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v}


def get_hotspots(
    client: SonarClient,
    project_key: str,
    status: str | None = None,
    branch: str | None = None,
) -> list[Hotspot]:
    """Security hotspots of *project_key* in *status* (default TO_REVIEW)."""
    params = _drop_empty({
        "projectKey": project_key,
        "status": status or DEFAULT_HOTSPOT_STATUS,
        "branch": branch,
    })
    return client.get_paginated(
        HOTSPOTS_ENDPOINT, params, results_key="hotspots", model=Hotspot.from_json,
    )


def get_projects(
    client: SonarClient,
    search: str | None = None,
    qualifier: str | None = None,
) -> list[Project]:
    """Components visible to the token, projects (TRK) by default."""
    params = _drop_empty({
        "qualifiers": qualifier or DEFAULT_QUALIFIER,
        "q": search,
    })
    return client.get_paginated(
        PROJECTS_ENDPOINT, params, results_key="components", model=Project.from_json,
    )


def get_rules(
    client: SonarClient,
    search: str | None = None,
    language: str | None = None,
    severity: str | None = None,
    rule_type: str | None = None,
    status: str | None = None,
) -> list[Rule]:
    params = _drop_empty({
        "q": search,
        "languages": language,
        "severities": severity.upper() if severity else None,
        "types": rule_type.upper() if rule_type else None,
        "statuses": status.upper() if status else None,
    })
    return client.get_paginated(
        RULES_ENDPOINT, params, results_key="rules", model=Rule.from_json,
    )
