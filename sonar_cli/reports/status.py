"""Server health and quality gate status.

Functions:
    get_server_status(client)                       -> str
    get_quality_gate(client, project_key, branch)   -> QualityGate
"""

from typing import Any

from sonar_cli.client import SonarClient
from sonar_cli.models import QualityGate

STATUS_ENDPOINT = "/api/system/status"
QUALITY_GATE_ENDPOINT = "/api/qualitygates/project_status"


def get_server_status(client: SonarClient) -> str:
    """Return the server status string (UP, STARTING, DOWN, ...)."""
    return client.get(STATUS_ENDPOINT, model=lambda data: str(data["status"]))


def get_quality_gate(
    client: SonarClient,
    project_key: str,
    branch: str | None = None,
) -> QualityGate:
    params: dict[str, Any] = {"projectKey": project_key}
    if branch:
        params["branch"] = branch
    return client.get(QUALITY_GATE_ENDPOINT, params=params, model=QualityGate.from_response)
