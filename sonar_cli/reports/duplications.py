"""Duplication report.

Functions:
    get_files_with_duplications(client, project_key, branch)   -> list[dict]
    get_duplications(client, project_key, branch, details)     -> list[FileDuplication]
    join_duplication_blocks(response, current_key)             -> list[DuplicationBlock]

Built in two passes: the component tree gives the files with duplicated
lines, then ``/api/duplications/show`` gives the blocks of each such file.
Blocks reference files through opaque ``_ref`` ids resolved against the
response's ``files`` table.
"""

import logging
from typing import Any

from sonar_cli.client import SonarClient
from sonar_cli.models import DuplicationBlock, FileDuplication
from sonar_cli.reports.coverage import (
    TREE_ENDPOINT,
    component_float,
    component_metric,
    extract_path,
)

DUPLICATIONS_ENDPOINT = "/api/duplications/show"

DUPLICATION_METRICS: list[str] = [
    "duplicated_lines",
    "duplicated_lines_density",
    "duplicated_blocks",
]

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #

def get_files_with_duplications(
    client: SonarClient,
    project_key: str,
    branch: str | None = None,
) -> list[dict]:
    """Return the component_tree entries of files with duplicated lines.

    Files without duplication are dropped page by page, so paging stops on
    page arithmetic rather than on the number of files kept.
    """
    params: dict[str, Any] = {
        "component": project_key,
        "metricKeys": ",".join(DUPLICATION_METRICS),
        "qualifiers": "FIL",
    }
    if branch:
        params["branch"] = branch
    return client.get_paginated(
        TREE_ENDPOINT,
        params,
        results_key="components",
        keep=lambda comp: component_metric(comp, "duplicated_lines") > 0,
    )


def get_duplications(
    client: SonarClient,
    project_key: str,
    branch: str | None = None,
    details: bool = True,
) -> list[FileDuplication]:
    """Duplication records per file, with resolved blocks when *details*."""
    records: list[FileDuplication] = []
    for comp in get_files_with_duplications(client, project_key, branch):
        blocks: tuple[DuplicationBlock, ...] = ()
        if details:
            params: dict[str, Any] = {"key": comp["key"]}
            if branch:
                params["branch"] = branch
            logger.debug("Fetching duplication blocks of %s", comp["key"])
            blocks = tuple(client.get(
                DUPLICATIONS_ENDPOINT,
                params=params,
                model=lambda data, key=comp["key"]: join_duplication_blocks(data, key),
            ))
        records.append(FileDuplication(
            file=extract_path(comp["key"], project_key),
            component=comp["key"],
            duplicated_lines=component_metric(comp, "duplicated_lines"),
            duplicated_density=component_float(comp, "duplicated_lines_density"),
            blocks=blocks,
        ))
    return records


def join_duplication_blocks(response: dict, current_key: str) -> list[DuplicationBlock]:
    """Resolve each duplication group into "duplicated in file X" records.

    In every group the first block belonging to *current_key* is the anchor;
    every other block that resolves to a different file yields one record.
    Blocks of the current file itself and unresolvable references are
    skipped.
    """
    files: dict[str, dict] = response.get("files") or {}

    def resolve(block: dict) -> dict | None:
        return files.get(block.get("_ref"))

    records: list[DuplicationBlock] = []
    for group in response.get("duplications") or []:
        blocks = group.get("blocks") or []
        current = next(
            (b for b in blocks if (resolve(b) or {}).get("key") == current_key),
            None,
        )
        if current is None:
            continue

        for other in blocks:
            if other is current:
                continue
            other_file = resolve(other)
            if other_file is None or other_file.get("key") == current_key:
                continue
            records.append(DuplicationBlock(
                from_line=int(current["from"]),
                size=int(current["size"]),
                duplicated_in=other_file.get("name") or other_file["key"],
                duplicated_in_line=int(other["from"]),
            ))
    return records
