"""Source code of a file component.

Functions:
    get_source(client, component, from_line, to_line) -> list[SourceLine]

Without a line range the raw file is fetched from ``/api/sources/raw``; with
one, ``/api/sources/show`` returns the numbered (syntax-highlighted) lines.
"""

import html
import re
from typing import Any

from sonar_cli.client import SonarClient
from sonar_cli.models import SourceLine

RAW_ENDPOINT = "/api/sources/raw"
SHOW_ENDPOINT = "/api/sources/show"

_HTML_TAG_RE = re.compile(r"<[^>]+>")


def get_source(
    client: SonarClient,
    component: str,
    from_line: int | None = None,
    to_line: int | None = None,
) -> list[SourceLine]:
    if from_line is None and to_line is None:
        raw = client.get_text(RAW_ENDPOINT, params={"key": component})
        return [SourceLine(line=n, code=code) for n, code in enumerate(raw.splitlines(), 1)]

    params: dict[str, Any] = {"key": component}
    if from_line is not None:
        params["from"] = from_line
    if to_line is not None:
        params["to"] = to_line
    return client.get(SHOW_ENDPOINT, params=params, model=_source_lines)


def _source_lines(data: dict) -> list[SourceLine]:
    # "sources" is a list of [line_number, html] pairs
    return [
        SourceLine(line=int(number), code=_strip_html(code))
        for number, code in data.get("sources", [])
    ]


def _strip_html(text: str) -> str:
    """Remove HTML tags and entities injected by SonarQube syntax highlighting."""
    return html.unescape(_HTML_TAG_RE.sub("", text))
