"""SonarQube API client.

Usage:
    client = SonarClient(url="https://sonar.example.com", token="squ_xxx")
    data   = client.get("/api/system/status")
    gate   = client.get("/api/qualitygates/project_status", params, model=QualityGate.from_response)
    issues = client.get_paginated("/api/issues/search", params, results_key="issues",
                                  model=Issue.from_json)
"""

import logging
import warnings
from typing import Any, Callable, TypeVar

import requests

from sonar_cli.pagination import PAGE_SIZE, Page, StopRule, collect_pages

PAGINATION_WARNING_THRESHOLD = 10_000

T = TypeVar("T")

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class SonarClientError(Exception):
    """Base exception for all client errors."""


class NetworkError(SonarClientError):
    """Raised on connection timeout or unreachable server."""


class ApiError(SonarClientError):
    """Raised when the server answers with a non-2xx status."""

    def __init__(self, status: int, body: str, message: str | None = None) -> None:
        super().__init__(message or f"API error {status}: {body[:200]}")
        self.status = status
        self.body = body


class AuthenticationError(ApiError):
    """Raised on HTTP 401 — invalid or expired token."""


class NotFoundError(ApiError):
    """Raised on HTTP 404 — project, component or resource not found."""


class DeserializationError(SonarClientError):
    """Raised when a response body does not have the expected shape."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class SonarClient:
    """Thin wrapper around the SonarQube REST API."""

    def __init__(self, url: str, token: str | None = None, timeout: int = 30) -> None:
        self.base_url = url.rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if token:
            # SonarQube auth: token as username, empty password
            self._session.auth = (token, "")

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        model: Callable[[Any], T] | None = None,
    ) -> Any:
        """Perform a single GET request and return the parsed JSON response.

        When *model* is given the decoded body is passed through it and its
        result is returned instead of the raw JSON.

        Raises:
            AuthenticationError:  HTTP 401
            NotFoundError:        HTTP 404
            ApiError:             Any other non-2xx response
            NetworkError:         Timeout or connection failure
            DeserializationError: Body is not JSON or does not fit *model*
        """
        response = self._request(endpoint, params or {})
        try:
            data = response.json()
        except ValueError as exc:
            raise DeserializationError(
                f"Response from {endpoint} is not valid JSON: {exc}"
            ) from exc
        if model is None:
            return data
        try:
            return model(data)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise DeserializationError(
                f"Unexpected response shape from {endpoint}: {exc!r}"
            ) from exc

    def get_text(self, endpoint: str, params: dict[str, Any] | None = None) -> str:
        """Perform a single GET request and return the body as text."""
        return self._request(endpoint, params or {}).text

    def get_paginated(
        self,
        endpoint: str,
        params: dict[str, Any],
        results_key: str,
        model: Callable[[Any], T] | None = None,
        *,
        limit: int | None = None,
        keep: Callable[[Any], bool] | None = None,
        page_size: int = PAGE_SIZE,
    ) -> list:
        """Fetch all pages for an endpoint and return a flat list of results.

        SonarQube paginates via ``p`` (page number) and ``ps`` (page size).
        The total result count is in ``response["paging"]["total"]`` (or in a
        top-level ``total`` for the older endpoints).

        Emits a warning when total > PAGINATION_WARNING_THRESHOLD (10 000)
        because SonarQube refuses to page beyond that limit.

        Args:
            endpoint:    API path, e.g. ``/api/issues/search``
            params:      Query parameters (do not include ``p`` or ``ps``)
            results_key: Key in the response JSON that holds the results list
                         (e.g. ``"issues"`` or ``"components"``)
            model:       Optional converter applied to every raw result
            limit:       Stop as soon as this many results are collected
            keep:        Optional filter applied to raw results after each
                         fetch; switches to page-arithmetic stopping since
                         the kept count no longer tracks the fetched count
        """
        warned = False

        def fetch(page: int, size: int) -> Page:
            nonlocal warned
            page_params = {**params, "ps": size, "p": page}
            logger.debug("GET %s page %d", endpoint, page)
            data = self.get(endpoint, page_params)
            try:
                raw = data.get(results_key, [])
                total = _total(data, default=len(raw))
                kept = [r for r in raw if keep(r)] if keep else raw
                items = [model(r) for r in kept] if model else kept
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise DeserializationError(
                    f"Unexpected response shape from {endpoint}: {exc!r}"
                ) from exc

            if total > PAGINATION_WARNING_THRESHOLD and not warned:
                warnings.warn(
                    f"Result set exceeds {PAGINATION_WARNING_THRESHOLD} items (total={total}). "
                    "SonarQube caps pagination at 10 000 — some results may be missing. "
                    "Consider narrowing the query with filters.",
                    UserWarning,
                    stacklevel=5,
                )
                warned = True

            return Page(items=items, total=total, fetched=len(raw))

        stop = StopRule.PAGE_ARITHMETIC if keep else StopRule.ITEM_COUNT
        return collect_pages(fetch, page_size=page_size, stop=stop, limit=limit)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _request(self, endpoint: str, params: dict[str, Any]) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            raise NetworkError(
                f"Request timed out after {self._timeout}s while contacting '{url}'"
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(
                f"Unable to reach SonarQube server at '{self.base_url}'"
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise NetworkError(f"Request to '{url}' failed: {exc}") from exc

        if response.status_code == 401:
            raise AuthenticationError(
                401,
                response.text,
                "Authentication failed — check that your token is valid and not expired.",
            )
        if response.status_code == 404:
            raise NotFoundError(404, response.text, f"Resource not found: {url}")
        if not response.ok:
            raise ApiError(
                response.status_code,
                response.text,
                f"Unexpected response {response.status_code} from {url}: {response.text[:200]}",
            )

        return response


def _total(data: dict, default: int) -> int:
    """Return the server-reported result count of a paged response."""
    paging = data.get("paging") or {}
    if "total" in paging:
        return int(paging["total"])
    if "total" in data:
        return int(data["total"])
    return default
