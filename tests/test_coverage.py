"""Tests for reports/coverage.py"""

import pytest
import requests_mock as requests_mock_lib

from sonar_cli.client import SonarClient
from sonar_cli.reports.coverage import (
    component_metric,
    extract_path,
    get_coverage,
    sort_coverage,
    to_file_coverage,
)

BASE_URL = "https://sonar.example.com"
TOKEN = "test-token"
PROJECT = "my-project"
TREE_URL = f"{BASE_URL}/api/measures/component_tree"


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #

@pytest.fixture
def client():
    return SonarClient(BASE_URL, TOKEN)


def _file(path: str, coverage=None, uncovered=0, to_cover=0) -> dict:
    measures = [
        {"metric": "uncovered_lines", "value": str(uncovered)},
        {"metric": "lines_to_cover", "value": str(to_cover)},
    ]
    if coverage is not None:
        measures.append({"metric": "coverage", "value": str(coverage)})
    return {"key": f"{PROJECT}:{path}", "path": path, "qualifier": "FIL", "measures": measures}


def _tree(components: list[dict], total: int | None = None) -> dict:
    total = len(components) if total is None else total
    return {
        "baseComponent": {"key": PROJECT},
        "components": components,
        "paging": {"pageIndex": 1, "pageSize": 100, "total": total},
    }


FILES = [
    _file("src/a.py", coverage=90.0, uncovered=2, to_cover=20),
    _file("src/b.py", coverage=40.5, uncovered=30, to_cover=50),
    _file("src/c.py", coverage=75.0, uncovered=5, to_cover=20),
]


# --------------------------------------------------------------------------- #
# get_coverage
# --------------------------------------------------------------------------- #

class TestGetCoverage:
    def test_requests_file_level_coverage_metrics(self, client):
        with requests_mock_lib.Mocker() as m:
            adapter = m.get(TREE_URL, json=_tree([]))
            get_coverage(client, PROJECT, branch="develop")
        qs = adapter.last_request.qs
        assert qs["qualifiers"] == ["fil"]
        assert qs["branch"] == ["develop"]
        assert qs["metrickeys"] == ["coverage,uncovered_lines,lines_to_cover"]

    def test_sorted_lowest_coverage_first(self, client):
        with requests_mock_lib.Mocker() as m:
            m.get(TREE_URL, json=_tree(FILES))
            result = get_coverage(client, PROJECT)
        assert [f.file for f in result] == ["src/b.py", "src/c.py", "src/a.py"]
        assert result[0].coverage_percent == 40.5
        assert result[0].uncovered_lines == 30
        assert result[0].lines_to_cover == 50

    def test_min_coverage_keeps_only_files_below_threshold(self, client):
        with requests_mock_lib.Mocker() as m:
            m.get(TREE_URL, json=_tree(FILES))
            result = get_coverage(client, PROJECT, min_coverage=80)
        assert [f.file for f in result] == ["src/b.py", "src/c.py"]

    def test_min_coverage_is_strict(self, client):
        with requests_mock_lib.Mocker() as m:
            m.get(TREE_URL, json=_tree(FILES))
            result = get_coverage(client, PROJECT, min_coverage=75.0)
        assert [f.file for f in result] == ["src/b.py"]

    def test_sort_by_uncovered(self, client):
        with requests_mock_lib.Mocker() as m:
            m.get(TREE_URL, json=_tree(FILES))
            result = get_coverage(client, PROJECT, sort_by="uncovered")
        assert [f.uncovered_lines for f in result] == [30, 5, 2]

    def test_follows_pages(self, client):
        first = [_file(f"src/f{n}.py", coverage=50) for n in range(100)]
        second = [_file("src/last.py", coverage=10)]
        with requests_mock_lib.Mocker() as m:
            adapter = m.get(TREE_URL, [
                {"json": _tree(first, total=101)},
                {"json": _tree(second, total=101)},
            ])
            result = get_coverage(client, PROJECT)
        assert len(result) == 101
        assert result[0].file == "src/last.py"
        assert adapter.call_count == 2


# --------------------------------------------------------------------------- #
# Component helpers
# --------------------------------------------------------------------------- #

class TestComponentHelpers:
    def test_missing_coverage_counts_as_fully_covered(self):
        record = to_file_coverage(_file("README.md"), PROJECT)
        assert record.coverage_percent == 100.0
        assert record.uncovered_lines == 0

    def test_extract_path_strips_project_prefix(self):
        assert extract_path(f"{PROJECT}:src/a.py", PROJECT) == "src/a.py"

    def test_extract_path_leaves_foreign_keys(self):
        assert extract_path("other:src/a.py", PROJECT) == "other:src/a.py"

    def test_component_metric_parses_float_strings(self):
        comp = {"measures": [{"metric": "duplicated_lines", "value": "12.0"}]}
        assert component_metric(comp, "duplicated_lines") == 12

    def test_component_metric_defaults_to_zero(self):
        assert component_metric({"measures": []}, "duplicated_lines") == 0
        assert component_metric({}, "duplicated_lines") == 0

    def test_sort_by_file(self):
        records = [to_file_coverage(c, PROJECT) for c in FILES]
        assert [f.file for f in sort_coverage(records, "file")] == [
            "src/a.py", "src/b.py", "src/c.py",
        ]
