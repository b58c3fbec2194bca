"""Tests for sonar_cli/models.py"""

import pytest

from sonar_cli.models import (
    AnalysisTask,
    Hotspot,
    Issue,
    Project,
    QualityGate,
    Rule,
    Severity,
    TaskStatus,
    severities_at_least,
)

MINIMAL_ISSUE = {
    "key": "AYtest123",
    "rule": "python:S1135",
    "severity": "INFO",
    "component": "proj:src/main.py",
    "message": "Complete the task associated to this TODO comment.",
    "type": "CODE_SMELL",
    "status": "OPEN",
}


# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------

def test_severity_ordinals():
    assert [s.ordinal for s in Severity] == [0, 1, 2, 3, 4]
    assert [s.name for s in Severity] == ["INFO", "MINOR", "MAJOR", "CRITICAL", "BLOCKER"]


@pytest.mark.parametrize("minimum", list(Severity))
def test_severities_at_least_selects_exactly_the_higher_ones(minimum):
    expected = {s for s in Severity if s.ordinal >= minimum.ordinal}
    assert set(severities_at_least(minimum)) == expected


def test_severities_at_least_critical():
    assert severities_at_least("CRITICAL") == [Severity.CRITICAL, Severity.BLOCKER]


def test_severities_at_least_info_is_everything():
    assert severities_at_least("info") == list(Severity)


def test_unknown_severity_rejected():
    with pytest.raises(ValueError, match="URGENT"):
        Severity.parse("URGENT")


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------

def test_minimal_issue_deserializes():
    issue = Issue.from_json(MINIMAL_ISSUE)
    assert issue.severity is Severity.INFO
    assert issue.line is None
    assert issue.text_range is None
    assert issue.tags == ()


def test_minimal_issue_round_trips():
    out = Issue.from_json(MINIMAL_ISSUE).to_json()
    assert {k: out[k] for k in MINIMAL_ISSUE} == MINIMAL_ISSUE
    assert "line" not in out
    assert "textRange" not in out


def test_full_issue_round_trips():
    raw = {
        **MINIMAL_ISSUE,
        "project": "proj",
        "line": 42,
        "textRange": {"startLine": 42, "endLine": 43, "startOffset": 0, "endOffset": 10},
        "resolution": "FIXED",
        "effort": "5min",
        "tags": ["todo", "convention"],
    }
    assert Issue.from_json(raw).to_json() == raw


def test_issue_text_range_without_offsets():
    issue = Issue.from_json({**MINIMAL_ISSUE, "textRange": {"startLine": 7, "endLine": 9}})
    assert issue.text_range.start_line == 7
    assert issue.to_json()["textRange"] == {"startLine": 7, "endLine": 9}


def test_issue_missing_required_field():
    raw = dict(MINIMAL_ISSUE)
    del raw["message"]
    with pytest.raises(KeyError):
        Issue.from_json(raw)


# ---------------------------------------------------------------------------
# Quality gate
# ---------------------------------------------------------------------------

def test_quality_gate_conditions():
    gate = QualityGate.from_response({
        "projectStatus": {
            "status": "ERROR",
            "conditions": [
                {"status": "OK", "metricKey": "new_bugs", "comparator": "GT",
                 "errorThreshold": "0", "actualValue": "0"},
                {"status": "ERROR", "metricKey": "new_coverage", "comparator": "LT",
                 "errorThreshold": "80", "actualValue": "42.0"},
            ],
        }
    })
    assert not gate.passed
    assert [c.passed for c in gate.conditions] == [True, False]
    assert gate.to_json()["conditions"][1]["actualValue"] == "42.0"


def test_quality_gate_without_conditions():
    gate = QualityGate.from_response({"projectStatus": {"status": "OK"}})
    assert gate.passed
    assert gate.conditions == ()


# ---------------------------------------------------------------------------
# Other records
# ---------------------------------------------------------------------------

def test_hotspot_from_json():
    hotspot = Hotspot.from_json({
        "key": "h1", "component": "proj:app.py", "project": "proj",
        "securityCategory": "sql-injection", "vulnerabilityProbability": "HIGH",
        "status": "TO_REVIEW", "line": 10, "message": "Check this query",
        "ruleKey": "python:S2077",
    })
    assert hotspot.rule_key == "python:S2077"
    assert hotspot.to_json()["vulnerabilityProbability"] == "HIGH"


def test_project_optional_fields():
    project = Project.from_json({"key": "proj", "name": "Project"})
    assert project.to_json() == {"key": "proj", "name": "Project"}


def test_rule_language_name():
    rule = Rule.from_json({"key": "py:S1", "name": "Rule", "lang": "py", "langName": "Python"})
    assert rule.lang_name == "Python"
    assert rule.to_json()["langName"] == "Python"


# ---------------------------------------------------------------------------
# Analysis task
# ---------------------------------------------------------------------------

def test_analysis_task_from_response():
    task = AnalysisTask.from_response({
        "task": {
            "id": "task-123", "type": "REPORT", "status": "SUCCESS",
            "submittedAt": "2024-01-01T00:00:00+0000",
            "executedAt": "2024-01-01T00:01:00+0000",
            "analysisId": "analysis-1",
        }
    })
    assert task.state is TaskStatus.SUCCESS
    assert task.analysis_id == "analysis-1"
    assert task.error_message is None


@pytest.mark.parametrize("status, state", [
    ("PENDING", TaskStatus.PENDING),
    ("IN_PROGRESS", TaskStatus.IN_PROGRESS),
    ("FAILED", TaskStatus.FAILED),
    ("CANCELED", TaskStatus.CANCELED),
    ("SOMETHING_NEW", TaskStatus.OTHER),
])
def test_task_status_mapping(status, state):
    task = AnalysisTask(id="t", type="REPORT", status=status, submitted_at="now")
    assert task.state is state


def test_only_success_failed_canceled_are_terminal():
    assert {s for s in TaskStatus if s.is_terminal} == {
        TaskStatus.SUCCESS, TaskStatus.FAILED, TaskStatus.CANCELED,
    }
