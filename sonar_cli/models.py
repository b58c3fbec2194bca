"""Data models for SonarQube API responses.

Immutable dataclasses built from the raw JSON with ``from_json`` and turned
back into JSON-ready dicts with ``to_json``:
    - Severity, Issue, TextRange        (issues)
    - QualityGate, QualityGateCondition (quality gate)
    - FileCoverage                      (coverage)
    - FileDuplication, DuplicationBlock (duplications)
    - Hotspot, Project, Rule            (searches)
    - MeasureHistory, HistoryPoint      (history)
    - SourceLine                        (source)
    - TaskStatus, AnalysisTask          (background tasks)

API-shaped records keep the server's camelCase keys on output; records the
tool derives itself (coverage, duplications) use snake_case.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {k: v for k, v in data.items() if v is not None}


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------

class Severity(Enum):
    """Issue severity, ordered from least to most severe."""

    INFO = 0
    MINOR = 1
    MAJOR = 2
    CRITICAL = 3
    BLOCKER = 4

    @classmethod
    def parse(cls, raw: str) -> "Severity":
        try:
            return cls[raw.strip().upper()]
        except KeyError:
            allowed = ", ".join(s.name for s in cls)
            raise ValueError(f"Unknown severity '{raw}' (expected one of {allowed})") from None

    @property
    def ordinal(self) -> int:
        return self.value


def severities_at_least(minimum: str | Severity) -> list[Severity]:
    """Return every severity at or above *minimum*, least severe first."""
    floor = minimum if isinstance(minimum, Severity) else Severity.parse(minimum)
    return [s for s in Severity if s.ordinal >= floor.ordinal]


@dataclass(frozen=True)
class TextRange:
    start_line: int
    end_line: int
    start_offset: int | None = None
    end_offset: int | None = None

    @classmethod
    def from_json(cls, raw: dict) -> "TextRange":
        return cls(
            start_line=int(raw["startLine"]),
            end_line=int(raw["endLine"]),
            start_offset=raw.get("startOffset"),
            end_offset=raw.get("endOffset"),
        )

    def to_json(self) -> dict:
        return _compact({
            "startLine": self.start_line,
            "endLine": self.end_line,
            "startOffset": self.start_offset,
            "endOffset": self.end_offset,
        })


@dataclass(frozen=True)
class Issue:
    key: str
    rule: str
    severity: Severity
    component: str
    message: str
    type: str
    status: str
    project: str | None = None
    line: int | None = None
    text_range: TextRange | None = None
    resolution: str | None = None
    effort: str | None = None
    debt: str | None = None
    tags: tuple[str, ...] = ()

    @classmethod
    def from_json(cls, raw: dict) -> "Issue":
        text_range = raw.get("textRange")
        return cls(
            key=raw["key"],
            rule=raw["rule"],
            severity=Severity.parse(raw["severity"]),
            component=raw["component"],
            message=raw["message"],
            type=raw["type"],
            status=raw["status"],
            project=raw.get("project"),
            line=raw.get("line"),
            text_range=TextRange.from_json(text_range) if text_range else None,
            resolution=raw.get("resolution"),
            effort=raw.get("effort"),
            debt=raw.get("debt"),
            tags=tuple(raw.get("tags") or ()),
        )

    def to_json(self) -> dict:
        return _compact({
            "key": self.key,
            "rule": self.rule,
            "severity": self.severity.name,
            "component": self.component,
            "project": self.project,
            "line": self.line,
            "textRange": self.text_range.to_json() if self.text_range else None,
            "message": self.message,
            "type": self.type,
            "status": self.status,
            "resolution": self.resolution,
            "effort": self.effort,
            "debt": self.debt,
            "tags": list(self.tags),
        })


# ---------------------------------------------------------------------------
# Quality gate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QualityGateCondition:
    status: str
    metric_key: str
    comparator: str | None = None
    error_threshold: str | None = None
    actual_value: str | None = None

    @property
    def passed(self) -> bool:
        return self.status == "OK"

    @classmethod
    def from_json(cls, raw: dict) -> "QualityGateCondition":
        return cls(
            status=raw["status"],
            metric_key=raw["metricKey"],
            comparator=raw.get("comparator"),
            error_threshold=raw.get("errorThreshold"),
            actual_value=raw.get("actualValue"),
        )

    def to_json(self) -> dict:
        return _compact({
            "status": self.status,
            "metricKey": self.metric_key,
            "comparator": self.comparator,
            "errorThreshold": self.error_threshold,
            "actualValue": self.actual_value,
            "passed": self.passed,
        })


@dataclass(frozen=True)
class QualityGate:
    status: str
    conditions: tuple[QualityGateCondition, ...] = ()

    @property
    def passed(self) -> bool:
        return self.status == "OK"

    @classmethod
    def from_response(cls, data: dict) -> "QualityGate":
        status = data["projectStatus"]
        return cls(
            status=status["status"],
            conditions=tuple(
                QualityGateCondition.from_json(c) for c in status.get("conditions") or ()
            ),
        )

    def to_json(self) -> dict:
        return {
            "status": self.status,
            "passed": self.passed,
            "conditions": [c.to_json() for c in self.conditions],
        }


# ---------------------------------------------------------------------------
# Coverage and duplications (derived records)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FileCoverage:
    file: str
    coverage_percent: float
    uncovered_lines: int
    lines_to_cover: int

    def to_json(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class DuplicationBlock:
    from_line: int
    size: int
    duplicated_in: str
    duplicated_in_line: int

    def to_json(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FileDuplication:
    file: str
    component: str
    duplicated_lines: int
    duplicated_density: float
    blocks: tuple[DuplicationBlock, ...] = field(default=())

    def to_json(self) -> dict:
        data = {
            "file": self.file,
            "duplicated_lines": self.duplicated_lines,
            "duplicated_density": self.duplicated_density,
        }
        if self.blocks:
            data["blocks"] = [b.to_json() for b in self.blocks]
        return data


# ---------------------------------------------------------------------------
# Hotspots, projects, rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Hotspot:
    key: str
    component: str
    security_category: str
    vulnerability_probability: str
    status: str
    message: str
    rule_key: str
    project: str | None = None
    line: int | None = None
    text_range: TextRange | None = None

    @classmethod
    def from_json(cls, raw: dict) -> "Hotspot":
        text_range = raw.get("textRange")
        return cls(
            key=raw["key"],
            component=raw["component"],
            security_category=raw["securityCategory"],
            vulnerability_probability=raw["vulnerabilityProbability"],
            status=raw["status"],
            message=raw["message"],
            rule_key=raw["ruleKey"],
            project=raw.get("project"),
            line=raw.get("line"),
            text_range=TextRange.from_json(text_range) if text_range else None,
        )

    def to_json(self) -> dict:
        return _compact({
            "key": self.key,
            "component": self.component,
            "project": self.project,
            "securityCategory": self.security_category,
            "vulnerabilityProbability": self.vulnerability_probability,
            "status": self.status,
            "line": self.line,
            "message": self.message,
            "ruleKey": self.rule_key,
            "textRange": self.text_range.to_json() if self.text_range else None,
        })


@dataclass(frozen=True)
class Project:
    key: str
    name: str
    qualifier: str | None = None
    visibility: str | None = None
    last_analysis_date: str | None = None

    @classmethod
    def from_json(cls, raw: dict) -> "Project":
        return cls(
            key=raw["key"],
            name=raw["name"],
            qualifier=raw.get("qualifier"),
            visibility=raw.get("visibility"),
            last_analysis_date=raw.get("lastAnalysisDate"),
        )

    def to_json(self) -> dict:
        return _compact({
            "key": self.key,
            "name": self.name,
            "qualifier": self.qualifier,
            "visibility": self.visibility,
            "lastAnalysisDate": self.last_analysis_date,
        })


@dataclass(frozen=True)
class Rule:
    key: str
    name: str
    severity: str | None = None
    type: str | None = None
    lang: str | None = None
    lang_name: str | None = None
    status: str | None = None

    @classmethod
    def from_json(cls, raw: dict) -> "Rule":
        return cls(
            key=raw["key"],
            name=raw["name"],
            severity=raw.get("severity"),
            type=raw.get("type"),
            lang=raw.get("lang"),
            lang_name=raw.get("langName"),
            status=raw.get("status"),
        )

    def to_json(self) -> dict:
        return _compact({
            "key": self.key,
            "name": self.name,
            "severity": self.severity,
            "type": self.type,
            "lang": self.lang,
            "langName": self.lang_name,
            "status": self.status,
        })


# ---------------------------------------------------------------------------
# Measure history
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HistoryPoint:
    date: str
    value: str | None = None

    def to_json(self) -> dict:
        return _compact({"date": self.date, "value": self.value})


@dataclass(frozen=True)
class MeasureHistory:
    metric: str
    history: tuple[HistoryPoint, ...] = ()

    @classmethod
    def from_json(cls, raw: dict) -> "MeasureHistory":
        return cls(
            metric=raw["metric"],
            history=tuple(
                HistoryPoint(date=p["date"], value=p.get("value"))
                for p in raw.get("history") or ()
            ),
        )

    def to_json(self) -> dict:
        return {"metric": self.metric, "history": [p.to_json() for p in self.history]}


# ---------------------------------------------------------------------------
# Source
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SourceLine:
    line: int
    code: str

    def to_json(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Background analysis tasks
# ---------------------------------------------------------------------------

class TaskStatus(Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELED = "CANCELED"
    OTHER = "OTHER"

    @classmethod
    def _missing_(cls, value: object) -> "TaskStatus":
        # Statuses added by newer servers keep the poller waiting.
        return cls.OTHER

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCESS, TaskStatus.FAILED, TaskStatus.CANCELED)


@dataclass(frozen=True)
class AnalysisTask:
    id: str
    type: str
    status: str
    submitted_at: str
    executed_at: str | None = None
    analysis_id: str | None = None
    error_message: str | None = None

    @property
    def state(self) -> TaskStatus:
        return TaskStatus(self.status)

    @classmethod
    def from_json(cls, raw: dict) -> "AnalysisTask":
        return cls(
            id=raw["id"],
            type=raw["type"],
            status=raw["status"],
            submitted_at=raw["submittedAt"],
            executed_at=raw.get("executedAt"),
            analysis_id=raw.get("analysisId"),
            error_message=raw.get("errorMessage"),
        )

    @classmethod
    def from_response(cls, data: dict) -> "AnalysisTask":
        return cls.from_json(data["task"])

    def to_json(self) -> dict:
        return _compact({
            "id": self.id,
            "type": self.type,
            "status": self.status,
            "submittedAt": self.submitted_at,
            "executedAt": self.executed_at,
            "analysisId": self.analysis_id,
            "errorMessage": self.error_message,
        })
