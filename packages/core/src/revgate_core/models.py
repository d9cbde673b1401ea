"""Value types passed between the stages of a gate run.

All of them are frozen: a request is built once from resolved inputs, a
response is built once from the service's terminal reply, and nothing
downstream mutates either.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Iterable


class Severity(enum.IntEnum):
    """Violation severity. Integer values give the total order used for ranking."""

    INFO = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @classmethod
    def parse(cls, value: str) -> Severity:
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown severity: {value!r}")


class AnalysisStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"


# Statuses the service uses while a review is still running.
PENDING_STATUSES = frozenset({"PENDING", "QUEUED", "RUNNING", "IN_PROGRESS"})


def _dedupe(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


@dataclass(frozen=True)
class AnalysisRequest:
    repository: str
    revision: str
    files: tuple[str, ...]
    rulesets: tuple[str, ...]
    credential: str = field(repr=False)

    @classmethod
    def build(
        cls,
        repository: str,
        revision: str,
        files: Iterable[str],
        rulesets: Iterable[str],
        credential: str,
    ) -> AnalysisRequest:
        """Create a request, collapsing duplicate files and rulesets in first-seen order."""
        return cls(
            repository=repository,
            revision=revision,
            files=_dedupe(files),
            rulesets=_dedupe(rulesets),
            credential=credential,
        )

    def to_payload(self) -> dict:
        # The credential travels in the Authorization header, never the body.
        return {
            "repository": self.repository,
            "revision": self.revision,
            "files": list(self.files),
            "rulesets": list(self.rulesets),
        }


@dataclass(frozen=True)
class Violation:
    severity: Severity
    rule_id: str
    path: str
    line: int | None
    title: str
    description: str

    @classmethod
    def from_dict(cls, d: dict) -> Violation:
        line = d.get("line")
        if line is not None:
            line = int(line)
            if line <= 0:
                line = None
        return cls(
            severity=Severity.parse(d["severity"]),
            rule_id=str(d.get("rule_id") or d.get("rule") or ""),
            path=str(d.get("file") or d.get("path") or ""),
            line=line,
            title=str(d.get("title") or ""),
            description=str(d.get("description") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.name,
            "rule_id": self.rule_id,
            "file": self.path,
            "line": self.line,
            "title": self.title,
            "description": self.description,
        }


@dataclass(frozen=True)
class AnalysisResponse:
    review_id: str
    score: float
    violations: tuple[Violation, ...]
    status: AnalysisStatus

    @classmethod
    def from_payload(cls, payload: dict) -> AnalysisResponse:
        """Build a response from the service's terminal JSON body.

        Raises ValueError (or KeyError/TypeError) on a body that does not
        match the contract; the client turns those into PermanentServiceError.
        """
        if not isinstance(payload, dict):
            raise ValueError("response body is not a JSON object")
        status = AnalysisStatus(str(payload["status"]).upper())
        raw_score = payload.get("compliance_score")
        if raw_score is None:
            # FAILED / TIMED_OUT replies may omit the score entirely.
            if status is AnalysisStatus.COMPLETED:
                raise ValueError("completed response is missing compliance_score")
            raw_score = 0.0
        score = float(raw_score)
        if not math.isfinite(score):
            raise ValueError(f"compliance_score must be a finite number, got {raw_score!r}")
        score = min(max(score, 0.0), 1.0)
        violations = tuple(Violation.from_dict(v) for v in payload.get("violations") or [])
        return cls(
            review_id=str(payload.get("review_id") or ""),
            score=score,
            violations=violations,
            status=status,
        )

    @property
    def completed(self) -> bool:
        return self.status is AnalysisStatus.COMPLETED

    def count(self, severity: Severity) -> int:
        return sum(1 for v in self.violations if v.severity is severity)

    @property
    def critical_count(self) -> int:
        return self.count(Severity.CRITICAL)

    @property
    def severity_counts(self) -> dict[Severity, int]:
        """Counts for every severity, highest first, including zeros."""
        return {s: self.count(s) for s in sorted(Severity, reverse=True)}


@dataclass(frozen=True)
class GateDecision:
    passed: bool
    reasons: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return "PASS" if self.passed else "FAIL"


@dataclass(frozen=True)
class CommentReference:
    comment_id: int
    url: str
    created: bool


@dataclass(frozen=True)
class GateOutcome:
    """Everything the exporter needs from a run, whichever way it ended.

    ``decision`` is None when the run aborted before a decision existed;
    ``error`` then says why. ``neutral`` marks the no-eligible-files path.
    """

    decision: GateDecision | None
    response: AnalysisResponse | None = None
    report: str = ""
    comment: CommentReference | None = None
    neutral: bool = False
    error: Exception | None = None

    @property
    def score(self) -> float | None:
        return self.response.score if self.response is not None else None

    @property
    def total_violations(self) -> int:
        return len(self.response.violations) if self.response is not None else 0

    @property
    def critical_violations(self) -> int:
        return self.response.critical_count if self.response is not None else 0

    @property
    def review_id(self) -> str:
        return self.response.review_id if self.response is not None else ""
