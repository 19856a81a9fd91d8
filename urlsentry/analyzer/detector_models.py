"""Detector data models."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..constants import IssueType, Severity, Verdict, highest_severity


@dataclass(frozen=True)
class SecurityIssue:
    """A single finding raised by an analysis rule."""

    type: IssueType
    severity: Severity
    description: str
    details: str = ""

    def to_dict(self) -> dict:
        return {
            "type": str(self.type),
            "severity": str(self.severity),
            "description": self.description,
            "details": self.details,
        }


@dataclass
class VerdictResult:
    """Final three-tier classification with the issues behind it."""

    level: Verdict
    issues: list[SecurityIssue] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "level": int(self.level),
            "label": str(self.level),
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass
class SecurityReport:
    """Aggregated output of every analysis rule for one URL."""

    url: str
    domain: str
    issues: list[SecurityIssue] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    @property
    def is_suspicious(self) -> bool:
        return bool(self.issues)

    @property
    def suspicion_level(self) -> Severity:
        return highest_severity(issue.severity for issue in self.issues)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "is_suspicious": self.is_suspicious,
            "suspicion_level": str(self.suspicion_level),
            "issues": [issue.to_dict() for issue in self.issues],
        }
