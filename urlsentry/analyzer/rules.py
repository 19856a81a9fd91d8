"""Rule-based building blocks for URL analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

from .detector_models import SecurityIssue
from .external_intel import ReputationResult
from .lexical import LexicalResult


@dataclass(frozen=True)
class AnalysisContext:
    """Shared context passed to each analysis rule."""

    url: str
    host: str
    domain: str
    lexical: LexicalResult
    reputation: Optional[ReputationResult] = None


@dataclass
class RuleResult:
    """Outcome of a single analysis rule."""

    name: str
    issues: list[SecurityIssue] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)


class AnalysisRule(Protocol):
    """Interface for analysis rules."""

    name: str

    def apply(self, context: AnalysisContext) -> RuleResult:  # pragma: no cover - interface
        ...
