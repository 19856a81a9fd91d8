"""Verdict composition and multi-rule security analysis."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..constants import Verdict
from .detector_models import SecurityIssue, SecurityReport, VerdictResult
from .detector_rules import (
    homoglyph_issue,
    invalid_punycode_issue,
    mixed_script_issue,
    reputation_issues,
)
from .external_intel import ReputationResult
from .lexical import LexicalResult
from .rules import AnalysisContext, AnalysisRule

logger = logging.getLogger(__name__)


def compose_verdict(
    lexical: LexicalResult,
    reputation: Optional[ReputationResult] = None,
) -> VerdictResult:
    """
    Fuse lexical findings with a reputation answer into a three-tier verdict.

    Evaluated top-down, first match wins:
    1. Reputation says dangerous -> DANGEROUS
    2. Mixed scripts, confusable characters or invalid Punycode -> SUSPICIOUS
    3. Otherwise -> NOT_SUSPICIOUS

    An unavailable reputation answer leaves the lexical verdict as it is and
    adds a low-severity advisory.
    """
    issues: list[SecurityIssue] = reputation_issues(reputation)
    for issue in (
        mixed_script_issue(lexical),
        homoglyph_issue(lexical),
        invalid_punycode_issue(lexical),
    ):
        if issue is not None:
            issues.append(issue)

    if reputation is not None and reputation.available and reputation.is_dangerous:
        level = Verdict.DANGEROUS
    elif lexical.has_mixed_scripts or lexical.suspicious_chars or lexical.punycode_invalid:
        level = Verdict.SUSPICIOUS
    else:
        level = Verdict.NOT_SUSPICIOUS

    return VerdictResult(level=level, issues=issues)


class SecurityAnalyzer:
    """Runs an ordered list of analysis rules and aggregates their issues."""

    def __init__(self, rules: Iterable[AnalysisRule]):
        self._rules: list[AnalysisRule] = list(rules)

    @property
    def rules(self) -> list[AnalysisRule]:
        return list(self._rules)

    def analyze(self, context: AnalysisContext) -> SecurityReport:
        report = SecurityReport(url=context.url, domain=context.domain)

        for rule in self._rules:
            try:
                rule_result = rule.apply(context)
            except Exception as exc:
                logger.warning(
                    "Rule %s failed for %s: %s",
                    getattr(rule, "name", "unknown"),
                    context.domain,
                    exc,
                )
                continue

            report.issues.extend(rule_result.issues or [])
            for key, value in (rule_result.metadata or {}).items():
                if value is None:
                    continue
                report.metadata[key] = value

        if report.issues:
            logger.debug(
                "%s: %s issue(s), suspicion level %s",
                context.domain,
                len(report.issues),
                report.suspicion_level,
            )
        return report
