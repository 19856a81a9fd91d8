"""Analysis rule implementations."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..constants import DEFAULT_BRANDS, DEFAULT_SHORTENERS, IssueType, Severity
from ..utils.domains import is_known_domain, normalize_domain
from .detector_models import SecurityIssue
from .external_intel import ReputationResult
from .homoglyphs import to_latin_skeleton
from .lexical import LexicalResult
from .rules import AnalysisContext, AnalysisRule, RuleResult
from .similarity import SimilarityEngine

logger = logging.getLogger(__name__)


def mixed_script_issue(lexical: LexicalResult) -> Optional[SecurityIssue]:
    if not lexical.has_mixed_scripts:
        return None

    foreign = [
        f"'{char}' at position {position + 1}"
        for position, char in enumerate(lexical.decoded_hostname)
        if char.isalpha() and not char.isascii()
    ]
    return SecurityIssue(
        type=IssueType.MIXED_SCRIPTS,
        severity=Severity.HIGH,
        description=f"Domain mixes scripts: {', '.join(str(s) for s in lexical.scripts)}",
        details="; ".join(foreign),
    )


def homoglyph_issue(lexical: LexicalResult) -> Optional[SecurityIssue]:
    if not lexical.suspicious_chars:
        return None

    listed = ", ".join(
        f"'{item.char}' ({item.codepoint}, {item.script}) looks like '{item.latin_equivalent}'"
        for item in lexical.suspicious_chars
    )
    skeleton = to_latin_skeleton(lexical.decoded_hostname)
    details = listed
    if skeleton != lexical.decoded_hostname:
        details = f"{listed}. Reads as {skeleton}"
    return SecurityIssue(
        type=IssueType.HOMOGLYPH_ATTACK,
        severity=Severity.HIGH,
        description=f"Domain contains {len(lexical.suspicious_chars)} look-alike character(s)",
        details=details,
    )


def invalid_punycode_issue(lexical: LexicalResult) -> Optional[SecurityIssue]:
    if not lexical.punycode_invalid:
        return None
    return SecurityIssue(
        type=IssueType.INVALID_PUNYCODE,
        severity=Severity.HIGH,
        description="Domain contains invalid Punycode",
        details=lexical.explanation,
    )


def reputation_issues(reputation: Optional[ReputationResult]) -> list[SecurityIssue]:
    """Issues for a reputation answer; no answer at all yields nothing."""
    if reputation is None:
        return []

    if not reputation.available:
        return [
            SecurityIssue(
                type=IssueType.VERIFICATION_UNAVAILABLE,
                severity=Severity.LOW,
                description="External verification incomplete",
                details=reputation.details,
            )
        ]

    if not reputation.is_dangerous:
        return []

    sources = reputation.sources or ["reputation service"]
    return [
        SecurityIssue(
            type=IssueType.REPUTATION,
            severity=Severity.HIGH,
            description=f"URL reported as dangerous by {source}",
            details=reputation.details,
        )
        for source in sources
    ]


def _issues(*candidates: Optional[SecurityIssue]) -> list[SecurityIssue]:
    return [issue for issue in candidates if issue is not None]


class DomainSimilarityRule:
    name = "domain_similarity"

    def __init__(self, similarity: SimilarityEngine):
        self.similarity = similarity

    def apply(self, context: AnalysisContext) -> RuleResult:
        match = self.similarity.check_domain(context.domain)
        if match is None:
            return RuleResult(self.name)

        issue = SecurityIssue(
            type=IssueType.DOMAIN_SIMILARITY,
            severity=self.similarity.severity(match),
            description=(
                f"Domain similar to {match.legitimate} ({match.similarity * 100:.1f}% similar)"
            ),
            details="; ".join(str(diff) for diff in match.differences),
        )
        metadata = {
            "similar_to": match.legitimate,
            "similarity": round(match.similarity, 4),
        }
        return RuleResult(self.name, issues=[issue], metadata=metadata)


class MixedScriptRule:
    name = "mixed_scripts"

    def __init__(
        self,
        known_domains: Iterable[str] | None = None,
        compound_tlds: Iterable[str] | None = None,
    ):
        self.known_domains = known_domains
        self.compound_tlds = compound_tlds

    def apply(self, context: AnalysisContext) -> RuleResult:
        if is_known_domain(context.host, self.known_domains, self.compound_tlds):
            return RuleResult(self.name)
        metadata = {"scripts": [str(s) for s in context.lexical.scripts]}
        return RuleResult(self.name, issues=_issues(mixed_script_issue(context.lexical)), metadata=metadata)


class HomoglyphRule:
    name = "homoglyphs"

    def __init__(
        self,
        known_domains: Iterable[str] | None = None,
        compound_tlds: Iterable[str] | None = None,
    ):
        self.known_domains = known_domains
        self.compound_tlds = compound_tlds

    def apply(self, context: AnalysisContext) -> RuleResult:
        if is_known_domain(context.host, self.known_domains, self.compound_tlds):
            return RuleResult(self.name)
        return RuleResult(self.name, issues=_issues(homoglyph_issue(context.lexical)))


class InvalidPunycodeRule:
    name = "invalid_punycode"

    def apply(self, context: AnalysisContext) -> RuleResult:
        return RuleResult(
            self.name,
            issues=_issues(invalid_punycode_issue(context.lexical)),
            metadata={"punycode_valid": context.lexical.punycode_valid},
        )


class ShortenerRule:
    name = "shortener"

    def __init__(self, shorteners: Iterable[str] | None = None):
        self.shorteners = [s.lower() for s in (shorteners or DEFAULT_SHORTENERS)]

    def apply(self, context: AnalysisContext) -> RuleResult:
        host = context.host
        service = next(
            (s for s in self.shorteners if host == s or host.endswith(f".{s}")),
            None,
        )
        if service is None:
            return RuleResult(self.name)

        issue = SecurityIssue(
            type=IssueType.SHORTENED_URL,
            severity=Severity.MEDIUM,
            description=f"Shortened URL ({service}) hides the real destination",
            details="Expand the link before trusting it.",
        )
        return RuleResult(self.name, issues=[issue], metadata={"shortener": service})


class BrandImitationRule:
    """Flags hosts that borrow a protected brand name without belonging to it."""

    name = "brand_imitation"

    def __init__(
        self,
        brands: Iterable[str] | None = None,
        known_domains: Iterable[str] | None = None,
        compound_tlds: Iterable[str] | None = None,
    ):
        self.brands = [b.lower() for b in (brands or DEFAULT_BRANDS)]
        self.known_domains = known_domains
        self.compound_tlds = compound_tlds

    def apply(self, context: AnalysisContext) -> RuleResult:
        host = context.host
        if not host or is_known_domain(host, self.known_domains, self.compound_tlds):
            return RuleResult(self.name)

        registrable = normalize_domain(host, self.compound_tlds)
        owner_label = registrable.split(".")[0]

        decoded = context.lexical.decoded_hostname.lower()
        skeleton = to_latin_skeleton(decoded)
        skeleton_domain = normalize_domain(skeleton, self.compound_tlds) if skeleton != decoded else ""

        issues: list[SecurityIssue] = []
        imitated: list[str] = []
        for brand in self.brands:
            if registrable == brand or host.endswith(f".{brand}"):
                continue
            label = brand.split(".")[0]

            if skeleton_domain == brand:
                issues.append(
                    SecurityIssue(
                        type=IssueType.DOMAIN_IMITATION,
                        severity=Severity.HIGH,
                        description=f"Domain imitates {brand} with look-alike characters",
                        details=f"{decoded} reads as {skeleton}",
                    )
                )
            elif label in host and owner_label != label:
                issues.append(
                    SecurityIssue(
                        type=IssueType.DOMAIN_IMITATION,
                        severity=Severity.HIGH,
                        description=f"Possible imitation of {brand}",
                        details=f"'{label}' appears in {host}, which is not a {brand} domain",
                    )
                )
            else:
                continue
            imitated.append(brand)

        metadata = {"imitated_brands": imitated} if imitated else {}
        return RuleResult(self.name, issues=issues, metadata=metadata)


class ReputationRule:
    name = "reputation"

    def apply(self, context: AnalysisContext) -> RuleResult:
        reputation = context.reputation
        metadata = {}
        if reputation is not None:
            metadata = {
                "reputation_available": reputation.available,
                "reputation_sources": list(reputation.sources),
            }
        return RuleResult(self.name, issues=reputation_issues(reputation), metadata=metadata)


def default_rules(
    similarity: SimilarityEngine,
    *,
    known_domains: Iterable[str] | None = None,
    shorteners: Iterable[str] | None = None,
    brands: Iterable[str] | None = None,
    compound_tlds: Iterable[str] | None = None,
) -> list[AnalysisRule]:
    """Build the ordered rule list used by the security analyzer."""
    rules: list[AnalysisRule] = [
        DomainSimilarityRule(similarity),
        MixedScriptRule(known_domains, compound_tlds),
        HomoglyphRule(known_domains, compound_tlds),
        InvalidPunycodeRule(),
        ShortenerRule(shorteners),
        BrandImitationRule(brands, known_domains, compound_tlds),
        ReputationRule(),
    ]
    logger.debug("Built %s analysis rules: %s", len(rules), [rule.name for rule in rules])
    return rules
