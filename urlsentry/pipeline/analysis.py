"""Analysis engine for urlsentry."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..analyzer.detector import SecurityAnalyzer, compose_verdict
from ..analyzer.detector_models import SecurityReport, VerdictResult
from ..analyzer.detector_rules import default_rules
from ..analyzer.external_intel import ReputationChecker, ReputationResult
from ..analyzer.lexical import LexicalAnalyzer, LexicalResult
from ..analyzer.rules import AnalysisContext
from ..analyzer.similarity import SimilarityEngine, load_corpus
from ..constants import Verdict
from ..utils.domains import canonicalize_host, normalize_domain

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    """Everything known about one analyzed URL."""

    url: str
    domain: str
    verdict: VerdictResult
    security: SecurityReport
    lexical: LexicalResult
    reputation: Optional[ReputationResult] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_flagged(self) -> bool:
        return self.verdict.level >= Verdict.SUSPICIOUS

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "verdict": self.verdict.to_dict(),
            "security": self.security.to_dict(),
            "lexical": self.lexical.to_dict(),
            "reputation": self.reputation.to_dict() if self.reputation else None,
            "timestamp": self.timestamp.isoformat(),
        }


class AnalysisEngine:
    """Encapsulates URL analysis: lexical checks, rules, reputation and verdict."""

    def __init__(
        self,
        *,
        lexical: LexicalAnalyzer,
        security: SecurityAnalyzer,
        reputation: Optional[ReputationChecker] = None,
        compound_tlds: Iterable[str] | None = None,
        reputation_deadline: float = 31.0,
        max_concurrent: int = 5,
    ):
        self.lexical = lexical
        self.security = security
        self.reputation = reputation
        self.compound_tlds = compound_tlds
        self.reputation_deadline = reputation_deadline
        self.max_concurrent = max(1, max_concurrent)

    @classmethod
    def from_config(cls, config, *, offline: bool = False) -> "AnalysisEngine":
        """Wire an engine from a Config; offline skips reputation lookups."""
        corpus = load_corpus(config.corpus_path)
        similarity = SimilarityEngine(
            corpus,
            known_domains=config.known_domains,
            compound_tlds=config.compound_tlds,
            candidate_threshold=config.candidate_threshold,
            report_threshold=config.report_threshold,
            high_threshold=config.high_threshold,
        )
        rules = default_rules(
            similarity,
            known_domains=config.known_domains,
            shorteners=config.shorteners,
            brands=config.brands,
            compound_tlds=config.compound_tlds,
        )

        reputation = None
        if config.reputation_enabled and not offline:
            reputation = ReputationChecker(
                phishtank_api_key=config.phishtank_api_key or None,
                urlhaus_auth_key=config.urlhaus_auth_key or None,
                virustotal_api_key=config.virustotal_api_key or None,
                timeout=config.reputation_timeout,
                retries=config.reputation_retries,
                cache_ttl_minutes=config.reputation_cache_minutes,
                known_domains=config.known_domains,
            )

        return cls(
            lexical=LexicalAnalyzer(),
            security=SecurityAnalyzer(rules),
            reputation=reputation,
            compound_tlds=config.compound_tlds,
            reputation_deadline=config.reputation_deadline,
            max_concurrent=config.max_concurrent_analyses,
        )

    def domain_key(self, url: str) -> str:
        """Normalized registrable domain used for de-duplication."""
        return normalize_domain(canonicalize_host(url), self.compound_tlds)

    async def _check_reputation(self, url: str) -> Optional[ReputationResult]:
        if self.reputation is None:
            return None
        try:
            return await asyncio.wait_for(self.reputation.check(url), timeout=self.reputation_deadline)
        except asyncio.TimeoutError:
            logger.warning("Reputation lookup timed out for %s", url)
            return ReputationResult.unavailable("Reputation lookup timed out.")
        except Exception as e:
            logger.warning(f"Reputation lookup failed for {url}: {e}")
            return ReputationResult.unavailable()

    async def analyze(self, url: str) -> AnalysisReport:
        """Analyze a single URL."""
        host = canonicalize_host(url)
        domain = normalize_domain(host, self.compound_tlds)
        logger.debug(f"Analyzing: {url}")

        lexical = self.lexical.analyze(url)
        reputation = await self._check_reputation(url)

        context = AnalysisContext(
            url=url,
            host=host,
            domain=domain,
            lexical=lexical,
            reputation=reputation,
        )
        security = self.security.analyze(context)
        verdict = compose_verdict(lexical, reputation)

        if verdict.level >= Verdict.SUSPICIOUS:
            logger.info(f"{url}: {verdict.level} ({len(security.issues)} issue(s))")

        return AnalysisReport(
            url=url,
            domain=domain,
            verdict=verdict,
            security=security,
            lexical=lexical,
            reputation=reputation,
        )

    async def analyze_many(
        self,
        urls: Iterable[str],
        visited: Optional[set[str]] = None,
    ) -> list[AnalysisReport]:
        """
        Analyze several URLs with bounded concurrency.

        URLs whose normalized domain is already in `visited` are skipped; the
        set is owned by the caller and updated in place so it can span batches.
        Reports come back in input order.
        """
        seen = visited if visited is not None else set()
        pending: list[str] = []
        for url in urls:
            key = self.domain_key(url) or (url or "").strip().lower()
            if key in seen:
                logger.debug("Skipping already analyzed domain: %s", key)
                continue
            seen.add(key)
            pending.append(url)

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def _analyze_one(url: str) -> AnalysisReport:
            async with semaphore:
                return await self.analyze(url)

        return list(await asyncio.gather(*(_analyze_one(url) for url in pending)))
