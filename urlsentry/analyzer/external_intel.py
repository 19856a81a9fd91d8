"""
External reputation lookups.

Queries public threat-intelligence services for a URL:
- PhishTank: community-verified phishing URLs
- abuse.ch URLhaus: known malware/phishing URLs
- VirusTotal: multi-engine URL reports (only with an API key)

Lookups are bounded by a per-request timeout with one retry. The checker
never raises: when no service answers, the result is marked unavailable
and callers fall back to local analysis.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

import aiohttp

from ..utils.domains import canonicalize_host, ensure_url, is_known_domain

logger = logging.getLogger(__name__)

PHISHTANK_API = "https://checkurl.phishtank.com/checkurl/"
URLHAUS_API = "https://urlhaus-api.abuse.ch/v1/url/"
VIRUSTOTAL_API = "https://www.virustotal.com/vtapi/v2/url/report"
USER_AGENT = "urlsentry/0.1 (+reputation-check)"


@dataclass
class ReputationResult:
    """Combined reputation verdict for one URL."""

    is_dangerous: bool = False
    sources: list[str] = field(default_factory=list)
    details: str = ""
    available: bool = True

    @classmethod
    def unavailable(cls, details: str = "") -> "ReputationResult":
        return cls(
            details=details
            or "Reputation services could not be reached; verification limited to local analysis.",
            available=False,
        )

    def to_dict(self) -> dict:
        return {
            "is_dangerous": self.is_dangerous,
            "sources": list(self.sources),
            "details": self.details,
            "available": self.available,
        }


@dataclass
class ServiceResult:
    """Answer from a single reputation service."""

    source: str
    answered: bool = False
    is_dangerous: bool = False
    details: str = ""


class ReputationChecker:
    """Checks URLs against external threat-intelligence services."""

    def __init__(
        self,
        *,
        phishtank_api_key: Optional[str] = None,
        urlhaus_auth_key: Optional[str] = None,
        virustotal_api_key: Optional[str] = None,
        timeout: float = 5.0,
        retries: int = 1,
        cache_ttl_minutes: int = 15,
        cache_size: int = 100,
        known_domains: Iterable[str] | None = None,
    ):
        self.phishtank_api_key = phishtank_api_key
        self.urlhaus_auth_key = urlhaus_auth_key
        self.virustotal_api_key = virustotal_api_key
        self.timeout = timeout
        self.retries = max(0, retries)
        self.cache_ttl = timedelta(minutes=cache_ttl_minutes)
        self.cache_size = cache_size
        self.known_domains = known_domains

        # In-memory cache: host -> (result, timestamp)
        self._cache: dict[str, tuple[ReputationResult, datetime]] = {}

    def _get_cached(self, host: str) -> Optional[ReputationResult]:
        entry = self._cache.get(host)
        if not entry:
            return None
        result, cached_at = entry
        if datetime.now() - cached_at < self.cache_ttl:
            return result
        del self._cache[host]
        return None

    def _set_cached(self, host: str, result: ReputationResult) -> None:
        self._cache.pop(host, None)
        while self._cache and len(self._cache) >= self.cache_size:
            del self._cache[next(iter(self._cache))]
        self._cache[host] = (result, datetime.now())

    def clear_cache(self) -> None:
        self._cache.clear()

    async def check(self, url: str) -> ReputationResult:
        """Look up a URL; never raises."""
        host = canonicalize_host(url)
        if not host:
            return ReputationResult.unavailable("No hostname to check.")

        if is_known_domain(host, self.known_domains):
            return ReputationResult(details="Domain is on the known-safe list.")

        cached = self._get_cached(host)
        if cached is not None:
            logger.debug("Reputation cache hit for %s", host)
            return cached

        target = ensure_url(url)
        outcomes: list[ServiceResult] = []

        try:
            async with aiohttp.ClientSession(headers={"User-Agent": USER_AGENT}) as session:
                outcomes.append(await self.query_phishtank(session, target))
                if not any(o.is_dangerous for o in outcomes):
                    outcomes.append(await self.query_urlhaus(session, target))
                if self.virustotal_api_key and not any(o.is_dangerous for o in outcomes):
                    outcomes.append(await self.query_virustotal(session, target))
        except (aiohttp.ClientError, OSError) as exc:
            logger.warning("Reputation lookup failed for %s: %s", host, exc)

        result = self._combine(outcomes)
        if result.available:
            self._set_cached(host, result)
        return result

    @staticmethod
    def _combine(outcomes: list[ServiceResult]) -> ReputationResult:
        answered = [o for o in outcomes if o.answered]
        if not answered:
            return ReputationResult.unavailable()

        dangerous = [o for o in answered if o.is_dangerous]
        if dangerous:
            return ReputationResult(
                is_dangerous=True,
                sources=[o.source for o in dangerous],
                details="; ".join(f"{o.source}: {o.details}" for o in dangerous),
            )

        return ReputationResult(details="URL not found in known threat lists.")

    async def _request(
        self,
        session,
        method: str,
        url: str,
        *,
        headers: Optional[dict] = None,
        data: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Optional[dict]:
        """Send a request with one retry; return parsed JSON or None."""
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        for attempt in range(self.retries + 1):
            try:
                if method == "POST":
                    request = session.post(url, headers=headers, data=data, timeout=timeout)
                else:
                    request = session.get(url, headers=headers, params=params, timeout=timeout)
                async with request as resp:
                    if resp.status >= 500:
                        logger.debug("%s returned HTTP %s (attempt %s)", url, resp.status, attempt + 1)
                        continue
                    if resp.status != 200:
                        logger.debug("%s returned HTTP %s", url, resp.status)
                        return None
                    payload = await resp.json(content_type=None)
                    return payload if isinstance(payload, dict) else None
            except asyncio.TimeoutError:
                logger.debug("Timeout querying %s (attempt %s)", url, attempt + 1)
            except aiohttp.ClientError as exc:
                logger.debug("Error querying %s (attempt %s): %s", url, attempt + 1, exc)
            except ValueError as exc:
                logger.debug("Invalid JSON from %s: %s", url, exc)
                return None
        return None

    async def query_phishtank(self, session, url: str) -> ServiceResult:
        result = ServiceResult(source="PhishTank")
        data = {"url": url, "format": "json"}
        if self.phishtank_api_key:
            data["app_key"] = self.phishtank_api_key

        payload = await self._request(session, "POST", PHISHTANK_API, data=data)
        if payload is None:
            logger.warning("PhishTank unavailable for %s", url)
            return result

        results = payload.get("results") or {}
        if not isinstance(results, dict):
            logger.warning("PhishTank returned an unexpected payload for %s", url)
            return result

        result.answered = True
        if results.get("in_database") and results.get("valid"):
            result.is_dangerous = True
            result.details = f"phishing confirmed (ID {results.get('phish_id') or 'N/A'})"
        else:
            result.details = "not listed"
        return result

    async def query_urlhaus(self, session, url: str) -> ServiceResult:
        result = ServiceResult(source="URLhaus")
        headers = {"Auth-Key": self.urlhaus_auth_key} if self.urlhaus_auth_key else None

        payload = await self._request(session, "POST", URLHAUS_API, headers=headers, data={"url": url})
        if payload is None:
            logger.warning("URLhaus unavailable for %s", url)
            return result

        result.answered = True
        if payload.get("query_status") == "ok":
            result.is_dangerous = True
            tags = payload.get("tags") or []
            if not isinstance(tags, list):
                tags = [tags]
            threat = payload.get("threat") or "malicious URL"
            result.details = f"{threat} (tags: {', '.join(str(t) for t in tags) if tags else 'N/A'})"
        else:
            result.details = "not listed"
        return result

    async def query_virustotal(self, session, url: str) -> ServiceResult:
        result = ServiceResult(source="VirusTotal")
        params = {"apikey": self.virustotal_api_key, "resource": url}

        payload = await self._request(session, "GET", VIRUSTOTAL_API, params=params)
        if payload is None:
            logger.warning("VirusTotal unavailable for %s", url)
            return result

        try:
            positives = int(payload.get("positives") or 0)
            total = int(payload.get("total") or 0)
        except (TypeError, ValueError):
            logger.warning("VirusTotal returned unexpected counts for %s", url)
            return result

        result.answered = True
        if payload.get("response_code") == 1 and positives > 0:
            result.is_dangerous = True
            result.details = f"{positives}/{total} engines flagged the URL"
        else:
            result.details = "no detections"
        return result
