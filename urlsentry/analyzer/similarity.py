"""Edit-distance similarity against a corpus of legitimate sites."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional

import yaml
from rapidfuzz.distance import Levenshtein

from ..constants import Severity
from ..utils.domains import is_known_domain, is_valid_domain, normalize_domain

logger = logging.getLogger(__name__)

DEFAULT_CORPUS_PATH = Path(__file__).resolve().parent.parent / "data" / "legitimate_sites.yaml"

CANDIDATE_THRESHOLD = 0.6
REPORT_THRESHOLD = 0.7
HIGH_THRESHOLD = 0.9

# First characters that are visually interchangeable; their buckets are scanned too.
ADJACENT_LETTERS: dict[str, tuple[str, ...]] = {
    "o": ("0",),
    "0": ("o",),
    "l": ("1", "i"),
    "1": ("l", "i"),
    "i": ("1", "l"),
    "e": ("3",),
    "3": ("e",),
    "a": ("@",),
    "@": ("a",),
    "s": ("5", "$"),
    "5": ("s",),
    "$": ("s",),
}

SUBSTITUTION = "substitution"
EXTRA = "extra"
MISSING = "missing"


@dataclass(frozen=True)
class PositionalDifference:
    """One character position where a candidate differs from a legitimate domain."""

    kind: str
    position: int  # 1-based
    found: str = ""
    expected: str = ""

    def __str__(self) -> str:
        if self.kind == SUBSTITUTION:
            return f"Position {self.position}: '{self.found}' instead of '{self.expected}'"
        if self.kind == EXTRA:
            return f"Extra character '{self.found}' at position {self.position}"
        return f"Missing character '{self.expected}' at position {self.position}"


@dataclass(frozen=True)
class SimilarityMatch:
    """A corpus entry that resembles the analyzed domain."""

    candidate: str
    legitimate: str
    similarity: float
    differences: tuple[PositionalDifference, ...] = ()

    def to_dict(self) -> dict:
        return {
            "candidate": self.candidate,
            "legitimate": self.legitimate,
            "similarity": round(self.similarity, 4),
            "differences": [str(diff) for diff in self.differences],
        }


def adjacent_letters(letter: str) -> tuple[str, ...]:
    return ADJACENT_LETTERS.get(letter, ())


def calculate_similarity(first: str, second: str) -> float:
    """Levenshtein similarity normalized by the longer string, in [0, 1]."""
    max_length = max(len(first), len(second))
    if max_length == 0:
        return 1.0
    distance = Levenshtein.distance(first, second)
    return (max_length - distance) / max_length


def find_differences(candidate: str, legitimate: str) -> list[PositionalDifference]:
    """Compare two strings position by position."""
    differences: list[PositionalDifference] = []
    for index in range(max(len(candidate), len(legitimate))):
        found = candidate[index] if index < len(candidate) else ""
        expected = legitimate[index] if index < len(legitimate) else ""
        if found == expected:
            continue
        if found and expected:
            kind = SUBSTITUTION
        elif found:
            kind = EXTRA
        else:
            kind = MISSING
        differences.append(PositionalDifference(kind, index + 1, found, expected))
    return differences


class SiteCorpus:
    """Legitimate sites bucketed by their first character."""

    def __init__(self, buckets: Mapping[str, Iterable[str]] | None = None):
        self._buckets: dict[str, tuple[str, ...]] = {}
        for key, sites in (buckets or {}).items():
            entries = tuple(str(site).strip().lower() for site in sites if str(site).strip())
            if entries:
                self._buckets[str(key).lower()] = entries

    def __len__(self) -> int:
        return sum(len(sites) for sites in self._buckets.values())

    def __contains__(self, site: object) -> bool:
        if not isinstance(site, str) or not site:
            return False
        return site.lower() in self._buckets.get(site[0].lower(), ())

    def keys(self) -> list[str]:
        return list(self._buckets)

    def bucket(self, key: str) -> tuple[str, ...]:
        return self._buckets.get(key, ())

    def candidates_for(self, domain: str) -> list[str]:
        """Sites in the bucket of the domain's first character and its look-alikes."""
        if not domain:
            return []
        first = domain[0]
        seen: set[str] = set()
        sites: list[str] = []
        for key in (first, *adjacent_letters(first)):
            for site in self.bucket(key):
                if site not in seen:
                    seen.add(site)
                    sites.append(site)
        return sites


def load_corpus(path: Optional[Path] = None) -> SiteCorpus:
    """Load a corpus file (mapping of first character -> list of domains)."""
    corpus_path = Path(path) if path else DEFAULT_CORPUS_PATH
    if not corpus_path.exists():
        logger.warning("Legitimate-site corpus not found: %s", corpus_path)
        return SiteCorpus()

    try:
        data = yaml.safe_load(corpus_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to read corpus %s: %s", corpus_path, exc)
        return SiteCorpus()

    if not isinstance(data, dict):
        logger.warning("Corpus %s is not a mapping; ignoring", corpus_path)
        return SiteCorpus()

    buckets: dict[str, list[str]] = {}
    for key, sites in data.items():
        if not isinstance(sites, list):
            logger.warning("Skipping corpus bucket %r: expected a list", key)
            continue
        buckets[str(key)] = [str(site) for site in sites if site]

    corpus = SiteCorpus(buckets)
    logger.info("Loaded %s legitimate sites in %s buckets", len(corpus), len(corpus.keys()))
    return corpus


class SimilarityEngine:
    """Finds legitimate sites that a domain imitates."""

    def __init__(
        self,
        corpus: SiteCorpus,
        *,
        known_domains: Iterable[str] | None = None,
        compound_tlds: Iterable[str] | None = None,
        candidate_threshold: float = CANDIDATE_THRESHOLD,
        report_threshold: float = REPORT_THRESHOLD,
        high_threshold: float = HIGH_THRESHOLD,
    ):
        self.corpus = corpus
        self.known_domains = known_domains
        self.compound_tlds = compound_tlds
        self.candidate_threshold = candidate_threshold
        self.report_threshold = report_threshold
        self.high_threshold = high_threshold

    def find_similar_sites(self, domain: str) -> list[SimilarityMatch]:
        """Corpus entries more similar than the candidate threshold, best first."""
        candidate = (domain or "").strip().lower()
        if not candidate:
            return []

        matches: list[SimilarityMatch] = []
        for site in self.corpus.candidates_for(candidate):
            similarity = calculate_similarity(candidate, site)
            if similarity > self.candidate_threshold:
                matches.append(
                    SimilarityMatch(
                        candidate=candidate,
                        legitimate=site,
                        similarity=similarity,
                        differences=tuple(find_differences(candidate, site)),
                    )
                )

        # sort is stable, so equal scores keep corpus order
        matches.sort(key=lambda match: match.similarity, reverse=True)
        return matches

    def check_domain(self, domain: str) -> Optional[SimilarityMatch]:
        """Return the best match when the domain looks like an imitation of it."""
        main_domain = normalize_domain(domain, self.compound_tlds)
        if not is_valid_domain(main_domain, self.compound_tlds):
            return None
        if is_known_domain(main_domain, self.known_domains, self.compound_tlds):
            return None

        matches = self.find_similar_sites(main_domain)
        if not matches:
            return None

        best = matches[0]
        if best.similarity > self.report_threshold and best.legitimate != main_domain:
            logger.debug(
                "%s resembles %s (%.1f%%)", main_domain, best.legitimate, best.similarity * 100
            )
            return best
        return None

    def severity(self, match: SimilarityMatch) -> Severity:
        return Severity.HIGH if match.similarity > self.high_threshold else Severity.MEDIUM
