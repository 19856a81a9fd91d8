"""Analyzer modules for urlsentry."""

from .detector import SecurityAnalyzer, compose_verdict
from .external_intel import ReputationChecker, ReputationResult
from .lexical import LexicalAnalyzer, LexicalResult, analyze_lexical
from .similarity import SimilarityEngine, SiteCorpus, load_corpus

__all__ = [
    "SecurityAnalyzer",
    "compose_verdict",
    "ReputationChecker",
    "ReputationResult",
    "LexicalAnalyzer",
    "LexicalResult",
    "analyze_lexical",
    "SimilarityEngine",
    "SiteCorpus",
    "load_corpus",
]
