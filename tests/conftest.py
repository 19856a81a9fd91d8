"""Global pytest configuration."""

from __future__ import annotations

import asyncio
import inspect
import os

import pytest

from urlsentry.analyzer.detector import SecurityAnalyzer
from urlsentry.analyzer.detector_rules import default_rules
from urlsentry.analyzer.lexical import LexicalAnalyzer
from urlsentry.analyzer.similarity import SimilarityEngine, SiteCorpus

# Keep a developer's .env from switching on network lookups during tests.
os.environ.setdefault("REPUTATION_ENABLED", "false")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):  # type: ignore[override]
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        testargs = {
            name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
        }
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(pyfuncitem.obj(**testargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio support")


@pytest.fixture
def corpus() -> SiteCorpus:
    """Small corpus covering the look-alike cases used across tests."""
    return SiteCorpus(
        {
            "a": ["amazon.com", "apple.com"],
            "f": ["facebook.com"],
            "g": ["google.com", "gmail.com", "github.com"],
            "m": ["microsoft.com"],
            "p": ["paypal.com"],
        }
    )


@pytest.fixture
def similarity(corpus) -> SimilarityEngine:
    return SimilarityEngine(corpus)


@pytest.fixture
def lexical_analyzer() -> LexicalAnalyzer:
    return LexicalAnalyzer()


@pytest.fixture
def security_analyzer(similarity) -> SecurityAnalyzer:
    return SecurityAnalyzer(default_rules(similarity))
