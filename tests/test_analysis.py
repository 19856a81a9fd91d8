"""Tests for the analysis engine."""

import asyncio
import json

import pytest

from urlsentry.analyzer.external_intel import ReputationResult
from urlsentry.analyzer.lexical import LexicalAnalyzer
from urlsentry.config import Config
from urlsentry.constants import IssueType, Verdict
from urlsentry.pipeline.analysis import AnalysisEngine


class _FakeReputation:
    def __init__(self, result: ReputationResult | None = None, delay: float = 0.0, error: Exception | None = None):
        self.result = result or ReputationResult()
        self.delay = delay
        self.error = error
        self.calls: list[str] = []
        self.active = 0
        self.peak = 0

    async def check(self, url: str) -> ReputationResult:
        self.calls.append(url)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error:
                raise self.error
            return self.result
        finally:
            self.active -= 1


@pytest.fixture
def make_engine(security_analyzer):
    def _make(reputation=None, **kwargs) -> AnalysisEngine:
        return AnalysisEngine(
            lexical=LexicalAnalyzer(),
            security=security_analyzer,
            reputation=reputation,
            **kwargs,
        )

    return _make


@pytest.mark.asyncio
async def test_offline_spoof_is_suspicious(make_engine):
    report = await make_engine().analyze("https://xn--ggl-tdd6ba.com/login")

    assert report.domain == "xn--ggl-tdd6ba.com"
    assert report.verdict.level is Verdict.SUSPICIOUS
    assert report.reputation is None
    assert report.is_flagged is True
    assert IssueType.HOMOGLYPH_ATTACK in [i.type for i in report.security.issues]


@pytest.mark.asyncio
async def test_lookalike_without_lexical_signal_is_not_suspicious(make_engine):
    report = await make_engine().analyze("g00gle.com")

    # similarity is reported by the aggregator; the verdict follows lexical and reputation signals only
    assert report.verdict.level is Verdict.NOT_SUSPICIOUS
    assert report.security.is_suspicious is True
    assert report.is_flagged is False


@pytest.mark.asyncio
async def test_dangerous_reputation(make_engine):
    reputation = _FakeReputation(ReputationResult(is_dangerous=True, sources=["URLhaus"], details="listed"))
    report = await make_engine(reputation).analyze("example.com")

    assert report.verdict.level is Verdict.DANGEROUS
    assert reputation.calls == ["example.com"]


@pytest.mark.asyncio
async def test_slow_reputation_times_out(make_engine):
    reputation = _FakeReputation(delay=1.0)
    report = await make_engine(reputation, reputation_deadline=0.01).analyze("example.com")

    assert report.reputation.available is False
    assert report.verdict.level is Verdict.NOT_SUSPICIOUS
    assert [i.type for i in report.verdict.issues] == [IssueType.VERIFICATION_UNAVAILABLE]


@pytest.mark.asyncio
async def test_failing_reputation_degrades(make_engine):
    reputation = _FakeReputation(error=RuntimeError("boom"))
    report = await make_engine(reputation).analyze("example.com")

    assert report.reputation.available is False


@pytest.mark.asyncio
async def test_analyze_many_dedupes_by_domain(make_engine):
    engine = make_engine()
    visited: set[str] = set()

    reports = await engine.analyze_many(
        ["https://a.example.com/x", "example.com", "g00gle.com", "https://www.g00gle.com/"],
        visited,
    )

    assert [r.url for r in reports] == ["https://a.example.com/x", "g00gle.com"]
    assert visited == {"example.com", "g00gle.com"}

    again = await engine.analyze_many(["example.com", "other.example.org"], visited)
    assert [r.url for r in again] == ["other.example.org"]
    assert "example.org" in visited


@pytest.mark.asyncio
async def test_analyze_many_respects_concurrency_limit(make_engine):
    reputation = _FakeReputation(delay=0.01)
    engine = make_engine(reputation, max_concurrent=2)

    urls = [f"site{i}.example" for i in range(6)]
    reports = await engine.analyze_many(urls)

    assert [r.url for r in reports] == urls
    assert reputation.peak <= 2
    assert len(reputation.calls) == 6


@pytest.mark.asyncio
async def test_from_config_offline(tmp_path):
    engine = AnalysisEngine.from_config(Config(config_dir=tmp_path), offline=True)
    assert engine.reputation is None

    report = await engine.analyze("paypa1.com")
    assert report.security.metadata["similar_to"] == "paypal.com"


def test_from_config_with_reputation(tmp_path):
    config = Config(config_dir=tmp_path, reputation_enabled=True, virustotal_api_key="vt")
    engine = AnalysisEngine.from_config(config)
    assert engine.reputation is not None
    assert engine.reputation.virustotal_api_key == "vt"
    assert engine.reputation.phishtank_api_key is None


@pytest.mark.asyncio
async def test_report_to_dict_is_json_serializable(make_engine):
    report = await make_engine(_FakeReputation()).analyze("xn--ggl-tdd6ba.com")
    data = json.loads(json.dumps(report.to_dict(), ensure_ascii=False))

    assert data["verdict"]["label"] == "suspicious"
    assert data["lexical"]["decoded_hostname"] == "gооglе.com"
    assert data["reputation"]["available"] is True
    assert data["timestamp"].endswith("+00:00")
