"""Tests for external reputation lookups."""

import asyncio

import aiohttp
import pytest

from urlsentry.analyzer.external_intel import (
    PHISHTANK_API,
    URLHAUS_API,
    VIRUSTOTAL_API,
    ReputationChecker,
    ReputationResult,
)


class _FakeResponse:
    def __init__(self, status: int, payload=None, exc: Exception | None = None):
        self.status = status
        self._payload = payload
        self._exc = exc

    async def json(self, content_type="application/json"):
        if not isinstance(self._payload, dict):
            raise ValueError("Response payload is not JSON")
        return self._payload

    async def __aenter__(self):
        if self._exc is not None:
            raise self._exc
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _FakeSession:
    def __init__(self, responses: dict[str, list[_FakeResponse]]):
        # per-endpoint queue; the last response repeats once the queue runs dry
        self._responses = responses
        self.calls: list[tuple[str, str, dict]] = []

    def _next(self, url: str) -> _FakeResponse:
        queue = self._responses.get(url) or [_FakeResponse(404)]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def post(self, url, headers=None, data=None, timeout=None):
        self.calls.append(("POST", url, dict(data or {})))
        return self._next(url)

    def get(self, url, headers=None, params=None, timeout=None):
        self.calls.append(("GET", url, dict(params or {})))
        return self._next(url)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


def _install(monkeypatch, session: _FakeSession) -> dict:
    created = {"count": 0}

    def fake_client_session(*args, **kwargs):
        created["count"] += 1
        return session

    monkeypatch.setattr(aiohttp, "ClientSession", fake_client_session)
    return created


PHISH_CLEAN = _FakeResponse(200, {"results": {"in_database": False}})
URLHAUS_CLEAN = _FakeResponse(200, {"query_status": "no_results"})


def _endpoints(session: _FakeSession) -> list[str]:
    return [url for _method, url, _payload in session.calls]


@pytest.mark.asyncio
async def test_phishtank_hit_stops_further_lookups(monkeypatch):
    session = _FakeSession(
        {PHISHTANK_API: [_FakeResponse(200, {"results": {"in_database": True, "valid": True, "phish_id": 42}})]}
    )
    _install(monkeypatch, session)

    checker = ReputationChecker(virustotal_api_key="vt")
    result = await checker.check("http://evil.example/login")

    assert result.is_dangerous is True
    assert result.available is True
    assert result.sources == ["PhishTank"]
    assert "42" in result.details
    assert _endpoints(session) == [PHISHTANK_API]
    assert session.calls[0][2]["url"] == "http://evil.example/login"


@pytest.mark.asyncio
async def test_urlhaus_consulted_when_phishtank_is_clean(monkeypatch):
    session = _FakeSession(
        {
            PHISHTANK_API: [PHISH_CLEAN],
            URLHAUS_API: [_FakeResponse(200, {"query_status": "ok", "threat": "malware_download", "tags": ["exe"]})],
        }
    )
    _install(monkeypatch, session)

    result = await ReputationChecker().check("bad.example")

    assert result.is_dangerous is True
    assert result.sources == ["URLhaus"]
    assert "malware_download" in result.details
    assert _endpoints(session) == [PHISHTANK_API, URLHAUS_API]


@pytest.mark.asyncio
async def test_virustotal_skipped_without_key(monkeypatch):
    session = _FakeSession({PHISHTANK_API: [PHISH_CLEAN], URLHAUS_API: [URLHAUS_CLEAN]})
    _install(monkeypatch, session)

    result = await ReputationChecker().check("clean.example")

    assert result == ReputationResult(details="URL not found in known threat lists.")
    assert VIRUSTOTAL_API not in _endpoints(session)


@pytest.mark.asyncio
async def test_virustotal_used_with_key(monkeypatch):
    session = _FakeSession(
        {
            PHISHTANK_API: [PHISH_CLEAN],
            URLHAUS_API: [URLHAUS_CLEAN],
            VIRUSTOTAL_API: [_FakeResponse(200, {"response_code": 1, "positives": 3, "total": 70})],
        }
    )
    _install(monkeypatch, session)

    result = await ReputationChecker(virustotal_api_key="vt-key").check("odd.example")

    assert result.sources == ["VirusTotal"]
    assert "3/70" in result.details
    method, url, params = session.calls[-1]
    assert (method, url) == ("GET", VIRUSTOTAL_API)
    assert params == {"apikey": "vt-key", "resource": "https://odd.example"}


@pytest.mark.asyncio
async def test_server_errors_retry_once_then_unavailable(monkeypatch):
    session = _FakeSession({PHISHTANK_API: [_FakeResponse(503)], URLHAUS_API: [_FakeResponse(502)]})
    created = _install(monkeypatch, session)

    checker = ReputationChecker(retries=1)
    result = await checker.check("flaky.example")

    assert result.available is False
    assert result.is_dangerous is False
    assert _endpoints(session) == [PHISHTANK_API, PHISHTANK_API, URLHAUS_API, URLHAUS_API]

    # unavailable answers are not cached
    await checker.check("flaky.example")
    assert created["count"] == 2


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(monkeypatch):
    session = _FakeSession({PHISHTANK_API: [_FakeResponse(403)], URLHAUS_API: [_FakeResponse(401)]})
    _install(monkeypatch, session)

    result = await ReputationChecker(retries=3).check("denied.example")

    assert result.available is False
    assert _endpoints(session) == [PHISHTANK_API, URLHAUS_API]


@pytest.mark.asyncio
async def test_timeout_then_success(monkeypatch):
    session = _FakeSession(
        {
            PHISHTANK_API: [_FakeResponse(0, exc=asyncio.TimeoutError()), PHISH_CLEAN],
            URLHAUS_API: [_FakeResponse(0, exc=aiohttp.ClientConnectionError("reset")), URLHAUS_CLEAN],
        }
    )
    _install(monkeypatch, session)

    result = await ReputationChecker().check("slow.example")

    assert result.available is True
    assert result.is_dangerous is False
    assert len(session.calls) == 4


@pytest.mark.asyncio
async def test_invalid_json_counts_as_no_answer(monkeypatch):
    session = _FakeSession({PHISHTANK_API: [_FakeResponse(200, "<html>")], URLHAUS_API: [URLHAUS_CLEAN]})
    _install(monkeypatch, session)

    result = await ReputationChecker().check("odd-json.example")

    assert result.available is True
    assert _endpoints(session) == [PHISHTANK_API, URLHAUS_API]


@pytest.mark.asyncio
async def test_malformed_phishtank_results_count_as_no_answer(monkeypatch):
    session = _FakeSession({PHISHTANK_API: [_FakeResponse(200, {"results": "unexpected"})], URLHAUS_API: [URLHAUS_CLEAN]})
    _install(monkeypatch, session)

    result = await ReputationChecker().check("https://evil.example/")

    assert result.available is True
    assert result.is_dangerous is False
    assert _endpoints(session) == [PHISHTANK_API, URLHAUS_API]


@pytest.mark.asyncio
async def test_malformed_virustotal_counts_are_unavailable(monkeypatch):
    session = _FakeSession(
        {
            PHISHTANK_API: [_FakeResponse(404)],
            URLHAUS_API: [_FakeResponse(404)],
            VIRUSTOTAL_API: [_FakeResponse(200, {"response_code": 1, "positives": "n/a", "total": 70})],
        }
    )
    _install(monkeypatch, session)

    result = await ReputationChecker(virustotal_api_key="vt").check("odd-counts.example")

    assert result.available is False
    assert result.is_dangerous is False


@pytest.mark.asyncio
async def test_urlhaus_tags_of_unexpected_shape(monkeypatch):
    session = _FakeSession(
        {
            PHISHTANK_API: [PHISH_CLEAN],
            URLHAUS_API: [_FakeResponse(200, {"query_status": "ok", "threat": "phishing", "tags": "kit"})],
        }
    )
    _install(monkeypatch, session)

    result = await ReputationChecker().check("tagged.example")

    assert result.is_dangerous is True
    assert "tags: kit" in result.details


@pytest.mark.asyncio
async def test_known_domain_answered_locally(monkeypatch):
    created = _install(monkeypatch, _FakeSession({}))

    result = await ReputationChecker().check("https://mail.google.com/")

    assert result.available is True
    assert result.is_dangerous is False
    assert created["count"] == 0


@pytest.mark.asyncio
async def test_results_cached_per_host(monkeypatch):
    session = _FakeSession({PHISHTANK_API: [PHISH_CLEAN], URLHAUS_API: [URLHAUS_CLEAN]})
    created = _install(monkeypatch, session)

    checker = ReputationChecker()
    first = await checker.check("https://www.cached.example/a")
    second = await checker.check("cached.example/b")

    assert created["count"] == 1
    assert second is first


@pytest.mark.asyncio
async def test_cache_evicts_oldest_entry(monkeypatch):
    session = _FakeSession({PHISHTANK_API: [PHISH_CLEAN], URLHAUS_API: [URLHAUS_CLEAN]})
    created = _install(monkeypatch, session)

    checker = ReputationChecker(cache_size=2)
    for host in ("one.example", "two.example", "three.example"):
        await checker.check(host)
    assert created["count"] == 3

    await checker.check("three.example")
    await checker.check("two.example")
    assert created["count"] == 3

    await checker.check("one.example")
    assert created["count"] == 4


@pytest.mark.asyncio
async def test_expired_cache_entry_is_refreshed(monkeypatch):
    session = _FakeSession({PHISHTANK_API: [PHISH_CLEAN], URLHAUS_API: [URLHAUS_CLEAN]})
    created = _install(monkeypatch, session)

    checker = ReputationChecker(cache_ttl_minutes=0)
    await checker.check("stale.example")
    await checker.check("stale.example")

    assert created["count"] == 2


@pytest.mark.asyncio
async def test_empty_url_is_unavailable():
    result = await ReputationChecker().check("")
    assert result.available is False


def test_unavailable_result_to_dict():
    data = ReputationResult.unavailable().to_dict()
    assert data["available"] is False
    assert data["sources"] == []
    assert "local analysis" in data["details"]
