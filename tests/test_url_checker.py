"""Tests for HTTP URL checks."""
import httpx
import pytest

from docdrift.config.engine import UrlCheckConfig
from docdrift.extraction.models import UrlValue
from docdrift.verification import DomainRateLimiter, UrlChecker


def handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/ok":
        return httpx.Response(200)
    if path == "/moved":
        return httpx.Response(301, headers={"Location": "https://docs.acme.dev/ok"})
    if path == "/gone":
        return httpx.Response(404)
    if path == "/head-not-allowed":
        return httpx.Response(405 if request.method == "HEAD" else 200)
    if path == "/down":
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(503)


@pytest.fixture
def http_client():
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def url_claim(make_claim):
    def _make(url: str):
        return make_claim("url_reference", UrlValue(url), claim_text=f"See {url}")
    return _make


class TestDomainRateLimiter:
    def test_cap_and_reset(self):
        limiter = DomainRateLimiter(max_per_domain=2)
        assert limiter.try_acquire("a.dev")
        assert limiter.try_acquire("a.dev")
        assert not limiter.try_acquire("a.dev")
        assert limiter.try_acquire("b.dev")
        assert limiter.count("a.dev") == 2
        limiter.reset()
        assert limiter.count("a.dev") == 0


class TestUrlChecker:
    """Test URL verification over a mocked transport."""

    @pytest.mark.asyncio
    async def test_ok(self, http_client, url_claim):
        checker = UrlChecker(http_client=http_client)
        result = await checker.verify(url_claim("https://docs.acme.dev/ok"))
        assert result.verdict == "verified"
        assert result.evidence_files == ["https://docs.acme.dev/ok"]

    @pytest.mark.asyncio
    async def test_redirect_followed(self, http_client, url_claim):
        checker = UrlChecker(http_client=http_client)
        result = await checker.verify(url_claim("https://docs.acme.dev/moved"))
        assert result.verdict == "verified"

    @pytest.mark.asyncio
    async def test_not_found(self, http_client, url_claim):
        checker = UrlChecker(http_client=http_client)
        result = await checker.verify(url_claim("https://docs.acme.dev/gone"))
        assert result.verdict == "drifted"
        assert result.severity == "high"
        assert "404" in result.specific_mismatch

    @pytest.mark.asyncio
    async def test_get_fallback_on_405(self, http_client, url_claim):
        checker = UrlChecker(http_client=http_client)
        result = await checker.verify(url_claim("https://docs.acme.dev/head-not-allowed"))
        assert result.verdict == "verified"

    @pytest.mark.asyncio
    async def test_server_error_uncertain(self, http_client, url_claim):
        checker = UrlChecker(http_client=http_client)
        result = await checker.verify(url_claim("https://docs.acme.dev/broken"))
        assert result.verdict == "uncertain"
        assert result.severity is None

    @pytest.mark.asyncio
    async def test_network_error_uncertain(self, http_client, url_claim):
        checker = UrlChecker(http_client=http_client)
        result = await checker.verify(url_claim("https://docs.acme.dev/down"))
        assert result.verdict == "uncertain"
        assert "could not be reached" in result.reasoning

    @pytest.mark.asyncio
    async def test_rate_limit_shared_across_checks(self, http_client, url_claim):
        limiter = DomainRateLimiter(max_per_domain=1)
        checker = UrlChecker(UrlCheckConfig(max_per_domain=1), rate_limiter=limiter, http_client=http_client)

        first = await checker.verify(url_claim("https://docs.acme.dev/ok"))
        second = await checker.verify(url_claim("https://docs.acme.dev/gone"))
        assert first.verdict == "verified"
        assert second.verdict == "uncertain"
        assert "Rate limit" in second.reasoning
        assert limiter.count("docs.acme.dev") == 1

    @pytest.mark.asyncio
    async def test_user_agent_sent(self, url_claim):
        seen = []

        def capture(request):
            seen.append(request.headers["User-Agent"])
            return httpx.Response(200)

        client = httpx.AsyncClient(transport=httpx.MockTransport(capture))
        checker = UrlChecker(UrlCheckConfig(user_agent="drift-bot"), http_client=client)
        await checker.verify(url_claim("https://docs.acme.dev/ok"))
        assert seen == ["drift-bot"]
