"""Tier 1: url_reference claims checked over HTTP.

One ``DomainRateLimiter`` is shared by every check in a scan, however
many run concurrently; call ``reset()`` between scans.
"""
from __future__ import annotations

import logging
from urllib.parse import urlsplit

import httpx

from docdrift.config.engine import UrlCheckConfig
from docdrift.extraction.models import Claim, UrlValue

from .results import VerificationResult, make_result

logger = logging.getLogger(__name__)

GONE_STATUSES = {404, 410}


class DomainRateLimiter:
    """Per-hostname request budget for one scan."""

    def __init__(self, max_per_domain: int = 5):
        self.max_per_domain = max_per_domain
        self._counts: dict[str, int] = {}

    def try_acquire(self, hostname: str) -> bool:
        """Count a request against ``hostname``; False once the cap is reached."""
        count = self._counts.get(hostname, 0)
        if count >= self.max_per_domain:
            return False
        self._counts[hostname] = count + 1
        return True

    def count(self, hostname: str) -> int:
        return self._counts.get(hostname, 0)

    def reset(self) -> None:
        self._counts.clear()


class UrlChecker:
    """Checks documented URLs with HEAD (GET on 405), following redirects.

    Args:
        config: URL check settings (timeout, per-domain cap, user agent)
        rate_limiter: Shared limiter; a new one is created from config if omitted
        http_client: Optional shared httpx client
    """

    def __init__(
        self,
        config: UrlCheckConfig | None = None,
        rate_limiter: DomainRateLimiter | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config or UrlCheckConfig()
        self.rate_limiter = rate_limiter or DomainRateLimiter(self.config.max_per_domain)
        self._http_client = http_client

    async def _request(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        headers = {"User-Agent": self.config.user_agent}
        response = await client.head(url, headers=headers, follow_redirects=True, timeout=self.config.timeout_seconds)
        if response.status_code == 405:
            response = await client.get(url, headers=headers, follow_redirects=True, timeout=self.config.timeout_seconds)
        return response

    async def _fetch_status(self, url: str) -> int:
        if self._http_client is not None:
            response = await self._request(self._http_client, url)
        else:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                response = await self._request(client, url)
        return response.status_code

    async def verify(self, claim: Claim) -> VerificationResult | None:
        value = claim.extracted_value
        if not isinstance(value, UrlValue) or not value.url:
            return None
        url = value.url

        try:
            hostname = urlsplit(url).hostname
        except ValueError:
            return None
        if not hostname:
            return None

        if not self.rate_limiter.try_acquire(hostname):
            return make_result(
                claim, "uncertain", [],
                f"Rate limit reached for domain '{hostname}'. Skipping URL check.",
            )

        try:
            status = await self._fetch_status(url)
        except httpx.HTTPError as e:
            logger.debug(f"URL check failed for {url}: {e}")
            return make_result(
                claim, "uncertain", [],
                f"URL '{url}' could not be reached (network error or timeout).",
            )

        if 200 <= status < 400:
            return make_result(claim, "verified", [url], f"URL returns HTTP {status}.")
        if status in GONE_STATUSES:
            return make_result(
                claim, "drifted", [],
                f"URL returns HTTP {status}.",
                severity="high",
                specific_mismatch=f"URL '{url}' returns {status}.",
            )
        return make_result(
            claim, "uncertain", [],
            f"URL returns HTTP {status}. Server error, cannot determine validity.",
        )
