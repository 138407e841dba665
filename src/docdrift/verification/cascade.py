"""Tiered verification driver.

Each claim goes through an ordered list of tiers; the first tier that
returns a result decides it:

    Tier 1  deterministic checks against the index (and HTTP for URLs)
    Tier 2  pattern heuristics for convention/environment/config claims
    Tier 3  LLM judgement over code evidence, when a client is configured

A claim no tier can handle gets ``None``, which is not the same as an
``uncertain`` verdict.

Usage:
    verifier = Verifier.from_config(index, load_engine_config())
    results = await verifier.verify_claims(claims)
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from dataclasses import replace
from functools import partial
from typing import Awaitable, Callable

from docdrift.config.engine import EngineConfig, LLMConfig, VerificationConfig
from docdrift.extraction.models import Claim
from docdrift.index.protocol import CodebaseIndex
from docdrift.llm.client import CompletionOptions, LLMClient, create_llm_client

from .evidence import EvidenceBuilder, build_evidence
from .llm_verifier import verify_with_llm
from .results import VerificationResult
from .tier1_code_examples import verify_code_example
from .tier1_commands import verify_command
from .tier1_dependencies import verify_dependency_version
from .tier1_paths import verify_path_reference
from .tier1_routes import verify_api_route
from .tier1_urls import UrlChecker
from .tier2_navigation import verify_navigation_config
from .tier2_patterns import is_tier2_eligible, verify_tier2

logger = logging.getLogger(__name__)

Tier = Callable[[Claim], Awaitable["VerificationResult | None"]]
Tier1Check = Callable[[Claim, CodebaseIndex], Awaitable["VerificationResult | None"]]

TIER1_CHECKS: dict[str, Tier1Check] = {
    "path_reference": verify_path_reference,
    "command": verify_command,
    "dependency_version": verify_dependency_version,
    "api_route": verify_api_route,
    "code_example": verify_code_example,
}


class Verifier:
    """Runs claims through the verification tiers.

    Args:
        index: Read-only view of the repository
        llm_client: Transport for Tier 3; Tier 3 is skipped without one
        evidence_builder: Collects code evidence for Tier 3
        url_checker: HTTP checker for url_reference claims; skipped without one
        config: Concurrency, timeouts and LLM sampling settings
        llm_model: Model name passed to the LLM transport
    """

    def __init__(
        self,
        index: CodebaseIndex,
        *,
        llm_client: LLMClient | None = None,
        evidence_builder: EvidenceBuilder = build_evidence,
        url_checker: UrlChecker | None = None,
        config: VerificationConfig | None = None,
        llm_model: str | None = None,
    ):
        self.index = index
        self.llm_client = llm_client
        self.evidence_builder = evidence_builder
        self.url_checker = url_checker
        self.config = config or VerificationConfig()
        self.llm_options = CompletionOptions(
            model=llm_model or LLMConfig().model,
            temperature=self.config.llm_temperature,
            max_tokens=self.config.llm_max_tokens,
        )
        self.tiers: tuple[Tier, ...] = (self._tier1, self._tier2, self._tier3)

    @classmethod
    def from_config(cls, index: CodebaseIndex, config: EngineConfig) -> Verifier:
        """Build a verifier with the LLM transport and URL checker the config enables."""
        url_check = config.verification.url_check
        return cls(
            index,
            llm_client=create_llm_client(config.llm),
            evidence_builder=partial(build_evidence, max_chars=config.verification.max_evidence_chars),
            url_checker=UrlChecker(url_check) if url_check.enabled else None,
            config=config.verification,
            llm_model=config.llm.model,
        )

    # =========================================================================
    # Tiers
    # =========================================================================

    async def _tier1(self, claim: Claim) -> VerificationResult | None:
        if claim.testability != "syntactic":
            return None
        # Changelog entries describe past releases; Tier 2 reads them instead
        if claim.claim_type == "dependency_version" and is_tier2_eligible(claim):
            return None

        if claim.claim_type == "url_reference":
            if self.url_checker is None:
                return None
            result = await self.url_checker.verify(claim)
        else:
            check = TIER1_CHECKS.get(claim.claim_type)
            if check is None:
                return None
            result = await check(claim, self.index)

        if result is None:
            return None
        return replace(result, tier=1, confidence=1.0, token_cost=None)

    async def _tier2(self, claim: Claim) -> VerificationResult | None:
        result = await verify_tier2(claim, self.index)
        if result is None:
            return None
        return replace(result, tier=2, token_cost=None)

    async def _tier3(self, claim: Claim) -> VerificationResult | None:
        if self.llm_client is None:
            return None
        evidence = await self.evidence_builder(claim, self.index)
        if not evidence.formatted_evidence:
            return None
        return await verify_with_llm(
            claim, evidence, self.llm_client, self.llm_options,
            timeout_seconds=self.config.llm_timeout_seconds,
        )

    # =========================================================================
    # Driver
    # =========================================================================

    async def verify(self, claim: Claim) -> VerificationResult | None:
        """Verify one claim; the first tier with a result wins."""
        start = time.monotonic()
        for tier in self.tiers:
            result = await tier(claim)
            if result is not None:
                result.duration_ms = int((time.monotonic() - start) * 1000)
                logger.debug(
                    f"Claim {claim.id} ({claim.claim_type}) -> {result.verdict} at tier {result.tier}"
                )
                return result
        logger.debug(f"Claim {claim.id} ({claim.claim_type}) not verifiable by any tier")
        return None

    async def _verify_and_record(self, claim: Claim) -> VerificationResult | None:
        result = await self.verify(claim)
        if result is not None:
            claim.mark_verified(result)
        return result

    async def verify_claims(
        self,
        claims: list[Claim],
        should_continue: Callable[[], bool] | None = None,
    ) -> list[VerificationResult]:
        """Verify claims and record each verdict on its claim.

        Claims run one at a time unless ``max_concurrency`` is above one.
        ``should_continue`` is checked before each claim is started; a claim
        already in flight always finishes.

        Args:
            claims: Claims to verify
            should_continue: Optional cancellation check

        Returns:
            Results in claim order; claims with no result are omitted
        """
        def keep_going() -> bool:
            return should_continue is None or should_continue()

        outcomes: list[VerificationResult | None] = []

        if self.config.max_concurrency <= 1:
            for claim in claims:
                if not keep_going():
                    logger.info(f"Verification stopped after {len(outcomes)} of {len(claims)} claims")
                    break
                outcomes.append(await self._verify_and_record(claim))
        else:
            semaphore = asyncio.Semaphore(self.config.max_concurrency)

            async def worker(claim: Claim) -> VerificationResult | None:
                async with semaphore:
                    if not keep_going():
                        return None
                    return await self._verify_and_record(claim)

            outcomes = list(await asyncio.gather(*(worker(claim) for claim in claims)))

        results = [r for r in outcomes if r is not None]
        verdicts = Counter(r.verdict for r in results)
        logger.info(
            f"Verified {len(results)}/{len(claims)} claims: "
            f"{verdicts['verified']} verified, {verdicts['drifted']} drifted, "
            f"{verdicts['uncertain']} uncertain"
        )
        return results

    async def verify_navigation(self) -> list[VerificationResult]:
        """Check docs navigation configs for pages that no longer exist."""
        if not self.config.check_navigation:
            return []
        return await verify_navigation_config(self.index)
