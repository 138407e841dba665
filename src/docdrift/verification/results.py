"""Verification result types and constructors."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from docdrift.extraction.models import Claim

Verdict = Literal["verified", "drifted", "uncertain"]
Severity = Literal["high", "medium", "low"]

VERDICTS = ("verified", "drifted", "uncertain")
SEVERITIES = ("high", "medium", "low")
TIERS = (1, 2, 3)


@dataclass(frozen=True)
class TokenCost:
    input_tokens: int = 0
    output_tokens: int = 0

    def __add__(self, other: TokenCost) -> TokenCost:
        return TokenCost(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class VerificationResult:
    """Outcome of verifying one claim.

    ``severity`` is set only for drifted verdicts. Constructing a result
    that breaks this, or with an out-of-range confidence or tier, raises
    ValueError.
    """
    claim_id: str
    verdict: Verdict
    confidence: float
    tier: int
    reasoning: str | None = None
    severity: Severity | None = None
    specific_mismatch: str | None = None
    suggested_fix: str | None = None
    evidence_files: list[str] = field(default_factory=list)
    token_cost: TokenCost | None = None
    duration_ms: int | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.verdict not in VERDICTS:
            raise ValueError(f"Invalid verdict: {self.verdict!r}")
        if self.severity is not None and self.verdict != "drifted":
            raise ValueError(f"Severity is only allowed on drifted results, got {self.verdict!r}")
        if self.severity is not None and self.severity not in SEVERITIES:
            raise ValueError(f"Invalid severity: {self.severity!r}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be in [0, 1], got {self.confidence}")
        if self.tier not in TIERS:
            raise ValueError(f"Tier must be 1, 2 or 3, got {self.tier}")


def make_result(
    claim: Claim,
    verdict: Verdict,
    evidence_files: list[str],
    reasoning: str,
    *,
    severity: Severity | None = None,
    specific_mismatch: str | None = None,
    suggested_fix: str | None = None,
    tier: int = 1,
) -> VerificationResult:
    """Deterministic result: full confidence, no token cost."""
    return VerificationResult(
        claim_id=claim.id,
        verdict=verdict,
        confidence=1.0,
        tier=tier,
        reasoning=reasoning,
        severity=severity,
        specific_mismatch=specific_mismatch,
        suggested_fix=suggested_fix,
        evidence_files=list(evidence_files),
    )


def make_tier2_result(
    claim: Claim,
    verdict: Verdict,
    evidence_files: list[str],
    reasoning: str,
    *,
    severity: Severity | None = None,
    specific_mismatch: str | None = None,
    suggested_fix: str | None = None,
) -> VerificationResult:
    return make_result(
        claim,
        verdict,
        evidence_files,
        reasoning,
        severity=severity,
        specific_mismatch=specific_mismatch,
        suggested_fix=suggested_fix,
        tier=2,
    )
