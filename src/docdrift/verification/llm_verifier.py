"""Tier 3: LLM verification of a claim against code evidence.

The model is asked for a single JSON object which is validated with
pydantic. An invalid or late response gets one retry with a stricter
instruction; a second failure means no result.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from docdrift.errors import LLMError
from docdrift.extraction.models import Claim
from docdrift.llm.client import CompletionOptions, LLMClient

from .evidence import Evidence
from .results import TokenCost, VerificationResult

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

SYSTEM_PROMPT = """You check whether statements in a software project's documentation are still true of its source code. You are given one claim and excerpts of the code it talks about.

Rules:
1. Judge factual accuracy only. Style, completeness and code quality are out of scope.
2. Documentation may leave things out. It only has to be correct about what it does say.
3. Plain-language simplification is fine ("validates tokens" for a function named checkJwtSignature is accurate).
4. A claim that is partly wrong is DRIFTED. Say which part is wrong.
5. If the evidence does not settle the question, answer UNCERTAIN. Do not guess.
6. Only cite code, files and names that appear in the evidence below.
7. For DRIFTED claims, set severity:
   - high: following the docs would lead a developer into an error
   - medium: the general idea holds but a detail is outdated
   - low: a small inaccuracy that is unlikely to matter
   and give specific_mismatch (what is wrong) and suggested_fix (corrected documentation text).

Reply with one JSON object that matches the requested schema and nothing else."""

VERIFY_PROMPT = """Verify this documentation claim against the source code evidence.

<claim file="{source_file}" line="{line_number}" type="{claim_type}">
{claim_text}
</claim>

<evidence>
{evidence}
</evidence>

Respond as JSON:
{{
  "verdict": "verified" | "drifted" | "uncertain",
  "confidence": <0.0 to 1.0>,
  "severity": "high" | "medium" | "low" | null,
  "reasoning": "1-2 sentence explanation of your verdict",
  "specific_mismatch": "what exactly is wrong (null if verified or uncertain)",
  "suggested_fix": "corrected documentation text (null if verified or uncertain)",
  "evidence_files": {evidence_files}
}}"""

JSON_RETRY_SUFFIX = (
    "\n\nIMPORTANT: Your previous response was not valid JSON. Respond with ONLY a valid JSON "
    "object matching the required schema. No markdown code fences, no commentary, no "
    "explanatory text. Start with { and end with }."
)


class VerifyOutput(BaseModel):
    """Schema the model's JSON reply must satisfy."""
    verdict: Literal["verified", "drifted", "uncertain"]
    confidence: float = Field(ge=0.0, le=1.0)
    severity: Optional[Literal["high", "medium", "low"]] = None
    reasoning: str = Field(min_length=1)
    specific_mismatch: Optional[str] = None
    suggested_fix: Optional[str] = None
    evidence_files: list[str] = Field(default_factory=list)


def build_verify_prompt(claim: Claim, evidence: str, evidence_files: list[str]) -> tuple[str, str]:
    """Return the (system, user) prompt pair for one claim."""
    user = VERIFY_PROMPT.format(
        source_file=claim.source_file,
        line_number=claim.line_number,
        claim_type=claim.claim_type,
        claim_text=claim.claim_text,
        evidence=evidence,
        evidence_files=json.dumps(evidence_files),
    )
    return SYSTEM_PROMPT, user


def strip_code_fences(text: str) -> str:
    """Unwrap a reply that arrived inside a markdown code fence."""
    content = text.strip()
    if content.startswith("```"):
        first_newline = content.find("\n")
        last_fence = content.rfind("```")
        if first_newline != -1 and last_fence > first_newline:
            content = content[first_newline + 1:last_fence].strip()
    return content


async def llm_call_with_retry(
    client: LLMClient,
    system: str,
    user: str,
    options: CompletionOptions,
    timeout_seconds: float | None = None,
) -> tuple[VerifyOutput, TokenCost] | None:
    """Call the model, parse and validate its JSON reply, retrying once.

    Token usage is summed over every attempt that got a response.

    Args:
        client: LLM transport
        system: System prompt
        user: User prompt; the retry appends a JSON-only instruction
        options: Model, temperature and token limit
        timeout_seconds: Per-attempt timeout; a timeout is a failed attempt

    Returns:
        Validated output and total token cost, or None after two failures
    """
    tokens = TokenCost()

    for attempt in range(MAX_ATTEMPTS):
        message = user if attempt == 0 else user + JSON_RETRY_SUFFIX
        try:
            async with asyncio.timeout(timeout_seconds):
                response = await client.complete(system, message, options)
            tokens = tokens + TokenCost(response.input_tokens, response.output_tokens)

            data = json.loads(strip_code_fences(response.content))
            return VerifyOutput.model_validate(data), tokens
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"LLM reply rejected (attempt {attempt + 1}/{MAX_ATTEMPTS}): {e}")
        except TimeoutError:
            logger.warning(f"LLM call timed out after {timeout_seconds}s (attempt {attempt + 1}/{MAX_ATTEMPTS})")
        except LLMError as e:
            logger.warning(f"LLM call failed (attempt {attempt + 1}/{MAX_ATTEMPTS}): {e}")
        except Exception as e:
            logger.warning(
                f"LLM client raised {type(e).__name__} (attempt {attempt + 1}/{MAX_ATTEMPTS}): {e}"
            )

    return None


async def verify_with_llm(
    claim: Claim,
    evidence: Evidence,
    client: LLMClient,
    options: CompletionOptions,
    timeout_seconds: float | None = None,
) -> VerificationResult | None:
    """Tier 3 verdict for a claim, or None without evidence or after failure."""
    if not evidence.formatted_evidence:
        return None

    system, user = build_verify_prompt(claim, evidence.formatted_evidence, evidence.evidence_files)
    outcome = await llm_call_with_retry(client, system, user, options, timeout_seconds)
    if outcome is None:
        logger.warning(f"LLM verification gave up on claim {claim.id}")
        return None

    output, tokens = outcome
    drifted = output.verdict == "drifted"
    return VerificationResult(
        claim_id=claim.id,
        verdict=output.verdict,
        confidence=output.confidence,
        tier=3,
        severity=output.severity if drifted else None,
        reasoning=output.reasoning,
        specific_mismatch=output.specific_mismatch if drifted else None,
        suggested_fix=output.suggested_fix if drifted else None,
        evidence_files=output.evidence_files or list(evidence.evidence_files),
        token_cost=tokens,
    )
