"""Cross-document consistency: the same fact stated differently in two docs.

Claims are grouped by what they talk about (a package, a config key, a
runtime, a script). A group that spans several documents and carries more
than one value produces a drift result for each claim that disagrees with
a value seen earlier.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass

from docdrift.extraction.models import (
    Claim,
    CommandValue,
    ConfigValue,
    DependencyValue,
    EnvironmentValue,
)
from docdrift.extraction.validation import runtime_key

from .results import VerificationResult

logger = logging.getLogger(__name__)

INCONSISTENCY_CONFIDENCE = 0.8


@dataclass
class Inconsistency:
    """A claim that contradicts another document, with its synthetic result."""
    claim: Claim
    result: VerificationResult


def group_key(claim: Claim) -> str | None:
    """What a claim is about, or None for claims that are never compared."""
    value = claim.extracted_value
    if isinstance(value, DependencyValue) and value.package:
        return f"dep:{value.package}"
    if isinstance(value, ConfigValue) and value.key:
        return f"config:{value.key}"
    if isinstance(value, EnvironmentValue) and value.runtime:
        return f"env:{runtime_key(value.runtime)}"
    if isinstance(value, CommandValue) and value.script:
        return f"cmd:{value.script}"
    return None


def comparable_value(claim: Claim) -> str | None:
    """The part of a claim that two documents can disagree on."""
    value = claim.extracted_value
    if isinstance(value, DependencyValue):
        return value.version or None
    if isinstance(value, ConfigValue):
        return value.value or None
    if isinstance(value, EnvironmentValue):
        return value.version or None
    if isinstance(value, CommandValue):
        return value.runner or None
    return None


def _diverging_claims(group: list[Claim]) -> list[Inconsistency]:
    found = []
    seen: dict[str, Claim] = {}

    for claim in group:
        value = comparable_value(claim)
        if value is None:
            continue

        for other_value, other in seen.items():
            if other_value == value:
                continue
            found.append(Inconsistency(
                claim=claim,
                result=VerificationResult(
                    claim_id=claim.id,
                    verdict="drifted",
                    confidence=INCONSISTENCY_CONFIDENCE,
                    tier=2,
                    severity="medium",
                    reasoning=(
                        f"Cross-doc inconsistency: '{claim.source_file}' says '{value}' "
                        f"but '{other.source_file}' says '{other_value}'."
                    ),
                    specific_mismatch=f"Conflicting values across documents: '{value}' vs '{other_value}'.",
                    evidence_files=[claim.source_file, other.source_file],
                ),
            ))
            break

        seen.setdefault(value, claim)

    return found


def find_cross_doc_inconsistencies(claims: list[Claim]) -> list[Inconsistency]:
    """Report claims whose value contradicts another document's.

    Only groups with claims from two or more source files are compared, so
    a document that repeats itself is left to within-file deduplication.
    Each disagreeing claim is reported once, against the first differing
    value seen before it.

    Args:
        claims: Claims from every scanned document

    Returns:
        One Inconsistency per contradicting claim
    """
    groups: dict[str, list[Claim]] = defaultdict(list)
    for claim in claims:
        key = group_key(claim)
        if key is not None:
            groups[key].append(claim)

    inconsistencies = []
    for key, group in groups.items():
        if len({claim.source_file for claim in group}) < 2:
            continue
        found = _diverging_claims(group)
        if found:
            logger.debug(f"{key}: {len(found)} conflicting claims across documents")
        inconsistencies.extend(found)

    if inconsistencies:
        logger.info(f"Found {len(inconsistencies)} cross-document inconsistencies")
    return inconsistencies
