"""Tier 1: api_route claims against indexed framework routes."""
from __future__ import annotations

from docdrift.extraction.models import Claim, RouteValue
from docdrift.index.protocol import CodebaseIndex

from .results import VerificationResult, make_result


async def verify_api_route(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    value = claim.extracted_value
    if not isinstance(value, RouteValue) or not value.method or not value.path:
        return None
    documented = f"{value.method} {value.path}"

    route = await index.find_route(value.method, value.path)
    if route:
        return make_result(
            claim, "verified", [route.file_path],
            f"Route '{documented}' found in '{route.file_path}'.",
        )

    alternatives = await index.search_routes(value.path)
    if alternatives:
        best = alternatives[0]
        closest = f"{best.method} {best.path}"
        return make_result(
            claim, "drifted", [best.file],
            f"Route '{documented}' not found. Similar: '{closest}'.",
            severity="medium",
            suggested_fix=claim.claim_text.replace(documented, closest, 1),
            specific_mismatch=f"Route does not exist. Closest: '{closest}'.",
        )

    return make_result(
        claim, "drifted", [],
        f"Route '{documented}' not found.",
        severity="high",
        specific_mismatch="Route not found.",
    )
