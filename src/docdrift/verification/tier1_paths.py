"""Tier 1: path_reference claims against the file tree."""
from __future__ import annotations

import logging
from posixpath import dirname

from docdrift.extraction.models import SELF_REFERENCE, Claim, PathValue
from docdrift.index.protocol import CodebaseIndex, Heading

from .results import VerificationResult, make_result
from .similarity import find_similar_paths, levenshtein

logger = logging.getLogger(__name__)

ANCHOR_HINT_MAX_DISTANCE = 3
MAX_AMBIGUOUS_EVIDENCE = 5


def resolve_relative(base_dir: str, path: str) -> str | None:
    """Join and normalize ``path`` under ``base_dir``; None if it escapes the root."""
    resolved: list[str] = []
    for part in (f"{base_dir}/{path}" if base_dir else path).split("/"):
        if part == "..":
            if not resolved:
                return None
            resolved.pop()
        elif part not in (".", ""):
            resolved.append(part)
    return "/".join(resolved) or None


def _anchor_hint(anchor: str, headings: list[Heading]) -> str:
    closest = min(headings, key=lambda h: levenshtein(anchor, h.slug), default=None)
    if closest is not None and levenshtein(anchor, closest.slug) <= ANCHOR_HINT_MAX_DISTANCE:
        return f" Did you mean '#{closest.slug}'?"
    return ""


async def _verify_self_anchor(claim: Claim, anchor: str, index: CodebaseIndex) -> VerificationResult:
    doc = claim.source_file
    headings = await index.get_headings(doc)
    match = next((h for h in headings if h.slug == anchor), None)
    if match:
        return make_result(
            claim, "verified", [doc],
            f"Anchor '#{anchor}' matches heading '{match.text}' in '{doc}'.",
        )
    return make_result(
        claim, "drifted", [doc],
        f"Anchor '#{anchor}' not found in '{doc}'.{_anchor_hint(anchor, headings)}",
        severity="medium",
        specific_mismatch=f"Anchor '#{anchor}' does not match any heading.",
    )


async def _verify_file_anchor(claim: Claim, path: str, anchor: str, index: CodebaseIndex) -> VerificationResult:
    headings = await index.get_headings(path)
    match = next((h for h in headings if h.slug == anchor), None)
    if match:
        return make_result(
            claim, "verified", [path],
            f"File '{path}' exists and anchor '#{anchor}' matches heading '{match.text}'.",
        )
    return make_result(
        claim, "drifted", [path],
        f"File '{path}' exists but anchor '#{anchor}' not found.{_anchor_hint(anchor, headings)}",
        severity="medium",
        specific_mismatch=f"Anchor '#{anchor}' does not match any heading in '{path}'.",
    )


async def verify_path_reference(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    """Verify that a referenced file (and optional heading anchor) exists.

    Resolution order: exact repository path, relative to the doc's
    directory, unique basename anywhere in the tree, then a similar-path
    search that proposes a rename.
    """
    value = claim.extracted_value
    if not isinstance(value, PathValue) or not value.path:
        return None
    path, anchor = value.path, value.anchor
    doc_dir = dirname(claim.source_file)

    if path == SELF_REFERENCE:
        if not anchor:
            return None
        return await _verify_self_anchor(claim, anchor, index)

    if await index.file_exists(path):
        if anchor:
            return await _verify_file_anchor(claim, path, anchor, index)
        return make_result(claim, "verified", [path], f"File '{path}' exists in the repository.")

    if path.startswith(("./", "../")):
        resolved = resolve_relative(doc_dir, path)
        if resolved and await index.file_exists(resolved):
            return make_result(
                claim, "verified", [resolved],
                f"Relative path '{path}' resolves to '{resolved}' from '{claim.source_file}'.",
            )

    if "/" not in path:
        if doc_dir:
            resolved = f"{doc_dir}/{path}"
            if await index.file_exists(resolved):
                return make_result(
                    claim, "verified", [resolved],
                    f"File '{path}' resolves to '{resolved}' relative to doc file directory.",
                )

        file_tree = await index.get_file_tree()
        matches = [f for f in file_tree if f == path or f.endswith("/" + path)]
        if len(matches) == 1:
            return make_result(
                claim, "verified", matches,
                f"File '{path}' found at '{matches[0]}' (unique basename match).",
            )
        if len(matches) > 1:
            more = "..." if len(matches) > 3 else ""
            return make_result(
                claim, "uncertain", matches[:MAX_AMBIGUOUS_EVIDENCE],
                f"Bare filename '{path}' matches {len(matches)} files. Cannot determine which is intended.",
                specific_mismatch=f"Ambiguous: {', '.join(matches[:3])}{more}",
            )

    similar = await find_similar_paths(index, path)
    if similar:
        best = similar[0]
        logger.debug(f"{path} not found; closest is {best.path} ({best.match_type}, distance {best.distance})")
        return make_result(
            claim, "drifted", [best.path],
            f"File '{path}' not found. Similar: '{best.path}'.",
            severity="medium",
            suggested_fix=claim.claim_text.replace(path, best.path, 1),
            specific_mismatch=f"File path '{path}' does not exist. Likely renamed.",
        )

    return make_result(
        claim, "drifted", [],
        f"File '{path}' not found.",
        severity="high",
        specific_mismatch=f"File path '{path}' does not exist.",
    )
