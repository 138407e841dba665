"""Code evidence assembly for Tier 3 (LLM) verification.

Collects code entities related to a claim from the index and renders them
as a bounded text block, grouped by file.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from docdrift.extraction.models import Claim, PathValue
from docdrift.index.protocol import CodebaseIndex, CodeEntity

logger = logging.getLogger(__name__)

MAX_EVIDENCE_CHARS = 16000
MAX_EVIDENCE_FILES = 5
MAX_MATCHED_ENTITIES = 20
MAX_ENTITY_CODE_CHARS = 2000
SEMANTIC_FALLBACK_RESULTS = 10
MIN_TRUNCATED_SECTION = 200


@dataclass
class Evidence:
    """Formatted evidence for one claim and the files it was drawn from."""
    formatted_evidence: str | None
    evidence_files: list[str] = field(default_factory=list)


EvidenceBuilder = Callable[[Claim, CodebaseIndex], Awaitable[Evidence]]


def format_file_evidence(file_path: str, entities: list[CodeEntity]) -> str:
    """Render the matched entities of one file, in line order."""
    parts = [f"--- File: {file_path} ---\n"]

    for entity in sorted(entities, key=lambda e: e.line_number):
        if entity.end_line_number:
            line_range = f"lines {entity.line_number}-{entity.end_line_number}"
        else:
            line_range = f"line {entity.line_number}"
        parts.append(f"// {entity.entity_type}: {entity.name} ({line_range})")

        if entity.signature:
            parts.append(entity.signature)

        if entity.raw_code:
            code = entity.raw_code
            if len(code) > MAX_ENTITY_CODE_CHARS:
                code = code[:MAX_ENTITY_CODE_CHARS] + "\n// ... [truncated]"
            parts.append(code)

        parts.append("")

    return "\n".join(parts)


async def _matched_entities(claim: Claim, index: CodebaseIndex) -> list[CodeEntity]:
    matched: list[CodeEntity] = []
    seen: set[str] = set()

    for keyword in claim.keywords:
        if len(matched) >= MAX_MATCHED_ENTITIES:
            break
        for entity in await index.find_symbol(keyword):
            if entity.id not in seen:
                seen.add(entity.id)
                matched.append(entity)

    if not matched and claim.claim_text:
        for entity in await index.search_semantic(claim.claim_text, SEMANTIC_FALLBACK_RESULTS):
            if entity.id not in seen:
                seen.add(entity.id)
                matched.append(entity)

    return matched


async def build_evidence(
    claim: Claim,
    index: CodebaseIndex,
    max_chars: int = MAX_EVIDENCE_CHARS,
) -> Evidence:
    """Build LLM evidence for a claim.

    Searches the index by the claim's keywords (falling back to a semantic
    search over the claim text), keeps the files with the most matches and
    renders them within a character budget. When no code entity matches and
    the claim names a file, that file's content is used instead.

    Args:
        claim: Claim being verified
        index: Codebase index to search
        max_chars: Budget for the formatted evidence

    Returns:
        Evidence; ``formatted_evidence`` is None when nothing was found
    """
    by_file: dict[str, list[CodeEntity]] = defaultdict(list)
    for entity in await _matched_entities(claim, index):
        by_file[entity.file_path].append(entity)

    top_files = sorted(by_file.items(), key=lambda item: len(item[1]), reverse=True)[:MAX_EVIDENCE_FILES]

    parts: list[str] = []
    files: list[str] = []
    total_chars = 0

    for file_path, entities in top_files:
        if total_chars >= max_chars:
            break

        section = format_file_evidence(file_path, entities)
        if total_chars + len(section) > max_chars:
            remaining = max_chars - total_chars
            if remaining > MIN_TRUNCATED_SECTION:
                parts.append(section[:remaining] + "\n[truncated]")
                files.append(file_path)
            break

        parts.append(section)
        files.append(file_path)
        total_chars += len(section)

    if not parts and isinstance(claim.extracted_value, PathValue):
        path = claim.extracted_value.path
        content = await index.read_file_content(path)
        if content:
            parts.append(f"--- File: {path} ---\n\n{content[:max_chars]}")
            files.append(path)

    if not parts:
        logger.debug(f"No evidence found for claim {claim.id}")
        return Evidence(formatted_evidence=None)

    return Evidence(formatted_evidence="\n\n".join(parts), evidence_files=files)
