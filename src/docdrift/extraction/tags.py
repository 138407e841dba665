"""Inline machine tags for claims.

Tags are single-line HTML comments, invisible in rendered markdown:

    <!-- docdrift:claim id="<uuid>" type="<claim_type>" status="<status>" -->

Any ``<!-- docdrift:<verb> ... -->`` line is a machine-tag line and is
excluded from extraction (unless it sits inside a code fence). Only the
``claim`` verb is parsed into a ``DocTag``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

TAG_TOOL = "docdrift"

TAG_LINE_PATTERN = re.compile(rf"^\s*<!--\s*{TAG_TOOL}:\w+\s+.*?-->\s*$")
CLAIM_TAG_PATTERN = re.compile(rf"^(\s*)<!--\s*{TAG_TOOL}:claim\s+(.*?)\s*-->\s*$")
KEY_VALUE_PATTERN = re.compile(r'(\w+)="([^"]*)"')


@dataclass(frozen=True)
class DocTag:
    """A parsed claim tag."""
    id: str
    type: str
    status: str
    line: int                      # 1-based line in the document
    raw: str


@dataclass(frozen=True)
class TaggableClaim:
    id: str
    type: str
    status: str
    source_line: int               # 1-based line the tag is written after


@dataclass(frozen=True)
class TagWriteResult:
    content: str
    tags_written: int
    tags_updated: int
    tags_preserved: int


def parse_tag(line: str, line_number: int = 1) -> DocTag | None:
    """Parse a single line; returns None unless it is a claim tag with id and type."""
    match = CLAIM_TAG_PATTERN.match(line)
    if not match:
        return None
    values = dict(KEY_VALUE_PATTERN.findall(match.group(2)))
    if not values.get("id") or not values.get("type"):
        return None
    return DocTag(
        id=values["id"],
        type=values["type"],
        status=values.get("status") or "pending",
        line=line_number,
        raw=line,
    )


def parse_tags(content: str) -> list[DocTag]:
    """Parse all claim tags in a document. Malformed tags are skipped."""
    if not content:
        return []
    tags = []
    for idx, line in enumerate(content.split("\n")):
        tag = parse_tag(line, idx + 1)
        if tag:
            tags.append(tag)
    return tags


def format_tag(claim: TaggableClaim) -> str:
    return f'<!-- {TAG_TOOL}:claim id="{claim.id}" type="{claim.type}" status="{claim.status}" -->'


def write_tags(content: str, claims: Iterable[TaggableClaim]) -> TagWriteResult:
    """Insert or update claim tags in a document.

    Existing tags with an unchanged status are left alone, tags whose status
    changed are rewritten in place, and claims without a tag get one inserted
    after their source line. Running twice yields the same content.

    Args:
        content: Document text
        claims: Claims to tag

    Returns:
        TagWriteResult with the new content and counters
    """
    claims = list(claims)
    if not claims:
        return TagWriteResult(content, 0, 0, 0)

    existing = {tag.id: tag for tag in parse_tags(content)}
    lines = content.split("\n")
    written = updated = preserved = 0

    seen: set[str] = set()
    for claim in claims:
        tag = existing.get(claim.id)
        if tag is None:
            continue
        seen.add(claim.id)
        if tag.status == claim.status:
            preserved += 1
        else:
            indent = CLAIM_TAG_PATTERN.match(tag.raw).group(1)
            lines[tag.line - 1] = indent + format_tag(claim)
            updated += 1
    preserved += sum(1 for tag_id in existing if tag_id not in seen)

    insertions = sorted(
        ((claim.source_line - 1, format_tag(claim)) for claim in claims if claim.id not in existing),
        key=lambda item: item[0],
        reverse=True,
    )
    for after, tag_line in insertions:
        idx = min(max(after, 0), len(lines) - 1)
        lines.insert(idx + 1, tag_line)
        written += 1

    return TagWriteResult("\n".join(lines), written, updated, preserved)
