"""Markdown heading parsing with GitHub-style anchor slugs."""
from __future__ import annotations

import re

from .protocol import Heading

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")

# Inline markdown stripped from heading text, in order
INLINE_MARKUP = [
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),     # bold
    (re.compile(r"\*(.+?)\*"), r"\1"),         # italic
    (re.compile(r"`(.+?)`"), r"\1"),           # inline code
    (re.compile(r"\[(.+?)\]\([^)]*\)"), r"\1"),  # links
]


def slugify(text: str) -> str:
    """GitHub anchor slug: lowercase, punctuation dropped, spaces to hyphens."""
    slug = text.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def parse_markdown_headings(content: str) -> list[Heading]:
    """Extract ATX headings outside code fences.

    Duplicate slugs get ``-1``, ``-2`` suffixes the way GitHub renders them.
    """
    headings: list[Heading] = []
    slug_counts: dict[str, int] = {}
    in_fence = False

    for line in content.split("\n"):
        if FENCE_PATTERN.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue

        match = HEADING_PATTERN.match(line)
        if not match:
            continue

        text = match.group(2).strip()
        for pattern, replacement in INLINE_MARKUP:
            text = pattern.sub(replacement, text)

        slug = slugify(text)
        count = slug_counts.get(slug, 0)
        slug_counts[slug] = count + 1
        if count > 0:
            slug = f"{slug}-{count}"

        headings.append(Heading(text=text, level=len(match.group(1)), slug=slug))

    return headings
