"""Document preprocessing.

Turns raw documentation text into a ``PreProcessedDoc``: cleaned text whose
line count matches a map back to original line numbers, plus side tables
that classify lines as code-fence lines or machine-tag lines.

The cleaning steps are an ordered tuple of total functions over an
immutable ``_Buffer``. Every step preserves the number of lines (content is
blanked, never removed) except frontmatter stripping, which records the
offset it removed. ``_Buffer.original`` keeps the un-stripped lines for
steps that need them (SVG block detection).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Callable, Iterator

from .models import DocFormat, PreProcessedDoc
from .tags import TAG_LINE_PATTERN

HTML_TAG_PATTERN = re.compile(r"<[^>]+>")
BASE64_IMAGE_PATTERNS = (
    re.compile(r"!\[.*?\]\(data:image/[^)]+\)"),
    re.compile(r'src="data:image/[^"]+"'),
)
JSX_SELF_CLOSING_PATTERN = re.compile(r"<[A-Z][a-zA-Z]*\s[^>]*/>")
JSX_BLOCK_LINE_PATTERN = re.compile(r"^\s*</?[A-Z]")
FENCE_DELIMITERS = ("```", "~~~")

_SVG_OPEN = "<svg"
_SVG_CLOSE = "</svg>"


@dataclass(frozen=True)
class _Buffer:
    lines: tuple[str, ...]
    original: tuple[str, ...]     # post-frontmatter lines before any stripping
    offset: int
    fmt: DocFormat


@dataclass(frozen=True)
class FencedBlock:
    """A closed fenced code block in a preprocessed document."""
    open_index: int               # cleaned line index of the opening delimiter
    close_index: int
    language: str | None
    body: list[str]

    @property
    def first_body_index(self) -> int:
        return self.open_index + 1


def is_binary(content: str) -> bool:
    """Binary content is detected by the presence of a NUL byte."""
    return "\0" in content


# =============================================================================
# Cleaning steps
# =============================================================================

def _strip_frontmatter(buf: _Buffer) -> _Buffer:
    lines = buf.lines
    if not lines or lines[0].strip() != "---":
        return buf
    for idx in range(1, len(lines)):
        if lines[idx] == "---":
            rest = lines[idx + 1:]
            return replace(buf, lines=rest, original=rest, offset=idx + 1)
    # No closing delimiter: leave content untouched
    return buf


def _strip_html(buf: _Buffer) -> _Buffer:
    cleaned = tuple(
        line if TAG_LINE_PATTERN.match(line) else HTML_TAG_PATTERN.sub("", line)
        for line in buf.lines
    )
    return replace(buf, lines=cleaned)


def _strip_base64_images(buf: _Buffer) -> _Buffer:
    def clean(line: str) -> str:
        for pattern in BASE64_IMAGE_PATTERNS:
            line = pattern.sub("", line)
        return line

    return replace(buf, lines=tuple(clean(line) for line in buf.lines))


def _svg_touches(line: str, in_svg: bool) -> tuple[bool, bool]:
    """Scan one original line; return (line is part of an SVG block, state after)."""
    lowered = line.lower()
    touched = in_svg
    pos = 0
    while True:
        if in_svg:
            close = lowered.find(_SVG_CLOSE, pos)
            if close == -1:
                return touched, True
            in_svg = False
            pos = close + len(_SVG_CLOSE)
        else:
            start = lowered.find(_SVG_OPEN, pos)
            if start == -1:
                return touched, False
            in_svg = True
            touched = True
            pos = start + len(_SVG_OPEN)


def _strip_svg_blocks(buf: _Buffer) -> _Buffer:
    # Open/close state is derived from the original lines: HTML stripping has
    # already removed the tag fragments from buf.lines.
    cleaned = list(buf.lines)
    in_svg = False
    for idx, original_line in enumerate(buf.original):
        touched, in_svg = _svg_touches(original_line, in_svg)
        if touched:
            cleaned[idx] = ""
    return replace(buf, lines=tuple(cleaned))


def _strip_jsx(buf: _Buffer) -> _Buffer:
    if buf.fmt != "mdx":
        return buf
    cleaned = []
    for line in buf.lines:
        line = JSX_SELF_CLOSING_PATTERN.sub("", line)
        if JSX_BLOCK_LINE_PATTERN.match(line):
            line = ""
        cleaned.append(line)
    return replace(buf, lines=tuple(cleaned))


CLEANING_STEPS: tuple[Callable[[_Buffer], _Buffer], ...] = (
    _strip_frontmatter,
    _strip_html,
    _strip_base64_images,
    _strip_svg_blocks,
    _strip_jsx,
)


# =============================================================================
# Line classification
# =============================================================================

def _fence_delimiter(line: str) -> str | None:
    stripped = line.lstrip()
    for delimiter in FENCE_DELIMITERS:
        if stripped.startswith(delimiter):
            return delimiter
    return None


def _classify_fences(lines: tuple[str, ...]) -> frozenset[int]:
    fence_lines: set[int] = set()
    open_delimiter: str | None = None
    for idx, line in enumerate(lines):
        delimiter = _fence_delimiter(line)
        if open_delimiter is None:
            if delimiter:
                open_delimiter = delimiter
                fence_lines.add(idx)
        else:
            fence_lines.add(idx)
            if delimiter == open_delimiter:
                open_delimiter = None
    return frozenset(fence_lines)


def _classify_tags(lines: tuple[str, ...], fence_lines: frozenset[int]) -> frozenset[int]:
    return frozenset(
        idx for idx, line in enumerate(lines)
        if idx not in fence_lines and TAG_LINE_PATTERN.match(line)
    )


def preprocess(content: str, fmt: DocFormat) -> PreProcessedDoc:
    """Clean document text and build the original line map.

    Args:
        content: Raw document text
        fmt: Document format (only ``mdx`` enables JSX stripping)

    Returns:
        PreProcessedDoc; never raises
    """
    lines = tuple(content.split("\n"))
    buf = _Buffer(lines=lines, original=lines, offset=0, fmt=fmt)
    for step in CLEANING_STEPS:
        buf = step(buf)

    line_map = [idx + buf.offset + 1 for idx in range(len(buf.lines))]
    fence_lines = _classify_fences(buf.lines)
    tag_lines = _classify_tags(buf.lines, fence_lines)

    return PreProcessedDoc(
        cleaned_content="\n".join(buf.lines),
        original_line_map=line_map,
        format=fmt,
        file_size_bytes=len(content.encode("utf-8")),
        code_fence_lines=fence_lines,
        tag_lines=tag_lines,
    )


def iter_fenced_blocks(doc: PreProcessedDoc) -> Iterator[FencedBlock]:
    """Yield closed fenced blocks using the document's fence classification.

    Unclosed fences are not yielded.
    """
    lines = doc.lines
    open_index: int | None = None
    open_delimiter = ""
    for idx, line in enumerate(lines):
        if idx not in doc.code_fence_lines:
            continue
        delimiter = _fence_delimiter(line)
        if open_index is None:
            if delimiter:
                open_index = idx
                open_delimiter = delimiter
            continue
        if delimiter == open_delimiter and idx != open_index:
            info = lines[open_index].lstrip()[len(open_delimiter):].strip()
            language = re.match(r"[\w+#-]*", info).group(0) or None
            yield FencedBlock(
                open_index=open_index,
                close_index=idx,
                language=language,
                body=lines[open_index + 1:idx],
            )
            open_index = None
