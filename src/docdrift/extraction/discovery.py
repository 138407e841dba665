"""Documentation file discovery.

Finds README.md, docs/**/*.md, agent instruction files and other
documentation in a repository file tree.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from docdrift.index.scanner import walk_repository

DOC_PATTERNS = [
    re.compile(r"^README\.mdx?$", re.IGNORECASE),
    re.compile(r"^README\.rst$", re.IGNORECASE),
    re.compile(r"^CONTRIBUTING\.md$", re.IGNORECASE),
    re.compile(r"^ARCHITECTURE\.md$", re.IGNORECASE),
    re.compile(r"^CLAUDE\.md$", re.IGNORECASE),
    re.compile(r"^AGENTS\.md$", re.IGNORECASE),
    re.compile(r"^COPILOT-INSTRUCTIONS\.md$", re.IGNORECASE),
    re.compile(r"^\.cursorrules$"),
    re.compile(r"^docs/.*\.mdx?$"),
    re.compile(r"^doc/.*\.mdx?$"),
    re.compile(r"^wiki/.*\.md$"),
    re.compile(r"^adr/.*\.md$"),
    re.compile(r"^ADR-.*\.md$"),
    re.compile(r"^api/.*\.md$"),
    re.compile(r"/CLAUDE\.md$"),
    re.compile(r"/AGENTS\.md$"),
]

DOC_EXCLUDE = [
    re.compile(r"^node_modules/"),
    re.compile(r"^vendor/"),
    re.compile(r"^\.git/"),
    re.compile(r"(?:^|/)CHANGELOG\.md$", re.IGNORECASE),
    re.compile(r"(?:^|/)LICENSE\.md$", re.IGNORECASE),
]

# Markdown this shallow is treated as documentation wherever it lives
MAX_HEURISTIC_DEPTH = 3


def discover_doc_files(file_tree: Iterable[str]) -> list[str]:
    """Select documentation files from a repository file tree.

    Args:
        file_tree: Repository-relative POSIX paths

    Returns:
        Sorted documentation paths
    """
    found = set()
    for path in file_tree:
        if any(pattern.search(path) for pattern in DOC_PATTERNS):
            found.add(path)
        elif path.endswith(".md") and len(path.split("/")) <= MAX_HEURISTIC_DEPTH:
            found.add(path)
    return sorted(path for path in found if not any(p.search(path) for p in DOC_EXCLUDE))


def scan_doc_files(repo_root: Path | str, ignore_file: str = ".gitignore") -> list[str]:
    """Walk a checkout and return its documentation files."""
    return discover_doc_files(walk_repository(repo_root, ignore_file))
