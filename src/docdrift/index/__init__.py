"""Codebase Index: the read-only repository view verification queries.

Usage:
    from docdrift.index import InMemoryIndex

    index = InMemoryIndex.from_directory("/path/to/repo")
    dep = await index.get_dependency_version("react")
"""
from .headings import parse_markdown_headings, slugify
from .manifests import is_manifest_file, parse_manifest
from .memory import InMemoryIndex
from .protocol import (
    CodebaseIndex,
    CodeEntity,
    DependencyVersion,
    Heading,
    ParsedManifest,
    Route,
    RouteMatch,
    ScriptInfo,
)
from .scanner import walk_repository
from .symbols import scan_entities

__all__ = [
    "CodeEntity",
    "CodebaseIndex",
    "DependencyVersion",
    "Heading",
    "InMemoryIndex",
    "ParsedManifest",
    "Route",
    "RouteMatch",
    "ScriptInfo",
    "is_manifest_file",
    "parse_manifest",
    "parse_markdown_headings",
    "scan_entities",
    "slugify",
    "walk_repository",
]
