"""In-memory Codebase Index.

Holds an explicit file set, parsed manifests and scanned code entities for
one repository. Build it from a checkout with ``from_directory`` or from a
``{path: content}`` mapping with ``from_files``.

Usage:
    index = InMemoryIndex.from_directory("/path/to/repo")
    if await index.file_exists("src/app.py"):
        ...
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Mapping

from .headings import parse_markdown_headings
from .manifests import is_manifest_file, parse_manifest
from .protocol import (
    CodeEntity,
    DependencyVersion,
    Heading,
    ParsedManifest,
    Route,
    RouteMatch,
    ScriptInfo,
)
from .scanner import walk_repository
from .symbols import is_code_file, scan_entities

logger = logging.getLogger(__name__)

MAX_READ_BYTES = 100 * 1024
MAX_ROUTE_RESULTS = 10
MAX_SEMANTIC_RESULTS = 50


# =============================================================================
# Path helpers
# =============================================================================

def normalize_path(path: str) -> str | None:
    """Strip ``./``; None for traversal or directory paths."""
    if ".." in path:
        return None
    if path.startswith("./"):
        path = path[2:]
    if path.endswith("/"):
        return None
    return path


def normalize_route_path(path: str) -> str:
    if len(path) > 1 and path.endswith("/"):
        return path[:-1]
    return path


def is_route_param(segment: str) -> bool:
    return segment.startswith((":", "{", "<"))


def path_matches_parameterized(claimed: str, route: str) -> bool:
    """Segment-wise match where a parameter on either side matches anything."""
    claimed_segments = [s for s in claimed.split("/") if s]
    route_segments = [s for s in route.split("/") if s]
    if len(claimed_segments) != len(route_segments):
        return False
    return all(
        c == r or is_route_param(c) or is_route_param(r)
        for c, r in zip(claimed_segments, route_segments)
    )


def route_path_similarity(claimed: str, route: str) -> float:
    """Similarity in [0, 1] between two route paths.

    1.0 for equal paths, 0.9 when one is a prefix of the other, otherwise
    0.5 + 0.4 * (positional segment overlap), where a parameter counts half.
    """
    claimed = normalize_route_path(claimed)
    route = normalize_route_path(route)
    if claimed == route:
        return 1.0
    if route.startswith(claimed + "/") or claimed.startswith(route + "/"):
        return 0.9

    claimed_segments = [s for s in claimed.split("/") if s]
    route_segments = [s for s in route.split("/") if s]
    max_len = max(len(claimed_segments), len(route_segments))
    if max_len == 0:
        return 0.0

    matching = 0.0
    for c, r in zip(claimed_segments, route_segments):
        if c == r:
            matching += 1
        elif is_route_param(c) or is_route_param(r):
            matching += 0.5

    overlap = matching / max_len
    if overlap == 0:
        return 0.0
    return 0.5 + 0.4 * overlap


def _find_package_version(deps: Mapping[str, str], package: str) -> str | None:
    if package in deps:
        return deps[package]
    lower = package.lower()
    for name, version in deps.items():
        if name.lower() == lower:
            return version
    return None


def _split_route_name(name: str) -> tuple[str, str]:
    method, _, path = name.partition(" ")
    return method, path


# =============================================================================
# Index
# =============================================================================

class InMemoryIndex:
    """CodebaseIndex over data held in memory.

    Args:
        files: Repository-relative POSIX paths
        contents: Optional file contents keyed by path (served before disk)
        manifests: Parsed manifests and lockfiles
        entities: Code entities (definitions, routes, imports)
        repo_root: Checkout root for reading file contents from disk
    """

    def __init__(
        self,
        files: Iterable[str] = (),
        *,
        contents: Mapping[str, str] | None = None,
        manifests: Iterable[ParsedManifest] = (),
        entities: Iterable[CodeEntity] = (),
        repo_root: Path | str | None = None,
    ):
        self._contents = dict(contents or {})
        self._files = set(files) | set(self._contents)
        self._manifests = list(manifests)
        self._repo_root = Path(repo_root).resolve() if repo_root is not None else None

        self._entities_by_file: dict[str, list[CodeEntity]] = {}
        self._entities_by_name: dict[str, list[CodeEntity]] = {}
        self._entities_by_lower_name: dict[str, list[CodeEntity]] = {}
        self._routes: list[CodeEntity] = []
        for entity in entities:
            self._add_entity(entity)

    def _add_entity(self, entity: CodeEntity) -> None:
        self._entities_by_file.setdefault(entity.file_path, []).append(entity)
        self._entities_by_name.setdefault(entity.name, []).append(entity)
        self._entities_by_lower_name.setdefault(entity.name.lower(), []).append(entity)
        if entity.entity_type == "route":
            self._routes.append(entity)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_files(cls, contents: Mapping[str, str]) -> InMemoryIndex:
        """Build an index from ``{path: content}``, parsing manifests and code."""
        manifests = []
        entities: list[CodeEntity] = []
        for path in sorted(contents):
            if is_manifest_file(path):
                manifest = parse_manifest(path, contents[path])
                if manifest is not None:
                    manifests.append(manifest)
            if is_code_file(path):
                entities.extend(scan_entities(path, contents[path]))
        return cls(contents=contents, manifests=manifests, entities=entities)

    @classmethod
    def from_directory(cls, repo_root: Path | str, ignore_file: str = ".gitignore") -> InMemoryIndex:
        """Walk a checkout and index manifests and code files.

        Raises:
            FileNotFoundError: If the root does not exist
            NotADirectoryError: If the root is not a directory
        """
        root = Path(repo_root).resolve()
        files = list(walk_repository(root, ignore_file))
        manifests = []
        entities: list[CodeEntity] = []

        for path in files:
            if not (is_manifest_file(path) or is_code_file(path)):
                continue
            try:
                content = (root / path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"Skipping unreadable file {path}: {e}")
                continue

            if is_manifest_file(path):
                manifest = parse_manifest(path, content)
                if manifest is not None:
                    manifests.append(manifest)
            if is_code_file(path):
                entities.extend(scan_entities(path, content))

        index = cls(files, manifests=manifests, entities=entities, repo_root=root)
        logger.info(
            f"Indexed {root}: {len(files)} files, {len(manifests)} manifests, "
            f"{sum(len(v) for v in index._entities_by_file.values())} entities"
        )
        return index

    def get_known_packages(self) -> set[str]:
        """Every dependency name declared in any manifest or lockfile."""
        packages: set[str] = set()
        for manifest in self._manifests:
            packages.update(manifest.dependencies)
            packages.update(manifest.dev_dependencies)
        return packages

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    async def file_exists(self, path: str) -> bool:
        if not path:
            return False
        normalized = normalize_path(path)
        if not normalized:
            return False
        return normalized in self._files or normalized in self._entities_by_file

    async def get_file_tree(self) -> list[str]:
        return sorted(self._files | set(self._entities_by_file))

    async def read_file_content(self, path: str, max_bytes: int = MAX_READ_BYTES) -> str | None:
        if not path or ".." in path:
            return None
        normalized = path[2:] if path.startswith("./") else path

        if normalized in self._contents:
            content = self._contents[normalized]
            return content if len(content.encode("utf-8")) <= max_bytes else None

        if self._repo_root is None:
            return None
        file_path = self._repo_root / normalized
        try:
            if file_path.stat().st_size > max_bytes:
                return None
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    async def get_headings(self, path: str) -> list[Heading]:
        content = await self.read_file_content(path)
        if not content:
            return []
        return parse_markdown_headings(content)

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------

    @staticmethod
    def _to_route(entity: CodeEntity) -> Route:
        method, path = _split_route_name(entity.name)
        return Route(method=method, path=path, file_path=entity.file_path, line_number=entity.line_number)

    async def find_route(self, method: str, path: str) -> Route | None:
        """Exact ``METHOD path`` match, then a parameterized match.

        Routes registered for ``ALL`` methods match any method in the
        parameterized pass.
        """
        method = method.upper()
        path = normalize_route_path(path)
        route_name = f"{method} {path}"

        for entity in self._routes:
            if entity.name == route_name:
                return self._to_route(entity)

        for entity in self._routes:
            route_method, route_path = _split_route_name(entity.name)
            if route_method not in (method, "ALL"):
                continue
            if path_matches_parameterized(path, route_path):
                return self._to_route(entity)

        return None

    async def search_routes(self, path: str) -> list[RouteMatch]:
        results = []
        for entity in self._routes:
            method, route_path = _split_route_name(entity.name)
            similarity = route_path_similarity(path, route_path)
            if similarity > 0.3:
                results.append(RouteMatch(
                    method=method,
                    path=route_path,
                    file=entity.file_path,
                    line=entity.line_number,
                    similarity=round(similarity, 2),
                ))
        results.sort(key=lambda r: r.similarity, reverse=True)
        return results[:MAX_ROUTE_RESULTS]

    # -------------------------------------------------------------------------
    # Dependencies and scripts
    # -------------------------------------------------------------------------

    async def get_dependency_version(self, package: str) -> DependencyVersion | None:
        """Version of ``package``, lockfiles first, case-insensitive names."""
        for source in ("lockfile", "manifest"):
            for manifest in self._manifests:
                if manifest.source != source:
                    continue
                version = (
                    _find_package_version(manifest.dependencies, package)
                    or _find_package_version(manifest.dev_dependencies, package)
                )
                if version:
                    return DependencyVersion(version=version, source=source, file_path=manifest.file_path)
        return None

    async def get_manifest_metadata(self) -> ParsedManifest | None:
        """The primary manifest: shallowest, then by path, with dependencies or metadata."""
        candidates = [
            m for m in self._manifests
            if m.source == "manifest"
            and (m.dependencies or m.dev_dependencies or m.name or m.version or m.engines or m.license)
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda m: (m.file_path.count("/"), m.file_path))

    async def script_exists(self, name: str) -> bool:
        return any(name in manifest.scripts for manifest in self._manifests)

    async def get_available_scripts(self) -> list[ScriptInfo]:
        scripts = [
            ScriptInfo(name=name, command=command, file_path=manifest.file_path)
            for manifest in self._manifests
            for name, command in manifest.scripts.items()
        ]
        scripts.sort(key=lambda s: (s.file_path, s.name))
        return scripts

    # -------------------------------------------------------------------------
    # Symbols
    # -------------------------------------------------------------------------

    async def find_symbol(self, name: str) -> list[CodeEntity]:
        """Exact name match, falling back to case-insensitive."""
        if not name:
            return []
        matches = self._entities_by_name.get(name) or self._entities_by_lower_name.get(name.lower()) or []
        return sorted(matches, key=lambda e: (e.file_path, e.line_number))

    async def search_semantic(self, query: str, top_k: int = 5) -> list[CodeEntity]:
        """Keyword stand-in for embedding search: symbols named like query words."""
        k = min(max(top_k, 1), MAX_SEMANTIC_RESULTS)
        keywords = [word for word in query.split() if len(word) > 2]

        results: dict[str, CodeEntity] = {}
        for keyword in keywords:
            for entity in await self.find_symbol(keyword):
                results.setdefault(entity.id, entity)
            if len(results) >= k:
                break
        return list(results.values())[:k]
