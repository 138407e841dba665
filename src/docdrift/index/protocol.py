"""Read-only Codebase Index contract consumed by verification.

The verifier never writes to the index; every method is a query. One index
instance answers for exactly one repository.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Protocol, runtime_checkable

EntityType = Literal["function", "class", "route", "type", "import", "config"]

ManifestSource = Literal["manifest", "lockfile"]


@dataclass(frozen=True)
class CodeEntity:
    """A named definition found in a source file."""
    id: str
    file_path: str
    line_number: int
    end_line_number: int
    entity_type: EntityType
    name: str
    signature: str = ""
    raw_code: str = ""


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    file_path: str
    line_number: int


@dataclass(frozen=True)
class RouteMatch:
    """A route returned by fuzzy route search."""
    method: str
    path: str
    file: str
    line: int
    similarity: float


@dataclass(frozen=True)
class DependencyVersion:
    version: str
    source: ManifestSource
    file_path: str | None = None


@dataclass(frozen=True)
class ScriptInfo:
    name: str
    command: str
    file_path: str


@dataclass(frozen=True)
class Heading:
    text: str
    level: int
    slug: str


@dataclass
class ParsedManifest:
    """Dependencies, scripts and package metadata from one manifest or lockfile."""
    file_path: str
    source: ManifestSource = "manifest"
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)
    name: str | None = None
    version: str | None = None
    engines: dict[str, str] = field(default_factory=dict)
    license: str | None = None


@runtime_checkable
class CodebaseIndex(Protocol):
    """Structural queries over one repository."""

    async def file_exists(self, path: str) -> bool: ...

    async def get_file_tree(self) -> list[str]: ...

    async def read_file_content(self, path: str) -> str | None: ...

    async def get_headings(self, path: str) -> list[Heading]: ...

    async def find_route(self, method: str, path: str) -> Route | None: ...

    async def search_routes(self, path: str) -> list[RouteMatch]: ...

    async def get_dependency_version(self, package: str) -> DependencyVersion | None: ...

    async def get_manifest_metadata(self) -> ParsedManifest | None: ...

    async def script_exists(self, name: str) -> bool: ...

    async def get_available_scripts(self) -> list[ScriptInfo]: ...

    async def find_symbol(self, name: str) -> list[CodeEntity]: ...

    async def search_semantic(self, query: str, top_k: int = 5) -> list[CodeEntity]: ...
