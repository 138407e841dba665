"""Core data types for claim extraction.

``ExtractedValue`` is a closed union with one variant per claim type. Code
that branches on it (identity keys, keywords) ends in ``assert_never`` so a
new variant cannot be added without updating every consumer.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Literal, Union

if TYPE_CHECKING:
    from docdrift.verification.results import VerificationResult

DocFormat = Literal["markdown", "mdx", "rst", "plaintext"]

ClaimType = Literal[
    "path_reference",
    "command",
    "dependency_version",
    "api_route",
    "code_example",
    "url_reference",
    "environment",
    "convention",
    "config",
    "behavior",
    "architecture",
]

Testability = Literal["syntactic", "semantic"]

VerificationStatus = Literal["pending", "verified", "drifted", "uncertain"]

SEMANTIC_CLAIM_TYPES: frozenset[str] = frozenset({"behavior", "architecture"})

_FORMAT_BY_SUFFIX: dict[str, DocFormat] = {
    ".md": "markdown",
    ".mdx": "mdx",
    ".rst": "rst",
}


def detect_format(file_path: str) -> DocFormat:
    """Detect document format from the file extension (case-insensitive)."""
    suffix = PurePosixPath(file_path).suffix.lower()
    return _FORMAT_BY_SUFFIX.get(suffix, "plaintext")


def testability_for(claim_type: ClaimType) -> Testability:
    """Testability is a pure function of claim type."""
    return "semantic" if claim_type in SEMANTIC_CLAIM_TYPES else "syntactic"


@dataclass(frozen=True)
class PreProcessedDoc:
    """Cleaned document text plus the map back to original line numbers."""
    cleaned_content: str
    original_line_map: list[int]
    format: DocFormat
    file_size_bytes: int
    code_fence_lines: frozenset[int] = frozenset()
    tag_lines: frozenset[int] = frozenset()

    @property
    def lines(self) -> list[str]:
        if not self.original_line_map:
            return []
        return self.cleaned_content.split("\n")

    def original_line(self, index: int) -> int:
        """Original 1-based line number for a cleaned line index."""
        return self.original_line_map[index]


# =============================================================================
# Extracted values (one variant per claim type)
# =============================================================================

# Path of an in-page link such as [Setup](#setup)
SELF_REFERENCE = "<self>"


@dataclass(frozen=True)
class PathValue:
    path: str
    anchor: str | None = None


@dataclass(frozen=True)
class CommandValue:
    runner: str
    script: str


@dataclass(frozen=True)
class DependencyValue:
    package: str
    version: str


@dataclass(frozen=True)
class RouteValue:
    method: str
    path: str


@dataclass(frozen=True)
class CodeExampleValue:
    language: str | None
    imports: tuple[str, ...] = ()
    symbols: tuple[str, ...] = ()
    commands: tuple[str, ...] = ()


@dataclass(frozen=True)
class UrlValue:
    url: str


@dataclass(frozen=True)
class EnvironmentValue:
    """Either a runtime requirement (runtime + version) or an env var."""
    runtime: str | None = None
    version: str | None = None
    env_var: str | None = None


@dataclass(frozen=True)
class ConventionValue:
    convention: str | None = None
    framework: str | None = None


@dataclass(frozen=True)
class ConfigValue:
    key: str
    value: str | None = None


@dataclass(frozen=True)
class SemanticValue:
    """Free-form behavior/architecture statement (LLM-only path)."""
    summary: str


ExtractedValue = Union[
    PathValue,
    CommandValue,
    DependencyValue,
    RouteValue,
    CodeExampleValue,
    UrlValue,
    EnvironmentValue,
    ConventionValue,
    ConfigValue,
    SemanticValue,
]


@dataclass(frozen=True)
class RawExtraction:
    """A candidate claim produced by one extractor pattern."""
    claim_text: str
    claim_type: ClaimType
    extracted_value: ExtractedValue
    line_number: int              # Original 1-based line
    pattern_name: str


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Claim:
    """A structured, checkable statement extracted from documentation."""
    repo_id: str
    source_file: str
    line_number: int
    claim_text: str
    claim_type: ClaimType
    testability: Testability
    extracted_value: ExtractedValue
    keywords: list[str] = field(default_factory=list)
    extraction_confidence: float = 1.0
    extraction_method: str = "regex"
    verification_status: VerificationStatus = "pending"
    last_verified_at: datetime | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)

    def mark_verified(self, result: VerificationResult) -> None:
        """Record the outcome of a verification pass on this claim."""
        self.verification_status = result.verdict
        self.last_verified_at = result.created_at
