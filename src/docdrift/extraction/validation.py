"""Candidate validation and within-file deduplication."""
from __future__ import annotations

from typing import Iterable, assert_never

from .models import (
    CodeExampleValue,
    CommandValue,
    ConfigValue,
    ConventionValue,
    DependencyValue,
    EnvironmentValue,
    PathValue,
    RawExtraction,
    RouteValue,
    SemanticValue,
    UrlValue,
)

MAX_PATH_LENGTH = 500


def is_valid_path(path: str) -> bool:
    """Check a documented path is a safe repository-relative path.

    Rejects traversal (``..`` anywhere), absolute paths, ``file://`` URLs,
    NUL bytes and anything longer than ``MAX_PATH_LENGTH`` once a leading
    ``./`` is removed.
    """
    if not path or not path.strip():
        return False
    if ".." in path or path.startswith("/") or path.startswith("file://") or "\0" in path:
        return False
    normalized = path[2:] if path.startswith("./") else path
    return 0 < len(normalized) <= MAX_PATH_LENGTH


def runtime_key(runtime: str) -> str:
    """``Node.js``, ``nodejs`` and ``NodeJS`` share one identity."""
    return runtime.lower().replace(".", "")


def identity_key(extraction: RawExtraction) -> str:
    """Canonical identity of an extraction, independent of its surface text.

    Dependency keys leave the version out so the first mention of a package
    wins; code examples are keyed by line since two blocks never share one.
    """
    value = extraction.extracted_value
    if isinstance(value, PathValue):
        if value.anchor:
            return f"path:{value.path}#{value.anchor}"
        return f"path:{value.path}"
    if isinstance(value, CommandValue):
        return f"cmd:{value.runner}:{value.script}"
    if isinstance(value, DependencyValue):
        return f"dep:{value.package}"
    if isinstance(value, RouteValue):
        return f"route:{value.method}:{value.path}"
    if isinstance(value, CodeExampleValue):
        return f"code:{extraction.line_number}"
    if isinstance(value, UrlValue):
        return f"url:{value.url}"
    if isinstance(value, EnvironmentValue):
        if value.env_var:
            return f"env:var:{value.env_var}"
        return f"env:runtime:{runtime_key(value.runtime or '')}"
    if isinstance(value, ConventionValue):
        if value.framework:
            return f"conv:fw:{value.framework.lower()}"
        return f"conv:{value.convention}"
    if isinstance(value, ConfigValue):
        return f"config:{value.key}"
    if isinstance(value, SemanticValue):
        return f"semantic:{extraction.claim_type}:{extraction.line_number}"
    assert_never(value)


def deduplicate_within_file(extractions: Iterable[RawExtraction]) -> list[RawExtraction]:
    """Keep the first-seen extraction for each identity key, in order."""
    seen: dict[str, RawExtraction] = {}
    for extraction in extractions:
        seen.setdefault(identity_key(extraction), extraction)
    return list(seen.values())
