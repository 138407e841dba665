"""Documented-version vs actual-version comparison.

Lockfile versions are exact, so the documented version only needs to match
the segments it states (``18`` matches ``18.3.1``). Manifest versions are
usually ranges (``^4.18.0``); those are evaluated as semver ranges when the
documented version is exact, or by major/minor when it is partial.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, NamedTuple

ComparisonType = Literal["major_only", "major_minor", "exact", "range"]

VERSION_PREFIX = re.compile(r"^[v^~>=<!]+")
RANGE_PREFIX = re.compile(r"^([~^>=<!]+)")


@dataclass(frozen=True)
class VersionComparison:
    matches: bool
    comparison_type: ComparisonType
    documented_version: str
    actual_version: str
    source: str


class Semver(NamedTuple):
    major: int
    minor: int
    patch: int


def strip_version_prefix(version: str) -> str:
    """Drop leading ``v``, ``^``, ``~`` and comparison operators."""
    return VERSION_PREFIX.sub("", version).strip()


def parse_semver(version: str) -> Semver | None:
    """Parse ``X[.Y[.Z]]``; missing segments are 0, non-numeric gives None."""
    parts = version.split(".")
    try:
        major = int(parts[0])
        minor = int(parts[1]) if len(parts) > 1 else 0
        patch = int(parts[2]) if len(parts) > 2 else 0
    except ValueError:
        return None
    return Semver(major, minor, patch)


def satisfies_caret(doc: Semver, base: Semver) -> bool:
    """``^X.Y.Z``: no change to the leftmost non-zero segment."""
    if doc < base:
        return False
    if base.major != 0:
        return doc.major == base.major
    if base.minor != 0:
        return doc.major == 0 and doc.minor == base.minor
    return doc.major == 0 and doc.minor == 0 and doc.patch == base.patch


def satisfies_tilde(doc: Semver, base: Semver) -> bool:
    """``~X.Y.Z``: patch-level changes only."""
    return doc >= base and doc.major == base.major and doc.minor == base.minor


def _matches_stated_segments(documented: str, actual: str) -> bool:
    doc_parts = documented.split(".")
    actual_parts = actual.split(".")
    if len(doc_parts) > len(actual_parts):
        return False
    return doc_parts == actual_parts[:len(doc_parts)]


def _compare_with_range(documented: str, actual: str, source: str) -> VersionComparison:
    clean_doc = strip_version_prefix(documented)
    doc_segments = clean_doc.split(".")
    prefix_match = RANGE_PREFIX.match(actual)
    prefix = prefix_match.group(1) if prefix_match else ""
    base_text = strip_version_prefix(actual)
    base = parse_semver(base_text)

    def result(matches: bool) -> VersionComparison:
        return VersionComparison(matches, "range", documented, actual, source)

    if base is None:
        return result(False)

    # Partial documented version: "Express 4" against "^4.18.0"
    if len(doc_segments) <= 2:
        try:
            matches = int(doc_segments[0]) == base.major
            if len(doc_segments) == 2:
                matches = matches and int(doc_segments[1]) == base.minor
        except ValueError:
            return result(False)
        return result(matches)

    doc = parse_semver(clean_doc)
    if doc is None:
        return result(False)

    if prefix == "^":
        return result(satisfies_caret(doc, base))
    if prefix == "~":
        return result(satisfies_tilde(doc, base))
    if prefix == ">=":
        return result(doc >= base)
    if prefix == ">":
        return result(doc > base)
    if prefix == "<=":
        return result(doc <= base)
    if prefix == "<":
        return result(doc < base)
    return result(_matches_stated_segments(clean_doc, base_text))


def compare_versions(documented: str, actual: str, source: str) -> VersionComparison:
    """Compare a documented version against the repository's version.

    Args:
        documented: Version as written in the docs (``18``, ``v4.2``, ``1.2.3``)
        actual: Version from the index (exact, or a range for manifests)
        source: ``lockfile`` or ``manifest``

    Returns:
        VersionComparison; ``comparison_type`` reflects the documented precision,
        or ``range`` when a manifest range was evaluated
    """
    if source == "manifest" and RANGE_PREFIX.match(actual):
        return _compare_with_range(documented, actual, source)

    clean_doc = strip_version_prefix(documented)
    clean_actual = strip_version_prefix(actual)
    segments = len(clean_doc.split("."))

    if segments >= 3:
        return VersionComparison(clean_actual == clean_doc, "exact", documented, actual, source)

    comparison_type: ComparisonType = "major_only" if segments == 1 else "major_minor"
    matches = clean_actual == clean_doc or clean_actual.startswith(clean_doc + ".")
    return VersionComparison(matches, comparison_type, documented, actual, source)
