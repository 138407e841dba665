"""Syntactic extraction pipeline.

``raw text -> preprocess -> extractors -> path validation -> dedup -> claims``
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable

from docdrift.config.engine import ExtractionConfig

from .context_extractors import (
    extract_convention_claims,
    extract_environment_claims,
    extract_table_claims,
)
from .extractors import (
    extract_api_routes,
    extract_code_examples,
    extract_commands,
    extract_dependency_versions,
    extract_paths,
    extract_urls,
)
from .materializer import raw_to_claim
from .models import Claim, PathValue, PreProcessedDoc, RawExtraction, detect_format
from .preprocessing import is_binary, preprocess
from .validation import deduplicate_within_file, is_valid_path

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 100 * 1024

DEFAULT_ENABLED_TYPES = frozenset(ExtractionConfig().enabled_claim_types)

ExtractorFn = Callable[[PreProcessedDoc, str, frozenset[str]], list[RawExtraction]]

# (claim types an extractor can emit, extractor) in run order
EXTRACTORS: tuple[tuple[frozenset[str], ExtractorFn], ...] = (
    (frozenset({"path_reference"}), lambda doc, doc_file, pkgs: extract_paths(doc, doc_file)),
    (frozenset({"command"}), lambda doc, doc_file, pkgs: extract_commands(doc)),
    (frozenset({"dependency_version"}), lambda doc, doc_file, pkgs: extract_dependency_versions(doc, pkgs)),
    (frozenset({"api_route"}), lambda doc, doc_file, pkgs: extract_api_routes(doc)),
    (frozenset({"code_example"}), lambda doc, doc_file, pkgs: extract_code_examples(doc)),
    (frozenset({"url_reference"}), lambda doc, doc_file, pkgs: extract_urls(doc)),
    (frozenset({"environment"}), lambda doc, doc_file, pkgs: extract_environment_claims(doc)),
    (frozenset({"convention"}), lambda doc, doc_file, pkgs: extract_convention_claims(doc)),
    (
        frozenset({"path_reference", "dependency_version"}),
        lambda doc, doc_file, pkgs: extract_table_claims(doc, doc_file, pkgs),
    ),
)


def should_skip(doc_file: str, content: str, max_file_size: int = MAX_FILE_SIZE) -> str | None:
    """Return why a document is not extracted, or None if it is."""
    if is_binary(content):
        return "binary content"
    if not content:
        return "empty"
    if len(content) > max_file_size:
        return f"larger than {max_file_size} bytes"
    if detect_format(doc_file) == "rst":
        return "rst is LLM-only"
    return None


def run_extractors(
    doc: PreProcessedDoc,
    doc_file: str,
    known_packages: Iterable[str] = (),
    enabled_types: Iterable[str] = DEFAULT_ENABLED_TYPES,
) -> list[RawExtraction]:
    """Run every enabled extractor; results ordered by original line."""
    enabled = frozenset(enabled_types)
    packages = frozenset(known_packages)
    extractions: list[RawExtraction] = []
    for emits, extractor in EXTRACTORS:
        if emits & enabled:
            extractions.extend(e for e in extractor(doc, doc_file, packages) if e.claim_type in enabled)
    # Stable sort: earliest line wins dedup, extractor order breaks ties
    extractions.sort(key=lambda e: e.line_number)
    return extractions


def extract_syntactic(
    doc_file: str,
    content: str,
    *,
    repo_id: str = "local",
    known_packages: Iterable[str] = (),
    enabled_types: Iterable[str] | None = None,
    config: ExtractionConfig | None = None,
) -> list[Claim]:
    """Extract syntactic claims from one documentation file.

    Malformed input never raises: binary, empty, oversized and rst
    documents yield an empty list.

    Args:
        doc_file: Repository-relative path of the document
        content: Document text
        repo_id: Repository identifier stamped on each claim
        known_packages: Package names from the repository's manifests
        enabled_types: Claim families to extract (overrides config)
        config: Extraction settings

    Returns:
        Claims in original line order
    """
    config = config or ExtractionConfig()
    reason = should_skip(doc_file, content, config.max_file_size_bytes)
    if reason:
        logger.debug(f"Skipping {doc_file}: {reason}")
        return []

    if enabled_types is None:
        enabled_types = config.enabled_claim_types
    packages = set(known_packages) | set(config.known_packages)

    doc = preprocess(content, detect_format(doc_file))
    extractions = run_extractors(doc, doc_file, packages, enabled_types)

    filtered = [
        e for e in extractions
        if not isinstance(e.extracted_value, PathValue) or is_valid_path(e.extracted_value.path)
    ]
    deduped = deduplicate_within_file(filtered)
    claims = [raw_to_claim(repo_id, doc_file, extraction) for extraction in deduped]

    logger.debug(
        f"Extracted {len(claims)} claims from {doc_file} "
        f"({len(extractions)} candidates, {len(extractions) - len(deduped)} dropped)"
    )
    return claims
