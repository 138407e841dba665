"""Turn surviving raw extractions into Claim records."""
from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath
from typing import Iterable, assert_never
from urllib.parse import urlsplit

from docdrift.errors import ClaimMaterializationError

from .models import (
    SELF_REFERENCE,
    Claim,
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
    testability_for,
)

logger = logging.getLogger(__name__)

JS_SUFFIX_PATTERN = re.compile(r"[-_.]js$", re.IGNORECASE)

# Never useful as search keywords
LANGUAGE_KEYWORDS = {
    "if", "for", "while", "switch", "catch", "return", "new", "var", "let",
    "const", "function", "import", "from", "export", "def", "class", "async",
    "await", "with", "lambda", "yield",
}


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))


def _is_route_param(segment: str) -> bool:
    return segment.startswith(":") or segment.startswith("{") or segment.startswith("<")


def generate_keywords(extraction: RawExtraction) -> list[str]:
    """Search keywords for a claim, used by symbol lookup and evidence search."""
    value = extraction.extracted_value
    if isinstance(value, PathValue):
        if value.path == SELF_REFERENCE:
            return _unique([value.anchor or ""])
        parts = value.path.split("/")
        return _unique([PurePosixPath(value.path).stem] + [p for p in parts if len(p) > 2])
    if isinstance(value, CommandValue):
        return _unique([value.runner, value.script])
    if isinstance(value, DependencyValue):
        return _unique([value.package, JS_SUFFIX_PATTERN.sub("", value.package)])
    if isinstance(value, RouteValue):
        segments = [s for s in value.path.split("/") if s and not _is_route_param(s)]
        return _unique([value.method] + segments)
    if isinstance(value, CodeExampleValue):
        keywords = [imp.split("/")[-1] for imp in value.imports]
        keywords += value.symbols
        keywords += [command.split(" ")[0] for command in value.commands]
        return _unique(k for k in keywords if k not in LANGUAGE_KEYWORDS)
    if isinstance(value, UrlValue):
        parts = urlsplit(value.url)
        return _unique([parts.hostname or ""] + [s for s in parts.path.split("/") if s])
    if isinstance(value, EnvironmentValue):
        if value.env_var:
            return [value.env_var]
        return _unique([value.runtime or "", value.version or ""])
    if isinstance(value, ConventionValue):
        return _unique([value.framework or value.convention or ""])
    if isinstance(value, ConfigValue):
        return [value.key]
    if isinstance(value, SemanticValue):
        return _unique(word for word in re.findall(r"[A-Za-z_][\w.]{3,}", value.summary))
    assert_never(value)


def raw_to_claim(repo_id: str, source_file: str, extraction: RawExtraction) -> Claim:
    """Materialize a raw extraction as a pending, regex-extracted Claim.

    Args:
        repo_id: Repository identifier
        source_file: Repository-relative documentation path
        extraction: Validated, deduplicated extraction

    Returns:
        New Claim with keywords and testability filled in

    Raises:
        ClaimMaterializationError: If a required field is missing
    """
    if not source_file:
        raise ClaimMaterializationError("source_file is required")
    if not extraction.claim_text or not extraction.claim_text.strip():
        raise ClaimMaterializationError(
            f"claim_text is empty for {extraction.pattern_name} at line {extraction.line_number}"
        )
    if extraction.line_number < 1:
        raise ClaimMaterializationError(f"Invalid line number {extraction.line_number}")

    return Claim(
        repo_id=repo_id,
        source_file=source_file,
        line_number=extraction.line_number,
        claim_text=extraction.claim_text,
        claim_type=extraction.claim_type,
        testability=testability_for(extraction.claim_type),
        extracted_value=extraction.extracted_value,
        keywords=generate_keywords(extraction),
        extraction_confidence=1.0,
        extraction_method="regex",
        verification_status="pending",
    )
