"""Claim extraction: documentation text in, structured claims out."""
from .discovery import discover_doc_files, scan_doc_files
from .models import (
    Claim,
    ClaimType,
    CodeExampleValue,
    CommandValue,
    ConfigValue,
    ConventionValue,
    DependencyValue,
    EnvironmentValue,
    ExtractedValue,
    PathValue,
    PreProcessedDoc,
    RawExtraction,
    RouteValue,
    SemanticValue,
    UrlValue,
    detect_format,
    testability_for,
)
from .pipeline import DEFAULT_ENABLED_TYPES, extract_syntactic
from .preprocessing import preprocess
from .tags import DocTag, TaggableClaim, parse_tags, write_tags
from .validation import deduplicate_within_file, identity_key, is_valid_path

__all__ = [
    "Claim",
    "ClaimType",
    "CodeExampleValue",
    "CommandValue",
    "ConfigValue",
    "ConventionValue",
    "DEFAULT_ENABLED_TYPES",
    "DependencyValue",
    "DocTag",
    "EnvironmentValue",
    "ExtractedValue",
    "PathValue",
    "PreProcessedDoc",
    "RawExtraction",
    "RouteValue",
    "SemanticValue",
    "TaggableClaim",
    "UrlValue",
    "deduplicate_within_file",
    "detect_format",
    "discover_doc_files",
    "extract_syntactic",
    "identity_key",
    "is_valid_path",
    "parse_tags",
    "preprocess",
    "scan_doc_files",
    "testability_for",
    "write_tags",
]
