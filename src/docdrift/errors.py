"""Exception types for docdrift.

Malformed documentation never raises: extraction returns fewer claims and
verification returns ``None`` or an ``uncertain`` verdict. The exceptions
below cover programmer errors, configuration problems and LLM transport
failures (the latter are absorbed by the Tier 3 retry loop).
"""
from __future__ import annotations


class DocDriftError(Exception):
    """Base class for all docdrift errors."""


class ConfigError(DocDriftError, ValueError):
    """Configuration file is missing, empty or invalid."""


class ClaimMaterializationError(DocDriftError, ValueError):
    """A raw extraction is missing fields required to build a Claim."""


class LLMError(DocDriftError):
    """LLM transport failed (HTTP error, malformed envelope, missing key)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LLMTimeoutError(LLMError):
    """A single LLM attempt exceeded its timeout."""
