"""Tiered claim verification against a codebase index."""
from .cascade import Verifier
from .consistency import Inconsistency, find_cross_doc_inconsistencies
from .evidence import Evidence, EvidenceBuilder, build_evidence
from .llm_verifier import VerifyOutput, build_verify_prompt, llm_call_with_retry, verify_with_llm
from .results import TokenCost, VerificationResult, make_result, make_tier2_result
from .tier1_code_examples import verify_code_example
from .tier1_commands import verify_command
from .tier1_dependencies import verify_dependency_version
from .tier1_paths import verify_path_reference
from .tier1_routes import verify_api_route
from .tier1_urls import DomainRateLimiter, UrlChecker
from .tier2_navigation import verify_navigation_config
from .tier2_patterns import verify_tier2
from .versions import compare_versions, strip_version_prefix

__all__ = [
    "DomainRateLimiter",
    "Evidence",
    "EvidenceBuilder",
    "Inconsistency",
    "TokenCost",
    "UrlChecker",
    "VerificationResult",
    "Verifier",
    "VerifyOutput",
    "build_evidence",
    "build_verify_prompt",
    "compare_versions",
    "find_cross_doc_inconsistencies",
    "llm_call_with_retry",
    "make_result",
    "make_tier2_result",
    "strip_version_prefix",
    "verify_api_route",
    "verify_code_example",
    "verify_command",
    "verify_dependency_version",
    "verify_navigation_config",
    "verify_path_reference",
    "verify_tier2",
    "verify_with_llm",
]
