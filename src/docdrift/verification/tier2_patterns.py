"""Tier 2: pattern-based heuristics for convention, environment and config claims.

Checks, tried in order until one gives a verdict:
- Strict mode: tsconfig.json ``compilerOptions.strict``
- Framework: the framework name appears among indexed symbols or imports
- Environment variables: defined in a ``.env*`` file
- Tool versions: ``.nvmrc``, ``.node-version``, ``.python-version``,
  ``.ruby-version``, ``.tool-versions``, then manifest ``engines``
- License: documented license vs manifest license
- Changelog: newest changelog heading vs manifest version
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable

from docdrift.extraction.context_extractors import is_env_var_name
from docdrift.extraction.models import Claim, ConfigValue, ConventionValue, EnvironmentValue
from docdrift.index.protocol import CodebaseIndex

from .results import VerificationResult, make_tier2_result
from .similarity import find_close_match

logger = logging.getLogger(__name__)

TIER2_CLAIM_TYPES = frozenset({"convention", "environment", "config"})

ENV_VAR_MAX_DISTANCE = 3

CHANGELOG_FILE = re.compile(r"changelog", re.IGNORECASE)


def is_tier2_eligible(claim: Claim) -> bool:
    if claim.claim_type in TIER2_CLAIM_TYPES:
        return True
    return claim.claim_type == "dependency_version" and bool(CHANGELOG_FILE.search(claim.source_file))


# =============================================================================
# Strict mode
# =============================================================================

STRICT_PATTERN = re.compile(r"\bstrict\s*(?:mode|:\s*true|typescript)\b", re.IGNORECASE)
JSON_LINE_COMMENT = re.compile(r"//.*$", re.MULTILINE)
JSON_BLOCK_COMMENT = re.compile(r"/\*[\s\S]*?\*/")


def _parse_jsonc(content: str) -> object:
    """Parse JSON with ``//`` and ``/* */`` comments (tsconfig style)."""
    stripped = JSON_LINE_COMMENT.sub("", content)
    return json.loads(JSON_BLOCK_COMMENT.sub("", stripped))


async def check_strict_mode(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    is_strict_claim = (
        isinstance(claim.extracted_value, ConventionValue)
        and claim.extracted_value.convention == "strict_mode"
    )
    if not is_strict_claim and not STRICT_PATTERN.search(claim.claim_text):
        return None

    content = await index.read_file_content("tsconfig.json")
    if content is None:
        return None
    try:
        parsed = _parse_jsonc(content)
    except json.JSONDecodeError:
        logger.debug("tsconfig.json is not parseable; skipping strict mode check")
        return None

    compiler_options = parsed.get("compilerOptions") if isinstance(parsed, dict) else None
    if isinstance(compiler_options, dict) and compiler_options.get("strict") is True:
        return make_tier2_result(
            claim, "verified", ["tsconfig.json"],
            'tsconfig.json has "strict": true in compilerOptions.',
        )
    return make_tier2_result(
        claim, "drifted", ["tsconfig.json"],
        'tsconfig.json does not have "strict": true.',
        severity="medium",
        specific_mismatch="strict mode is not enabled in tsconfig.json.",
        suggested_fix=claim.claim_text,
    )


# =============================================================================
# Framework
# =============================================================================

async def check_framework(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    value = claim.extracted_value
    if not isinstance(value, ConventionValue) or not value.framework:
        return None
    entities = await index.find_symbol(value.framework)
    if not entities:
        return None
    return make_tier2_result(
        claim, "verified", [entities[0].file_path],
        f"Framework '{value.framework}' found in codebase via import.",
    )


# =============================================================================
# Environment variables
# =============================================================================

ENV_FILES = [
    ".env.example",
    ".env.sample",
    ".env.template",
    ".env",
    ".env.local",
    ".env.development",
    ".env.production",
]

ENV_TOKEN = re.compile(r"\b([A-Z][A-Z0-9_]{2,})\b")
ENV_FILE_NAME = re.compile(r"^[A-Z][A-Z0-9_]+$")


def _claimed_env_var(claim: Claim) -> str | None:
    value = claim.extracted_value
    if isinstance(value, EnvironmentValue) and value.env_var:
        return value.env_var
    if isinstance(value, ConfigValue) and is_env_var_name(value.key):
        return value.key
    if isinstance(value, EnvironmentValue) and value.runtime:
        return None
    return next((m for m in ENV_TOKEN.findall(claim.claim_text) if is_env_var_name(m)), None)


def _env_file_names(content: str) -> list[str]:
    names = []
    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export "):].lstrip()
        name = stripped.split("=", 1)[0].strip()
        if ENV_FILE_NAME.match(name):
            names.append(name)
    return names


async def check_env_var(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    env_var = _claimed_env_var(claim)
    if not env_var:
        return None

    existing: list[str] = []
    all_names: list[str] = []
    for env_file in ENV_FILES:
        content = await index.read_file_content(env_file)
        if content is None:
            if await index.file_exists(env_file):
                existing.append(env_file)
            continue
        existing.append(env_file)
        names = _env_file_names(content)
        if env_var in names:
            return make_tier2_result(
                claim, "verified", [env_file],
                f"Environment variable '{env_var}' found in {env_file}.",
            )
        all_names.extend(names)

    if not existing:
        return None

    close = find_close_match(env_var, list(dict.fromkeys(all_names)), ENV_VAR_MAX_DISTANCE)
    suggestion = f" Did you mean '{close.name}'?" if close else ""
    return make_tier2_result(
        claim, "drifted", existing,
        f"Environment variable '{env_var}' not found in any .env file.{suggestion}",
        severity="medium",
        specific_mismatch=f"'{env_var}' is documented but not present in env configuration files.{suggestion}",
    )


# =============================================================================
# Tool versions
# =============================================================================

RUNTIME_IN_TEXT = re.compile(r"\b(Node\.?js|Python|Ruby|Go|Rust|Java|Deno|Bun)\b", re.IGNORECASE)
VERSION_IN_TEXT = re.compile(r"\b(\d+(?:\.\d+)*\+?)")


def _strip_v(content: str) -> str | None:
    return re.sub(r"^v", "", content.strip(), flags=re.IGNORECASE) or None


def _plain(content: str) -> str | None:
    return content.strip() or None


@dataclass(frozen=True)
class VersionFile:
    file: str
    tool: re.Pattern
    read_version: Callable[[str], str | None] | None


VERSION_FILES = [
    VersionFile(".nvmrc", re.compile(r'\bNode\.?js\b', re.IGNORECASE), _strip_v),
    VersionFile(".node-version", re.compile(r'\bNode\.?js\b', re.IGNORECASE), _strip_v),
    VersionFile(".python-version", re.compile(r'\bPython\b', re.IGNORECASE), _plain),
    VersionFile(".ruby-version", re.compile(r'\bRuby\b', re.IGNORECASE), _plain),
    # asdf: one "<tool> <version>" per line, read by runtime alias
    VersionFile(".tool-versions", re.compile(r'\b(?:Node\.?js|Python|Ruby|Go|Rust|Java)\b', re.IGNORECASE), None),
]

TOOL_VERSIONS_ALIASES = {
    "node.js": ["nodejs", "node"],
    "nodejs": ["nodejs", "node"],
    "python": ["python"],
    "ruby": ["ruby"],
    "go": ["golang", "go"],
    "rust": ["rust"],
    "java": ["java"],
}

ENGINE_KEYS = {
    "node.js": ["node"],
    "nodejs": ["node"],
    "python": ["python", "requires-python"],
    "go": ["go"],
    "rust": ["rust", "rust-edition"],
}


def read_tool_versions(content: str, runtime: str) -> str | None:
    aliases = TOOL_VERSIONS_ALIASES.get(runtime, [runtime])
    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        parts = stripped.split()
        if len(parts) >= 2 and parts[0].lower() in aliases:
            return parts[1]
    return None


def version_satisfies(claimed: str, actual: str) -> bool:
    """Does ``actual`` satisfy a documented ``claimed`` version?

    Only the segments the claim states are compared (``18`` matches
    ``18.17.0``); a trailing ``+`` lets the last stated segment be higher.
    """
    clean_claimed = re.sub(r"^[v>=<^~]+", "", re.sub(r"[+x*]", "", claimed))
    clean_actual = re.sub(r"^[v>=<^~]+", "", actual)
    if not clean_claimed or not clean_actual:
        return False

    try:
        claimed_parts = [int(p) for p in clean_claimed.split(".") if p]
        actual_parts = [int(p) for p in clean_actual.split(".") if p]
    except ValueError:
        return False

    for i, claimed_part in enumerate(claimed_parts):
        if i >= len(actual_parts):
            return False
        if claimed_part != actual_parts[i]:
            if claimed.endswith("+") and i == len(claimed_parts) - 1:
                return actual_parts[i] >= claimed_part
            return False
    return True


def _claimed_version(claim: Claim) -> str | None:
    value = claim.extracted_value
    if isinstance(value, EnvironmentValue) and value.version:
        return value.version
    match = VERSION_IN_TEXT.search(claim.claim_text)
    return match.group(1) if match else None


async def check_tool_version(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    runtime_match = RUNTIME_IN_TEXT.search(claim.claim_text)
    if not runtime_match:
        return None
    runtime = runtime_match.group(1)
    runtime_lower = runtime.lower()
    claimed = _claimed_version(claim)

    for version_file in VERSION_FILES:
        if not version_file.tool.search(claim.claim_text):
            continue
        content = await index.read_file_content(version_file.file)
        if content is None:
            continue
        if version_file.read_version is None:
            actual = read_tool_versions(content, runtime_lower)
        else:
            actual = version_file.read_version(content)
        if not actual:
            continue

        if not claimed:
            return make_tier2_result(
                claim, "verified", [version_file.file],
                f"{runtime} version {actual} configured in {version_file.file}.",
            )
        if version_satisfies(claimed, actual):
            return make_tier2_result(
                claim, "verified", [version_file.file],
                f"{runtime} version {actual} in {version_file.file} satisfies documented '{claimed}'.",
            )
        return make_tier2_result(
            claim, "drifted", [version_file.file],
            f"{runtime} version mismatch: docs say '{claimed}', {version_file.file} has '{actual}'.",
            severity="medium",
            specific_mismatch=f"Documented version '{claimed}' doesn't match configured '{actual}'.",
            suggested_fix=claim.claim_text.replace(claimed, actual, 1),
        )

    manifest = await index.get_manifest_metadata()
    if manifest is None or not manifest.engines or not claimed:
        return None

    for key in ENGINE_KEYS.get(runtime_lower, [runtime_lower]):
        constraint = manifest.engines.get(key)
        if not constraint:
            continue
        # First clause of a compound range: ">=18 <21" -> "18"
        clauses = constraint.split(",")[0].split()
        base = re.sub(r"[>=<^~]", "", clauses[0]) if clauses else ""
        if version_satisfies(claimed, base):
            return make_tier2_result(
                claim, "verified", [manifest.file_path],
                f"{runtime} engine constraint '{constraint}' in {manifest.file_path} "
                f"is consistent with documented '{claimed}'.",
            )
    return None


# =============================================================================
# License
# =============================================================================

LICENSE_KEYWORDS = {
    "MIT": ["mit"],
    "Apache-2.0": ["apache-2", "apache 2", "apache2", "apache-2.0", "apache 2.0"],
    "GPL-3.0": ["gpl-3", "gpl 3", "gplv3", "gpl-3.0"],
    "GPL-2.0": ["gpl-2", "gpl 2", "gplv2", "gpl-2.0"],
    "BSD-2-Clause": ["bsd-2", "bsd 2-clause", "bsd2"],
    "BSD-3-Clause": ["bsd-3", "bsd 3-clause", "bsd3"],
    "ISC": ["isc"],
    "LGPL-3.0": ["lgpl-3", "lgpl 3", "lgplv3"],
    "MPL-2.0": ["mpl-2", "mpl 2", "mpl-2.0"],
    "AGPL-3.0": ["agpl-3", "agpl 3", "agplv3"],
    "Unlicense": ["unlicense"],
}

# Whole-word keyword match: "submit" is not MIT, "lgpl-3" is not GPL-3.0
_LICENSE_PATTERNS = [
    (spdx, re.compile(r"(?<![\w-])" + re.escape(keyword) + r"(?![\w])"))
    for spdx, keywords in LICENSE_KEYWORDS.items()
    for keyword in keywords
]


def detect_license(text: str) -> str | None:
    """SPDX id of the first license keyword in ``text``."""
    lower = text.lower()
    for spdx, pattern in _LICENSE_PATTERNS:
        if pattern.search(lower):
            return spdx
    return None


async def check_license(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    documented = detect_license(claim.claim_text)
    if not documented:
        return None
    manifest = await index.get_manifest_metadata()
    if manifest is None or not manifest.license:
        return None

    actual = manifest.license
    if (detect_license(actual) or actual) == documented:
        return make_tier2_result(
            claim, "verified", [manifest.file_path],
            f"License '{documented}' matches '{actual}' in {manifest.file_path}.",
        )
    return make_tier2_result(
        claim, "drifted", [manifest.file_path],
        f"Documentation says '{documented}' but {manifest.file_path} has license '{actual}'.",
        severity="medium",
        specific_mismatch=f"License mismatch: documented '{documented}', manifest '{actual}'.",
    )


# =============================================================================
# Changelog
# =============================================================================

CHANGELOG_VERSION_PATTERN = re.compile(r"^##\s+\[?v?(\d+\.\d+(?:\.\d+)?(?:-[\w.]+)?)\]?", re.MULTILINE)


async def check_changelog_version(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    manifest = await index.get_manifest_metadata()
    if manifest is None or not manifest.version:
        return None
    content = await index.read_file_content(claim.source_file)
    if not content:
        return None
    match = CHANGELOG_VERSION_PATTERN.search(content)
    if not match:
        return None

    latest = match.group(1)
    evidence = [claim.source_file, manifest.file_path]
    if latest == manifest.version:
        return make_tier2_result(
            claim, "verified", evidence,
            f"CHANGELOG latest version '{latest}' matches {manifest.file_path} version '{manifest.version}'.",
        )
    return make_tier2_result(
        claim, "drifted", evidence,
        f"CHANGELOG latest entry is '{latest}' but {manifest.file_path} version is '{manifest.version}'.",
        severity="medium",
        specific_mismatch=f"Version mismatch: CHANGELOG '{latest}', manifest '{manifest.version}'.",
    )


# =============================================================================
# Dispatch
# =============================================================================

async def verify_tier2(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    """Run the heuristics that apply to the claim's type; first verdict wins."""
    if not is_tier2_eligible(claim):
        return None

    if claim.claim_type == "dependency_version":
        return await check_changelog_version(claim, index)

    checks = []
    if claim.claim_type == "convention":
        checks = [check_strict_mode, check_framework, check_license]
    elif claim.claim_type == "environment":
        checks = [check_env_var, check_tool_version]
    elif claim.claim_type == "config":
        checks = [check_env_var]

    for check in checks:
        result = await check(claim, index)
        if result is not None:
            return result
    return None
