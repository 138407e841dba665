"""Tier 1: code_example claims (language tag, imports, symbols)."""
from __future__ import annotations

import re

from docdrift.extraction.models import Claim, CodeExampleValue
from docdrift.index.protocol import CodebaseIndex

from .results import Severity, VerificationResult, make_result
from .similarity import find_close_match

LANGUAGE_MAX_DISTANCE = 2

KNOWN_LANGUAGES = {
    "typescript", "javascript", "python", "rust", "go", "java", "ruby", "bash", "sh",
    "shell", "json", "yaml", "toml", "html", "css", "sql", "graphql", "dockerfile",
    "makefile", "c", "cpp", "csharp", "kotlin", "swift", "scala", "php", "r", "lua",
    "perl", "haskell", "elixir", "dart", "zig", "tsx", "jsx", "mjs", "vue", "svelte",
    "xml", "markdown", "plaintext", "text", "diff", "csv", "ini", "protobuf", "proto",
    # Common aliases
    "ts", "js", "py", "yml", "console", "zsh", "shell-session", "md", "mdx", "txt",
    "jsonc", "json5", "env", "hcl", "terraform", "powershell", "ps1", "bat", "cmd",
}

SOURCE_SUFFIX = re.compile(r"\.(ts|js|tsx|jsx|py|rs|go)$")


def symbol_from_import(import_path: str) -> str | None:
    """Last path segment of an import specifier, minus a source extension."""
    if not import_path:
        return None
    last = import_path.replace('"', "").replace("'", "").split("/")[-1]
    if not last or last in (".", ".."):
        return None
    return SOURCE_SUFFIX.sub("", last) or None


async def verify_code_example(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    """Check that a code sample's imports and symbols exist in the codebase.

    Samples that reference nothing resolvable (tutorial code, third-party
    APIs) give no result rather than a drift report.
    """
    value = claim.extracted_value
    if not isinstance(value, CodeExampleValue):
        return None

    language = value.language
    if language and language.lower() not in KNOWN_LANGUAGES:
        close = find_close_match(language.lower(), sorted(KNOWN_LANGUAGES), LANGUAGE_MAX_DISTANCE)
        if close:
            return make_result(
                claim, "drifted", [],
                f"Code block language tag '{language}' is not recognized. Did you mean '{close.name}'?",
                severity="low",
                suggested_fix=f"```{close.name}",
                specific_mismatch=f"Unknown language tag '{language}'.",
            )

    if not value.imports and not value.symbols:
        return None

    issues: list[str] = []
    resolved_files: list[str] = []

    for import_path in value.imports:
        name = symbol_from_import(import_path)
        if not name:
            continue
        entities = await index.find_symbol(name)
        if entities:
            resolved_files.append(entities[0].file_path)
        else:
            issues.append(f"Import '{import_path}' does not resolve.")

    for symbol in value.symbols:
        entities = await index.find_symbol(symbol)
        if entities:
            resolved_files.append(entities[0].file_path)
        else:
            issues.append(f"Symbol '{symbol}' not found.")

    evidence = list(dict.fromkeys(resolved_files))
    if not issues:
        return make_result(claim, "verified", evidence, "All imports and symbols resolve correctly.")
    if not evidence:
        return None

    total = len(value.imports) + len(value.symbols)
    severity: Severity = "high" if len(issues) > total / 2 else "medium"
    return make_result(
        claim, "drifted", evidence,
        f"Code example has issues: {'; '.join(issues)}",
        severity=severity,
        specific_mismatch="; ".join(issues),
    )
