"""Context extractors: environment requirements, conventions and data tables.

These read prose only. Fenced code lines and machine-tag lines are skipped.
"""
from __future__ import annotations

import re
from typing import Iterable, Iterator

from .extractors import passes_path_filters
from .models import (
    ConventionValue,
    DependencyValue,
    EnvironmentValue,
    PathValue,
    PreProcessedDoc,
    RawExtraction,
)


def _prose_lines(doc: PreProcessedDoc) -> Iterator[tuple[int, str]]:
    for idx, line in enumerate(doc.lines):
        if idx in doc.tag_lines or idx in doc.code_fence_lines:
            continue
        yield idx, line


# =============================================================================
# Environment
# =============================================================================

RUNTIME_REQUIREMENT_PATTERN = re.compile(
    r"\b(Node\.js|Nodejs|NodeJS|Python|Deno|Bun|Ruby|Go|Rust|Java)"
    r"\s+(?:[Vv]ersion\s+)?(?:>=?\s*)?v?(\d+(?:\.\d+)*\+?)"
)

_ENV_NAME = r"([A-Z][A-Z0-9_]{2,})"
ENV_VAR_PATTERNS = {
    "env_var_set_instruction": re.compile(
        r'\b(?i:set|configure|define)\s+(?:(?i:the)\s+)?[`"]?' + _ENV_NAME + r"\b"
    ),
    "env_var_export": re.compile(r"\bexport\s+" + _ENV_NAME + r"="),
    "env_var_required": re.compile(r'[`"]?\b' + _ENV_NAME + r'[`"]?\s+(?:is|are)\s+required\b'),
    "env_var_mention": re.compile(
        r'\b(?i:environment\s+variables?)\s+[`"]?' + _ENV_NAME + r"\b"
    ),
}

# Upper-case words that show up in prose but are not variables
ENV_VAR_EXCLUDES = {
    "README", "TODO", "NOTE", "API", "URL", "HTTP", "HTTPS", "JSON", "HTML",
    "CSS", "SLA", "SLO", "SLI", "TBD", "MCP", "CLI", "SDK", "JWT", "TLS", "SSL",
    "DNS", "SQL", "ORM", "AWS", "GCP", "LLM", "AST",
}


def is_env_var_name(name: str) -> bool:
    return len(name) >= 3 and "_" in name and name not in ENV_VAR_EXCLUDES


def extract_environment_claims(doc: PreProcessedDoc) -> list[RawExtraction]:
    """Extract runtime requirements and environment variable mentions.

    Args:
        doc: Preprocessed document

    Returns:
        Environment candidates in line order
    """
    results = []
    for idx, line in _prose_lines(doc):
        line_number = doc.original_line(idx)

        for match in RUNTIME_REQUIREMENT_PATTERN.finditer(line):
            results.append(RawExtraction(
                claim_text=line.strip(),
                claim_type="environment",
                extracted_value=EnvironmentValue(runtime=match.group(1), version=match.group(2)),
                line_number=line_number,
                pattern_name="runtime_requirement",
            ))

        seen: set[str] = set()
        for name, pattern in ENV_VAR_PATTERNS.items():
            for match in pattern.finditer(line):
                env_var = match.group(1)
                if env_var in seen or not is_env_var_name(env_var):
                    continue
                seen.add(env_var)
                results.append(RawExtraction(
                    claim_text=line.strip(),
                    claim_type="environment",
                    extracted_value=EnvironmentValue(env_var=env_var),
                    line_number=line_number,
                    pattern_name=name,
                ))
    return results


# =============================================================================
# Conventions
# =============================================================================

STRICT_MODE_PATTERN = re.compile(
    r"\bstrict\s*(?:mode\b|:\s*true\b|typescript\b)|\btypescript\s+strict\b",
    re.IGNORECASE,
)

# Canonical spelling of frameworks recognized in "Built with X" statements
KNOWN_FRAMEWORKS = [
    "Express", "Fastify", "Koa", "Hapi", "NestJS", "Next.js", "Nuxt", "Remix",
    "Gatsby", "Astro", "React", "Vue", "Angular", "Svelte", "SvelteKit", "Solid",
    "Django", "Flask", "FastAPI", "Rails", "Laravel", "Spring", "Phoenix", "Gin",
    "Actix", "Axum", "Tailwind", "Vite", "Webpack", "Jest", "Vitest", "Pytest",
    "Prisma", "Drizzle", "GraphQL", "Redis", "PostgreSQL", "MongoDB", "MySQL",
    "SQLite", "Electron", "Tauri",
]
_FRAMEWORKS_BY_LOWER = {name.lower(): name for name in KNOWN_FRAMEWORKS}

FRAMEWORK_PATTERN = re.compile(
    r'\b(?:built\s+(?:with|on)|uses|using|powered\s+by|based\s+on)\s+[`"]?([A-Za-z][\w.]*)',
    re.IGNORECASE,
)


def extract_convention_claims(doc: PreProcessedDoc) -> list[RawExtraction]:
    """Extract strict-mode statements and framework usage for known frameworks."""
    results = []
    for idx, line in _prose_lines(doc):
        line_number = doc.original_line(idx)

        if STRICT_MODE_PATTERN.search(line):
            results.append(RawExtraction(
                claim_text=line.strip(),
                claim_type="convention",
                extracted_value=ConventionValue(convention="strict_mode"),
                line_number=line_number,
                pattern_name="strict_mode_convention",
            ))

        for match in FRAMEWORK_PATTERN.finditer(line):
            framework = _FRAMEWORKS_BY_LOWER.get(match.group(1).rstrip(".").lower())
            if framework is None:
                continue
            results.append(RawExtraction(
                claim_text=line.strip(),
                claim_type="convention",
                extracted_value=ConventionValue(framework=framework),
                line_number=line_number,
                pattern_name="framework_convention",
            ))
    return results


# =============================================================================
# Tables
# =============================================================================

SEPARATOR_CELL = re.compile(r"^:?-{3,}:?$")
PATH_CELL = re.compile(
    r"^`?([a-zA-Z0-9_\-.]+(?:/[a-zA-Z0-9_\-.]+)+/?|[a-zA-Z0-9_\-]+\.[a-zA-Z0-9]+)`?$"
)
VERSION_CELL = re.compile(r"^`?[v^~]?(\d+\.\d+(?:\.\d+)?)`?$")


def split_row(line: str) -> list[str]:
    """Split a ``| a | b |`` row into stripped cells."""
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|"):
        stripped = stripped[:-1]
    return [cell.strip() for cell in stripped.split("|")]


def is_separator_row(line: str) -> bool:
    if "|" not in line:
        return False
    cells = split_row(line)
    return bool(cells) and all(SEPARATOR_CELL.match(cell) for cell in cells)


def _iter_tables(doc: PreProcessedDoc) -> Iterator[list[tuple[int, str]]]:
    """Yield the data rows (cleaned index, line) of each pipe table."""
    lines = doc.lines
    excluded = doc.tag_lines | doc.code_fence_lines
    idx = 0
    while idx < len(lines) - 1:
        header = lines[idx]
        if (
            idx in excluded
            or not header.strip().startswith("|")
            or not is_separator_row(lines[idx + 1])
        ):
            idx += 1
            continue
        rows = []
        idx += 2
        while idx < len(lines) and idx not in excluded and lines[idx].strip().startswith("|"):
            rows.append((idx, lines[idx]))
            idx += 1
        yield rows


def extract_table_claims(
    doc: PreProcessedDoc,
    doc_file: str,
    known_packages: Iterable[str],
) -> list[RawExtraction]:
    """Promote data-bearing table cells to claims.

    Cells that look like file paths become path references; a row whose
    first cell is a known package and which carries a version cell becomes
    a dependency version. Checkmark and prose-only rows produce nothing.
    """
    known = {name.lower() for name in known_packages}
    results = []
    for rows in _iter_tables(doc):
        for idx, line in rows:
            cells = split_row(line)
            line_number = doc.original_line(idx)

            for cell in cells:
                match = PATH_CELL.match(cell)
                if not match:
                    continue
                path = match.group(1)
                if not passes_path_filters(path, doc_file):
                    continue
                results.append(RawExtraction(
                    claim_text=line.strip(),
                    claim_type="path_reference",
                    extracted_value=PathValue(path=path),
                    line_number=line_number,
                    pattern_name="table_path_cell",
                ))

            package = cells[0].strip("`") if cells else ""
            if package.lower() not in known:
                continue
            for cell in cells[1:]:
                version = VERSION_CELL.match(cell)
                if version:
                    results.append(RawExtraction(
                        claim_text=line.strip(),
                        claim_type="dependency_version",
                        extracted_value=DependencyValue(package=package, version=version.group(1)),
                        line_number=line_number,
                        pattern_name="table_dependency_row",
                    ))
                    break
    return results
