"""Syntactic claim extractors.

Each extractor is a pure function over a ``PreProcessedDoc`` that returns
``RawExtraction`` candidates for one claim family. Extractors never look at
machine-tag lines; fenced code is read through the preprocessor's fence
classification (``iter_fenced_blocks``) rather than re-detected.
"""
from __future__ import annotations

import re
from typing import Iterable, Iterator
from urllib.parse import urlsplit

from .models import (
    SELF_REFERENCE,
    CodeExampleValue,
    CommandValue,
    DependencyValue,
    PathValue,
    PreProcessedDoc,
    RawExtraction,
    RouteValue,
    UrlValue,
)
from .preprocessing import iter_fenced_blocks
from .validation import is_valid_path


def _scan_lines(doc: PreProcessedDoc, skip_fences: bool = False) -> Iterator[tuple[int, str]]:
    """Yield (cleaned index, line) for lines an extractor may read."""
    for idx, line in enumerate(doc.lines):
        if idx in doc.tag_lines:
            continue
        if skip_fences and idx in doc.code_fence_lines:
            continue
        yield idx, line


# =============================================================================
# Path references
# =============================================================================

PATH_PATTERNS = {
    # `src/auth/handler.ts`
    "backtick_path": re.compile(r"`([a-zA-Z0-9_\-./]+\.[a-zA-Z0-9]+)`"),
    # [Handler](./src/auth/handler.ts#login)
    "markdown_link_path": re.compile(
        r"\[.*?\]\((?:\./)?([a-zA-Z0-9_\-./]+\.[a-zA-Z0-9]+)(?:#([\w\-]+))?\)"
    ),
    # see src/auth/handler.ts, in config/app.yaml
    "text_ref_path": re.compile(
        r'\b(?:see|in|at|from|file)\s+[`"]?([a-zA-Z0-9_\-./]+\.[a-zA-Z0-9]+)',
        re.IGNORECASE,
    ),
}

# [Configuration](#configuration)
SELF_ANCHOR_LINK = re.compile(r"\[[^\]]*\]\(#([\w\-]+)\)")

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico"}
STYLE_EXTENSIONS = {".css", ".scss", ".less"}

# Paths without a directory separator must carry one of these
KNOWN_FILE_EXTENSIONS = {
    # Code
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".py", ".rb", ".go", ".rs",
    ".java", ".c", ".cpp", ".h", ".hpp", ".cs", ".php", ".swift", ".kt", ".scala",
    ".r", ".jl", ".lua", ".pl", ".sh", ".bash", ".zsh", ".bat", ".cmd", ".ps1",
    # Docs
    ".md", ".mdx", ".rst", ".txt", ".html", ".htm", ".adoc", ".tex", ".pdf",
    # Config
    ".json", ".yaml", ".yml", ".toml", ".xml", ".ini", ".env", ".cfg", ".conf",
    ".properties", ".lock", ".sum", ".mod",
    # Build/infra
    ".sql", ".graphql", ".gql", ".proto", ".wasm", ".wat", ".log", ".csv",
    # Dotfiles
    ".gitignore", ".gitattributes", ".editorconfig", ".eslintrc", ".prettierrc",
    ".dockerignore", ".nvmrc", ".cursorrules",
}


def _extension(path: str) -> str:
    dot = path.rfind(".")
    return path[dot:].lower() if dot != -1 else ""


def passes_path_filters(path: str, doc_file: str) -> bool:
    """Reject URLs, assets, anchors, self-references and config-key lookalikes."""
    if "://" in path:
        return False
    ext = _extension(path)
    if ext in IMAGE_EXTENSIONS or ext in STYLE_EXTENSIONS:
        return False
    if path.startswith("#"):
        return False
    if path == doc_file:
        return False
    if not is_valid_path(path):
        return False
    # `agent.adapter` style dotted keys have no slash and no known extension
    if "/" not in path and ext and ext not in KNOWN_FILE_EXTENSIONS:
        return False
    return True


def extract_paths(doc: PreProcessedDoc, doc_file: str) -> list[RawExtraction]:
    """Extract file path references.

    Args:
        doc: Preprocessed document
        doc_file: Repository-relative path of the document (self-references are dropped)

    Returns:
        Path reference candidates; in-page anchor links follow file links
    """
    results = []
    for idx, line in _scan_lines(doc):
        for name, pattern in PATH_PATTERNS.items():
            for match in pattern.finditer(line):
                path = match.group(1)
                if not passes_path_filters(path, doc_file):
                    continue
                anchor = match.group(2) if name == "markdown_link_path" else None
                results.append(RawExtraction(
                    claim_text=line.strip(),
                    claim_type="path_reference",
                    extracted_value=PathValue(path=path, anchor=anchor),
                    line_number=doc.original_line(idx),
                    pattern_name=name,
                ))

    for idx, line in _scan_lines(doc, skip_fences=True):
        for match in SELF_ANCHOR_LINK.finditer(line):
            results.append(RawExtraction(
                claim_text=line.strip(),
                claim_type="path_reference",
                extracted_value=PathValue(path=SELF_REFERENCE, anchor=match.group(1)),
                line_number=doc.original_line(idx),
                pattern_name="self_anchor_link",
            ))
    return results


# =============================================================================
# API routes
# =============================================================================

ROUTE_PATTERN = re.compile(
    r'(?:GET|POST|PUT|PATCH|DELETE|HEAD|OPTIONS)\s+[`"]?(/[a-zA-Z0-9_\-/:{}.*]+)',
    re.IGNORECASE,
)


def extract_api_routes(doc: PreProcessedDoc) -> list[RawExtraction]:
    """Extract ``METHOD /path`` mentions; method upper-cased, params kept verbatim."""
    results = []
    for idx, line in _scan_lines(doc):
        for match in ROUTE_PATTERN.finditer(line):
            method = match.group(0).split()[0].upper()
            path = match.group(1).replace("`", "").replace('"', "")
            results.append(RawExtraction(
                claim_text=line.strip(),
                claim_type="api_route",
                extracted_value=RouteValue(method=method, path=path),
                line_number=doc.original_line(idx),
                pattern_name="http_method_path",
            ))
    return results


# =============================================================================
# CLI commands
# =============================================================================

KNOWN_RUNNERS = {
    "npm", "npx", "yarn", "pnpm", "bun", "pip", "pip3", "poetry",
    "cargo", "go", "make", "docker", "kubectl",
}
RUN_SUBVERB_RUNNERS = {"npm", "yarn", "pnpm", "bun"}
CLI_LANGUAGES = {"bash", "sh", "shell", "zsh", "console"}

INLINE_COMMAND_PATTERNS = {
    "inline_runner_command": re.compile(
        r"`((?:" + "|".join(sorted(KNOWN_RUNNERS, key=len, reverse=True)) + r")\s+[^`]+)`"
    ),
    "run_pattern_command": re.compile(r"\b(?:run|execute|use)\s+`([^`]+)`", re.IGNORECASE),
}

PROMPT_PATTERN = re.compile(r"^\s*[$>]\s")
PROMPT_PREFIX = re.compile(r"^[$>]\s*(.*)")
CHAIN_SPLIT = re.compile(r"\s*(?:&&|\|\|)\s*")

ASCII_ART_PATTERNS = (
    re.compile(r"[├└│─┌┐┘┬┴┼]"),       # tree and box drawing
    re.compile(r"^\s*[+|][-=+|]+"),     # +--- or |=== borders
    re.compile(r"^\s*\|.*\|\s*$"),      # table rows
    re.compile(r"^\s*[v^|<>]+\s*$"),    # arrow-only lines
)


def is_ascii_art(line: str) -> bool:
    return any(pattern.search(line) for pattern in ASCII_ART_PATTERNS)


def strip_inline_comment(command: str) -> str:
    """Drop a trailing `` # comment``; a `#` not preceded by a space is kept."""
    idx = command.find(" #")
    return command if idx == -1 else command[:idx].rstrip()


def split_chained_commands(command: str) -> list[str]:
    return [part.strip() for part in CHAIN_SPLIT.split(command) if part.strip()]


def detect_runner(command: str) -> tuple[str, str]:
    """Split a command into (runner, script).

    Unrecognized runners are reported as ``"unknown"`` with the whole
    command as the script.
    """
    first = command.split()[0].lower() if command.split() else ""
    if first not in KNOWN_RUNNERS:
        return "unknown", command
    script = command[len(first):].strip()
    if first in RUN_SUBVERB_RUNNERS and script.startswith("run "):
        script = script[4:].strip()
    return first, script


def parse_command_block(body: list[str]) -> Iterator[tuple[int, str]]:
    """Yield (body line offset, command) pairs from a shell block body."""
    has_prompt = any(PROMPT_PATTERN.match(line) for line in body)
    for offset, line in enumerate(body):
        trimmed = line.strip()
        if not trimmed or is_ascii_art(trimmed):
            continue
        if has_prompt:
            # Only prompt lines are commands; everything else is output
            prompt = PROMPT_PREFIX.match(trimmed)
            if not prompt:
                continue
            command = strip_inline_comment(prompt.group(1).strip())
        else:
            if trimmed.startswith("#"):
                continue
            command = strip_inline_comment(trimmed)
        for part in split_chained_commands(command):
            yield offset, part


def extract_commands(doc: PreProcessedDoc) -> list[RawExtraction]:
    """Extract commands from language-tagged shell fences and inline backticks.

    Untagged fences are skipped entirely: they are usually directory trees
    or diagrams.
    """
    results = []

    for block in iter_fenced_blocks(doc):
        if not block.language or block.language.lower() not in CLI_LANGUAGES:
            continue
        for offset, command in parse_command_block(block.body):
            runner, script = detect_runner(command)
            results.append(RawExtraction(
                claim_text=command,
                claim_type="command",
                extracted_value=CommandValue(runner=runner, script=script),
                line_number=doc.original_line(block.first_body_index + offset),
                pattern_name="code_block_command",
            ))

    for idx, line in _scan_lines(doc, skip_fences=True):
        for name, pattern in INLINE_COMMAND_PATTERNS.items():
            for match in pattern.finditer(line):
                for part in split_chained_commands(match.group(1).strip()):
                    runner, script = detect_runner(part)
                    results.append(RawExtraction(
                        claim_text=line.strip(),
                        claim_type="command",
                        extracted_value=CommandValue(runner=runner, script=script),
                        line_number=doc.original_line(idx),
                        pattern_name=name,
                    ))

    results.sort(key=lambda extraction: extraction.line_number)
    return results


# =============================================================================
# Dependency versions
# =============================================================================

RUNTIME_NAMES = {"node.js", "nodejs", "python", "ruby", "go", "rust", "java"}

RUNTIME_VERSION_PATTERN = re.compile(
    r"(?:Node\.?js|Python|Ruby|Go|Rust|Java)\s+(\d+(?:\.\d+)*\+?)", re.IGNORECASE
)
VERSION_PATTERNS = {
    "word_version": re.compile(r"(\w+(?:\.\w+)?)\s+v?(\d+\.\d+(?:\.\d+)?)", re.IGNORECASE),
    "explicit_version": re.compile(
        r"(\w+(?:\.\w+)?)\s+(?:version\s+)?[v^~]?(\d+(?:\.\d+)*)", re.IGNORECASE
    ),
}


def extract_dependency_versions(
    doc: PreProcessedDoc,
    known_packages: Iterable[str],
) -> list[RawExtraction]:
    """Extract ``<package> <version>`` mentions.

    Runtime mentions (``Node.js 18``) are always kept. Other matches are
    kept only when the word is a known package (case-insensitive), which
    rejects prose like "Section 2.1".
    """
    known = {name.lower() for name in known_packages}
    results = []
    for idx, line in _scan_lines(doc):
        line_number = doc.original_line(idx)
        for match in RUNTIME_VERSION_PATTERN.finditer(line):
            results.append(RawExtraction(
                claim_text=line.strip(),
                claim_type="dependency_version",
                extracted_value=DependencyValue(
                    package=match.group(0).split()[0], version=match.group(1),
                ),
                line_number=line_number,
                pattern_name="runtime_version",
            ))
        for name, pattern in VERSION_PATTERNS.items():
            for match in pattern.finditer(line):
                package, version = match.group(1), match.group(2)
                if package.lower() not in known and package.lower() not in RUNTIME_NAMES:
                    continue
                results.append(RawExtraction(
                    claim_text=line.strip(),
                    claim_type="dependency_version",
                    extracted_value=DependencyValue(package=package, version=version),
                    line_number=line_number,
                    pattern_name=name,
                ))
    return results


# =============================================================================
# Code examples
# =============================================================================

CODE_EXAMPLE_MAX_TEXT = 200

IMPORT_PATTERNS = (
    re.compile(r'import\s+.*?\s+from\s+[\'"]([^\'"]+)[\'"]'),
    re.compile(r'require\(\s*[\'"]([^\'"]+)[\'"]\s*\)'),
    re.compile(r"from\s+(\S+)\s+import"),
)
PYTHON_IMPORT_PATTERN = re.compile(r"^\s*import\s+([\w.]+)", re.MULTILINE)
PYTHON_LANGUAGES = {"python", "py", "python3"}

PASCAL_CALL = re.compile(r"\b([A-Z][a-zA-Z0-9]*)\s*\(")
CAMEL_CALL = re.compile(r"\b([a-z][a-zA-Z0-9]*)\s*\(")

# Language keywords and ubiquitous builtins that look like calls
NON_SYMBOLS = {
    # JS/TS
    "if", "for", "while", "switch", "catch", "return", "new", "var", "let",
    "const", "function", "typeof", "await", "async", "super", "require", "import",
    # Python
    "elif", "with", "def", "class", "lambda", "not", "and", "or", "in", "is",
    "assert", "yield", "print", "len", "range", "str", "int", "dict", "list",
    "set", "tuple", "isinstance", "open",
}


def _imports_from_block(content: str, language: str | None) -> list[str]:
    imports: list[str] = []
    patterns = list(IMPORT_PATTERNS)
    if language and language.lower() in PYTHON_LANGUAGES:
        patterns.append(PYTHON_IMPORT_PATTERN)
    for pattern in patterns:
        for match in pattern.finditer(content):
            if match.group(1) not in imports:
                imports.append(match.group(1))
    return imports


def _symbols_from_block(content: str) -> list[str]:
    symbols: dict[str, None] = {}
    for match in PASCAL_CALL.finditer(content):
        symbols.setdefault(match.group(1))
    for match in CAMEL_CALL.finditer(content):
        if match.group(1) not in NON_SYMBOLS:
            symbols.setdefault(match.group(1))
    return list(symbols)


def _prompt_commands(body: list[str]) -> list[str]:
    commands: list[str] = []
    for line in body:
        prompt = PROMPT_PREFIX.match(line.strip())
        if prompt:
            command = prompt.group(1).strip()
            if command and command not in commands:
                commands.append(command)
    return commands


def extract_code_examples(doc: PreProcessedDoc) -> list[RawExtraction]:
    """One claim per fenced block that is not a CLI-only block."""
    results = []
    for block in iter_fenced_blocks(doc):
        if block.language and block.language.lower() in CLI_LANGUAGES:
            continue
        content = "\n".join(block.body)
        results.append(RawExtraction(
            claim_text=content.strip()[:CODE_EXAMPLE_MAX_TEXT],
            claim_type="code_example",
            extracted_value=CodeExampleValue(
                language=block.language,
                imports=tuple(_imports_from_block(content, block.language)),
                symbols=tuple(_symbols_from_block(content)),
                commands=tuple(_prompt_commands(block.body)),
            ),
            line_number=doc.original_line(block.open_index),
            pattern_name="fenced_code_block",
        ))
    return results


# =============================================================================
# URLs
# =============================================================================

URL_PATTERN = re.compile(r'https?://[^\s<>()\[\]`"\']+')
URL_TRAILING = ".,;:!?*_"
SKIPPED_URL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "example.com", "example.org", "example.net"}


def extract_urls(doc: PreProcessedDoc) -> list[RawExtraction]:
    """Extract external links from prose (local and placeholder hosts skipped)."""
    results = []
    for idx, line in _scan_lines(doc, skip_fences=True):
        for match in URL_PATTERN.finditer(line):
            url = match.group(0).rstrip(URL_TRAILING)
            host = (urlsplit(url).hostname or "").lower()
            if not host or host in SKIPPED_URL_HOSTS or host.endswith(".example"):
                continue
            results.append(RawExtraction(
                claim_text=line.strip(),
                claim_type="url_reference",
                extracted_value=UrlValue(url=url),
                line_number=doc.original_line(idx),
                pattern_name="http_url",
            ))
    return results
