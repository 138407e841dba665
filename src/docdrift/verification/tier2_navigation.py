"""Tier 2: documentation-site navigation configs that point at missing pages.

Unlike the per-claim checks this runs once per repository: every doc path
referenced by a known nav config (mkdocs, docsify, VitePress, Docusaurus,
Mintlify, Jekyll data) must exist.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator

import yaml

from docdrift.index.protocol import CodebaseIndex

from .results import VerificationResult

logger = logging.getLogger(__name__)

NAV_CONFIG_FILES = [
    "docs/_sidebar.md",
    "mkdocs.yml",
    "_data/nav.yml",
    "mint.json",
    "docs.json",
    ".vitepress/config.ts",
    ".vitepress/config.js",
    ".vitepress/config.mts",
    "docusaurus.config.js",
    "docusaurus.config.ts",
]

NAV_CONFIDENCE = 0.9

DOC_EXTENSIONS = r"(?:md|mdx|rst|html|txt)"
MARKDOWN_LINK = re.compile(r"\[.*?\]\(([^)#]+)\)")
JS_DOC_STRING = re.compile(r"['\"]([a-zA-Z0-9_\-./]+\." + DOC_EXTENSIONS + r")['\"]")
DOC_PATH = re.compile(r"\." + DOC_EXTENSIONS + r"$")


class NavConfigLoader(yaml.SafeLoader):
    """SafeLoader that reads application tags (``!!python/name:``, ``!ENV``) as plain values."""


def _construct_tagged(loader: NavConfigLoader, tag_suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.ScalarNode):
        return loader.construct_scalar(node)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_mapping(node, deep=True)


NavConfigLoader.add_multi_constructor("", _construct_tagged)


def load_nav_yaml(nav_file: str, content: str) -> Any:
    """Parse a YAML nav config; None when it is not valid YAML."""
    try:
        return yaml.load(content, Loader=NavConfigLoader)
    except yaml.YAMLError as e:
        logger.debug(f"Skipping unparseable nav config {nav_file}: {e}")
        return None


def _leaf_strings(value: object) -> Iterator[str]:
    """String values of a parsed config, depth-first; mapping keys are titles and skipped."""
    if isinstance(value, str):
        yield value
    elif isinstance(value, list):
        for item in value:
            yield from _leaf_strings(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from _leaf_strings(item)


def _doc_paths(values: Iterator[str]) -> Iterator[str]:
    for value in values:
        value = value.strip()
        if DOC_PATH.search(value) and not value.startswith(("http:", "https:", "//")):
            yield value


def extract_nav_paths(nav_file: str, content: str) -> list[str]:
    """Doc paths referenced by a nav config, unique, in order of appearance."""
    paths: list[str] = []

    if nav_file.endswith(".md"):
        for match in MARKDOWN_LINK.finditer(content):
            href = match.group(1).strip()
            if href and not href.startswith(("http", "//")):
                paths.append(href)
    elif nav_file.endswith((".yml", ".yaml")):
        data = load_nav_yaml(nav_file, content)
        # mkdocs keeps pages under `nav`; Jekyll nav data is the whole file
        if isinstance(data, dict) and "nav" in data:
            data = data["nav"]
        paths.extend(_doc_paths(_leaf_strings(data)))
    elif nav_file.endswith(".json"):
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            logger.debug(f"Skipping unparseable nav config {nav_file}")
            return []
        paths.extend(_doc_paths(_leaf_strings(data)))
    elif nav_file.endswith((".ts", ".js", ".mts")):
        paths.extend(m.group(1) for m in JS_DOC_STRING.finditer(content))

    return list(dict.fromkeys(paths))


def _base_dirs(nav_file: str, content: str) -> list[str]:
    """Directories nav paths may be relative to, besides the repository root."""
    if nav_file == "mkdocs.yml":
        data = load_nav_yaml(nav_file, content)
        docs_dir = data.get("docs_dir") if isinstance(data, dict) else None
        return [str(docs_dir).strip("/") if docs_dir else "docs"]
    if nav_file == "docs/_sidebar.md":
        return ["docs"]
    return []


async def _nav_path_exists(index: CodebaseIndex, path: str, base_dirs: list[str]) -> bool:
    path = path.lstrip("/")
    if await index.file_exists(path):
        return True
    for base in base_dirs:
        if await index.file_exists(f"{base}/{path}"):
            return True
    return False


async def verify_navigation_config(index: CodebaseIndex) -> list[VerificationResult]:
    """Drift results for nav config entries that reference missing files.

    Results are keyed ``nav:<config file>:<path>`` since they belong to no
    extracted claim.
    """
    results = []
    for nav_file in NAV_CONFIG_FILES:
        content = await index.read_file_content(nav_file)
        if not content:
            continue
        base_dirs = _base_dirs(nav_file, content)

        for path in extract_nav_paths(nav_file, content):
            if await _nav_path_exists(index, path, base_dirs):
                continue
            results.append(VerificationResult(
                claim_id=f"nav:{nav_file}:{path}",
                verdict="drifted",
                confidence=NAV_CONFIDENCE,
                tier=2,
                severity="high",
                reasoning=f"Navigation config '{nav_file}' references '{path}' which does not exist.",
                specific_mismatch=f"Referenced path '{path}' not found.",
                evidence_files=[nav_file],
            ))

    if results:
        logger.info(f"Navigation configs reference {len(results)} missing files")
    return results
