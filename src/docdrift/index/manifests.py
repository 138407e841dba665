"""Package manifest and lockfile parsing.

Supported files:
- package.json, package-lock.json (v3), yarn.lock (v1), pnpm-lock.yaml
- requirements.txt, pyproject.toml (PEP 621 and Poetry)
- Cargo.toml, go.mod
- Makefile (targets become scripts)

Parsers never raise on malformed input; they return None (unparseable
JSON/TOML/YAML) or a manifest with whatever could be read.
"""
from __future__ import annotations

import json
import logging
import re
import tomllib
from pathlib import PurePosixPath
from typing import Any, Callable

import yaml

from .protocol import ParsedManifest

logger = logging.getLogger(__name__)


# =============================================================================
# package.json / package-lock.json
# =============================================================================

def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(v, str)}


def parse_package_json(file_path: str, content: str) -> ParsedManifest | None:
    try:
        pkg = json.loads(content)
    except json.JSONDecodeError:
        return None
    if not isinstance(pkg, dict):
        return None

    license_value = pkg.get("license")
    return ParsedManifest(
        file_path=file_path,
        source="manifest",
        dependencies=_string_map(pkg.get("dependencies")),
        dev_dependencies=_string_map(pkg.get("devDependencies")),
        scripts=_string_map(pkg.get("scripts")),
        name=pkg.get("name") if isinstance(pkg.get("name"), str) else None,
        version=pkg.get("version") if isinstance(pkg.get("version"), str) else None,
        engines=_string_map(pkg.get("engines")),
        license=license_value if isinstance(license_value, str) else None,
    )


def parse_package_lock(file_path: str, content: str) -> ParsedManifest | None:
    """Parse a v3 package-lock.json.

    Every top-level ``node_modules/<name>`` entry contributes its resolved
    version; ranges declared in ``packages[""]`` fill in packages that have
    no resolved entry.
    """
    try:
        lock = json.loads(content)
    except json.JSONDecodeError:
        return None
    if not isinstance(lock, dict):
        return None

    dependencies: dict[str, str] = {}
    packages = lock.get("packages")
    if isinstance(packages, dict):
        for pkg_path, data in packages.items():
            if not pkg_path.startswith("node_modules/") or not isinstance(data, dict):
                continue
            name = pkg_path[len("node_modules/"):]
            # Nested installs (a/node_modules/b) are not the root's dependency
            if "/node_modules/" in name:
                continue
            version = data.get("version")
            if isinstance(version, str):
                dependencies[name] = version

        root = packages.get("")
        if isinstance(root, dict):
            for key in ("dependencies", "devDependencies"):
                for name, spec in _string_map(root.get(key)).items():
                    dependencies.setdefault(name, spec)

    return ParsedManifest(file_path=file_path, source="lockfile", dependencies=dependencies)


# =============================================================================
# Lockfiles (yarn, pnpm)
# =============================================================================

YARN_BLOCK_PATTERN = re.compile(
    r'^"?([^@\s"]+|@[^@\s"]+)@[^":\n]+(?:,\s*[^":\n]+)*"?:\s*\n\s+version\s+"([^"]+)"',
    re.MULTILINE,
)


def parse_yarn_lock(file_path: str, content: str) -> ParsedManifest:
    dependencies: dict[str, str] = {}
    for match in YARN_BLOCK_PATTERN.finditer(content):
        dependencies.setdefault(match.group(1), match.group(2))
    return ParsedManifest(file_path=file_path, source="lockfile", dependencies=dependencies)


def _pnpm_version(spec: Any) -> str | None:
    # pnpm v6+ nests {specifier, version}; older lockfiles map name -> version
    if isinstance(spec, dict):
        spec = spec.get("version")
    if isinstance(spec, (str, int, float)):
        # Peer suffix: 18.2.0(react@18.2.0)
        return str(spec).split("(", 1)[0]
    return None


def parse_pnpm_lock(file_path: str, content: str) -> ParsedManifest | None:
    try:
        lock = yaml.safe_load(content)
    except yaml.YAMLError:
        return None
    if not isinstance(lock, dict):
        return None

    sections: list[dict] = [lock]
    importers = lock.get("importers")
    if isinstance(importers, dict) and isinstance(importers.get("."), dict):
        sections.append(importers["."])

    dependencies: dict[str, str] = {}
    for section in sections:
        for key in ("dependencies", "devDependencies"):
            deps = section.get(key)
            if not isinstance(deps, dict):
                continue
            for name, spec in deps.items():
                version = _pnpm_version(spec)
                if version:
                    dependencies[str(name)] = version

    return ParsedManifest(file_path=file_path, source="lockfile", dependencies=dependencies)


# =============================================================================
# Python
# =============================================================================

REQUIREMENT_PATTERN = re.compile(r"^([a-zA-Z0-9_-][a-zA-Z0-9._-]*)\s*(?:\[[^\]]*\])?\s*([=<>!~]+)\s*(.+?)(?:\s*;.*)?$")
REQUIREMENT_NAME_PATTERN = re.compile(r"^([a-zA-Z0-9_-][a-zA-Z0-9._-]*)")
PEP508_PATTERN = re.compile(r"^([a-zA-Z0-9_-][a-zA-Z0-9._-]*)\s*(?:\[[^\]]*\])?\s*([>=<~!]+[^;]*)?")


def parse_requirements_txt(file_path: str, content: str) -> ParsedManifest:
    dependencies: dict[str, str] = {}
    for raw_line in content.split("\n"):
        line = raw_line.strip()
        if not line or line.startswith("#") or line.startswith("-"):
            continue
        match = REQUIREMENT_PATTERN.match(line)
        if match:
            dependencies[match.group(1)] = f"{match.group(2)}{match.group(3)}"
            continue
        name_match = REQUIREMENT_NAME_PATTERN.match(line)
        if name_match:
            dependencies[name_match.group(1)] = "*"
    return ParsedManifest(file_path=file_path, source="manifest", dependencies=dependencies)


def _pep508_map(items: Any) -> dict[str, str]:
    deps: dict[str, str] = {}
    if not isinstance(items, list):
        return deps
    for item in items:
        if not isinstance(item, str):
            continue
        match = PEP508_PATTERN.match(item.strip())
        if match:
            deps[match.group(1)] = (match.group(2) or "*").strip()
    return deps


def _toml_dep_map(table: Any) -> dict[str, str]:
    """Map ``name = "1.0"`` and ``name = { version = "1.0" }`` entries."""
    deps: dict[str, str] = {}
    if not isinstance(table, dict):
        return deps
    for name, spec in table.items():
        if isinstance(spec, str):
            deps[name] = spec
        elif isinstance(spec, dict) and isinstance(spec.get("version"), str):
            deps[name] = spec["version"]
    return deps


def _license_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("text"), str):
        return value["text"]
    return None


def parse_pyproject(file_path: str, content: str) -> ParsedManifest | None:
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError:
        return None

    project = data.get("project", {})
    poetry = data.get("tool", {}).get("poetry", {})

    dependencies = _pep508_map(project.get("dependencies"))
    poetry_deps = _toml_dep_map(poetry.get("dependencies"))
    poetry_python = poetry_deps.pop("python", None)
    dependencies.update(poetry_deps)

    dev_dependencies: dict[str, str] = {}
    for extra in (project.get("optional-dependencies") or {}).values():
        dev_dependencies.update(_pep508_map(extra))
    dev_dependencies.update(_toml_dep_map(poetry.get("dev-dependencies")))
    for group in (poetry.get("group") or {}).values():
        if isinstance(group, dict):
            dev_dependencies.update(_toml_dep_map(group.get("dependencies")))

    scripts = _string_map(project.get("scripts"))
    scripts.update(_string_map(poetry.get("scripts")))

    engines: dict[str, str] = {}
    requires_python = project.get("requires-python") or poetry_python
    if isinstance(requires_python, str):
        engines["python"] = requires_python

    return ParsedManifest(
        file_path=file_path,
        source="manifest",
        dependencies=dependencies,
        dev_dependencies=dev_dependencies,
        scripts=scripts,
        name=project.get("name") or poetry.get("name"),
        version=project.get("version") or poetry.get("version"),
        engines=engines,
        license=_license_text(project.get("license")) or _license_text(poetry.get("license")),
    )


# =============================================================================
# Rust / Go / Make
# =============================================================================

def parse_cargo_toml(file_path: str, content: str) -> ParsedManifest | None:
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError:
        return None

    package = data.get("package", {})
    engines: dict[str, str] = {}
    if isinstance(package.get("edition"), str):
        engines["rust-edition"] = package["edition"]
    if isinstance(package.get("rust-version"), str):
        engines["rust"] = package["rust-version"]

    return ParsedManifest(
        file_path=file_path,
        source="manifest",
        dependencies=_toml_dep_map(data.get("dependencies")),
        dev_dependencies=_toml_dep_map(data.get("dev-dependencies")),
        name=package.get("name") if isinstance(package.get("name"), str) else None,
        version=package.get("version") if isinstance(package.get("version"), str) else None,
        engines=engines,
        license=package.get("license") if isinstance(package.get("license"), str) else None,
    )


GO_REQUIRE_BLOCK = re.compile(r"require\s*\(([\s\S]*?)\)")
GO_REQUIRE_LINE = re.compile(r"^\s+(\S+)\s+(v\S+)", re.MULTILINE)
GO_SINGLE_REQUIRE = re.compile(r"^require\s+(\S+)\s+(v\S+)", re.MULTILINE)
GO_MODULE = re.compile(r"^module\s+(\S+)", re.MULTILINE)
GO_DIRECTIVE = re.compile(r"^go\s+(\d+(?:\.\d+)*)", re.MULTILINE)


def parse_go_mod(file_path: str, content: str) -> ParsedManifest:
    dependencies: dict[str, str] = {}
    for block in GO_REQUIRE_BLOCK.finditer(content):
        for match in GO_REQUIRE_LINE.finditer("\n" + block.group(1)):
            dependencies[match.group(1)] = match.group(2)
    for match in GO_SINGLE_REQUIRE.finditer(content):
        dependencies[match.group(1)] = match.group(2)

    module = GO_MODULE.search(content)
    go_version = GO_DIRECTIVE.search(content)
    return ParsedManifest(
        file_path=file_path,
        source="manifest",
        dependencies=dependencies,
        name=module.group(1) if module else None,
        engines={"go": go_version.group(1)} if go_version else {},
    )


MAKE_TARGET = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_-]*):(?!=)")
MAKE_RECIPE = re.compile(r"^\t(.+)")


def parse_makefile(file_path: str, content: str) -> ParsedManifest:
    scripts: dict[str, str] = {}
    lines = content.split("\n")
    for i, line in enumerate(lines):
        match = MAKE_TARGET.match(line)
        if not match:
            continue
        recipe = MAKE_RECIPE.match(lines[i + 1]) if i + 1 < len(lines) else None
        scripts[match.group(1)] = recipe.group(1).strip() if recipe else ""
    return ParsedManifest(file_path=file_path, source="manifest", scripts=scripts)


# =============================================================================
# Dispatch
# =============================================================================

MANIFEST_PARSERS: dict[str, Callable[[str, str], ParsedManifest | None]] = {
    "package.json": parse_package_json,
    "package-lock.json": parse_package_lock,
    "yarn.lock": parse_yarn_lock,
    "pnpm-lock.yaml": parse_pnpm_lock,
    "requirements.txt": parse_requirements_txt,
    "pyproject.toml": parse_pyproject,
    "Cargo.toml": parse_cargo_toml,
    "go.mod": parse_go_mod,
    "Makefile": parse_makefile,
}


def is_manifest_file(file_path: str) -> bool:
    return PurePosixPath(file_path).name in MANIFEST_PARSERS


def parse_manifest(file_path: str, content: str) -> ParsedManifest | None:
    """Parse a manifest by basename; None for unknown or unparseable files."""
    parser = MANIFEST_PARSERS.get(PurePosixPath(file_path).name)
    if parser is None:
        return None
    manifest = parser(file_path, content)
    if manifest is None:
        logger.warning(f"Could not parse manifest {file_path}")
    return manifest
