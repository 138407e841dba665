"""Repository scanner with .gitignore support.

Walks a checkout and yields repository-relative POSIX paths, respecting
.gitignore patterns.
"""
from __future__ import annotations
from pathlib import Path
from typing import Iterator
import pathspec

# Directories never worth walking
EXCLUDE_DIRS = {
    ".git",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    "dist",
    "build",
    ".tox",
    ".mypy_cache",
    ".ruff_cache",
}

# Hidden directories that hold docs or docs-site config
HIDDEN_DIR_ALLOWLIST = {".github", ".vitepress"}


def load_ignore_spec(repo_root: Path, ignore_file: str = ".gitignore") -> pathspec.PathSpec | None:
    gitignore_path = repo_root / ignore_file
    if not gitignore_path.exists():
        return None
    with open(gitignore_path, "r", encoding="utf-8") as f:
        return pathspec.PathSpec.from_lines("gitwildmatch", f.read().splitlines())


def walk_repository(
    repo_root: Path | str,
    ignore_file: str = ".gitignore"
) -> Iterator[str]:
    """Walk a repository, honoring .gitignore.

    Hidden files are kept (``.env.example``, ``.nvmrc`` and friends are
    evidence); hidden directories are skipped unless allow-listed.

    Args:
        repo_root: Root directory of the repository
        ignore_file: Name of ignore file (default: .gitignore)

    Yields:
        Repository-relative POSIX paths, in sorted walk order

    Raises:
        FileNotFoundError: If the root does not exist
        NotADirectoryError: If the root is not a directory
    """
    repo_root = Path(repo_root).resolve()

    if not repo_root.exists():
        raise FileNotFoundError(f"Repository path not found: {repo_root}")

    if not repo_root.is_dir():
        raise NotADirectoryError(f"Repository path is not a directory: {repo_root}")

    ignore_spec = load_ignore_spec(repo_root, ignore_file)
    for file_path in _walk_directory(repo_root, ignore_spec, repo_root):
        yield file_path.relative_to(repo_root).as_posix()


def _walk_directory(
    directory: Path,
    ignore_spec: pathspec.PathSpec | None,
    repo_root: Path
) -> Iterator[Path]:
    try:
        entries = sorted(directory.iterdir())
    except PermissionError:
        # Skip directories we can't read
        return

    for entry in entries:
        rel_path = entry.relative_to(repo_root).as_posix()

        if entry.is_dir():
            if entry.name in EXCLUDE_DIRS:
                continue
            if entry.name.startswith(".") and entry.name not in HIDDEN_DIR_ALLOWLIST:
                continue
            if ignore_spec and ignore_spec.match_file(rel_path + "/"):
                continue
            yield from _walk_directory(entry, ignore_spec, repo_root)
        elif entry.is_file():
            if ignore_spec and ignore_spec.match_file(rel_path):
                continue
            yield entry
