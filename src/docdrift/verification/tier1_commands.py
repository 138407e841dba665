"""Tier 1: command claims against manifest scripts."""
from __future__ import annotations

from docdrift.extraction.models import Claim, CommandValue
from docdrift.index.protocol import CodebaseIndex

from .results import VerificationResult, make_result
from .similarity import find_close_match

SCRIPT_MAX_DISTANCE = 2

# Runners whose scripts can be checked against a manifest
VERIFIABLE_RUNNERS = {"npm", "yarn", "pnpm", "bun", "pip", "pip3", "poetry", "cargo"}

# Package manager subcommands that are not user-defined scripts
NPM_BUILTINS = {
    "install", "i", "ci", "uninstall", "remove", "rm", "un",
    "publish", "pack", "init", "create",
    "link", "unlink",
    "view", "info", "show",
    "config", "set", "get",
    "login", "logout", "adduser", "whoami", "token",
    "audit", "fund", "outdated", "update", "up", "upgrade",
    "dedupe", "prune", "shrinkwrap",
    "cache", "completion", "doctor", "ping", "prefix", "root",
    "exec", "explore", "explain", "why",
    "help", "search", "star", "stars", "version",
    "owner", "team", "access", "deprecate", "dist-tag", "unpublish",
    "repo", "bugs", "docs", "home",
    "rebuild", "ls", "list", "ll",
    "bin", "pkg",
    "add", "dlx", "self-update", "setup", "store", "patch", "patch-commit",
    "import", "fetch", "approve-builds", "licenses",
    "run-script",
}

PIP_BUILTINS = {
    "install", "uninstall", "freeze", "list", "show", "search",
    "download", "wheel", "hash", "check", "config", "cache",
    "index", "debug", "inspect",
}

CARGO_BUILTINS = {
    "build", "check", "clean", "doc", "new", "init", "add", "remove",
    "run", "test", "bench", "update", "search", "publish", "install",
    "uninstall", "clippy", "fmt", "fix", "tree", "vendor",
    "login", "logout", "owner", "package", "yank", "generate-lockfile",
}

POETRY_BUILTINS = {
    "new", "init", "install", "update", "add", "remove", "show", "build",
    "publish", "config", "run", "shell", "check", "search", "lock",
    "version", "export", "env", "cache", "source", "self",
}

BUILTINS_BY_RUNNER: dict[str, set[str]] = {
    "npm": NPM_BUILTINS,
    "yarn": NPM_BUILTINS,
    "pnpm": NPM_BUILTINS,
    "bun": NPM_BUILTINS,
    "pip": PIP_BUILTINS,
    "pip3": PIP_BUILTINS,
    "cargo": CARGO_BUILTINS,
    "poetry": POETRY_BUILTINS,
}

MANIFEST_BY_RUNNER = {
    "npm": "package.json",
    "yarn": "package.json",
    "pnpm": "package.json",
    "npx": "package.json",
    "bun": "package.json",
    "pip": "requirements.txt",
    "pip3": "requirements.txt",
    "poetry": "pyproject.toml",
    "cargo": "Cargo.toml",
}


def is_builtin_subcommand(runner: str, script: str) -> bool:
    words = script.split()
    if not words:
        return False
    return words[0].lower() in BUILTINS_BY_RUNNER.get(runner, set())


async def verify_command(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    """Verify that a documented ``<runner> <script>`` names a real script.

    Non-package-manager runners (docker, make, kubectl, ...) and built-in
    subcommands such as ``npm install`` are not checked.
    """
    value = claim.extracted_value
    if not isinstance(value, CommandValue) or not value.script:
        return None
    runner, script = value.runner, value.script
    if runner not in VERIFIABLE_RUNNERS or is_builtin_subcommand(runner, script):
        return None

    default_manifest = MANIFEST_BY_RUNNER.get(runner, "package.json")
    available = await index.get_available_scripts()

    if await index.script_exists(script):
        manifest = next((s.file_path for s in available if s.name == script), default_manifest)
        return make_result(claim, "verified", [manifest], f"Script '{script}' exists in {runner}.")

    close = find_close_match(script, [s.name for s in available], SCRIPT_MAX_DISTANCE)
    if close:
        manifest = next((s.file_path for s in available if s.name == close.name), default_manifest)
        return make_result(
            claim, "drifted", [manifest],
            f"Script '{script}' not found. Close match: '{close.name}'.",
            severity="high",
            suggested_fix=claim.claim_text.replace(script, close.name, 1),
            specific_mismatch=f"Script '{script}' not found.",
        )

    return make_result(
        claim, "drifted", [],
        f"Script '{script}' not found.",
        severity="high",
        specific_mismatch=f"Script '{script}' not found.",
    )
