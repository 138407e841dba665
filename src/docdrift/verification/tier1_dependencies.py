"""Tier 1: dependency_version claims against manifests and lockfiles."""
from __future__ import annotations

from docdrift.extraction.models import Claim, DependencyValue
from docdrift.index.protocol import CodebaseIndex

from .results import VerificationResult, make_result
from .similarity import find_close_match
from .versions import compare_versions, strip_version_prefix

PACKAGE_MAX_DISTANCE = 3

# Builtins and runtimes that never appear in a manifest
RUNTIME_ALLOWLIST = {
    # Node.js builtins
    "assert", "buffer", "child_process", "cluster", "console", "constants",
    "crypto", "dgram", "dns", "domain", "events", "fs", "http", "http2",
    "https", "module", "net", "os", "path", "perf_hooks", "process",
    "punycode", "querystring", "readline", "repl", "stream", "string_decoder",
    "sys", "timers", "tls", "tty", "url", "util", "v8", "vm", "worker_threads",
    "zlib",
    # node: prefixed builtins
    "node:assert", "node:buffer", "node:child_process", "node:crypto",
    "node:events", "node:fs", "node:http", "node:https", "node:net",
    "node:os", "node:path", "node:process", "node:stream", "node:url",
    "node:util", "node:worker_threads", "node:zlib", "node:test",
    # Runtime names, in every case the extractors produce
    "Node.js", "Nodejs", "node.js", "nodejs", "node",
    "Python", "python",
    "Ruby", "ruby",
    "Go", "go",
    "Rust", "rust",
    "Java", "java",
    "Deno", "deno",
    "Bun", "bun",
}


async def verify_dependency_version(claim: Claim, index: CodebaseIndex) -> VerificationResult | None:
    """Verify a documented package (and version) against the repository.

    The index answers lockfile-first, so an exact installed version wins
    over a manifest range. The file that answered is cited as evidence.
    """
    value = claim.extracted_value
    if not isinstance(value, DependencyValue) or not value.package:
        return None
    package, documented = value.package, value.version

    dep = await index.get_dependency_version(package)
    if dep is None:
        if package in RUNTIME_ALLOWLIST:
            return make_result(
                claim, "verified", [],
                f"Package '{package}' is a known Node.js builtin/runtime module.",
            )
        manifest = await index.get_manifest_metadata()
        names = [*manifest.dependencies, *manifest.dev_dependencies] if manifest else []
        close = find_close_match(package, names, PACKAGE_MAX_DISTANCE)
        suggestion = f" Did you mean '{close.name}'?" if close else ""
        return make_result(
            claim, "drifted", [],
            f"Package '{package}' not found.{suggestion}",
            severity="high",
            specific_mismatch=f"Package is not a dependency.{suggestion}",
        )

    evidence = [dep.file_path or "package.json"]
    if not documented:
        return make_result(claim, "verified", evidence, f"Package '{package}' is a dependency.")

    comparison = compare_versions(documented, dep.version, dep.source)
    if comparison.matches:
        return make_result(
            claim, "verified", evidence,
            f"Package '{package}' version '{dep.version}' matches documented '{documented}'.",
        )

    return make_result(
        claim, "drifted", evidence,
        f"Doc says '{package} {documented}' but actual is '{dep.version}'.",
        severity="medium",
        suggested_fix=claim.claim_text.replace(documented, strip_version_prefix(dep.version), 1),
        specific_mismatch=f"Version mismatch: documented '{documented}', actual '{dep.version}'.",
    )
