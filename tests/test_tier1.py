"""Tests for Tier 1 deterministic verification."""
import pytest

from docdrift.extraction.extractors import extract_dependency_versions
from docdrift.extraction.models import (
    SELF_REFERENCE,
    CodeExampleValue,
    CommandValue,
    DependencyValue,
    RouteValue,
)
from docdrift.index import InMemoryIndex
from docdrift.verification import (
    compare_versions,
    strip_version_prefix,
    verify_api_route,
    verify_code_example,
    verify_command,
    verify_dependency_version,
    verify_path_reference,
)
from docdrift.verification.similarity import find_close_match, find_similar_paths, levenshtein
from docdrift.verification.tier1_paths import resolve_relative


# =============================================================================
# Version comparison
# =============================================================================

class TestCompareVersions:
    """Test documented vs actual version matching."""

    def test_partial_against_lockfile(self):
        result = compare_versions("18", "18.3.1", "lockfile")
        assert result.matches
        assert result.comparison_type == "major_only"

    def test_segment_boundary(self):
        assert not compare_versions("1.2", "1.20.0", "lockfile").matches
        assert compare_versions("v1.2", "1.2.9", "lockfile").matches

    def test_exact(self):
        result = compare_versions("18.2.0", "18.3.0", "lockfile")
        assert not result.matches
        assert result.comparison_type == "exact"

    @pytest.mark.parametrize("documented,actual,expected", [
        ("4.19.1", "^4.18.0", True),
        ("4.17.0", "^4.18.0", False),
        ("5.0.0", "^4.18.0", False),
        ("4", "^4.18.0", True),
        ("4.18", "^4.18.0", True),
        ("5.3.1", "~5.3.0", True),
        ("5.4.0", "~5.3.0", False),
        ("0.2.5", "^0.2.1", True),
        ("0.3.0", "^0.2.1", False),
        ("3.12.0", ">=3.11", True),
    ])
    def test_manifest_ranges(self, documented, actual, expected):
        result = compare_versions(documented, actual, "manifest")
        assert result.comparison_type == "range"
        assert result.matches is expected

    def test_strip_prefix(self):
        assert strip_version_prefix(">=v1.0") == "1.0"
        assert strip_version_prefix("^18.0.0") == "18.0.0"


class TestSimilarity:
    def test_levenshtein(self):
        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("", "abc") == 3

    def test_close_match_excludes_identical(self):
        assert find_close_match("build", ["build"], 2) is None
        assert find_close_match("biuld", ["lint", "build"], 2).name == "build"

    @pytest.mark.asyncio
    async def test_similar_paths_basename_first(self, sample_index):
        similar = await find_similar_paths(sample_index, "src/auth/handlr.ts")
        assert similar[0].path == "src/auth/handler.ts"
        assert similar[0].match_type == "basename"


# =============================================================================
# Paths
# =============================================================================

class TestVerifyPathReference:
    """Test path_reference verification."""

    @pytest.mark.asyncio
    async def test_existing_file(self, sample_index, path_claim):
        result = await verify_path_reference(
            path_claim("src/auth/handler.ts", claim_text="Check `src/auth/handler.ts` for details."),
            sample_index,
        )
        assert result.verdict == "verified"
        assert result.confidence == 1.0
        assert result.tier == 1
        assert result.token_cost is None
        assert result.evidence_files == ["src/auth/handler.ts"]

    @pytest.mark.asyncio
    async def test_renamed_file_suggests_fix(self, sample_index, path_claim):
        claim = path_claim("src/auth/handlr.ts", claim_text="Check `src/auth/handlr.ts` for details.")
        result = await verify_path_reference(claim, sample_index)
        assert result.verdict == "drifted"
        assert result.severity == "medium"
        assert result.evidence_files == ["src/auth/handler.ts"]
        assert result.suggested_fix == "Check `src/auth/handler.ts` for details."

    @pytest.mark.asyncio
    async def test_missing_file(self, sample_index, path_claim):
        result = await verify_path_reference(path_claim("lib/zzzzzzzzzz.go"), sample_index)
        assert result.verdict == "drifted"
        assert result.severity == "high"
        assert result.evidence_files == []

    @pytest.mark.asyncio
    async def test_relative_to_doc(self, sample_index, path_claim):
        result = await verify_path_reference(path_claim("./guide.md", source_file="docs/setup.md"), sample_index)
        assert result.verdict == "verified"
        assert result.evidence_files == ["docs/guide.md"]

    @pytest.mark.asyncio
    async def test_bare_filename(self, sample_index, path_claim):
        unique = await verify_path_reference(path_claim("guide.md"), sample_index)
        assert unique.evidence_files == ["docs/guide.md"]

        sibling = await verify_path_reference(path_claim("setup.md", source_file="docs/guide.md"), sample_index)
        assert sibling.evidence_files == ["docs/setup.md"]

    @pytest.mark.asyncio
    async def test_ambiguous_bare_filename(self, path_claim):
        index = InMemoryIndex(["a/config.ts", "b/config.ts"])
        result = await verify_path_reference(path_claim("config.ts"), index)
        assert result.verdict == "uncertain"
        assert result.severity is None
        assert result.evidence_files == ["a/config.ts", "b/config.ts"]

    @pytest.mark.asyncio
    async def test_file_anchor(self, sample_index, path_claim):
        found = await verify_path_reference(path_claim("docs/guide.md", "getting-started"), sample_index)
        assert found.verdict == "verified"

        missing = await verify_path_reference(path_claim("docs/guide.md", "getting-start"), sample_index)
        assert missing.verdict == "drifted"
        assert missing.severity == "medium"
        assert "Did you mean '#getting-started'?" in missing.reasoning

    @pytest.mark.asyncio
    async def test_self_anchor(self, sample_index, path_claim):
        found = await verify_path_reference(path_claim(SELF_REFERENCE, "install"), sample_index)
        assert found.verdict == "verified"
        assert found.evidence_files == ["README.md"]

        missing = await verify_path_reference(path_claim(SELF_REFERENCE, "instal"), sample_index)
        assert missing.verdict == "drifted"
        assert "'#install'" in missing.reasoning

    def test_resolve_relative(self):
        assert resolve_relative("docs/api", "../guide.md") == "docs/guide.md"
        assert resolve_relative("", "../x.md") is None


# =============================================================================
# Commands
# =============================================================================

class TestVerifyCommand:
    @pytest.mark.asyncio
    async def test_existing_script(self, sample_index, make_claim):
        result = await verify_command(make_claim("command", CommandValue("npm", "build")), sample_index)
        assert result.verdict == "verified"
        assert result.evidence_files == ["package.json"]

    @pytest.mark.asyncio
    async def test_typo_suggests_close_script(self, sample_index, make_claim):
        claim = make_claim("command", CommandValue("npm", "biuld"), claim_text="Run `npm run biuld`.")
        result = await verify_command(claim, sample_index)
        assert result.verdict == "drifted"
        assert result.severity == "high"
        assert result.suggested_fix == "Run `npm run build`."

    @pytest.mark.asyncio
    async def test_missing_script(self, sample_index, make_claim):
        result = await verify_command(make_claim("command", CommandValue("npm", "deploy")), sample_index)
        assert result.verdict == "drifted"
        assert result.evidence_files == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("runner,script", [("npm", "install"), ("docker", "compose up"), ("make", "build")])
    async def test_unchecked_commands(self, sample_index, make_claim, runner, script):
        assert await verify_command(make_claim("command", CommandValue(runner, script)), sample_index) is None


# =============================================================================
# Routes
# =============================================================================

class TestVerifyApiRoute:
    @pytest.mark.asyncio
    async def test_found(self, sample_index, make_claim):
        result = await verify_api_route(make_claim("api_route", RouteValue("GET", "/api/users")), sample_index)
        assert result.verdict == "verified"
        assert result.evidence_files == ["src/server.ts"]

    @pytest.mark.asyncio
    async def test_parameterized(self, sample_index, make_claim):
        claim = make_claim("api_route", RouteValue("POST", "/api/users/{userId}/roles"))
        assert (await verify_api_route(claim, sample_index)).verdict == "verified"

    @pytest.mark.asyncio
    async def test_similar_route(self, sample_index, make_claim):
        claim = make_claim("api_route", RouteValue("GET", "/api/user"), claim_text="Call GET /api/user.")
        result = await verify_api_route(claim, sample_index)
        assert result.verdict == "drifted"
        assert result.severity == "medium"
        assert result.suggested_fix == "Call GET /api/users."

    @pytest.mark.asyncio
    async def test_unknown_route(self, sample_index, make_claim):
        result = await verify_api_route(make_claim("api_route", RouteValue("GET", "/zzz")), sample_index)
        assert result.verdict == "drifted"
        assert result.severity == "high"


# =============================================================================
# Dependencies
# =============================================================================

class TestVerifyDependencyVersion:
    """Test dependency_version verification."""

    @pytest.mark.asyncio
    async def test_lockfile_version_wins(self, sample_index, make_claim):
        claim = make_claim("dependency_version", DependencyValue("React", "18.2.0"), claim_text="Uses React 18.2.0")
        result = await verify_dependency_version(claim, sample_index)
        assert result.verdict == "drifted"
        assert result.evidence_files == ["package-lock.json"]
        assert result.suggested_fix == "Uses React 18.3.0"
        assert "18.3.0" in result.specific_mismatch

    @pytest.mark.asyncio
    async def test_major_only_match(self, sample_index, make_claim):
        claim = make_claim("dependency_version", DependencyValue("react", "18"))
        assert (await verify_dependency_version(claim, sample_index)).verdict == "verified"

    @pytest.mark.asyncio
    async def test_extracted_sentence_final_version(self, sample_index, make_claim, make_doc):
        doc = make_doc("This project uses React 18.")
        extraction = extract_dependency_versions(doc, {"react"})[0]
        claim = make_claim("dependency_version", extraction.extracted_value, claim_text=extraction.claim_text)
        result = await verify_dependency_version(claim, sample_index)
        assert result.verdict == "verified"
        assert result.evidence_files == ["package-lock.json"]

    @pytest.mark.asyncio
    async def test_runtime_allowlisted(self, sample_index, make_claim):
        claim = make_claim("dependency_version", DependencyValue("Node.js", "18"))
        result = await verify_dependency_version(claim, sample_index)
        assert result.verdict == "verified"
        assert result.evidence_files == []

    @pytest.mark.asyncio
    async def test_unknown_package_suggests_name(self, sample_index, make_claim):
        claim = make_claim("dependency_version", DependencyValue("expres", "4"))
        result = await verify_dependency_version(claim, sample_index)
        assert result.verdict == "drifted"
        assert result.severity == "high"
        assert "Did you mean 'express'?" in result.reasoning


# =============================================================================
# Code examples
# =============================================================================

class TestVerifyCodeExample:
    @pytest.mark.asyncio
    async def test_all_resolve(self, sample_index, make_claim):
        value = CodeExampleValue("ts", imports=("express",), symbols=("verifyToken", "listUsers"))
        result = await verify_code_example(make_claim("code_example", value), sample_index)
        assert result.verdict == "verified"
        assert result.evidence_files == ["src/server.ts", "src/auth/handler.ts"]

    @pytest.mark.asyncio
    async def test_partial_resolution_is_drift(self, sample_index, make_claim):
        value = CodeExampleValue("ts", imports=("express",), symbols=("verifyToken", "missingFn", "otherMissing"))
        result = await verify_code_example(make_claim("code_example", value), sample_index)
        assert result.verdict == "drifted"
        assert result.severity == "medium"
        assert "Symbol 'missingFn' not found." in result.specific_mismatch

    @pytest.mark.asyncio
    async def test_nothing_resolves_gives_no_result(self, sample_index, make_claim):
        value = CodeExampleValue("js", symbols=("lodashThing",))
        assert await verify_code_example(make_claim("code_example", value), sample_index) is None

    @pytest.mark.asyncio
    async def test_language_typo(self, sample_index, make_claim):
        value = CodeExampleValue("typscript", symbols=("verifyToken",))
        result = await verify_code_example(make_claim("code_example", value), sample_index)
        assert result.verdict == "drifted"
        assert result.severity == "low"
        assert result.suggested_fix == "```typescript"
