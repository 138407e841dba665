"""Tests for validation, deduplication, materialization and the extraction pipeline."""
import pytest

from docdrift.errors import ClaimMaterializationError
from docdrift.extraction import models
from docdrift.extraction.materializer import generate_keywords, raw_to_claim
from docdrift.extraction.models import (
    SELF_REFERENCE,
    CommandValue,
    DependencyValue,
    EnvironmentValue,
    PathValue,
    RawExtraction,
    RouteValue,
)
from docdrift.extraction.pipeline import extract_syntactic, should_skip
from docdrift.extraction.validation import deduplicate_within_file, identity_key, is_valid_path
from docdrift.config.engine import ExtractionConfig


def raw(value, claim_type="path_reference", line=1, text="claim text"):
    return RawExtraction(
        claim_text=text,
        claim_type=claim_type,
        extracted_value=value,
        line_number=line,
        pattern_name="test",
    )


# =============================================================================
# Validation
# =============================================================================

class TestIsValidPath:
    """Test repository-relative path validation."""

    def test_traversal_rejected(self):
        assert is_valid_path("../../etc/passwd") is False

    def test_plain_path_accepted(self):
        assert is_valid_path("src/a.ts") is True

    def test_length_cap(self):
        assert is_valid_path("a/" * 251 + "file.ts") is False

    @pytest.mark.parametrize("path", ["", "   ", "/etc/hosts", "file:///tmp/x", "a\0b"])
    def test_rejected(self, path):
        assert is_valid_path(path) is False

    def test_dot_slash_prefix(self):
        assert is_valid_path("./src/a.ts") is True
        assert is_valid_path("./") is False


class TestIdentityKey:
    def test_dependency_key_ignores_version(self):
        assert identity_key(raw(DependencyValue("react", "18"), "dependency_version")) == "dep:react"

    def test_path_key_includes_anchor(self):
        assert identity_key(raw(PathValue("docs/a.md", "intro"))) == "path:docs/a.md#intro"
        assert identity_key(raw(PathValue("docs/a.md"))) == "path:docs/a.md"

    def test_runtime_spellings_share_key(self):
        a = raw(EnvironmentValue(runtime="Node.js", version="18"), "environment")
        b = raw(EnvironmentValue(runtime="nodejs", version="20"), "environment")
        assert identity_key(a) == identity_key(b) == "env:runtime:nodejs"


class TestDeduplication:
    """Test within-file deduplication."""

    def test_first_seen_wins(self):
        first = raw(CommandValue("npm", "test"), "command", line=3)
        second = raw(CommandValue("npm", "test"), "command", line=9)
        assert deduplicate_within_file([first, second]) == [first]

    def test_idempotent(self):
        extractions = [
            raw(PathValue("src/a.ts"), line=1),
            raw(PathValue("src/a.ts"), line=2),
            raw(RouteValue("GET", "/users"), "api_route", line=2),
            raw(DependencyValue("react", "18"), "dependency_version", line=4),
            raw(DependencyValue("react", "17"), "dependency_version", line=5),
        ]
        once = deduplicate_within_file(extractions)
        assert deduplicate_within_file(once) == once
        assert len(once) == 3


# =============================================================================
# Materialization
# =============================================================================

class TestMaterializer:
    def test_raw_to_claim(self):
        claim = raw_to_claim("repo", "README.md", raw(PathValue("src/auth/handler.ts"), line=7))
        assert claim.source_file == "README.md"
        assert claim.line_number == 7
        assert claim.testability == "syntactic"
        assert claim.verification_status == "pending"
        assert claim.keywords == ["handler", "src", "auth", "handler.ts"]

    def test_empty_claim_text_raises(self):
        with pytest.raises(ClaimMaterializationError):
            raw_to_claim("repo", "README.md", raw(PathValue("a.ts"), text="  "))

    def test_missing_source_file_raises(self):
        with pytest.raises(ClaimMaterializationError):
            raw_to_claim("repo", "", raw(PathValue("a.ts")))

    def test_self_reference_keywords(self):
        assert generate_keywords(raw(PathValue(SELF_REFERENCE, "setup"))) == ["setup"]

    def test_route_keywords_skip_params(self):
        keywords = generate_keywords(raw(RouteValue("GET", "/users/:id/posts"), "api_route"))
        assert keywords == ["GET", "users", "posts"]

    def test_testability(self):
        assert models.testability_for("behavior") == "semantic"
        assert models.testability_for("architecture") == "semantic"
        assert models.testability_for("command") == "syntactic"


# =============================================================================
# Pipeline
# =============================================================================

class TestShouldSkip:
    def test_reasons(self):
        assert should_skip("a.md", "x\0y") == "binary content"
        assert should_skip("a.md", "") == "empty"
        assert should_skip("a.md", "x" * 200, max_file_size=100) == "larger than 100 bytes"
        assert should_skip("index.rst", "Title\n=====") == "rst is LLM-only"
        assert should_skip("a.md", "# ok") is None


class TestExtractSyntactic:
    """Test the end-to-end extraction pipeline."""

    def test_mixed_document(self):
        content = (
            "---\n"
            "title: Setup\n"
            "---\n"
            "# Setup\n"
            "\n"
            "Check `src/auth/handler.ts` for details.\n"
            "Uses React 18.2.0.\n"
            "\n"
            "```bash\n"
            "npm run build          # TypeScript compilation\n"
            "npm run test && npm run lint\n"
            "```\n"
            "Call `GET /api/users` for the list.\n"
        )
        claims = extract_syntactic("docs/setup.md", content, known_packages=["react"])
        by_type = {}
        for claim in claims:
            by_type.setdefault(claim.claim_type, []).append(claim)

        assert [c.extracted_value for c in by_type["path_reference"]] == [PathValue("src/auth/handler.ts")]
        assert by_type["path_reference"][0].line_number == 6
        assert [c.extracted_value.script for c in by_type["command"]] == ["build", "test", "lint"]
        assert by_type["dependency_version"][0].extracted_value == DependencyValue("React", "18.2.0")
        assert by_type["api_route"][0].line_number == 13
        assert [c.line_number for c in claims] == sorted(c.line_number for c in claims)

    def test_line_numbers_point_at_original_lines(self):
        content = "---\na: b\n---\n<div>\nSee `src/a.ts`.\n</div>\nRun `npm run dev`.\n"
        claims = extract_syntactic("README.md", content)
        lines = {c.claim_type: c.line_number for c in claims}
        assert lines == {"path_reference": 5, "command": 7}

    def test_enabled_types_filter(self):
        content = "Check `src/a.ts`.\nRun `npm run dev`."
        claims = extract_syntactic("README.md", content, enabled_types=["command"])
        assert {c.claim_type for c in claims} == {"command"}

    def test_config_known_packages(self):
        config = ExtractionConfig(known_packages=["fastify"])
        claims = extract_syntactic("README.md", "Built on fastify 4.26.0.", config=config)
        deps = [c.extracted_value for c in claims if c.claim_type == "dependency_version"]
        assert deps == [DependencyValue("fastify", "4.26.0")]

    def test_rejected_inputs_give_no_claims(self):
        assert extract_syntactic("README.md", "") == []
        assert extract_syntactic("README.md", "bin\0ary") == []
        assert extract_syntactic("docs/index.rst", "See `src/a.ts`.") == []

    def test_frontmatter_only_document(self):
        assert extract_syntactic("docs/stub.md", "---\ntitle: Coming soon\n---") == []

    def test_repo_id_stamped(self):
        claims = extract_syntactic("README.md", "See `src/a.ts`.", repo_id="acme/api")
        assert claims and all(c.repo_id == "acme/api" for c in claims)
