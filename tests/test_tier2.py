"""Tests for Tier 2 pattern heuristics and navigation config checks."""
import json

import pytest

from docdrift.extraction.models import (
    ConfigValue,
    ConventionValue,
    DependencyValue,
    EnvironmentValue,
    PathValue,
)
from docdrift.index import InMemoryIndex
from docdrift.verification import verify_navigation_config, verify_tier2
from docdrift.verification.tier2_navigation import extract_nav_paths
from docdrift.verification.tier2_patterns import (
    detect_license,
    is_tier2_eligible,
    read_tool_versions,
    version_satisfies,
)


# =============================================================================
# Helpers
# =============================================================================

class TestHelpers:
    @pytest.mark.parametrize("claimed,actual,expected", [
        ("18", "18.17.0", True),
        ("18", "v18.2", True),
        ("18+", "20.1.0", True),
        ("3.11", "3.12.1", False),
        ("3.11+", "3.12.1", True),
        ("20", "18.17.0", False),
        ("abc", "1.0", False),
    ])
    def test_version_satisfies(self, claimed, actual, expected):
        assert version_satisfies(claimed, actual) is expected

    def test_detect_license_whole_word(self):
        assert detect_license("Released under the MIT license.") == "MIT"
        assert detect_license("Please submit a PR.") is None
        assert detect_license("Licensed LGPL-3.0") == "LGPL-3.0"
        assert detect_license("Apache 2.0 licensed") == "Apache-2.0"

    def test_read_tool_versions(self):
        content = "# asdf\nnodejs 20.11.0\npython 3.12.1\n"
        assert read_tool_versions(content, "node.js") == "20.11.0"
        assert read_tool_versions(content, "python") == "3.12.1"
        assert read_tool_versions(content, "ruby") is None

    def test_eligibility(self, make_claim):
        assert is_tier2_eligible(make_claim("environment", EnvironmentValue(env_var="X_Y")))
        assert is_tier2_eligible(
            make_claim("dependency_version", DependencyValue("app", "2.0.0"), source_file="CHANGELOG.md")
        )
        assert not is_tier2_eligible(make_claim("dependency_version", DependencyValue("react", "18")))
        assert not is_tier2_eligible(make_claim("path_reference", PathValue("a.ts")))


# =============================================================================
# Conventions
# =============================================================================

class TestConventions:
    """Test strict mode, framework and license heuristics."""

    @pytest.mark.asyncio
    async def test_strict_mode_verified(self, sample_index, make_claim):
        claim = make_claim(
            "convention", ConventionValue(convention="strict_mode"),
            claim_text="The project uses TypeScript strict mode.",
        )
        result = await verify_tier2(claim, sample_index)
        assert result.verdict == "verified"
        assert result.tier == 2
        assert result.evidence_files == ["tsconfig.json"]

    @pytest.mark.asyncio
    async def test_strict_mode_drifted(self, make_claim):
        index = InMemoryIndex.from_files({"tsconfig.json": '{"compilerOptions": {"strict": false}}'})
        claim = make_claim("convention", ConventionValue(convention="strict_mode"), claim_text="Strict mode is on.")
        result = await verify_tier2(claim, index)
        assert result.verdict == "drifted"
        assert result.severity == "medium"

    @pytest.mark.asyncio
    async def test_framework_found_via_import(self, sample_index, make_claim):
        claim = make_claim("convention", ConventionValue(framework="Express"), claim_text="Built with Express.")
        result = await verify_tier2(claim, sample_index)
        assert result.verdict == "verified"
        assert result.evidence_files == ["src/server.ts"]

    @pytest.mark.asyncio
    async def test_unknown_framework_no_result(self, sample_index, make_claim):
        claim = make_claim("convention", ConventionValue(framework="Django"), claim_text="Built with Django.")
        assert await verify_tier2(claim, sample_index) is None

    @pytest.mark.asyncio
    async def test_license(self, sample_index, make_claim):
        matching = make_claim("convention", ConventionValue(convention="license"), claim_text="MIT licensed.")
        assert (await verify_tier2(matching, sample_index)).verdict == "verified"

        other = make_claim("convention", ConventionValue(convention="license"), claim_text="Apache-2.0 licensed.")
        result = await verify_tier2(other, sample_index)
        assert result.verdict == "drifted"
        assert result.evidence_files == ["package.json"]


# =============================================================================
# Environment
# =============================================================================

class TestEnvironment:
    @pytest.mark.asyncio
    async def test_env_var_found(self, sample_index, make_claim):
        for name in ("DATABASE_URL", "API_TOKEN"):
            result = await verify_tier2(make_claim("environment", EnvironmentValue(env_var=name)), sample_index)
            assert result.verdict == "verified"
            assert result.evidence_files == [".env.example"]

    @pytest.mark.asyncio
    async def test_env_var_missing_suggests_close(self, sample_index, make_claim):
        claim = make_claim("environment", EnvironmentValue(env_var="DATABASE_URI"))
        result = await verify_tier2(claim, sample_index)
        assert result.verdict == "drifted"
        assert "Did you mean 'DATABASE_URL'?" in result.reasoning
        assert result.evidence_files == [".env.example"]

    @pytest.mark.asyncio
    async def test_no_env_files_no_result(self, make_claim):
        index = InMemoryIndex.from_files({"README.md": "# x\n"})
        assert await verify_tier2(make_claim("environment", EnvironmentValue(env_var="DATABASE_URL")), index) is None

    @pytest.mark.asyncio
    async def test_config_key_checked_as_env_var(self, sample_index, make_claim):
        result = await verify_tier2(make_claim("config", ConfigValue(key="REDIS_URL")), sample_index)
        assert result.verdict == "drifted"

    @pytest.mark.asyncio
    async def test_nvmrc_satisfies_runtime(self, sample_index, make_claim):
        claim = make_claim(
            "environment", EnvironmentValue(runtime="Node.js", version="18"),
            claim_text="Requires Node.js 18+",
        )
        result = await verify_tier2(claim, sample_index)
        assert result.verdict == "verified"
        assert result.evidence_files == [".nvmrc"]

    @pytest.mark.asyncio
    async def test_nvmrc_mismatch(self, sample_index, make_claim):
        claim = make_claim(
            "environment", EnvironmentValue(runtime="Node.js", version="20"),
            claim_text="Requires Node.js 20",
        )
        result = await verify_tier2(claim, sample_index)
        assert result.verdict == "drifted"
        assert result.suggested_fix == "Requires Node.js 18.17.0"

    @pytest.mark.asyncio
    async def test_engines_fallback(self, make_claim):
        index = InMemoryIndex.from_files({"package.json": json.dumps({"engines": {"node": ">=18 <21"}})})
        claim = make_claim(
            "environment", EnvironmentValue(runtime="Node.js", version="18"),
            claim_text="Node.js 18 is required.",
        )
        result = await verify_tier2(claim, index)
        assert result.verdict == "verified"
        assert result.evidence_files == ["package.json"]


# =============================================================================
# Changelog
# =============================================================================

class TestChangelog:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("manifest_version,verdict", [("2.1.0", "verified"), ("2.2.0", "drifted")])
    async def test_latest_entry_vs_manifest(self, make_claim, manifest_version, verdict):
        index = InMemoryIndex.from_files({
            "package.json": json.dumps({"name": "app", "version": manifest_version}),
            "CHANGELOG.md": "# Changelog\n\n## [2.1.0] - 2026-01-01\n- fix\n\n## [2.0.0]\n",
        })
        claim = make_claim("dependency_version", DependencyValue("app", "2.1.0"), source_file="CHANGELOG.md")
        result = await verify_tier2(claim, index)
        assert result.verdict == verdict
        assert result.evidence_files == ["CHANGELOG.md", "package.json"]


# =============================================================================
# Navigation configs
# =============================================================================

class TestNavigation:
    """Test navigation config checks."""

    @pytest.mark.asyncio
    async def test_mkdocs_missing_page(self):
        index = InMemoryIndex.from_files({
            "mkdocs.yml": "site_name: x\nnav:\n  - Home: index.md\n  - Guide: guide.md\n  - Gone: missing.md\n",
            "docs/index.md": "# Home\n",
            "docs/guide.md": "# Guide\n",
        })
        results = await verify_navigation_config(index)
        assert [r.claim_id for r in results] == ["nav:mkdocs.yml:missing.md"]
        result = results[0]
        assert result.verdict == "drifted"
        assert result.confidence == 0.9
        assert result.tier == 2
        assert result.severity == "high"
        assert result.evidence_files == ["mkdocs.yml"]

    @pytest.mark.asyncio
    async def test_mkdocs_bare_and_nested_entries(self):
        index = InMemoryIndex.from_files({
            "mkdocs.yml": (
                "site_name: x\n"
                "nav:\n"
                "  - index.md\n"
                "  - missing.md\n"
                "  - Guides:\n"
                "      - guides/setup.md\n"
                "      - Deploy: guides/deploy.md\n"
                "  - Blog: https://blog.example.com/index.html\n"
            ),
            "docs/index.md": "# Home\n",
            "docs/guides/setup.md": "# Setup\n",
        })
        results = await verify_navigation_config(index)
        assert [r.claim_id for r in results] == [
            "nav:mkdocs.yml:missing.md",
            "nav:mkdocs.yml:guides/deploy.md",
        ]

    @pytest.mark.asyncio
    async def test_mkdocs_application_tags(self):
        index = InMemoryIndex.from_files({
            "mkdocs.yml": (
                "site_name: x\n"
                "markdown_extensions:\n"
                "  - pymdownx.emoji:\n"
                "      emoji_index: !!python/name:material.extensions.emoji.twemoji\n"
                "nav:\n"
                "  - Home: index.md\n"
                "  - Gone: gone.md\n"
            ),
            "docs/index.md": "# Home\n",
        })
        results = await verify_navigation_config(index)
        assert [r.claim_id for r in results] == ["nav:mkdocs.yml:gone.md"]

    def test_invalid_yaml(self):
        assert extract_nav_paths("mkdocs.yml", "nav: [unclosed\n") == []

    @pytest.mark.asyncio
    async def test_mkdocs_docs_dir(self):
        index = InMemoryIndex.from_files({
            "mkdocs.yml": "docs_dir: site-src\nnav:\n  - Home: index.md\n",
            "site-src/index.md": "# Home\n",
        })
        assert await verify_navigation_config(index) == []

    @pytest.mark.asyncio
    async def test_docsify_sidebar(self):
        index = InMemoryIndex.from_files({
            "docs/_sidebar.md": "* [Guide](guide.md)\n* [Gone](/gone.md)\n* [Ext](https://x.io/a.md)\n",
            "docs/guide.md": "# Guide\n",
        })
        results = await verify_navigation_config(index)
        assert [r.claim_id for r in results] == ["nav:docs/_sidebar.md:/gone.md"]

    @pytest.mark.asyncio
    async def test_mint_json(self):
        nav = {"navigation": [{"group": "Start", "pages": ["intro.mdx", "missing.md"]}]}
        index = InMemoryIndex.from_files({"mint.json": json.dumps(nav), "intro.mdx": "# Intro\n"})
        results = await verify_navigation_config(index)
        assert [r.claim_id for r in results] == ["nav:mint.json:missing.md"]

    @pytest.mark.asyncio
    async def test_no_nav_configs(self, sample_index):
        assert await verify_navigation_config(sample_index) == []

    def test_extract_nav_paths(self):
        assert extract_nav_paths("mint.json", "{broken") == []
        js = "sidebar: ['docs/a.md', \"docs/b.mdx\", 'docs/a.md', 'logo.png']"
        assert extract_nav_paths("docusaurus.config.js", js) == ["docs/a.md", "docs/b.mdx"]
