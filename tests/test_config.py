"""Tests for engine configuration loading and logging setup."""
import logging

import pytest

from docdrift.config.engine import EngineConfig, LoggingConfig, load_engine_config
from docdrift.errors import ConfigError
from docdrift.logging_setup import configure_logging


VALID_YAML = """
extraction:
  enabled_claim_types: [path_reference, command]
  known_packages: [fastify]
verification:
  max_concurrency: 4
  url_check:
    enabled: true
llm:
  enabled: true
  provider: ollama
  model: llama3
  api_key: secret-key
logging:
  level: DEBUG
"""


class TestEngineConfig:
    """Test YAML loading and validation."""

    def test_defaults(self):
        config = EngineConfig()
        assert config.llm.enabled is False
        assert config.verification.max_concurrency == 1
        assert config.verification.url_check.enabled is False
        assert "environment" in config.extraction.enabled_claim_types

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "docdrift.yaml"
        path.write_text(VALID_YAML)

        config = EngineConfig.from_yaml(path)
        assert config.extraction.enabled_claim_types == ["path_reference", "command"]
        assert config.extraction.known_packages == ["fastify"]
        assert config.verification.max_concurrency == 4
        assert config.verification.url_check.enabled is True
        assert config.llm.provider == "ollama"
        assert config.logging.level == "DEBUG"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            EngineConfig.from_yaml(tmp_path / "nope.yaml")

    @pytest.mark.parametrize("content,message", [
        ("", "Empty configuration"),
        ("llm: [unclosed", "Malformed YAML"),
        ("extraction:\n  enabled_claim_types: [behavior]\n", "Invalid configuration"),
        ("verification:\n  max_concurrency: 0\n", "Invalid configuration"),
        ("llm:\n  provider: bard\n", "Invalid configuration"),
    ])
    def test_config_errors(self, tmp_path, content, message):
        path = tmp_path / "docdrift.yaml"
        path.write_text(content)
        with pytest.raises(ConfigError, match=message):
            EngineConfig.from_yaml(path)

    def test_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("verification:\n  max_concurrency: 8\n")
        monkeypatch.setenv("DOCDRIFT_CONFIG", str(path))
        assert EngineConfig.from_env().verification.max_concurrency == 8

    def test_from_env_falls_back_to_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DOCDRIFT_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        assert load_engine_config() == EngineConfig()

        (tmp_path / "docdrift.yaml").write_text("llm:\n  model: local\n")
        assert load_engine_config().llm.model == "local"

    def test_log_redacted(self, tmp_path):
        path = tmp_path / "docdrift.yaml"
        path.write_text(VALID_YAML)
        redacted = load_engine_config(path).log_redacted()
        assert redacted["llm"]["api_key"] == "***"
        assert redacted["llm"]["model"] == "llama3"
        assert EngineConfig().log_redacted()["llm"]["api_key"] is None


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        httpx_level = logging.getLogger("httpx").level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.getLogger("httpx").setLevel(httpx_level)

    def test_level_and_quiet_http(self):
        configure_logging(LoggingConfig(level="DEBUG"))
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_http_logs_kept(self):
        logging.getLogger("httpx").setLevel(logging.NOTSET)
        configure_logging(LoggingConfig(level="ERROR", quiet_http=False))
        assert logging.getLogger().level == logging.ERROR
        assert logging.getLogger("httpx").level == logging.NOTSET
