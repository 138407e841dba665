"""Engine configuration loading and validation.

Loads YAML configuration for extraction, verification, the LLM transport,
URL checks and logging.
"""
from __future__ import annotations
import os
import yaml
from pathlib import Path
from typing import Literal
from pydantic import BaseModel, Field, field_validator

from docdrift.errors import ConfigError

SYNTACTIC_CLAIM_TYPES = (
    "path_reference",
    "command",
    "dependency_version",
    "api_route",
    "code_example",
    "url_reference",
    "environment",
    "convention",
)


class ExtractionConfig(BaseModel):
    """Syntactic extraction configuration."""
    enabled_claim_types: list[str] = Field(
        default_factory=lambda: list(SYNTACTIC_CLAIM_TYPES),
        description="Claim families to extract"
    )
    max_file_size_bytes: int = Field(100 * 1024, ge=1, description="Skip documents larger than this")
    known_packages: list[str] = Field(
        default_factory=list,
        description="Extra package names accepted by the dependency extractor"
    )

    @field_validator("enabled_claim_types")
    @classmethod
    def validate_claim_types(cls, v: list[str]) -> list[str]:
        """Only syntactic claim families can be extracted by pattern."""
        unknown = sorted(set(v) - set(SYNTACTIC_CLAIM_TYPES))
        if unknown:
            raise ValueError(f"Unknown claim types: {', '.join(unknown)}")
        return v


class UrlCheckConfig(BaseModel):
    """Outbound URL reachability checks."""
    enabled: bool = Field(False, description="Check url_reference claims over HTTP")
    timeout_seconds: float = Field(5.0, gt=0, le=60, description="Per-request timeout")
    max_per_domain: int = Field(5, ge=1, le=100, description="Requests per host per scan")
    user_agent: str = Field("docdrift-url-check", description="User-Agent header")


class VerificationConfig(BaseModel):
    """Verification cascade configuration."""
    max_concurrency: int = Field(1, ge=1, le=32, description="Claims verified concurrently")
    llm_timeout_seconds: float = Field(60.0, gt=0, description="Per-attempt LLM timeout")
    llm_max_tokens: int = Field(2000, ge=128, description="Max completion tokens")
    llm_temperature: float = Field(0.0, ge=0.0, le=2.0, description="Sampling temperature")
    max_evidence_chars: int = Field(16000, ge=1000, description="Evidence budget per claim")
    check_navigation: bool = Field(True, description="Check docs navigation configs")
    url_check: UrlCheckConfig = Field(default_factory=UrlCheckConfig)


class LLMConfig(BaseModel):
    """LLM transport configuration."""
    enabled: bool = Field(False, description="Enable Tier 3 LLM verification")
    provider: Literal["anthropic", "openai", "vllm", "ollama"] = Field(
        "anthropic", description="LLM provider"
    )
    model: str = Field("claude-sonnet-4-5", description="Model name")
    base_url: str | None = Field(None, description="Override provider base URL")
    api_key: str | None = Field(None, description="API key (falls back to environment)")

    def model_post_init(self, __context) -> None:
        """Validate provider-specific configuration."""
        if self.enabled and not self.model:
            raise ValueError("model required when llm is enabled")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("INFO", description="Log level")
    format: str = Field(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s", description="Log record format"
    )
    quiet_http: bool = Field(True, description="Silence httpx/httpcore request logs")


class EngineConfig(BaseModel):
    """Complete engine configuration."""
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated EngineConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigError: If configuration is empty or invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Malformed YAML in {config_path}: {e}") from e

        if not data:
            raise ConfigError(f"Empty configuration file: {config_path}")

        try:
            return cls.model_validate(data)
        except Exception as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    @classmethod
    def from_env(cls, env_var: str = "DOCDRIFT_CONFIG") -> EngineConfig:
        """Load configuration from path in environment variable.

        Falls back to ``docdrift.yaml`` in the working directory, then to
        defaults.

        Args:
            env_var: Environment variable name (default: DOCDRIFT_CONFIG)

        Returns:
            Validated EngineConfig instance
        """
        config_path = os.getenv(env_var)

        if not config_path:
            default_path = Path("docdrift.yaml")
            if default_path.exists():
                return cls.from_yaml(default_path)
            return cls()

        return cls.from_yaml(config_path)

    def log_redacted(self) -> dict:
        """Get configuration dict with secrets redacted for logging.

        Returns:
            Dictionary with sensitive values redacted
        """
        config_dict = self.model_dump()
        if config_dict["llm"].get("api_key"):
            config_dict["llm"]["api_key"] = "***"
        return config_dict


def load_engine_config(config_path: str | Path | None = None) -> EngineConfig:
    """Load engine configuration from file or environment.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Validated EngineConfig instance
    """
    if config_path:
        return EngineConfig.from_yaml(config_path)

    return EngineConfig.from_env()
