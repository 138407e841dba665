"""Configuration for docdrift."""
from .engine import (
    SYNTACTIC_CLAIM_TYPES,
    EngineConfig,
    ExtractionConfig,
    LLMConfig,
    LoggingConfig,
    UrlCheckConfig,
    VerificationConfig,
    load_engine_config,
)
from .settings import Settings, settings

__all__ = [
    "SYNTACTIC_CLAIM_TYPES",
    "EngineConfig",
    "ExtractionConfig",
    "LLMConfig",
    "LoggingConfig",
    "UrlCheckConfig",
    "VerificationConfig",
    "load_engine_config",
    "Settings",
    "settings",
]
