"""
Configuration management for docsplice.

Handles loading configuration from YAML files and environment variables.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docsplice.chunking import DEFAULT_MAX_SEGMENT_BYTES

# Load .env file if present (before Settings initialization)
load_dotenv()


class ProviderKind(str, Enum):
    """Available refinement providers."""

    OLLAMA = "ollama"
    LMSTUDIO = "lmstudio"
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    CLAUDE = "claude"
    GEMINI = "gemini"


class EngineKind(str, Enum):
    """Primary machine translation engines."""

    PASSTHROUGH = "passthrough"
    PROVIDER = "provider"


class SegmentationConfig(BaseModel):
    """Configuration for document segmentation."""

    max_segment_bytes: int = Field(default=DEFAULT_MAX_SEGMENT_BYTES, ge=64)
    chapter_extensions: list[str] = Field(default_factory=lambda: [".xhtml", ".html", ".htm"])

    @field_validator("chapter_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lowercase extensions and make sure they start with a dot."""
        return [e.lower() if e.startswith(".") else f".{e.lower()}" for e in v]


class ConversionConfig(BaseModel):
    """Configuration for the external PDF to DOCX conversion."""

    # Explicit soffice path; searched on PATH and default install dirs when empty
    soffice_path: str = Field(default="")
    timeout_seconds: int = Field(default=300, ge=10, le=3600)


class ProviderConfig(BaseModel):
    """Connection settings for an LLM provider."""

    provider: ProviderKind = Field(default=ProviderKind.OLLAMA)
    # Base URL for local providers (Ollama, LM Studio)
    url: str = Field(default="")
    model: str = Field(default="")
    openai_api_key: str = Field(default="")
    openrouter_api_key: str = Field(default="")
    claude_api_key: str = Field(default="")
    gemini_api_key: str = Field(default="")
    timeout_seconds: float = Field(default=120.0, ge=1.0, le=3600.0)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=64, le=32000)


class RefinementConfig(ProviderConfig):
    """Configuration for the secondary AI refinement pass."""

    enabled: bool = Field(default=False)
    source_language: str = Field(default="English")
    target_language: str = Field(default="French")
    # ~3000 chars is 1000-1500 tokens, comfortable for 32k context local models
    chunk_chars: int = Field(default=3000, ge=200, le=100_000)
    context_chars: int = Field(default=300, ge=0, le=5000)


class TranslationConfig(ProviderConfig):
    """Configuration for the primary machine translation engine."""

    engine: EngineKind = Field(default=EngineKind.PASSTHROUGH)
    source_language: str = Field(default="English")
    target_language: str = Field(default="French")
    # Source characters sent per translation request
    chunk_chars: int = Field(default=3000, ge=200, le=100_000)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO")
    file: Path | None = Field(default=None)
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    max_file_size_mb: int = Field(default=10, ge=1, le=100)
    backup_count: int = Field(default=5, ge=1, le=20)

    @field_validator("level")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper()


class Settings(BaseSettings):
    """Main settings class that combines all configurations."""

    model_config = SettingsConfigDict(
        env_prefix="DOCSPLICE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    segmentation: SegmentationConfig = Field(default_factory=SegmentationConfig)
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)
    translation: TranslationConfig = Field(default_factory=TranslationConfig)
    refinement: RefinementConfig = Field(default_factory=RefinementConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable fallbacks for API keys."""
        super().__init__(**data)
        for section in (self.translation, self.refinement):
            _apply_key_fallbacks(section)

    @classmethod
    def from_yaml(cls, path: Path | str) -> Settings:
        """Load settings from a YAML file, with environment variable overrides."""
        path = Path(path)
        if not path.exists():
            # Return defaults if file doesn't exist
            return cls()

        with open(path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        # Process environment variable substitutions in YAML values
        yaml_config = _substitute_env_vars(yaml_config)

        return cls(**yaml_config)


_KEY_ENV_VARS = {
    "openai_api_key": "OPENAI_API_KEY",
    "openrouter_api_key": "OPENROUTER_API_KEY",
    "claude_api_key": "ANTHROPIC_API_KEY",
    "gemini_api_key": "GEMINI_API_KEY",
}


def _apply_key_fallbacks(section: ProviderConfig) -> None:
    """Fill empty API keys from the conventional environment variables."""
    for attr, env_var in _KEY_ENV_VARS.items():
        if not getattr(section, attr):
            setattr(section, attr, os.getenv(env_var, ""))


def _substitute_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively substitute ${ENV_VAR} patterns in config values."""
    result = {}
    for key, value in config.items():
        if isinstance(value, dict):
            result[key] = _substitute_env_vars(value)
        elif isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            env_var = value[2:-1]
            result[key] = os.getenv(env_var, "")
        elif isinstance(value, list):
            result[key] = [
                _substitute_env_vars(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            result[key] = value
    return result


def load_config(path: Path | str | None = None) -> Settings:
    """
    Load configuration from YAML file or return defaults.

    Args:
        path: Path to YAML config file. If None, looks for config.yaml in current directory.

    Returns:
        Settings instance with merged YAML and environment configurations.
    """
    if path is None:
        default_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(".docsplice.yaml"),
        ]
        for p in default_paths:
            if p.exists():
                path = p
                break

    if path is not None:
        return Settings.from_yaml(path)

    return Settings()


def create_default_config(path: Path | str = "config.yaml") -> None:
    """Create a default configuration file."""
    default_config = """# docsplice configuration
segmentation:
  # Maximum UTF-8 size of one segment sent to the translation engine
  max_segment_bytes: 8388608
  # Archive entries treated as ebook chapters
  chapter_extensions: [".xhtml", ".html", ".htm"]

conversion:
  # Leave empty to search PATH and the default LibreOffice install dirs
  soffice_path: ""
  timeout_seconds: 300

translation:
  # "passthrough" copies text unchanged, "provider" asks an LLM
  engine: "passthrough"
  provider: "ollama"
  url: "http://localhost:11434"
  model: ""
  source_language: "English"
  target_language: "French"

refinement:
  enabled: false
  # ollama, lmstudio, openai, openrouter, claude, gemini
  provider: "ollama"
  url: "http://localhost:11434"
  model: ""
  openai_api_key: "${OPENAI_API_KEY}"
  claude_api_key: "${ANTHROPIC_API_KEY}"
  gemini_api_key: "${GEMINI_API_KEY}"
  source_language: "English"
  target_language: "French"
  # Approximate characters of source text per refinement request
  chunk_chars: 3000
  # Characters of the previous chunk sent as context
  context_chars: 300
  timeout_seconds: 120

logging:
  level: "INFO"
  # file: "./logs/docsplice.log"
"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(default_config)
