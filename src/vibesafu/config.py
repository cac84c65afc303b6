"""Configuration management for vibesafu."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

_VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def vibesafu_home() -> Path:
    """Directory holding the user config file and logs.

    ``VIBESAFU_HOME`` overrides the default ``~/.vibesafu``.
    """
    override = os.environ.get("VIBESAFU_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".vibesafu"


def config_file_path() -> Path:
    """Path of the TOML file written by ``vibesafu config``."""
    return vibesafu_home() / "config.toml"


class Settings(BaseSettings):
    """Application settings loaded from the environment and the user config file."""

    model_config = SettingsConfigDict(
        env_prefix="VIBESAFU_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        env_parse_none_str="",
    )

    # Anthropic (optional, enables LLM review of checkpoints)
    anthropic_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "anthropic_api_key", "VIBESAFU_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"
        ),
        description="Anthropic API key used for checkpoint triage",
    )

    # Triage / review models
    triage_enabled: bool = Field(
        default=True, description="Consult the LLM for checkpoints when an API key is set"
    )
    triage_model: str = Field(
        default="claude-haiku-4-5", description="Fast model for first-pass triage"
    )
    triage_max_tokens: int = Field(default=512, description="Max output tokens for triage")
    triage_timeout: float = Field(default=10.0, description="Triage call timeout in seconds")
    review_model: str = Field(
        default="claude-sonnet-4-5", description="Stronger model for escalated reviews"
    )
    review_max_tokens: int = Field(default=1024, description="Max output tokens for review")
    review_timeout: float = Field(default=30.0, description="Review call timeout in seconds")

    # Host integration
    claude_settings_path: Path = Field(
        default_factory=lambda: Path.home() / ".claude" / "settings.json",
        description="Claude Code settings file the hook is installed into",
    )
    hook_command: str = Field(
        default="vibesafu check", description="Command registered as the PermissionRequest hook"
    )

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="WARNING", description="Logging level")

    # Logging Configuration
    log_to_file: bool = Field(default=True, description="Enable file-based logging")
    log_directory: Path = Field(
        default_factory=lambda: vibesafu_home() / "logs", description="Directory for log files"
    )
    log_file_max_bytes: int = Field(
        default=5242880,  # 5MB
        description="Max size per log file before rotation",
    )
    log_file_backup_count: int = Field(
        default=3, description="Number of rotated log files to keep"
    )
    log_file_prefix: str = Field(default="vibesafu", description="Prefix for log file names")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # The hook runs inside arbitrary project directories, so a project-level
        # .env must never be able to reconfigure it.
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=config_file_path()),
        )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_VALID_LOG_LEVELS}, got: {v}")
        return upper

    @field_validator("triage_timeout", "review_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate that call timeouts are positive."""
        if v <= 0:
            raise ValueError(f"timeout must be positive, got: {v}")
        return v

    @field_validator("triage_max_tokens", "review_max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        """Validate output token limits."""
        if not 1 <= v <= 8192:
            raise ValueError(f"max_tokens must be between 1 and 8192, got: {v}")
        return v

    @property
    def has_api_key(self) -> bool:
        """Check whether a non-empty Anthropic API key is configured."""
        return bool(self.anthropic_api_key and self.anthropic_api_key.get_secret_value().strip())

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def log_file_path(self) -> Path:
        """Get the full log file path."""
        return self.log_directory / f"{self.log_file_prefix}.log"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
