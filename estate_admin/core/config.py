"""
Configuration management for the estate admin client.

Provides centralized, validated configuration from environment variables
with proper type checking and defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from estate_admin.core.exceptions import ConfigurationError


class ApiConfig(BaseSettings):
    """Backend REST API configuration."""

    base_url: str = Field(default="http://localhost:8000/api", alias="ESTATE_API_BASE_URL")
    timeout: float = Field(default=30.0, alias="ESTATE_API_TIMEOUT")
    # Overrides the token stored by `auth login`
    token: Optional[str] = Field(default=None, alias="ESTATE_API_TOKEN")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    model_config = SettingsConfigDict(
        env_prefix="", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    default_per_page: int = Field(default=15, ge=1, alias="DEFAULT_PER_PAGE")
    session_path: Path = Field(
        default=Path.home() / ".estate_admin" / "session.json", alias="SESSION_PATH"
    )

    api: ApiConfig = Field(default_factory=ApiConfig)

    @field_validator("debug", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower() in ("1", "true", "yes")
        return bool(v)

    def model_post_init(self, __context) -> None:
        # Sub-configuration reads its own aliases from the environment and .env
        self.api = ApiConfig()

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        try:
            settings = Settings()
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e.errors()[0]['msg']}",
                details={"errors": e.errors()},
            )
    return settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global settings
    settings = None


def validate_required_settings() -> List[str]:
    """
    Validate that required settings are present.

    Returns:
        List of missing or invalid settings
    """
    missing = []
    try:
        config = get_settings()
        if not config.api.base_url:
            missing.append("ESTATE_API_BASE_URL")
        elif not config.api.base_url.startswith(("http://", "https://")):
            missing.append("ESTATE_API_BASE_URL (must start with http:// or https://)")
        if config.api.timeout <= 0:
            missing.append("ESTATE_API_TIMEOUT (must be positive)")
    except Exception as e:
        missing.append(f"Configuration error: {e}")

    return missing


def print_configuration_summary():
    """Print a summary of the current configuration for debugging."""
    try:
        config = get_settings()
        print("=== Estate Admin Configuration Summary ===")
        print(f"Environment: {config.environment}")
        print(f"Debug Mode: {config.debug}")
        print(f"API Base URL: {config.api.base_url}")
        print(f"API Timeout: {config.api.timeout}s")
        print(f"Token Override: {'✓' if config.api.token else '✗'}")
        print(f"Default Page Size: {config.default_per_page}")
        print(f"Session File: {config.session_path}")
        print("=" * 42)
    except Exception as e:
        print(f"Error loading configuration: {e}")
