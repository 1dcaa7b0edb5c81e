"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_config_dir() -> Path:
    """Per-user configuration directory holding the theme manifest."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "marky"


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="marky", description="Application name")
    app_version: str = Field(default="0.4.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # Theme Configuration
    config_dir: Path = Field(
        default_factory=default_config_dir,
        description="Directory for the theme manifest and relative theme paths",
    )
    themes_manifest: str = Field(default="themes.toml", description="Theme manifest file name")

    # Live Preview Server Configuration
    host: str = Field(default="127.0.0.1", description="Preview server host")
    port: int = Field(default=8080, ge=0, le=65535, description="Preview server port")
    open_browser: bool = Field(default=True, description="Open the preview in a browser")

    # Rendering Configuration
    default_title: str = Field(default="Document", description="Title used when none is found")
    placeholder_text: str = Field(
        default="😴 Waiting for changes", description="Body served before the first render"
    )
    fetch_timeout: float = Field(
        default=30.0, gt=0, description="Timeout for remote image downloads in seconds"
    )

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    playwright_timeout: int = Field(default=30000, description="Playwright timeout in milliseconds")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @property
    def themes_file(self) -> Path:
        """Location of the user theme manifest."""
        return self.config_dir / self.themes_manifest

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="MARKY_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
