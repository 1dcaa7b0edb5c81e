"""
Test Configuration
==================

Pytest configuration with fixtures shared by unit and integration tests.
Every test runs against isolated settings whose configuration directory is a
fresh temporary directory.
"""

from pathlib import Path
from typing import Generator

import pytest
from pydantic_settings import SettingsConfigDict

import marky.config.settings as settings_module
from marky.config.settings import Settings
from marky.core.live.broadcaster import Broadcaster
from marky.core.themes import default_theme
from marky.models.schemas import Document, RenderOptions, Theme


# Test settings override
class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    debug: bool = True
    log_level: str = "DEBUG"
    open_browser: bool = False
    port: int = 0
    fetch_timeout: float = 5.0
    playwright_headless: bool = True

    model_config = SettingsConfigDict(env_file=".env.test", env_prefix="MARKY_TEST_")


@pytest.fixture
def config_dir(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """Empty configuration directory."""
    return tmp_path_factory.mktemp("config")


@pytest.fixture
def test_settings(config_dir: Path) -> TestSettings:
    """Test settings fixture."""
    return TestSettings(config_dir=config_dir)


@pytest.fixture(autouse=True)
def override_settings(
    test_settings: TestSettings, monkeypatch: pytest.MonkeyPatch
) -> Generator[TestSettings, None, None]:
    """Make ``get_settings()`` return the test settings."""
    monkeypatch.setattr(settings_module, "settings", test_settings)
    yield test_settings


@pytest.fixture
def plain_theme() -> Theme:
    """Small inline theme."""
    return Theme(name="plain", inline="body {  color : black ;  }")


@pytest.fixture
def render_options(plain_theme: Theme) -> RenderOptions:
    """Render options with every feature off."""
    return RenderOptions(theme=plain_theme)


@pytest.fixture
def live_options() -> RenderOptions:
    """Render options used by the preview server."""
    return RenderOptions(theme=default_theme(), live=True)


@pytest.fixture
def sample_document(render_options: RenderOptions) -> Document:
    """Document with a heading and a paragraph."""
    return Document(text="# Hello\nworld", options=render_options)


@pytest.fixture
def broadcaster() -> Generator[Broadcaster, None, None]:
    """Fresh broadcaster, closed after the test."""
    instance = Broadcaster()
    yield instance
    instance.close()
