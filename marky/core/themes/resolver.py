"""
Theme Resolver
==============

Turn a Theme into minified CSS. Inline themes are used as-is, path themes
are read from disk (relative paths live in the configuration directory).
"""

from pathlib import Path
from typing import Any, Optional

import rcssmin

from marky.config.logging import get_logger
from marky.config.settings import Settings, get_settings
from marky.core.errors import (
    ConfigError,
    FormatError,
    ResourceIOError,
    UnsupportedError,
)
from marky.models.schemas import Theme

logger = get_logger(__name__)


def minify_css(css: str) -> str:
    """Minify style text. Applying it twice gives the same result as once."""
    try:
        return rcssmin.cssmin(css)
    except Exception as e:
        raise FormatError(f"CSS minification failed: {e}") from e


def resolve_path(path: Path, settings: Optional[Settings] = None) -> Path:
    """Anchor relative theme paths in the configuration directory."""
    if path.is_absolute():
        return path
    settings = settings or get_settings()
    return settings.config_dir / path


class ThemeResolver:
    """Resolves themes to CSS text."""

    def __init__(self, settings: Optional[Settings] = None, log: Any = None) -> None:
        self.settings = settings or get_settings()
        self.logger: Any = log or logger.bind(component="theme_resolver")

    def resolve(self, theme: Theme) -> str:
        """
        Resolve a theme to minified CSS.

        Args:
            theme: Theme with at most one source set

        Returns:
            Minified style text

        Raises:
            ConfigError: If the theme has no source
            ResourceIOError: If a path theme cannot be read
            UnsupportedError: For url themes
            FormatError: If minification fails
        """
        if theme.inline is not None:
            css = theme.inline
        elif theme.path is not None:
            css = self._read_path(theme)
        elif theme.url is not None:
            raise UnsupportedError(
                f"Theme '{theme.name}': remote stylesheets ({theme.url}) are not supported"
            )
        else:
            raise ConfigError(f"Theme '{theme.name}' has no source specified")

        minified = minify_css(css)
        self.logger.debug(
            "Theme resolved",
            theme=theme.name,
            source=theme.source_kind,
            original_size=len(css),
            minified_size=len(minified),
        )
        return minified

    def _read_path(self, theme: Theme) -> str:
        assert theme.path is not None
        path = resolve_path(theme.path, self.settings)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise ResourceIOError(f"Cannot read theme '{theme.name}' from {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise ResourceIOError(f"Theme file {path} is not valid UTF-8: {e}") from e


def resolve_theme(theme: Theme, settings: Optional[Settings] = None) -> str:
    """Resolve a theme to minified CSS with a default resolver."""
    return ThemeResolver(settings).resolve(theme)
