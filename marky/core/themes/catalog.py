"""
Theme Catalog
=============

Built-in themes bundled with the package plus user-defined themes from the
``themes.toml`` manifest in the configuration directory::

    [[themes]]
    name = "paper"
    path = "css/paper.css"

    [[themes]]
    name = "tiny"
    inline = "body { max-width: 40em; }"

User entries are searched first, so a user theme shadows a built-in theme
with the same name.
"""

from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

import tomllib
from pydantic import ValidationError

from marky.config.logging import get_logger
from marky.config.settings import Settings, get_settings
from marky.core.errors import ConfigError, ResourceIOError
from marky.core.rendering.assets import builtin_theme_sources
from marky.models.schemas import Theme, ThemeManifest

logger = get_logger(__name__)


@lru_cache(maxsize=None)
def builtin_themes() -> Tuple[Theme, ...]:
    """Bundled themes in catalog order."""
    return tuple(Theme(name=name, inline=css) for name, css in builtin_theme_sources())


def default_theme() -> Theme:
    """The first built-in theme."""
    return builtin_themes()[0]


def load_manifest(settings: Optional[Settings] = None) -> List[Theme]:
    """
    Read user-defined themes.

    Returns:
        Manifest entries in file order; empty if there is no manifest

    Raises:
        ResourceIOError: If the manifest exists but cannot be read
        ConfigError: If the manifest is not valid TOML or has invalid entries
    """
    settings = settings or get_settings()
    manifest_path = settings.themes_file
    if not manifest_path.exists():
        return []

    try:
        raw = manifest_path.read_bytes()
    except OSError as e:
        raise ResourceIOError(f"Cannot read theme manifest {manifest_path}: {e}") from e

    try:
        data = tomllib.loads(raw.decode("utf-8"))
        manifest = ThemeManifest.model_validate(data)
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Theme manifest {manifest_path} is not valid TOML: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Theme manifest {manifest_path} is invalid: {e}") from e

    logger.debug("Loaded theme manifest", path=str(manifest_path), count=len(manifest.themes))
    return list(manifest.themes)


def available_themes(settings: Optional[Settings] = None) -> List[Theme]:
    """User-defined themes followed by built-in themes."""
    return load_manifest(settings) + list(builtin_themes())


def lookup(catalog: Sequence[Theme], name: str) -> Optional[Theme]:
    """Exact, case-sensitive lookup; first match in catalog order wins."""
    for theme in catalog:
        if theme.name == name:
            return theme
    return None


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings (insert, delete, substitute)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def closest_match(catalog: Sequence[Theme], name: str) -> Optional[Theme]:
    """Theme with the smallest edit distance to ``name``; ties go to the earlier entry."""
    best: Optional[Theme] = None
    best_distance = 0
    for theme in catalog:
        distance = levenshtein(theme.name, name)
        if best is None or distance < best_distance:
            best, best_distance = theme, distance
    return best


def find_theme(name: str, settings: Optional[Settings] = None) -> Theme:
    """
    Look a theme up by name in the full catalog.

    Raises:
        ConfigError: If no theme has that name; ``suggestion`` holds the
            closest existing name, if any
    """
    catalog = available_themes(settings)
    theme = lookup(catalog, name)
    if theme is not None:
        return theme

    closest = closest_match(catalog, name)
    suggestion = closest.name if closest is not None else None
    raise ConfigError(f"Unknown theme '{name}'", suggestion=suggestion)
