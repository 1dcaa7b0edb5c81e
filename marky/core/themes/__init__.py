"""
Themes
======

Theme catalog (built-in + user manifest) and CSS resolution.
"""

from .catalog import (
    available_themes,
    builtin_themes,
    closest_match,
    default_theme,
    find_theme,
    levenshtein,
    load_manifest,
    lookup,
)
from .resolver import ThemeResolver, minify_css, resolve_theme

__all__ = [
    "available_themes",
    "builtin_themes",
    "closest_match",
    "default_theme",
    "find_theme",
    "levenshtein",
    "load_manifest",
    "lookup",
    "ThemeResolver",
    "minify_css",
    "resolve_theme",
]
