"""
Bundled Asset Registry
======================

Read-only access to the resources shipped inside ``marky.assets``: built-in
theme stylesheets and the client scripts embedded in every page. Each table is
loaded once on first use and never mutated afterwards.
"""

from functools import lru_cache
from importlib import resources
from typing import Tuple

import rjsmin

from marky.config.logging import get_logger

logger = get_logger(__name__)

ASSETS_PACKAGE = "marky.assets"


def _read_text(*parts: str) -> str:
    resource = resources.files(ASSETS_PACKAGE).joinpath(*parts)
    return resource.read_text(encoding="utf-8")


@lru_cache(maxsize=None)
def builtin_theme_sources() -> Tuple[Tuple[str, str], ...]:
    """Return ``(name, css)`` pairs for every bundled theme, sorted by name."""
    themes_dir = resources.files(ASSETS_PACKAGE).joinpath("themes")
    entries = []
    for entry in themes_dir.iterdir():
        if not entry.is_file() or not entry.name.endswith(".css"):
            continue
        name = entry.name[: -len(".css")]
        entries.append((name, entry.read_text(encoding="utf-8")))

    entries.sort(key=lambda item: item[0])
    logger.debug("Loaded built-in themes", count=len(entries))
    return tuple(entries)


def _minify_script(source: str, name: str) -> str:
    try:
        return rjsmin.jsmin(source)
    except Exception as e:
        logger.warning("Script minification failed, using original", script=name, error=str(e))
        return source


@lru_cache(maxsize=None)
def client_script() -> str:
    """Minified page script that typesets math, diagrams and code."""
    return _minify_script(_read_text("js", "script.js"), "script.js")


@lru_cache(maxsize=None)
def live_script() -> str:
    """Minified WebSocket bootstrap used by live preview pages."""
    return _minify_script(_read_text("js", "live.js"), "live.js")
