"""
Error Taxonomy
==============

Exceptions raised by the render pipeline, theme resolution and the preview
server. Every error carries an ``ErrorKind`` so callers can decide whether a
failure is fatal (batch mode) or reported and skipped (watch loop).
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Classification of marky failures."""

    CONFIG = "config"
    IO = "io"
    FORMAT = "format"
    FETCH = "fetch"
    ENCODING = "encoding"
    UNSUPPORTED = "unsupported"


class MarkyError(Exception):
    """Base exception for all marky failures."""

    kind: ErrorKind = ErrorKind.CONFIG

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(MarkyError):
    """Theme has no source, theme name is unknown, or manifest is malformed."""

    kind = ErrorKind.CONFIG

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        self.suggestion = suggestion


class ResourceIOError(MarkyError):
    """File read/write failure or socket bind failure."""

    kind = ErrorKind.IO


class FormatError(MarkyError):
    """Template, minifier or image codec failure."""

    kind = ErrorKind.FORMAT


class FetchError(MarkyError):
    """Remote resource retrieval failure."""

    kind = ErrorKind.FETCH


class EncodingError(MarkyError):
    """Input is not valid UTF-8."""

    kind = ErrorKind.ENCODING


class UnsupportedError(MarkyError):
    """Recognized but unimplemented resolution path."""

    kind = ErrorKind.UNSUPPORTED
