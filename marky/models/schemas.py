"""
Pydantic Models and Schemas
===========================

Core data models for documents, render options, themes and preview server
responses. Documents and options are frozen: a configuration change means a
new Document, never an in-place edit.
"""

from typing import Any, Dict, Optional, List, Literal
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator


# Enums
class ImageInclusion(str, Enum):
    """Which image references the inliner embeds."""

    LOCAL = "local"
    REMOTE = "remote"
    ALL = "all"


class OutputFormat(str, Enum):
    """Batch output format."""

    HTML = "html"
    PDF = "pdf"

    @property
    def extension(self) -> str:
        return self.value


# Theme Models
class Theme(BaseModel):
    """A named source of style text.

    At most one of ``inline``, ``path`` and ``url`` may be set. A theme with
    none of them is accepted here and rejected when it is resolved.
    """

    name: str = Field(..., min_length=1, description="Theme name")
    inline: Optional[str] = Field(None, description="Inline CSS")
    path: Optional[Path] = Field(None, description="CSS file, relative to the config dir")
    url: Optional[str] = Field(None, description="Remote stylesheet URL")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def validate_single_source(self) -> "Theme":
        """Ensure a theme names at most one style source."""
        sources = [s for s in (self.inline, self.path, self.url) if s is not None]
        if len(sources) > 1:
            raise ValueError(
                f"Theme '{self.name}' must set only one of 'inline', 'path' or 'url'"
            )
        return self

    @property
    def source_kind(self) -> Optional[str]:
        if self.inline is not None:
            return "inline"
        if self.path is not None:
            return "path"
        if self.url is not None:
            return "url"
        return None


class ThemeManifest(BaseModel):
    """User-defined themes read from ``themes.toml``."""

    themes: List[Theme] = Field(default_factory=list, description="Theme entries")

    model_config = ConfigDict(extra="forbid")


# Rendering Models
class RenderOptions(BaseModel):
    """Feature toggles and theme selection applied to a compilation."""

    theme: Theme = Field(..., description="Theme used for the page")
    highlight: bool = Field(False, description="Load highlight.js")
    math: bool = Field(False, description="Parse $ math and load KaTeX")
    diagrams: bool = Field(False, description="Load Mermaid for diagrams")
    live: bool = Field(False, description="Include the live-reload client")
    image_inclusion: Optional[ImageInclusion] = Field(
        None, description="Inline images as data URIs"
    )
    optimize_images: bool = Field(False, description="Lossless PNG recompression pass")

    model_config = ConfigDict(frozen=True)


class Document(BaseModel):
    """One text input bound to a fixed set of render options."""

    text: str = Field(..., description="Markdown source")
    options: RenderOptions = Field(..., description="Render options")
    base_dir: Optional[Path] = Field(
        None, description="Directory that relative image references resolve against"
    )

    model_config = ConfigDict(frozen=True)


# Health Check Models
class HealthStatus(BaseModel):
    """Preview server health check status."""

    status: Literal["healthy", "closed"] = Field(..., description="Overall status")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp"
    )
    version: str = Field(..., description="Application version")
    subscribers: int = Field(0, ge=0, description="Connected preview clients")
    version_counter: int = Field(0, ge=0, description="Latest broadcast version")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error message")
    error_code: str = Field(..., description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    request_id: Optional[str] = Field(None, description="Request ID for tracking")
